"""Monospace text receipt (32 columns)."""

from typing import Optional

from .calculator import compute_totals, format_money, format_number, format_rate, wrap_text
from .diagnostics import DiagnosticChannel
from .models import DiscountKind, as_receipt

WIDTH = 32
QTY_WIDTH = 3
CONTINUATION_INDENT = ' ' * (QTY_WIDTH + 1)

DOUBLE_RULE = '=' * WIDTH
RULE = '-' * WIDTH


def _centered(text: str) -> str:
    return text.rjust(15 + len(text) // 2)


def discount_label(discount) -> str:
    if discount.kind is DiscountKind.PERCENTAGE:
        return f"Discount ({format_number(discount.value)}%)"
    return "Discount"


def render_text(receipt, diagnostics: Optional[DiagnosticChannel] = None) -> str:
    """Render a receipt as plain text.

    Args:
        receipt: ReceiptInput or a JSON-style mapping with camelCase keys
        diagnostics: optional channel receiving item coercion events

    Returns:
        The receipt, newline terminated
    """
    receipt = as_receipt(receipt)
    currency = receipt.currency
    totals, line_items = compute_totals(
        receipt.items, receipt.discount, receipt.tax_rate, receipt.vat_rate, diagnostics
    )

    lines = [DOUBLE_RULE, _centered(receipt.store_name)]
    if receipt.company_address:
        lines.append(_centered(receipt.company_address))
    lines += [DOUBLE_RULE, '', 'QTY  ITEM                  TOTAL', RULE]

    for item in line_items:
        qty = format_number(item.quantity).ljust(QTY_WIDTH)
        item_total = format_money(item.total, currency)
        max_name = max(WIDTH - len(qty) - len(item_total) - 2, 1)
        name_lines = wrap_text(item.name, max_name)
        lines.append(f"{qty} {name_lines[0].ljust(max_name)} {item_total}")
        for continuation in name_lines[1:]:
            lines.append(f"{CONTINUATION_INDENT}{continuation}")

    lines += ['', RULE]
    lines.append(f"Subtotal: {format_money(totals.subtotal, currency).rjust(22)}")
    if totals.discount_amount > 0:
        label = discount_label(receipt.discount)
        amount = f"-{format_money(totals.discount_amount, currency)}"
        lines.append(f"{label}: {amount.rjust(29 - len(label))}")
    if totals.vat > 0:
        lines.append(f"VAT ({format_rate(receipt.vat_rate)}%): {format_money(totals.vat, currency).rjust(20)}")
    if totals.tax > 0:
        lines.append(f"Tax ({format_rate(receipt.tax_rate)}%): {format_money(totals.tax, currency).rjust(20)}")
    lines.append(RULE)
    lines.append(f"TOTAL: {format_money(totals.total, currency).rjust(25)}")
    lines += ['', DOUBLE_RULE, '   Thank you for your purchase!   ', DOUBLE_RULE]

    return '\n'.join(lines) + '\n'
