"""Pricing and line-wrapping for receipts.

Everything here is pure: the text and image renderers both call into these
functions and only differ in how they measure text.
"""

import math
from decimal import Decimal, ROUND_HALF_UP
from typing import Callable, Iterable, List, Optional, Tuple

from .diagnostics import DiagnosticChannel, ITEM_COERCED
from .models import Discount, DiscountKind, ItemInput, LineItem, ReceiptTotals

CENTS = Decimal('0.01')


def _is_valid_amount(value) -> bool:
    """True for finite, non-negative int/float values (bools excluded)"""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value) and value >= 0


def calculate_line_items(items: Iterable[ItemInput],
                         diagnostics: Optional[DiagnosticChannel] = None) -> List[LineItem]:
    """Compute per-item totals, zeroing items whose quantity or price is unusable"""
    if diagnostics is None:
        diagnostics = DiagnosticChannel()
    line_items = []
    for index, item in enumerate(items):
        quantity, price = item.quantity, item.price
        valid = _is_valid_amount(quantity) and _is_valid_amount(price)
        # Each factor can be finite while the product overflows
        if not (valid and math.isfinite(quantity * price)):
            diagnostics.emit(
                ITEM_COERCED,
                f"Item '{item.name}' has invalid quantity/price "
                f"({quantity!r}, {price!r}); using 0",
                index=index, name=item.name, quantity=quantity, price=price,
            )
            quantity, price = 0, 0
        line_items.append(LineItem(name=item.name, quantity=quantity, price=price,
                                   total=quantity * price))
    return line_items


def discount_amount(subtotal: float, discount: Optional[Discount]) -> float:
    if discount is None:
        return 0.0
    if discount.kind is DiscountKind.PERCENTAGE:
        amount = subtotal * (discount.value / 100)
    else:
        amount = discount.value
    # Never negative; deliberately not capped at the subtotal
    return max(amount, 0.0)


def compute_totals(items: Iterable[ItemInput],
                   discount: Optional[Discount] = None,
                   tax_rate: float = 0.0,
                   vat_rate: float = 0.0,
                   diagnostics: Optional[DiagnosticChannel] = None) -> Tuple[ReceiptTotals, List[LineItem]]:
    """Compute line items and receipt totals.

    Discount comes off first; tax and VAT are both taken from the discounted
    subtotal (neither compounds on the other) and added to give the total.
    """
    line_items = calculate_line_items(items, diagnostics)
    subtotal = sum(item.total for item in line_items)
    discount_value = discount_amount(subtotal, discount)
    after_discount = subtotal - discount_value
    tax = after_discount * tax_rate
    vat = after_discount * vat_rate

    totals = ReceiptTotals(
        subtotal=subtotal,
        discount_amount=discount_value,
        subtotal_after_discount=after_discount,
        tax=tax,
        vat=vat,
        total=after_discount + tax + vat,
    )
    return totals, line_items


def wrap_text(text: str, max_width: float, width_of: Callable[[str], float] = len) -> List[str]:
    """Greedy word wrap.

    Words are added to the current line while ``width_of(line + ' ' + word)``
    stays within ``max_width``. A word wider than the budget gets a line of
    its own and is never split. Always returns at least one line.
    """
    words = text.split()
    if not words:
        return ['']

    lines = []
    current = words[0]
    for word in words[1:]:
        candidate = f"{current} {word}"
        if width_of(candidate) <= max_width:
            current = candidate
        else:
            lines.append(current)
            current = word
    lines.append(current)
    return lines


def format_money(value: float, currency: str = '$') -> str:
    """Currency symbol followed by the amount with exactly two decimals"""
    amount = Decimal(value).quantize(CENTS, rounding=ROUND_HALF_UP)
    if amount == 0:
        # Avoid "$-0.00" for tiny negative remainders
        amount = abs(amount)
    return f"{currency}{amount}"


def format_number(value) -> str:
    """Render a number the way it was typed: 2.0 -> '2', 1.5 -> '1.5'"""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def format_rate(rate: float) -> str:
    """Percentage with two decimals, e.g. 0.0825 -> '8.25'"""
    return str(Decimal(rate * 100).quantize(CENTS, rounding=ROUND_HALF_UP))
