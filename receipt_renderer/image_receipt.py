"""Receipt image rendering.

Final content height is only known once every item name has been wrapped,
so the receipt is laid out twice: first onto an oversized surface while a
vertical cursor tracks the content, then copied onto a surface cut exactly
to ``cursor + PADDING``.
"""

import logging
from contextlib import contextmanager
from typing import Optional

from .calculator import compute_totals, format_money, format_number, format_rate, wrap_text
from .canvas import FontSpec, PillowBackend
from .diagnostics import DiagnosticChannel, LOGO_UNAVAILABLE
from .environment import FileEnvironment
from .errors import RenderError
from .models import ReceiptInput, as_receipt
from .qr import QRCodeEncoder
from .text_receipt import discount_label

logger = logging.getLogger(__name__)

CANVAS_WIDTH = 400
PADDING = 20
CONTENT_WIDTH = CANVAS_WIDTH - 2 * PADDING

LINE_HEIGHT = 22
TITLE_LINE_HEIGHT = 32
SMALL_LINE_HEIGHT = 20
TOTAL_LINE_HEIGHT = 28
SECTION_GAP = 10

QTY_COLUMN = 40
PRICE_GAP = 10
LOGO_MAX_HEIGHT = 80
QR_MARGIN = 20

# Everything except item rows, wrapped header lines and the QR code
BASE_HEIGHT = 460
ITEM_LINE_MULTIPLIER = 3

FONT_TITLE = FontSpec(24, bold=True)
FONT_SMALL = FontSpec(14)
FONT_BODY = FontSpec(16)
FONT_HEADER = FontSpec(16, bold=True)
FONT_TOTAL = FontSpec(18, bold=True)


@contextmanager
def _stage(stage):
    """Re-raise collaborator failures as RenderError tagged with the stage"""
    try:
        yield
    except RenderError:
        raise
    except Exception as e:
        raise RenderError(stage, str(e)) from e


def estimate_height(receipt: ReceiptInput) -> int:
    """Upper bound for the measurement surface height.

    A wrapped name never has more lines than words, so each item is budgeted
    for max(ITEM_LINE_MULTIPLIER, word count) lines.
    """
    item_lines = sum(max(ITEM_LINE_MULTIPLIER, len(item.name.split())) for item in receipt.items)
    height = BASE_HEIGHT + LINE_HEIGHT * item_lines
    height += TITLE_LINE_HEIGHT * len(receipt.store_name.split())
    height += SMALL_LINE_HEIGHT * len((receipt.company_address or '').split())
    if receipt.qr_code:
        height += receipt.qr_code.size + QR_MARGIN
    return height


class ReceiptImageRenderer:
    """Lays out receipts on a drawing surface and hands them to an environment"""

    def __init__(self, backend=None, qr_encoder=None, environment=None):
        self.backend = backend or PillowBackend()
        self.qr_encoder = qr_encoder or QRCodeEncoder()
        self.environment = environment or FileEnvironment()

    async def render(self, receipt, output_path=None, return_embeddable=False,
                     diagnostics: Optional[DiagnosticChannel] = None):
        receipt = as_receipt(receipt)
        diagnostics = diagnostics if diagnostics is not None else DiagnosticChannel()

        await self.environment.prepare(receipt)

        totals, line_items = compute_totals(
            receipt.items, receipt.discount, receipt.tax_rate, receipt.vat_rate, diagnostics
        )

        # Pass 1: lay out on an oversized surface
        with _stage('surface'):
            draft = self.backend.create_surface(CANVAS_WIDTH, estimate_height(receipt))
            draft.set_fill_style('white')
            draft.fill_rect(0, 0, draft.width, draft.height)
            draft.set_fill_style('black')
            draft.set_stroke_style('black')

        y = await self._layout(draft, receipt, totals, line_items, diagnostics)

        # Pass 2: copy onto a surface trimmed to the content
        final_height = y + PADDING
        with _stage('surface'):
            final = self.backend.create_surface(CANVAS_WIDTH, final_height)
            final.set_fill_style('white')
            final.fill_rect(0, 0, final.width, final.height)
            final.draw_image(draft.as_image(), 0, 0)

        logger.info(f"Receipt image laid out: {CANVAS_WIDTH}x{final_height}px, {len(line_items)} items")
        return await self.environment.deliver(final, output_path, return_embeddable)

    async def _layout(self, surface, receipt, totals, line_items, diagnostics):
        currency = receipt.currency
        right = CANVAS_WIDTH - PADDING
        y = PADDING

        if receipt.logo_path:
            y = await self._draw_logo(surface, receipt.logo_path, y, diagnostics)

        # Header
        y = self._centered_lines(surface, receipt.store_name, FONT_TITLE, TITLE_LINE_HEIGHT, y)
        if receipt.company_address:
            y = self._centered_lines(surface, receipt.company_address, FONT_SMALL, SMALL_LINE_HEIGHT, y)
        y = self._rule(surface, y + SECTION_GAP)

        surface.set_font(FONT_HEADER)
        surface.fill_text('QTY', PADDING, y)
        surface.fill_text('ITEM', PADDING + QTY_COLUMN, y)
        surface.set_font(FONT_HEADER, align='right')
        surface.fill_text('TOTAL', right, y)
        y = self._rule(surface, y + LINE_HEIGHT)

        # Items
        name_x = PADDING + QTY_COLUMN
        for item in line_items:
            price = format_money(item.total, currency)
            surface.set_font(FONT_BODY)
            budget = right - name_x - surface.measure_text(price) - PRICE_GAP
            name_lines = wrap_text(item.name, budget, surface.measure_text)

            surface.fill_text(format_number(item.quantity), PADDING, y)
            surface.fill_text(name_lines[0], name_x, y)
            surface.set_font(FONT_BODY, align='right')
            surface.fill_text(price, right, y)
            y += LINE_HEIGHT

            surface.set_font(FONT_BODY)
            for continuation in name_lines[1:]:
                surface.fill_text(continuation, name_x, y)
                y += LINE_HEIGHT

        y = self._rule(surface, y + SECTION_GAP // 2)

        # Summary
        y = self._row(surface, 'Subtotal:', format_money(totals.subtotal, currency), y)
        if totals.discount_amount > 0:
            y = self._row(surface, f"{discount_label(receipt.discount)}:",
                          f"-{format_money(totals.discount_amount, currency)}", y)
        if totals.vat > 0:
            y = self._row(surface, f"VAT ({format_rate(receipt.vat_rate)}%):",
                          format_money(totals.vat, currency), y)
        if totals.tax > 0:
            y = self._row(surface, f"Tax ({format_rate(receipt.tax_rate)}%):",
                          format_money(totals.tax, currency), y)
        y = self._rule(surface, y + SECTION_GAP // 2)
        y = self._row(surface, 'TOTAL:', format_money(totals.total, currency), y,
                      font=FONT_TOTAL, line_height=TOTAL_LINE_HEIGHT)

        # Footer
        y += SECTION_GAP
        surface.set_font(FONT_BODY, align='center')
        surface.fill_text('Thank you for your purchase!', CANVAS_WIDTH / 2, y)
        y += LINE_HEIGHT

        if receipt.qr_code:
            y = await self._draw_qr_code(surface, receipt.qr_code, y)

        return y

    async def _draw_logo(self, surface, logo_path, y, diagnostics):
        try:
            logo = await self.backend.decode_image(logo_path)
        except Exception as e:
            diagnostics.emit(LOGO_UNAVAILABLE, f"Could not load logo, continuing without it: {e}",
                             source=logo_path[:80])
            return y

        scale = min(1.0, LOGO_MAX_HEIGHT / logo.height, CONTENT_WIDTH / logo.width)
        width, height = max(int(logo.width * scale), 1), max(int(logo.height * scale), 1)
        surface.draw_image(logo, (CANVAS_WIDTH - width) / 2, y, width, height)
        return y + height + SECTION_GAP

    async def _draw_qr_code(self, surface, qr_code, y):
        with _stage('qr_encode'):
            data_url = await self.qr_encoder.encode(qr_code.data, qr_code.size)
        with _stage('qr_decode'):
            qr_img = await self.backend.decode_image(data_url)
        y += QR_MARGIN // 2
        surface.draw_image(qr_img, (CANVAS_WIDTH - qr_code.size) / 2, y, qr_code.size, qr_code.size)
        return y + qr_code.size

    def _centered_lines(self, surface, text, font, line_height, y):
        surface.set_font(font, align='center')
        for line in wrap_text(text, CONTENT_WIDTH, surface.measure_text):
            surface.fill_text(line, CANVAS_WIDTH / 2, y)
            y += line_height
        return y

    def _row(self, surface, label, value, y, font=FONT_BODY, line_height=LINE_HEIGHT):
        surface.set_font(font)
        surface.fill_text(label, PADDING, y)
        surface.set_font(font, align='right')
        surface.fill_text(value, CANVAS_WIDTH - PADDING, y)
        return y + line_height

    def _rule(self, surface, y):
        surface.line(PADDING, y, CANVAS_WIDTH - PADDING, y)
        return y + SECTION_GAP


async def render_image(receipt, output_path=None, *, backend=None, qr_encoder=None,
                       environment=None, return_embeddable=False, diagnostics=None):
    """Render a receipt image.

    With the default ``FileEnvironment`` the PNG is written to ``output_path``
    (``RECEIPT_OUTPUT_PATH`` when omitted) and its bytes are returned. With a
    ``WebEnvironment`` the data URL is returned when ``return_embeddable`` is
    set, otherwise a save-as download is triggered and None is returned.

    Raises:
        RenderError: when a collaborator fails; ``stage`` names the step
        ValueError: when the receipt data is malformed
    """
    renderer = ReceiptImageRenderer(backend, qr_encoder, environment)
    return await renderer.render(receipt, output_path, return_embeddable, diagnostics)
