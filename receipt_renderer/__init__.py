"""Render retail receipts as monospace text or PNG images."""

from .calculator import compute_totals, wrap_text
from .diagnostics import Diagnostic, DiagnosticChannel
from .environment import FileEnvironment, WebEnvironment
from .errors import DecodeError, EncodeError, ReceiptError, RenderError
from .image_receipt import ReceiptImageRenderer, render_image
from .models import Discount, DiscountKind, ItemInput, QRCodeSpec, ReceiptInput
from .text_receipt import render_text

__all__ = [
    'compute_totals',
    'wrap_text',
    'render_text',
    'render_image',
    'ReceiptImageRenderer',
    'ReceiptInput',
    'ItemInput',
    'Discount',
    'DiscountKind',
    'QRCodeSpec',
    'Diagnostic',
    'DiagnosticChannel',
    'FileEnvironment',
    'WebEnvironment',
    'ReceiptError',
    'RenderError',
    'DecodeError',
    'EncodeError',
]
