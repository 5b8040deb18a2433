"""
Pytest configuration for receipt renderer tests.

Sets up test environment and shared fixtures.
"""
import os
import pytest

# Keep test runs away from the working directory's database and log file
os.environ.setdefault("LOG_FILE", os.devnull)

from receipt_renderer.diagnostics import DiagnosticChannel  # noqa: E402
from receipt_renderer.storage import KeyValueStore  # noqa: E402


@pytest.fixture
def grocery_receipt():
    """Two-item receipt with no discount, tax or VAT (total $9.75)."""
    return {
        'storeName': 'Awesome Store',
        'items': [
            {'name': 'Milk', 'quantity': 2, 'price': 3.50},
            {'name': 'Bread', 'quantity': 1, 'price': 2.75},
        ],
    }


@pytest.fixture
def coffee_receipt():
    """Receipt exercising address, wrapping, discount, tax and QR code."""
    return {
        'storeName': 'The Corner Coffee Shop',
        'companyAddress': '123 Main St, Anytown',
        'items': [
            {'name': 'Large Latte', 'quantity': 2, 'price': 4.50},
            {'name': 'Blueberry Muffin - Freshly Baked', 'quantity': 1, 'price': 3.00},
            {'name': 'Loyalty Discount Item', 'quantity': 1, 'price': 0.00},
        ],
        'taxRate': 0.05,
        'discount': {'type': 'percentage', 'value': 10},
        'qrCode': {'data': 'https://example.com/receipt/12345', 'size': 150},
    }


@pytest.fixture
def diagnostics():
    return DiagnosticChannel()


@pytest.fixture
def storage(tmp_path):
    """Key-value store backed by a throwaway sqlite file."""
    return KeyValueStore(str(tmp_path / 'receipts.db'))
