"""Data models for receipt rendering."""

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Mapping, Optional, Tuple

from .config import DEFAULTS


class DiscountKind(str, Enum):
    FIXED = 'fixed'
    PERCENTAGE = 'percentage'


@dataclass(frozen=True)
class Discount:
    """Discount applied to the subtotal"""
    kind: DiscountKind
    value: float

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> 'Discount':
        if not isinstance(data, Mapping):
            raise ValueError("discount must be an object with 'type' and 'value'")
        # Anything that isn't a percentage is a fixed amount
        kind = DiscountKind.PERCENTAGE if data.get('type') == 'percentage' else DiscountKind.FIXED
        return cls(kind=kind, value=_parse_number(data.get('value', 0), 'discount.value'))


@dataclass(frozen=True)
class QRCodeSpec:
    data: str
    size: int = DEFAULTS.qr_size


@dataclass(frozen=True)
class ItemInput:
    """A purchased item as supplied by the caller.

    Quantity and price are kept exactly as given; the calculator decides
    whether they are usable numbers.
    """
    name: str
    quantity: Any
    price: Any


@dataclass(frozen=True)
class LineItem:
    """A line item with its computed total"""
    name: str
    quantity: float
    price: float
    total: float


@dataclass(frozen=True)
class ReceiptTotals:
    subtotal: float
    discount_amount: float
    subtotal_after_discount: float
    tax: float
    vat: float
    total: float


@dataclass(frozen=True)
class ReceiptInput:
    """Everything needed to render one receipt"""
    items: Tuple[ItemInput, ...]
    store_name: str = DEFAULTS.store_name
    company_address: Optional[str] = None
    tax_rate: float = DEFAULTS.tax_rate
    vat_rate: float = DEFAULTS.vat_rate
    discount: Optional[Discount] = None
    currency: str = DEFAULTS.currency
    logo_path: Optional[str] = None
    qr_code: Optional[QRCodeSpec] = None
    extra: Dict[str, Any] = field(default_factory=dict, compare=False)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> 'ReceiptInput':
        """Build a receipt from a JSON-style mapping (camelCase keys).

        Raises:
            ValueError: if items are missing or a rate/discount/QR field is malformed.
        """
        if not isinstance(data, Mapping):
            raise ValueError("Receipt data must be an object")

        raw_items = data.get('items')
        if not isinstance(raw_items, list):
            raise ValueError("Receipt data requires an 'items' list")

        items = []
        for raw in raw_items:
            if not isinstance(raw, Mapping):
                raise ValueError(f"Invalid item entry: {raw!r}")
            items.append(ItemInput(
                name=str(raw.get('name') or ''),
                quantity=raw.get('quantity'),
                price=raw.get('price'),
            ))

        discount = None
        if data.get('discount') is not None:
            discount = Discount.from_dict(data['discount'])

        qr_code = None
        raw_qr = data.get('qrCode')
        if raw_qr is not None:
            if not isinstance(raw_qr, Mapping):
                raise ValueError("qrCode must be an object with 'data' and optional 'size'")
            size = raw_qr.get('size')
            if size is None:
                size = DEFAULTS.qr_size
            if isinstance(size, bool) or not isinstance(size, int) or size <= 0:
                raise ValueError(f"qrCode.size must be a positive integer, got {size!r}")
            # An empty payload means no QR section at all
            if raw_qr.get('data'):
                qr_code = QRCodeSpec(data=str(raw_qr['data']), size=size)

        known = {'storeName', 'companyAddress', 'items', 'taxRate', 'vatRate',
                 'discount', 'currency', 'logoPath', 'qrCode'}

        return cls(
            items=tuple(items),
            store_name=str(data.get('storeName') or DEFAULTS.store_name),
            company_address=data.get('companyAddress') or None,
            tax_rate=_parse_rate(data.get('taxRate'), 'taxRate', DEFAULTS.tax_rate),
            vat_rate=_parse_rate(data.get('vatRate'), 'vatRate', DEFAULTS.vat_rate),
            discount=discount,
            currency=str(data.get('currency') or DEFAULTS.currency),
            logo_path=data.get('logoPath') or None,
            qr_code=qr_code,
            extra={key: value for key, value in data.items() if key not in known},
        )

    def to_dict(self) -> Dict[str, Any]:
        """Serialize back to the camelCase JSON shape accepted by from_dict"""
        data: Dict[str, Any] = {
            'storeName': self.store_name,
            'items': [
                {'name': item.name, 'quantity': item.quantity, 'price': item.price}
                for item in self.items
            ],
            'taxRate': self.tax_rate,
            'vatRate': self.vat_rate,
            'currency': self.currency,
        }
        if self.company_address:
            data['companyAddress'] = self.company_address
        if self.discount:
            data['discount'] = {'type': self.discount.kind.value, 'value': self.discount.value}
        if self.logo_path:
            data['logoPath'] = self.logo_path
        if self.qr_code:
            data['qrCode'] = {'data': self.qr_code.data, 'size': self.qr_code.size}
        data.update(self.extra)
        return data


def as_receipt(receipt) -> ReceiptInput:
    if isinstance(receipt, ReceiptInput):
        return receipt
    return ReceiptInput.from_dict(receipt)


def _parse_number(value, name) -> float:
    if isinstance(value, bool):
        raise ValueError(f"{name} must be a number, got {value!r}")
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ValueError(f"{name} must be a number, got {value!r}")
    if not math.isfinite(number):
        raise ValueError(f"{name} must be finite, got {value!r}")
    return number


def _parse_rate(value, name, default) -> float:
    if value is None:
        return default
    rate = _parse_number(value, name)
    if rate < 0:
        raise ValueError(f"{name} must not be negative, got {value!r}")
    return rate
