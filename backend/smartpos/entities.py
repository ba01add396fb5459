# Overview: Domain values shared by the billing core, the ledger and the data store adapter.

# backend/smartpos/entities.py
"""
SmartPOS domain values (authoritative shapes)

- Entities are frozen dataclasses; "mutation" means building a new value with
  dataclasses.replace().
- Money is Decimal. Totals are rounded half-up to 2 places.
- Two serializations:
    to_dict()   -> snake_case keys (HTTP API)
    to_record() -> camelCase record shape shared with the remote schema and the
                   JSON columns (orders.items / orders.customer)
  from_dict() accepts either shape.
"""
from __future__ import annotations

from dataclasses import dataclass, field, fields, replace
from datetime import datetime
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Mapping

from .time_utils import parse_iso_datetime, to_utc_z

CENTS = Decimal("0.01")
DEFAULT_MIN_STOCK_LEVEL = 5
DEFAULT_CATEGORY = "General"
SHOP_DETAILS_ID = "main_details"


def to_money(value: Any) -> Decimal:
    """Decimal rounded half-up to 2 places."""
    return to_decimal(value).quantize(CENTS, rounding=ROUND_HALF_UP)


def to_decimal(value: Any) -> Decimal:
    if isinstance(value, Decimal):
        return value
    if value is None or isinstance(value, bool):
        raise ValueError(f"not a number: {value!r}")
    try:
        return Decimal(str(value).strip())
    except InvalidOperation:
        raise ValueError(f"not a number: {value!r}")


def _optional_decimal(value: Any) -> Decimal | None:
    if value is None or value == "":
        return None
    return to_decimal(value)


def _number(value: Decimal | None) -> float | None:
    return float(value) if value is not None else None


def _pick(data: Mapping[str, Any], snake: str, camel: str, default: Any = None) -> Any:
    if snake in data:
        return data[snake]
    return data.get(camel, default)


@dataclass(frozen=True)
class Product:
    id: str
    name: str
    price: Decimal
    stock: int
    category: str = DEFAULT_CATEGORY
    description: str | None = None
    image: str | None = None
    tax_rate: Decimal | None = None
    min_stock_level: int = DEFAULT_MIN_STOCK_LEVEL
    rental_duration: str | None = None

    @property
    def is_low_stock(self) -> bool:
        return 0 < self.stock <= self.min_stock_level

    @property
    def is_out_of_stock(self) -> bool:
        return self.stock <= 0

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Product":
        min_level = _pick(data, "min_stock_level", "minStockLevel")
        return cls(
            id=str(data["id"]),
            name=str(data.get("name") or ""),
            price=to_decimal(data.get("price") or 0),
            stock=int(data.get("stock") or 0),
            category=str(data.get("category") or DEFAULT_CATEGORY),
            description=data.get("description"),
            image=data.get("image"),
            tax_rate=_optional_decimal(_pick(data, "tax_rate", "taxRate")),
            min_stock_level=int(min_level) if min_level not in (None, "") else DEFAULT_MIN_STOCK_LEVEL,
            rental_duration=_pick(data, "rental_duration", "rentalDuration"),
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "price": float(self.price),
            "stock": self.stock,
            "category": self.category,
            "description": self.description,
            "image": self.image,
            "tax_rate": _number(self.tax_rate),
            "min_stock_level": self.min_stock_level,
            "rental_duration": self.rental_duration,
            "is_low_stock": self.is_low_stock,
        }

    def to_record(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "price": float(self.price),
            "stock": self.stock,
            "category": self.category,
            "description": self.description,
            "image": self.image,
            "taxRate": _number(self.tax_rate),
            "minStockLevel": self.min_stock_level,
            "rentalDuration": self.rental_duration,
        }


@dataclass(frozen=True)
class CartItem(Product):
    """A Product snapshot plus an order-scoped quantity (never a live reference)."""
    qty: int = 1

    @classmethod
    def snapshot(cls, product: Product, qty: int, tax_rate: Decimal | None) -> "CartItem":
        values = {f.name: getattr(product, f.name) for f in fields(Product)}
        values["tax_rate"] = tax_rate
        return cls(**values, qty=qty)

    @property
    def line_total(self) -> Decimal:
        return self.price * self.qty

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "CartItem":
        base = Product.from_dict(data)
        return cls(**{f.name: getattr(base, f.name) for f in fields(Product)}, qty=int(data.get("qty") or 1))

    def to_dict(self) -> dict:
        out = super().to_dict()
        out.pop("is_low_stock", None)
        out["qty"] = self.qty
        out["line_total"] = float(to_money(self.line_total))
        return out

    def to_record(self) -> dict:
        out = super().to_record()
        out["qty"] = self.qty
        return out


@dataclass(frozen=True)
class CustomerInfo:
    """Customer snapshot bound to a bill / stored on an order."""
    name: str = ""
    phone: str = ""
    place: str = ""

    @property
    def is_blank(self) -> bool:
        return not (self.name or self.phone)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None) -> "CustomerInfo | None":
        if not data:
            return None
        info = cls(
            name=str(data.get("name") or "").strip(),
            phone=str(data.get("phone") or "").strip(),
            place=str(data.get("place") or "").strip(),
        )
        return None if info.is_blank else info

    def to_dict(self) -> dict:
        return {"name": self.name, "phone": self.phone, "place": self.place}

    to_record = to_dict


@dataclass(frozen=True)
class Customer:
    id: str
    name: str
    phone: str
    place: str = ""

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Customer":
        return cls(
            id=str(data["id"]),
            name=str(data.get("name") or ""),
            phone=str(data.get("phone") or ""),
            place=str(data.get("place") or ""),
        )

    def to_dict(self) -> dict:
        return {"id": self.id, "name": self.name, "phone": self.phone, "place": self.place}

    to_record = to_dict


@dataclass(frozen=True)
class Order:
    id: str
    date: datetime
    items: tuple[CartItem, ...]
    total: Decimal
    tax_total: Decimal
    customer: CustomerInfo | None = None

    @property
    def sub_total(self) -> Decimal:
        return to_money(sum((item.line_total for item in self.items), Decimal("0")))

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Order":
        raw_date = data.get("date")
        when = raw_date if isinstance(raw_date, datetime) else parse_iso_datetime(raw_date)
        if when is None:
            raise ValueError("order date is required")
        if when.tzinfo is not None:
            when = parse_iso_datetime(when.isoformat())
        return cls(
            id=str(data["id"]),
            date=when,
            items=tuple(CartItem.from_dict(item) for item in data.get("items") or []),
            total=to_money(data.get("total") or 0),
            tax_total=to_money(_pick(data, "tax_total", "taxTotal", 0) or 0),
            customer=CustomerInfo.from_dict(data.get("customer")),
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "date": to_utc_z(self.date),
            "items": [item.to_dict() for item in self.items],
            "sub_total": float(self.sub_total),
            "tax_total": float(self.tax_total),
            "total": float(self.total),
            "customer": self.customer.to_dict() if self.customer else None,
        }

    def to_record(self) -> dict:
        return {
            "id": self.id,
            "date": to_utc_z(self.date),
            "items": [item.to_record() for item in self.items],
            "total": float(self.total),
            "taxTotal": float(self.tax_total),
            "customer": self.customer.to_record() if self.customer else None,
        }


_SHOP_CAMEL = {
    "footer_message": "footerMessage",
    "powered_by_text": "poweredByText",
    "payment_qr_code": "paymentQrCode",
    "tax_enabled": "taxEnabled",
    "default_tax_rate": "defaultTaxRate",
    "show_logo": "showLogo",
    "show_payment_qr": "showPaymentQr",
    "ai_description_prompt": "aiDescriptionPrompt",
}


@dataclass(frozen=True)
class ShopDetails:
    """
    Singleton shop configuration (keyed "main_details").

    Every field is named and defaulted; from_dict() fills whatever a stored
    record is missing instead of guessing at its shape at use time.
    """
    name: str = "SmartPOS Demo Shop"
    address: str = "123 Innovation Drive, Tech Valley, CA 90210"
    phone: str = "+91 98765 43210"
    email: str = "contact@smartpos.demo"
    footer_message: str = "Thank you for your business!"
    powered_by_text: str = "Powered by SmartPOS"
    logo: str = ""
    payment_qr_code: str = ""
    tax_enabled: bool = True
    default_tax_rate: Decimal = field(default=Decimal("5"))
    show_logo: bool = True
    show_payment_qr: bool = True
    ai_description_prompt: str = ""

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None) -> "ShopDetails":
        defaults = cls()
        if not data:
            return defaults
        values: dict[str, Any] = {}
        for f in fields(cls):
            raw = _pick(data, f.name, _SHOP_CAMEL.get(f.name, f.name))
            if raw is None:
                continue
            if f.name == "default_tax_rate":
                raw = to_decimal(raw)
            elif f.name in {"tax_enabled", "show_logo", "show_payment_qr"}:
                raw = bool(raw)
            else:
                raw = str(raw)
            values[f.name] = raw
        return replace(defaults, **values)

    def merged(self, patch: Mapping[str, Any]) -> "ShopDetails":
        """Read-modify-write: apply a partial patch on top of the current value."""
        current = self.to_dict()
        current.update({k: v for k, v in patch.items() if k in current})
        return ShopDetails.from_dict(current)

    def to_dict(self) -> dict:
        out = {f.name: getattr(self, f.name) for f in fields(self)}
        out["default_tax_rate"] = float(self.default_tax_rate)
        return out

    def to_record(self) -> dict:
        out = {"id": SHOP_DETAILS_ID}
        for key, value in self.to_dict().items():
            out[_SHOP_CAMEL.get(key, key)] = value
        return out
