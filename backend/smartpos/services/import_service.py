# Overview: Bulk import of products and customers from CSV or Excel uploads.

from __future__ import annotations

import csv
import io
from zipfile import BadZipFile
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import Any, BinaryIO, Iterable

from openpyxl import load_workbook
from openpyxl.utils.exceptions import InvalidFileException

from ..entities import Customer, DEFAULT_CATEGORY, DEFAULT_MIN_STOCK_LEVEL, Product, ShopDetails
from ..time_utils import epoch_millis
from .datastore import DataStore

"""
Import rules:

- Headers are matched case-insensitively against a fixed alias list per field.
- Products need a name; customers need a name and a phone. Rows without them
  (or with unusable values) raise ImportRowSkipped and are only counted.
- Missing product fields default: price 0, stock 0, category "General",
  tax rate = shop default, min stock level 5.
- Imported ids are "imp-<ms>-<row>" / "cust-imp-<ms>-<row>" so a batch never
  collides with hand-entered records.
"""


class ImportError(ValueError):
    """Raised when an upload cannot be read at all."""


class ImportRowSkipped(ValueError):
    """Raised for a single row that fails validation; counted, never surfaced."""


SUPPORTED_EXTENSIONS = {"csv", "xlsx", "xlsm", "xltx", "xltm"}

PRODUCT_ALIASES = {
    "name": ("name", "product name"),
    "price": ("price", "unit price"),
    "stock": ("stock", "quantity"),
    "category": ("category",),
    "description": ("description",),
    "tax_rate": ("taxrate", "tax rate (%)"),
    "min_stock_level": ("minstocklevel", "min stock level"),
}

CUSTOMER_ALIASES = {
    "name": ("name", "customer name"),
    "phone": ("phone", "customer phone"),
    "place": ("place", "location"),
}


@dataclass
class ImportResult:
    imported: int = 0
    skipped: int = 0
    ids: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {"imported": self.imported, "skipped": self.skipped}


# -------------------------
# Reading uploads
# -------------------------

def read_rows(filename: str, stream: BinaryIO) -> list[dict[str, Any]]:
    ext = (filename or "").rsplit(".", 1)[-1].lower()
    if ext not in SUPPORTED_EXTENSIONS:
        raise ImportError("Unsupported file type (use .csv or .xlsx)")

    if ext == "csv":
        try:
            text = stream.read().decode("utf-8-sig")
        except UnicodeDecodeError as exc:
            raise ImportError("CSV file must be UTF-8 encoded") from exc
        return [row for row in csv.DictReader(io.StringIO(text))]

    try:
        wb = load_workbook(stream, data_only=True, read_only=True)
    except (InvalidFileException, BadZipFile, KeyError, OSError, ValueError) as exc:
        raise ImportError("Could not read Excel workbook") from exc
    try:
        data = list(wb.active.values)
    finally:
        wb.close()
    if not data:
        return []
    headers = [str(h) if h is not None else "" for h in data[0]]
    return [
        {headers[i]: row[i] for i in range(min(len(headers), len(row)))}
        for row in data[1:]
        if any(v is not None and str(v).strip() != "" for v in row)
    ]


def _lookup(row: dict[str, Any], aliases: Iterable[str]) -> Any:
    normalized = {str(k).strip().lower(): v for k, v in row.items() if k is not None}
    for alias in aliases:
        value = normalized.get(alias)
        if value is not None and str(value).strip() != "":
            return value
    return None


def _text(value: Any) -> str:
    return "" if value is None else str(value).strip()


def _decimal(value: Any, default: Decimal | None) -> Decimal | None:
    if value is None:
        return default
    try:
        number = Decimal(str(value).strip())
    except InvalidOperation:
        return default
    return number if number.is_finite() else default


def _int(value: Any, default: int) -> int:
    number = _decimal(value, None)
    if number is None:
        return default
    return int(number)


# -------------------------
# Row mapping
# -------------------------

def product_from_row(row: dict[str, Any], *, row_id: str, shop: ShopDetails) -> Product:
    name = _text(_lookup(row, PRODUCT_ALIASES["name"]))
    if not name:
        raise ImportRowSkipped("name is required")

    price = _decimal(_lookup(row, PRODUCT_ALIASES["price"]), Decimal("0"))
    stock = _int(_lookup(row, PRODUCT_ALIASES["stock"]), 0)
    if price < 0 or stock < 0:
        raise ImportRowSkipped("price and stock must be >= 0")

    tax_rate = _decimal(_lookup(row, PRODUCT_ALIASES["tax_rate"]), shop.default_tax_rate)
    if not (0 <= tax_rate <= 100):
        raise ImportRowSkipped("tax rate must be between 0 and 100")

    min_level = _int(_lookup(row, PRODUCT_ALIASES["min_stock_level"]), DEFAULT_MIN_STOCK_LEVEL)

    return Product(
        id=row_id,
        name=name,
        price=price,
        stock=stock,
        category=_text(_lookup(row, PRODUCT_ALIASES["category"])) or DEFAULT_CATEGORY,
        description=_text(_lookup(row, PRODUCT_ALIASES["description"])),
        tax_rate=tax_rate,
        min_stock_level=max(0, min_level),
    )


def customer_from_row(row: dict[str, Any], *, row_id: str) -> Customer:
    name = _text(_lookup(row, CUSTOMER_ALIASES["name"]))
    phone = _text(_lookup(row, CUSTOMER_ALIASES["phone"]))
    if not name or not phone:
        raise ImportRowSkipped("name and phone are required")
    return Customer(id=row_id, name=name, phone=phone, place=_text(_lookup(row, CUSTOMER_ALIASES["place"])))


def _batch_stamp() -> int:
    return epoch_millis()


def import_products(store: DataStore, rows: list[dict[str, Any]], shop: ShopDetails) -> ImportResult:
    result = ImportResult()
    stamp = _batch_stamp()
    for i, row in enumerate(rows):
        try:
            product = product_from_row(row, row_id=f"imp-{stamp}-{i}", shop=shop)
        except ImportRowSkipped:
            result.skipped += 1
            continue
        store.save_product(product)
        result.imported += 1
        result.ids.append(product.id)
    return result


def import_customers(store: DataStore, rows: list[dict[str, Any]]) -> ImportResult:
    result = ImportResult()
    stamp = _batch_stamp()
    for i, row in enumerate(rows):
        try:
            customer = customer_from_row(row, row_id=f"cust-imp-{stamp}-{i}")
        except ImportRowSkipped:
            result.skipped += 1
            continue
        store.save_customer(customer)
        result.imported += 1
        result.ids.append(customer.id)
    return result
