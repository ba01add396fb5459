# backend/smartpos/services/products_service.py
"""
Products Service

Catalog CRUD plus the read-side queries the shop screens use: name search,
category filter, category list and the low / out of stock views.

Patches arriving here are already validated (validate_payload +
enforce_rules_product); this module only turns them into Product values and
hands them to the data store.
"""
from __future__ import annotations

from dataclasses import replace
from decimal import Decimal

from ..entities import DEFAULT_CATEGORY, DEFAULT_MIN_STOCK_LEVEL, Product, ShopDetails
from ..time_utils import timestamp_id
from ..validation import ConflictError
from .datastore import DataStore

PRODUCT_MUTABLE_FIELDS = {
    "name", "price", "stock", "category", "description", "image",
    "tax_rate", "min_stock_level", "rental_duration",
}


def new_product_id() -> str:
    """Millisecond timestamp id (matches ids created by other terminals)."""
    return timestamp_id()


def apply_product_patch(product: Product, patch: dict) -> Product:
    changes = {k: v for k, v in patch.items() if k in PRODUCT_MUTABLE_FIELDS}
    if "category" in changes and not changes["category"]:
        changes["category"] = DEFAULT_CATEGORY
    if changes.get("min_stock_level") is None and "min_stock_level" in changes:
        changes["min_stock_level"] = DEFAULT_MIN_STOCK_LEVEL
    return replace(product, **changes)


def list_products(
    catalog: list[Product],
    *,
    query: str | None = None,
    category: str | None = None,
) -> list[Product]:
    """Case-insensitive name search and exact category filter ("All" = no filter)."""
    needle = (query or "").strip().lower()
    wanted = (category or "").strip()
    out = []
    for product in catalog:
        if needle and needle not in product.name.lower():
            continue
        if wanted and wanted != "All" and product.category != wanted:
            continue
        out.append(product)
    return out


def list_categories(catalog: list[Product]) -> list[str]:
    return sorted({p.category for p in catalog if p.category})


def create_product(store: DataStore, catalog: list[Product], *, patch: dict) -> Product:
    product_id = str(patch.get("id") or new_product_id())
    if any(p.id == product_id for p in catalog):
        raise ConflictError(f"Product {product_id} already exists")

    base = Product(
        id=product_id,
        name=patch["name"],
        price=patch.get("price") if patch.get("price") is not None else Decimal("0"),
        stock=patch.get("stock") or 0,
    )
    return store.save_product(apply_product_patch(base, {k: v for k, v in patch.items() if k not in {"name", "price", "stock"}}))


def update_product(store: DataStore, product: Product, *, patch: dict) -> Product:
    return store.save_product(apply_product_patch(product, patch))


def delete_product(store: DataStore, product_id: str) -> None:
    store.delete_product(product_id)


def clear_products(store: DataStore) -> None:
    store.clear_products()


def quick_add_product(
    store: DataStore,
    shop: ShopDetails,
    *,
    name: str,
    price: Decimal,
    stock: int,
    category: str | None = None,
    description: str | None = None,
    image: str | None = None,
) -> Product:
    """Product created from the billing screen: shop default tax, default minimum stock."""
    product = Product(
        id=new_product_id(),
        name=name,
        price=price,
        stock=stock,
        category=category or DEFAULT_CATEGORY,
        description=description,
        image=image,
        tax_rate=shop.default_tax_rate,
        min_stock_level=DEFAULT_MIN_STOCK_LEVEL,
    )
    return store.save_product(product)


DEMO_CATALOG = (
    {
        "id": "1",
        "name": "Cappuccino",
        "price": Decimal("250"),
        "stock": 50,
        "category": "Beverages",
        "description": "Rich espresso with frothy milk",
    },
    {
        "id": "2",
        "name": "Croissant",
        "price": Decimal("180"),
        "stock": 30,
        "category": "Snacks",
        "description": "Buttery flaky pastry",
    },
    {
        "id": "3",
        "name": "Avocado Toast",
        "price": Decimal("350"),
        "stock": 20,
        "category": "Food",
        "description": "Sourdough with fresh avocado",
    },
)


def seed_demo_catalog(store: DataStore) -> list[Product]:
    products = [
        Product(**values, tax_rate=Decimal("5"), min_stock_level=DEFAULT_MIN_STOCK_LEVEL)
        for values in DEMO_CATALOG
    ]
    return [store.save_product(p) for p in products]
