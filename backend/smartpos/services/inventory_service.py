# Overview: Service-layer stock adjustments on the catalog; the only place order side effects touch stock.

# backend/smartpos/services/inventory_service.py

from __future__ import annotations

from dataclasses import replace
from typing import Iterable

from ..entities import CartItem, Product
from .datastore import DataStore

"""
SmartPOS Inventory Invariants (authoritative)

Stock model:
- Stock is a plain mutable quantity on the product record, not ledger-derived.
- Cart edits never touch stock. Stock only moves when an order is committed,
  opened for edit, or deleted from history.

Adjustments:
- Commit (deduct): stock = max(0, stock - qty) per order line, matched by
  product id. A product missing from the catalog is skipped.
- Restore (edit / delete): stock = stock + qty per order line. A product
  missing from the catalog is skipped.
- Each touched product is persisted individually through the data store; a
  local failure surfaces as LocalStoreError and earlier writes stay applied.
"""


def _by_id(catalog: Iterable[Product]) -> dict[str, Product]:
    return {p.id: p for p in catalog}


def deduct_stock(store: DataStore, items: Iterable[CartItem], catalog: Iterable[Product]) -> list[Product]:
    """Apply an order's quantities to the catalog; returns the updated products."""
    products = _by_id(catalog)
    updated: list[Product] = []
    for item in items:
        product = products.get(item.id)
        if product is None:
            continue
        product = replace(product, stock=max(0, product.stock - item.qty))
        products[product.id] = product
        updated.append(store.save_product(product))
    return updated


def restore_stock(store: DataStore, items: Iterable[CartItem], catalog: Iterable[Product]) -> list[Product]:
    """Give an order's quantities back to the catalog; returns the updated products."""
    products = _by_id(catalog)
    updated: list[Product] = []
    for item in items:
        product = products.get(item.id)
        if product is None:
            continue
        product = replace(product, stock=product.stock + item.qty)
        products[product.id] = product
        updated.append(store.save_product(product))
    return updated


def merge_catalog(catalog: Iterable[Product], updated: Iterable[Product]) -> list[Product]:
    """Catalog with `updated` products swapped in (order preserved)."""
    changes = _by_id(updated)
    return [changes.get(p.id, p) for p in catalog]


def low_stock(catalog: Iterable[Product]) -> list[Product]:
    return [p for p in catalog if p.is_low_stock]


def out_of_stock(catalog: Iterable[Product]) -> list[Product]:
    return [p for p in catalog if p.is_out_of_stock]
