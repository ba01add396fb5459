# Overview: Customer records; checkout auto-save (dedup by phone), lookup suggestions and CRUD.

from __future__ import annotations

from dataclasses import replace

from ..entities import Customer, CustomerInfo
from ..time_utils import timestamp_id
from .datastore import DataStore

SUGGESTION_LIMIT = 5


def _new_id() -> str:
    return timestamp_id()


def find_by_phone(customers: list[Customer], phone: str) -> Customer | None:
    phone = (phone or "").strip()
    if not phone:
        return None
    for customer in customers:
        if customer.phone.strip() == phone:
            return customer
    return None


def ensure_customer_for_checkout(store: DataStore, info: CustomerInfo | None) -> Customer | None:
    """
    Save the bill's customer when both name and phone are present and no stored
    customer already has that phone. Returns the newly created customer, or
    None when nothing was written.
    """
    if info is None or not info.name or not info.phone:
        return None
    if find_by_phone(store.get_customers(), info.phone) is not None:
        return None
    customer = Customer(id=_new_id(), name=info.name, phone=info.phone, place=info.place)
    return store.save_customer(customer)


def search(customers: list[Customer], query: str, limit: int = SUGGESTION_LIMIT) -> list[Customer]:
    """Case-insensitive substring match on name or phone, at most `limit` hits."""
    needle = (query or "").strip().lower()
    if not needle:
        return []
    hits = [
        c for c in customers
        if needle in c.name.lower() or needle in c.phone.lower()
    ]
    return hits[:limit]


def create_customer(store: DataStore, patch: dict) -> Customer:
    customer = Customer(
        id=patch.get("id") or _new_id(),
        name=patch["name"],
        phone=patch["phone"],
        place=patch.get("place") or "",
    )
    return store.save_customer(customer)


def update_customer(store: DataStore, customer: Customer, patch: dict) -> Customer:
    changes = {k: (v or "") for k, v in patch.items() if k in {"name", "phone", "place"}}
    return store.save_customer(replace(customer, **changes))


def delete_customer(store: DataStore, customer_id: str) -> None:
    store.delete_customer(customer_id)


def clear_customers(store: DataStore) -> None:
    store.clear_customers()
