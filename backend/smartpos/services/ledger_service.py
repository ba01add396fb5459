# Overview: Service-layer operations for the order ledger; id allocation and order persistence.

from __future__ import annotations

from datetime import date
from typing import Iterable

from ..entities import Order
from ..time_utils import local_date
from .datastore import DataStore

"""
SmartPOS Order Ledger Invariants (authoritative)

- Order ids are integer-valued strings. The next id is max(numeric ids seen in
  the local and remote stores) + 1; non-numeric ids are ignored; an empty
  ledger starts at "1".
- Remote ids are compared numerically ("10" > "9").
- Saving an order is an upsert by id: an edited order overwrites the original
  record under the same id.
- Deleting or clearing orders never touches stock; compensation is the
  caller's job.
- History search matches a case-insensitive substring of the order id or
  customer name, or a substring of the customer phone. The date range is
  inclusive at both ends, compared on the local calendar day.
"""


def _numeric(value: str) -> int | None:
    try:
        return int(str(value).strip())
    except (TypeError, ValueError):
        return None


def next_order_id(store: DataStore) -> str:
    highest = 0
    for raw in store.order_ids():
        number = _numeric(raw)
        if number is not None and number > highest:
            highest = number
    return str(highest + 1)


def save(store: DataStore, order: Order) -> Order:
    return store.save_order(order)


def get(store: DataStore, order_id: str) -> Order | None:
    return store.get_order(order_id)


def list_orders(store: DataStore) -> list[Order]:
    """Newest first."""
    return store.get_orders()


def delete(store: DataStore, order_id: str) -> None:
    store.delete_order(order_id)


def clear(store: DataStore) -> None:
    store.clear_orders()


def filter_orders(
    orders: Iterable[Order],
    query: str | None = None,
    date_from: date | None = None,
    date_to: date | None = None,
    tz: str | None = None,
) -> list[Order]:
    """History view filter; keeps the input order (newest first from list_orders)."""
    needle = (query or "").strip()
    lowered = needle.lower()
    matched = []
    for order in orders:
        if needle:
            customer = order.customer
            name = customer.name if customer else ""
            phone = customer.phone if customer else ""
            if not (lowered in order.id.lower() or lowered in (name or "").lower() or needle in (phone or "")):
                continue
        if date_from is not None or date_to is not None:
            day = local_date(order.date, tz)
            if date_from is not None and day < date_from:
                continue
            if date_to is not None and day > date_to:
                continue
        matched.append(order)
    return matched
