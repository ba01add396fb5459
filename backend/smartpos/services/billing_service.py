"""
Billing Service - cart, checkout and order-edit state machine

Every operation takes the current BillingState and returns a new one (plus a
warning or the committed Order where relevant). Nothing here holds state
between calls, so the whole flow is testable without the HTTP layer.

States:
    IDLE      no items, no bound order
    BUILDING  items in the cart, no bound order
    EDITING   cart loaded from a committed order and bound to its id

Stock is never touched while a bill is being built. It moves only at
checkout (deduct, clamped at 0) and when an order is opened for editing
(restore).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Iterable

from ..entities import CartItem, CustomerInfo, Order, Product, ShopDetails, to_decimal, to_money
from ..time_utils import utcnow
from . import customer_service, inventory_service, ledger_service
from .datastore import DataStore, LocalStoreError

logger = logging.getLogger(__name__)

HUNDRED = Decimal("100")


class BillingError(Exception):
    """Raised for billing operation errors."""
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


class InsufficientStockError(BillingError):
    def __init__(self, product: Product, requested: int):
        super().__init__(
            f"Only {product.stock} items available.",
            details={
                "product_id": product.id,
                "available": product.stock,
                "requested": requested,
            },
        )
        self.available = product.stock
        self.requested = requested


class CheckoutPersistError(BillingError):
    """Local persistence failed during checkout; the cart is left as it was."""


class BillingMode(str, Enum):
    IDLE = "IDLE"
    BUILDING = "BUILDING"
    EDITING = "EDITING"


@dataclass(frozen=True)
class Totals:
    sub_total: Decimal
    tax_total: Decimal
    grand_total: Decimal

    def to_dict(self) -> dict:
        return {
            "sub_total": float(self.sub_total),
            "tax_total": float(self.tax_total),
            "grand_total": float(self.grand_total),
        }


@dataclass(frozen=True)
class BillingState:
    items: tuple[CartItem, ...] = ()
    customer: CustomerInfo | None = None
    editing_order_id: str | None = None

    @property
    def mode(self) -> BillingMode:
        if self.editing_order_id is not None:
            return BillingMode.EDITING
        if self.items:
            return BillingMode.BUILDING
        return BillingMode.IDLE

    def find(self, item_id: str) -> CartItem | None:
        for item in self.items:
            if item.id == item_id:
                return item
        return None

    def qty_in_cart(self, product_id: str) -> int:
        item = self.find(product_id)
        return item.qty if item else 0

    def _with_item(self, item_id: str, **changes) -> "BillingState":
        items = tuple(replace(i, **changes) if i.id == item_id else i for i in self.items)
        return replace(self, items=items)

    def to_dict(self, shop: ShopDetails) -> dict:
        return {
            "mode": self.mode.value,
            "editing_order_id": self.editing_order_id,
            "items": [item.to_dict() for item in self.items],
            "customer": self.customer.to_dict() if self.customer else None,
            "totals": compute_totals(self.items, shop).to_dict(),
        }


def _effective_rate(item: CartItem, shop: ShopDetails) -> Decimal:
    return item.tax_rate if item.tax_rate is not None else shop.default_tax_rate


def compute_totals(items: Iterable[CartItem], shop: ShopDetails) -> Totals:
    items = list(items)
    sub_total = sum((item.line_total for item in items), Decimal("0"))
    if shop.tax_enabled:
        raw_tax = sum((item.line_total * _effective_rate(item, shop) / HUNDRED for item in items), Decimal("0"))
    else:
        raw_tax = Decimal("0")
    tax_total = to_money(raw_tax)
    return Totals(
        sub_total=to_money(sub_total),
        tax_total=tax_total,
        grand_total=to_money(sub_total + tax_total),
    )


# -------------------------
# Cart operations
# -------------------------

def add_item(state: BillingState, product: Product, quantity: int, shop: ShopDetails) -> BillingState:
    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 1:
        raise BillingError("Quantity must be a positive integer", details={"quantity": quantity})

    requested = state.qty_in_cart(product.id) + quantity
    if requested > product.stock:
        raise InsufficientStockError(product, requested)

    if state.find(product.id) is not None:
        return state._with_item(product.id, qty=requested)

    tax_rate = product.tax_rate if product.tax_rate is not None else shop.default_tax_rate
    item = CartItem.snapshot(product, quantity, tax_rate)
    return replace(state, items=state.items + (item,))


def _positive_int(value) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        number = value
    elif isinstance(value, float) and value.is_integer():
        number = int(value)
    elif isinstance(value, str) and value.strip().isdigit():
        number = int(value.strip())
    else:
        return None
    return number if number >= 1 else None


def set_item_quantity(
    state: BillingState,
    item_id: str,
    new_qty,
    catalog: Iterable[Product],
) -> tuple[BillingState, str | None]:
    """Replace a line's qty; bad input is a no-op with a warning."""
    qty = _positive_int(new_qty)
    if qty is None:
        return state, "Quantity must be a positive integer"
    if state.find(item_id) is None:
        return state, "Item is not in the cart"

    product = next((p for p in catalog if p.id == item_id), None)
    # checked against live catalog stock, not stock minus what the cart holds
    if product is not None and qty > product.stock:
        return state, f"Max available: {product.stock}"

    return state._with_item(item_id, qty=qty), None


def set_item_name(state: BillingState, item_id: str, name: str) -> BillingState:
    if state.find(item_id) is None:
        return state
    return state._with_item(item_id, name=str(name))


def set_item_price(state: BillingState, item_id: str, price) -> tuple[BillingState, str | None]:
    try:
        value = to_decimal(price)
    except ValueError:
        return state, "Price must be a number"
    if not value.is_finite() or value < 0:
        return state, "Price must be >= 0"
    if state.find(item_id) is None:
        return state, "Item is not in the cart"
    return state._with_item(item_id, price=value), None


def remove_item(state: BillingState, item_id: str) -> BillingState:
    return replace(state, items=tuple(i for i in state.items if i.id != item_id))


def set_customer(state: BillingState, info: CustomerInfo | None) -> BillingState:
    return replace(state, customer=info)


def clear_cart(state: BillingState) -> BillingState:
    if state.mode is BillingMode.EDITING:
        raise BillingError(
            "Cancel the edit to discard this bill",
            details={"editing_order_id": state.editing_order_id},
        )
    return BillingState()


# -------------------------
# Commit
# -------------------------

def build_order(state: BillingState, order_id: str, shop: ShopDetails, now: datetime) -> Order:
    totals = compute_totals(state.items, shop)
    customer = state.customer if state.customer is not None and not state.customer.is_blank else None
    return Order(
        id=order_id,
        date=now,
        items=state.items,
        total=totals.grand_total,
        tax_total=totals.tax_total,
        customer=customer,
    )


def checkout(
    state: BillingState,
    store: DataStore,
    shop: ShopDetails,
    now: datetime | None = None,
) -> tuple[BillingState, Order]:
    """
    Commit the cart as an order.

    Order is written first, then stock is decremented per line. A local write
    failure raises CheckoutPersistError; the caller keeps `state` so the
    operator can retry. Decrements already applied are not rolled back.
    """
    if not state.items:
        raise BillingError("Cart is empty")

    try:
        customer_service.ensure_customer_for_checkout(store, state.customer)

        order_id = state.editing_order_id or ledger_service.next_order_id(store)
        order = build_order(state, order_id, shop, now or utcnow())

        ledger_service.save(store, order)
        inventory_service.deduct_stock(store, order.items, store.get_products())
    except LocalStoreError as exc:
        raise CheckoutPersistError(
            "Failed to process order.",
            details={"editing_order_id": state.editing_order_id},
        ) from exc

    return BillingState(), order


# -------------------------
# Edit flow
# -------------------------

def begin_edit(state: BillingState, order_id: str, store: DataStore) -> BillingState:
    """
    Open a committed order for editing: give its quantities back to the
    catalog, then load its lines and customer into a bill bound to its id.

    A BUILDING bill is discarded. Opening while already EDITING is refused,
    since the first order's stock has already been restored.
    """
    if state.mode is BillingMode.EDITING:
        raise BillingError(
            "Another order is already being edited",
            details={"editing_order_id": state.editing_order_id},
        )

    order = ledger_service.get(store, order_id)
    if order is None:
        raise BillingError("Order not found", details={"order_id": order_id})

    inventory_service.restore_stock(store, order.items, store.get_products())

    return BillingState(
        items=tuple(order.items),
        customer=order.customer,
        editing_order_id=order.id,
    )


def cancel_edit(state: BillingState) -> BillingState:
    if state.mode is BillingMode.EDITING:
        logger.warning(
            "Edit of order %s cancelled; restored stock was not deducted again",
            state.editing_order_id,
        )
    return BillingState()
