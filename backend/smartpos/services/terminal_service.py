# Overview: Application state for one checkout terminal; serializes operations and keeps collections fresh.

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field, replace
from datetime import date
from decimal import Decimal
from typing import Any

from flask import current_app

from ..entities import Customer, CustomerInfo, Order, Product, ShopDetails
from . import (
    ai_service,
    analytics_service,
    billing_service,
    customer_service,
    import_service,
    inventory_service,
    ledger_service,
    products_service,
    settings_service,
)
from .billing_service import BillingError, BillingState, InsufficientStockError
from .change_feed import ChangeEvent, Subscription
from .datastore import DataStore

"""
Terminal invariants:

- AppState is immutable. Every operation builds a new AppState and swaps it in
  under the terminal lock, so a threaded server never interleaves two
  operations on the same cart.
- Collections are re-fetched from the data store after each write (also when
  the write fails partway, since earlier steps may have landed), and when
  the change feed reports that a remote table changed (sync()).
- The billing core only ever sees values (catalog, shop, BillingState); it
  never depends on the change feed.
"""

logger = logging.getLogger(__name__)

EXTENSION_KEY = "smartpos"


@dataclass(frozen=True)
class AppState:
    products: tuple[Product, ...] = ()
    orders: tuple[Order, ...] = ()
    customers: tuple[Customer, ...] = ()
    shop: ShopDetails = field(default_factory=ShopDetails)
    billing: BillingState = field(default_factory=BillingState)

    def product(self, product_id: str) -> Product | None:
        return next((p for p in self.products if p.id == product_id), None)

    def customer(self, customer_id: str) -> Customer | None:
        return next((c for c in self.customers if c.id == customer_id), None)

    def order(self, order_id: str) -> Order | None:
        return next((o for o in self.orders if o.id == order_id), None)


class Terminal:
    def __init__(
        self,
        store: DataStore,
        *,
        seed_demo_catalog: bool = True,
        report_timezone: str | None = None,
        ai_client: ai_service.GeminiClient | None = None,
    ):
        self.store = store
        self.seed_demo_catalog = seed_demo_catalog
        self.report_timezone = report_timezone
        self.ai_client = ai_client
        self.state = AppState()
        self.loaded = False
        self._lock = threading.RLock()
        self._subscription: Subscription | None = None

    # -------------------------
    # Lifecycle
    # -------------------------
    def load(self) -> AppState:
        """Initial fetch; seeds the demo catalog on a fresh local-only install."""
        with self._lock:
            products = self.store.get_products()
            if not products and self.seed_demo_catalog and not self.store.is_remote_configured():
                seeded = products_service.seed_demo_catalog(self.store)
                logger.info("Seeded demo catalog with %d products", len(seeded))
                products = self.store.get_products()

            shop = settings_service.ensure_shop_details(self.store)
            self.state = replace(
                self.state,
                products=tuple(products),
                orders=tuple(ledger_service.list_orders(self.store)),
                customers=tuple(self.store.get_customers()),
                shop=shop,
            )
            if self._subscription is None:
                self._subscription = self.store.subscribe({
                    "products": self._on_change,
                    "orders": self._on_change,
                    "customers": self._on_change,
                })
            self.loaded = True
            return self.state

    def ensure_loaded(self) -> None:
        if not self.loaded:
            self.load()

    def close(self) -> None:
        with self._lock:
            self.store.unsubscribe(self._subscription)
            self._subscription = None

    def sync(self) -> list[ChangeEvent]:
        """Apply pending remote change notifications (re-fetch what changed)."""
        with self._lock:
            if self._subscription is None:
                return []
            return self._subscription.dispatch_pending()

    def _on_change(self, event: ChangeEvent) -> None:
        if event.table == "products":
            self._refresh_products()
        elif event.table == "orders":
            self._refresh_orders()
        elif event.table == "customers":
            self._refresh_customers()

    def _refresh_products(self) -> None:
        self.state = replace(self.state, products=tuple(self.store.get_products()))

    def _refresh_orders(self) -> None:
        self.state = replace(self.state, orders=tuple(ledger_service.list_orders(self.store)))

    def _refresh_customers(self) -> None:
        self.state = replace(self.state, customers=tuple(self.store.get_customers()))

    def _set_billing(self, billing: BillingState) -> BillingState:
        self.state = replace(self.state, billing=billing)
        return billing

    # -------------------------
    # Cart
    # -------------------------
    def add_to_cart(self, product_id: str, quantity: int) -> BillingState:
        with self._lock:
            product = self.state.product(product_id)
            if product is None:
                raise BillingError("Product not found", details={"product_id": product_id})
            billing = billing_service.add_item(self.state.billing, product, quantity, self.state.shop)
            return self._set_billing(billing)

    def set_item_quantity(self, item_id: str, qty: Any) -> tuple[BillingState, str | None]:
        with self._lock:
            billing, warning = billing_service.set_item_quantity(
                self.state.billing, item_id, qty, self.state.products,
            )
            return self._set_billing(billing), warning

    def set_item_name(self, item_id: str, name: str) -> BillingState:
        with self._lock:
            return self._set_billing(billing_service.set_item_name(self.state.billing, item_id, name))

    def set_item_price(self, item_id: str, price: Any) -> tuple[BillingState, str | None]:
        with self._lock:
            billing, warning = billing_service.set_item_price(self.state.billing, item_id, price)
            return self._set_billing(billing), warning

    def remove_item(self, item_id: str) -> BillingState:
        with self._lock:
            return self._set_billing(billing_service.remove_item(self.state.billing, item_id))

    def set_customer(self, info: CustomerInfo | None) -> BillingState:
        with self._lock:
            return self._set_billing(billing_service.set_customer(self.state.billing, info))

    def clear_cart(self) -> BillingState:
        with self._lock:
            return self._set_billing(billing_service.clear_cart(self.state.billing))

    def cancel_edit(self) -> BillingState:
        with self._lock:
            return self._set_billing(billing_service.cancel_edit(self.state.billing))

    def quick_add(
        self,
        *,
        name: str,
        price: Decimal,
        stock: int,
        category: str | None = None,
        description: str | None = None,
        image: str | None = None,
    ) -> tuple[Product, BillingState, str | None]:
        """Create a product and put one unit of it on the bill."""
        with self._lock:
            product = products_service.quick_add_product(
                self.store,
                self.state.shop,
                name=name,
                price=price,
                stock=stock,
                category=category,
                description=description,
                image=image,
            )
            self._refresh_products()
            try:
                billing = billing_service.add_item(self.state.billing, product, 1, self.state.shop)
            except InsufficientStockError as exc:
                return product, self.state.billing, str(exc)
            return product, self._set_billing(billing), None

    # -------------------------
    # Checkout / edit
    # -------------------------
    def checkout(self) -> Order:
        with self._lock:
            # A failed commit may already have written the order or some stock
            # decrements, so the cache is re-read either way.
            try:
                billing, order = billing_service.checkout(self.state.billing, self.store, self.state.shop)
                self._set_billing(billing)
            finally:
                self._refresh_products()
                self._refresh_orders()
                self._refresh_customers()
            return order

    def begin_edit(self, order_id: str) -> BillingState:
        with self._lock:
            try:
                billing = billing_service.begin_edit(self.state.billing, order_id, self.store)
            finally:
                self._refresh_products()
            return self._set_billing(billing)

    # -------------------------
    # Order history
    # -------------------------
    def delete_order(self, order_id: str) -> bool:
        """Give the order's stock back, then remove it from the ledger."""
        with self._lock:
            order = ledger_service.get(self.store, order_id)
            if order is None:
                return False
            try:
                inventory_service.restore_stock(self.store, order.items, self.store.get_products())
                ledger_service.delete(self.store, order_id)
            finally:
                self._refresh_products()
                self._refresh_orders()
            return True

    def clear_history(self) -> None:
        with self._lock:
            ledger_service.clear(self.store)
            self._refresh_orders()

    def next_order_id(self) -> str:
        with self._lock:
            return ledger_service.next_order_id(self.store)

    # -------------------------
    # Catalog
    # -------------------------
    def create_product(self, patch: dict) -> Product:
        with self._lock:
            product = products_service.create_product(self.store, list(self.state.products), patch=patch)
            self._refresh_products()
            return product

    def update_product(self, product_id: str, patch: dict) -> Product | None:
        with self._lock:
            current = self.state.product(product_id)
            if current is None:
                return None
            product = products_service.update_product(self.store, current, patch=patch)
            self._refresh_products()
            return product

    def delete_product(self, product_id: str) -> bool:
        with self._lock:
            if self.state.product(product_id) is None:
                return False
            products_service.delete_product(self.store, product_id)
            self._refresh_products()
            return True

    def clear_products(self) -> None:
        with self._lock:
            products_service.clear_products(self.store)
            self._refresh_products()

    # -------------------------
    # Customers
    # -------------------------
    def create_customer(self, patch: dict) -> Customer:
        with self._lock:
            customer = customer_service.create_customer(self.store, patch)
            self._refresh_customers()
            return customer

    def update_customer(self, customer_id: str, patch: dict) -> Customer | None:
        with self._lock:
            current = self.state.customer(customer_id)
            if current is None:
                return None
            customer = customer_service.update_customer(self.store, current, patch)
            self._refresh_customers()
            return customer

    def delete_customer(self, customer_id: str) -> bool:
        with self._lock:
            if self.state.customer(customer_id) is None:
                return False
            customer_service.delete_customer(self.store, customer_id)
            self._refresh_customers()
            return True

    def clear_customers(self) -> None:
        with self._lock:
            customer_service.clear_customers(self.store)
            self._refresh_customers()

    # -------------------------
    # Settings
    # -------------------------
    def save_settings(self, payload: Any) -> ShopDetails:
        with self._lock:
            shop = settings_service.save_shop_details(self.store, self.state.shop, payload)
            self.state = replace(self.state, shop=shop)
            return shop

    def factory_reset(self) -> AppState:
        """Wipe every collection, then start over with default shop details."""
        with self._lock:
            self.store.reset_all()
            shop = settings_service.ensure_shop_details(self.store)
            self.state = AppState(shop=shop)
            self._refresh_products()
            return self.state

    # -------------------------
    # Reports / import / AI
    # -------------------------
    def daily_report(self, day: date, tz: str | None = None) -> analytics_service.DailyBreakdown:
        with self._lock:
            orders = list(self.state.orders)
        return analytics_service.daily_breakdown(orders, day, tz or self.report_timezone)

    def import_products(self, rows: list[dict]) -> import_service.ImportResult:
        with self._lock:
            result = import_service.import_products(self.store, rows, self.state.shop)
            self._refresh_products()
            return result

    def import_customers(self, rows: list[dict]) -> import_service.ImportResult:
        with self._lock:
            result = import_service.import_customers(self.store, rows)
            self._refresh_customers()
            return result

    def describe_product(self, name: str, instruction: str | None = None) -> ai_service.ProductSuggestion | None:
        if self.ai_client is None:
            return None
        custom = (instruction or "").strip() or self.state.shop.ai_description_prompt
        return ai_service.generate_product_details(self.ai_client, name, custom)


def get_terminal() -> Terminal:
    """The app's terminal, loaded and synced with pending remote changes."""
    terminal: Terminal = current_app.extensions[EXTENSION_KEY]
    terminal.ensure_loaded()
    terminal.sync()
    return terminal
