# Overview: Data store adapter; dual-writes entities to the local database and the optional remote store.

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Any, Callable, Mapping, TypeVar

from sqlalchemy.exc import SQLAlchemyError

from ..extensions import db
from ..entities import (
    Customer,
    Order,
    Product,
    ShopDetails,
    SHOP_DETAILS_ID,
)
from ..models import (
    Customer as CustomerRow,
    Order as OrderRow,
    Product as ProductRow,
    ShopSetting,
)
from . import image_service
from .change_feed import ChangeFeed, ChangeHandler, Subscription
from .remote_store import RemoteStore, RemoteUnavailableError

"""
Data Store Adapter invariants (authoritative)

- The local database is the writer of record. Every write commits locally
  first; a local failure rolls back and raises LocalStoreError (fatal to the
  calling operation).
- The remote store is best-effort. RemoteUnavailableError is logged and
  swallowed on writes; on reads the adapter falls back to the local snapshot.
- Reads prefer the remote store when one is configured and reachable.
- Image payloads (data URLs) are downscaled before they are persisted.
"""

logger = logging.getLogger(__name__)

T = TypeVar("T")


class LocalStoreError(Exception):
    """Local persistence failed; the operation did not happen."""


class DataStore:
    def __init__(
        self,
        remote: RemoteStore | None = None,
        *,
        image_max_width: int = image_service.DEFAULT_MAX_WIDTH,
        image_quality: int = image_service.DEFAULT_QUALITY,
        change_feed: ChangeFeed | None = None,
    ):
        self.remote = remote
        self.image_max_width = image_max_width
        self.image_quality = image_quality
        self.change_feed = change_feed
        if self.change_feed is None and remote is not None:
            self.change_feed = ChangeFeed(remote)

    # -------------------------
    # Internal
    # -------------------------
    def is_remote_configured(self) -> bool:
        return self.remote is not None

    def _commit_local(self, op: Callable[[], None], what: str) -> None:
        try:
            op()
            db.session.commit()
        except SQLAlchemyError as exc:
            db.session.rollback()
            logger.exception("Local store write failed: %s", what)
            raise LocalStoreError(f"Local store write failed: {what}") from exc

    def _remote_write(self, what: str, fn: Callable[[RemoteStore], None]) -> None:
        if self.remote is None:
            return
        try:
            fn(self.remote)
        except RemoteUnavailableError:
            logger.warning("Remote write failed (%s); kept local copy only", what, exc_info=True)

    def _read(self, table: str, local: Callable[[], list[T]], convert: Callable[[dict], T]) -> list[T]:
        if self.remote is not None:
            try:
                return [convert(r) for r in self.remote.fetch_all(table)]
            except RemoteUnavailableError:
                logger.warning("Remote read of %s failed; using local snapshot", table, exc_info=True)
            except (KeyError, ValueError, TypeError):
                logger.exception("Remote %s rows are malformed; using local snapshot", table)
        return local()

    def _upsert_row(self, model, row_id: str, value: Any) -> None:
        row = db.session.get(model, row_id)
        if row is None:
            row = model(id=row_id)
            db.session.add(row)
        row.apply(value)

    def _delete_row(self, model, row_id: str) -> None:
        row = db.session.get(model, row_id)
        if row is not None:
            db.session.delete(row)

    def _compress(self, value: str | None) -> str | None:
        if not image_service.is_data_url(value):
            return value
        return image_service.compress_data_url(
            value,
            max_width=self.image_max_width,
            quality=self.image_quality,
        )

    # -------------------------
    # Products
    # -------------------------
    def get_products(self) -> list[Product]:
        products = self._read(
            "products",
            lambda: [r.to_value() for r in db.session.query(ProductRow).all()],
            Product.from_dict,
        )
        return sorted(products, key=lambda p: (p.name.lower(), p.id))

    def get_product(self, product_id: str) -> Product | None:
        for product in self.get_products():
            if product.id == product_id:
                return product
        return None

    def save_product(self, product: Product) -> Product:
        if image_service.is_data_url(product.image):
            product = replace(product, image=self._compress(product.image))
        self._commit_local(lambda: self._upsert_row(ProductRow, product.id, product), f"product {product.id}")
        self._remote_write(f"product {product.id}", lambda r: r.upsert("products", product.to_record()))
        return product

    def delete_product(self, product_id: str) -> None:
        self._commit_local(lambda: self._delete_row(ProductRow, product_id), f"delete product {product_id}")
        self._remote_write(f"delete product {product_id}", lambda r: r.delete("products", product_id))

    def clear_products(self) -> None:
        self._commit_local(lambda: db.session.query(ProductRow).delete(), "clear products")
        self._remote_write("clear products", lambda r: r.clear(["products"]))

    # -------------------------
    # Orders
    # -------------------------
    def get_orders(self) -> list[Order]:
        orders = self._read(
            "orders",
            lambda: [r.to_value() for r in db.session.query(OrderRow).all()],
            Order.from_dict,
        )
        return sorted(orders, key=lambda o: o.date, reverse=True)

    def get_order(self, order_id: str) -> Order | None:
        if self.remote is not None:
            try:
                record = self.remote.fetch_one("orders", order_id)
                if record is not None:
                    return Order.from_dict(record)
            except RemoteUnavailableError:
                logger.warning("Remote read of order %s failed; using local snapshot", order_id, exc_info=True)
        row = db.session.get(OrderRow, order_id)
        return row.to_value() if row is not None else None

    def order_ids(self) -> list[str]:
        """Order ids from both stores (local only when the remote is unreachable)."""
        ids = [row_id for (row_id,) in db.session.query(OrderRow.id).all()]
        if self.remote is not None:
            try:
                ids.extend(self.remote.fetch_ids("orders"))
            except RemoteUnavailableError:
                logger.warning("Remote order ids unavailable; next id uses local orders only", exc_info=True)
        return ids

    def save_order(self, order: Order) -> Order:
        self._commit_local(lambda: self._upsert_row(OrderRow, order.id, order), f"order {order.id}")
        self._remote_write(f"order {order.id}", lambda r: r.upsert("orders", order.to_record()))
        return order

    def delete_order(self, order_id: str) -> None:
        self._commit_local(lambda: self._delete_row(OrderRow, order_id), f"delete order {order_id}")
        self._remote_write(f"delete order {order_id}", lambda r: r.delete("orders", order_id))

    def clear_orders(self) -> None:
        self._commit_local(lambda: db.session.query(OrderRow).delete(), "clear orders")
        self._remote_write("clear orders", lambda r: r.clear(["orders"]))

    # -------------------------
    # Customers
    # -------------------------
    def get_customers(self) -> list[Customer]:
        return self._read(
            "customers",
            lambda: [r.to_value() for r in db.session.query(CustomerRow).order_by(CustomerRow.name.asc()).all()],
            Customer.from_dict,
        )

    def save_customer(self, customer: Customer) -> Customer:
        self._commit_local(lambda: self._upsert_row(CustomerRow, customer.id, customer), f"customer {customer.id}")
        self._remote_write(f"customer {customer.id}", lambda r: r.upsert("customers", customer.to_record()))
        return customer

    def delete_customer(self, customer_id: str) -> None:
        self._commit_local(lambda: self._delete_row(CustomerRow, customer_id), f"delete customer {customer_id}")
        self._remote_write(f"delete customer {customer_id}", lambda r: r.delete("customers", customer_id))

    def clear_customers(self) -> None:
        self._commit_local(lambda: db.session.query(CustomerRow).delete(), "clear customers")
        self._remote_write("clear customers", lambda r: r.clear(["customers"]))

    # -------------------------
    # Shop details (singleton)
    # -------------------------
    def get_shop_details(self) -> ShopDetails | None:
        """Stored shop details (defaults filled), or None when never saved."""
        row = db.session.get(ShopSetting, SHOP_DETAILS_ID)
        local = row.to_value() if row is not None else None
        if self.remote is None:
            return local
        try:
            record = self.remote.fetch_one("settings", SHOP_DETAILS_ID)
        except RemoteUnavailableError:
            logger.warning("Remote read of shop details failed; using local snapshot", exc_info=True)
            return local
        return ShopDetails.from_dict(record) if record else local

    def save_shop_details(self, details: ShopDetails) -> ShopDetails:
        details = replace(
            details,
            logo=self._compress(details.logo) or "",
            payment_qr_code=self._compress(details.payment_qr_code) or "",
        )
        self._commit_local(lambda: self._upsert_row(ShopSetting, SHOP_DETAILS_ID, details), "shop details")
        self._remote_write("shop details", lambda r: r.upsert("settings", details.to_record()))
        return details

    # -------------------------
    # Bulk
    # -------------------------
    def reset_all(self) -> None:
        def _wipe():
            for model in (OrderRow, ProductRow, CustomerRow, ShopSetting):
                db.session.query(model).delete()

        self._commit_local(_wipe, "reset all")
        self._remote_write("reset all", lambda r: r.clear(["products", "orders", "customers", "settings"]))

    # -------------------------
    # Change notifications
    # -------------------------
    def subscribe(self, handlers: Mapping[str, ChangeHandler]) -> Subscription | None:
        """Subscribe to remote table changes; None in local-only mode."""
        if self.change_feed is None:
            return None
        return self.change_feed.subscribe(handlers)

    def unsubscribe(self, subscription: Subscription | None) -> None:
        if subscription is not None and self.change_feed is not None:
            self.change_feed.unsubscribe(subscription)
