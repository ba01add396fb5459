# Overview: Optional remote relational store, dual-written by the data store adapter.

from __future__ import annotations

import hashlib
import json
import logging
from typing import Any, Iterable

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.pool import StaticPool

"""
Remote schema (shared with other devices):

    products(id pk, name, price, stock, category, description, image,
             taxRate, minStockLevel, rentalDuration)
    orders(id pk, date, items json, total, taxTotal, customer json)
    settings(id pk, ...ShopDetails fields)
    customers(id pk, name, phone, place)

Column names are the camelCase record keys; rows go in and come out as plain
record dicts. Every driver/network failure surfaces as RemoteUnavailableError
so callers can degrade to local-only semantics.
"""

JSONB = sa.JSON().with_variant(postgresql.JSONB(), "postgresql")

metadata = sa.MetaData()

products_table = sa.Table(
    "products",
    metadata,
    sa.Column("id", sa.String(64), primary_key=True),
    sa.Column("name", sa.String(255), nullable=False),
    sa.Column("price", sa.Float, nullable=False),
    sa.Column("stock", sa.Integer, nullable=False),
    sa.Column("category", sa.String(120)),
    sa.Column("description", sa.Text),
    sa.Column("image", sa.Text),
    sa.Column("taxRate", sa.Float),
    sa.Column("minStockLevel", sa.Integer),
    sa.Column("rentalDuration", sa.String(64)),
)

orders_table = sa.Table(
    "orders",
    metadata,
    sa.Column("id", sa.String(64), primary_key=True),
    sa.Column("date", sa.String(40), nullable=False),
    sa.Column("items", JSONB, nullable=False),
    sa.Column("total", sa.Float, nullable=False),
    sa.Column("taxTotal", sa.Float, nullable=False),
    sa.Column("customer", JSONB),
)

settings_table = sa.Table(
    "settings",
    metadata,
    sa.Column("id", sa.String(32), primary_key=True),
    sa.Column("name", sa.String(255)),
    sa.Column("address", sa.String(512)),
    sa.Column("phone", sa.String(64)),
    sa.Column("email", sa.String(255)),
    sa.Column("logo", sa.Text),
    sa.Column("paymentQrCode", sa.Text),
    sa.Column("footerMessage", sa.String(512)),
    sa.Column("poweredByText", sa.String(255)),
    sa.Column("taxEnabled", sa.Boolean),
    sa.Column("defaultTaxRate", sa.Float),
    sa.Column("showLogo", sa.Boolean),
    sa.Column("showPaymentQr", sa.Boolean),
    sa.Column("aiDescriptionPrompt", sa.Text),
)

customers_table = sa.Table(
    "customers",
    metadata,
    sa.Column("id", sa.String(64), primary_key=True),
    sa.Column("name", sa.String(255), nullable=False),
    sa.Column("phone", sa.String(32), nullable=False),
    sa.Column("place", sa.String(255)),
)

TABLES = {t.name: t for t in (products_table, orders_table, settings_table, customers_table)}
WATCHED_TABLES = ("products", "orders", "customers")

logger = logging.getLogger(__name__)


class RemoteUnavailableError(Exception):
    """Remote store unreachable or rejected the operation. Never leaves the adapter."""


def _make_engine(url: str) -> sa.Engine:
    if url.startswith("sqlite") and (":memory:" in url or url.rstrip("/") in {"sqlite:", "sqlite://"}):
        # one shared in-memory database for every connection
        return sa.create_engine(
            url,
            poolclass=StaticPool,
            connect_args={"check_same_thread": False},
        )
    return sa.create_engine(url, pool_pre_ping=True, future=True)


class RemoteStore:
    def __init__(self, url: str, *, engine: sa.Engine | None = None, create_schema: bool = True):
        self.url = url
        self.engine = engine or _make_engine(url)
        if create_schema:
            try:
                metadata.create_all(self.engine)
            except SQLAlchemyError:
                # Unreachable at startup is fine; every call retries the connection.
                logger.warning("Remote schema check failed for %s", self.url, exc_info=True)

    def _table(self, name: str) -> sa.Table:
        try:
            return TABLES[name]
        except KeyError:
            raise ValueError(f"unknown remote table {name!r}")

    def _clean(self, table: sa.Table, record: dict[str, Any]) -> dict[str, Any]:
        return {c.name: record.get(c.name) for c in table.columns}

    def fetch_all(self, name: str) -> list[dict[str, Any]]:
        table = self._table(name)
        try:
            with self.engine.connect() as conn:
                rows = conn.execute(sa.select(table)).mappings().all()
        except SQLAlchemyError as exc:
            raise RemoteUnavailableError(f"fetch {name} failed: {exc}") from exc
        return [dict(row) for row in rows]

    def fetch_one(self, name: str, row_id: str) -> dict[str, Any] | None:
        table = self._table(name)
        try:
            with self.engine.connect() as conn:
                row = conn.execute(sa.select(table).where(table.c.id == row_id)).mappings().first()
        except SQLAlchemyError as exc:
            raise RemoteUnavailableError(f"fetch {name}/{row_id} failed: {exc}") from exc
        return dict(row) if row else None

    def fetch_ids(self, name: str) -> list[str]:
        table = self._table(name)
        try:
            with self.engine.connect() as conn:
                return [str(v) for v in conn.execute(sa.select(table.c.id)).scalars().all()]
        except SQLAlchemyError as exc:
            raise RemoteUnavailableError(f"fetch {name} ids failed: {exc}") from exc

    def upsert(self, name: str, record: dict[str, Any]) -> None:
        """Update-by-id, insert when nothing matched (portable across dialects)."""
        table = self._table(name)
        values = self._clean(table, record)
        row_id = values.pop("id")
        try:
            with self.engine.begin() as conn:
                result = conn.execute(sa.update(table).where(table.c.id == row_id).values(**values))
                if result.rowcount == 0:
                    conn.execute(sa.insert(table).values(id=row_id, **values))
        except SQLAlchemyError as exc:
            raise RemoteUnavailableError(f"upsert {name}/{row_id} failed: {exc}") from exc

    def delete(self, name: str, row_id: str) -> None:
        table = self._table(name)
        try:
            with self.engine.begin() as conn:
                conn.execute(sa.delete(table).where(table.c.id == row_id))
        except SQLAlchemyError as exc:
            raise RemoteUnavailableError(f"delete {name}/{row_id} failed: {exc}") from exc

    def clear(self, names: Iterable[str]) -> None:
        tables = [self._table(n) for n in names]
        try:
            with self.engine.begin() as conn:
                for table in tables:
                    conn.execute(sa.delete(table))
        except SQLAlchemyError as exc:
            raise RemoteUnavailableError(f"clear {', '.join(t.name for t in tables)} failed: {exc}") from exc

    def table_digest(self, name: str) -> str:
        """Content fingerprint of a table, used by the change feed to detect edits."""
        rows = sorted(self.fetch_all(name), key=lambda r: str(r.get("id")))
        payload = json.dumps(rows, sort_keys=True, default=str).encode("utf-8")
        return hashlib.sha256(payload).hexdigest()

    def dispose(self) -> None:
        self.engine.dispose()
