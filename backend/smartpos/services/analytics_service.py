# Overview: Read-only projections over the order ledger (day-end sales breakdown).

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Iterable

from ..entities import CartItem, Order, to_money
from ..time_utils import local_date


class ReportError(Exception):
    """Raised when report generation fails."""
    pass


@dataclass(frozen=True)
class ItemBreakdownRow:
    name: str
    qty: int
    revenue: Decimal

    def to_dict(self) -> dict:
        return {"name": self.name, "qty": self.qty, "revenue": float(self.revenue)}


@dataclass(frozen=True)
class DailyBreakdown:
    day: date
    order_count: int
    total_sales: Decimal
    average_ticket: Decimal
    items: list[ItemBreakdownRow] = field(default_factory=list)
    orders: list[Order] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "date": self.day.isoformat(),
            "order_count": self.order_count,
            "total_sales": float(self.total_sales),
            "average_ticket": float(self.average_ticket),
            "items": [row.to_dict() for row in self.items],
        }


def group_key(item: CartItem) -> str:
    """Lines tagged with a duration are reported separately: "name (duration)"."""
    if item.rental_duration:
        return f"{item.name} ({item.rental_duration})"
    return item.name


def daily_breakdown(orders: Iterable[Order], day: date, tz: str | None = None) -> DailyBreakdown:
    """
    Aggregate the orders whose date falls on `day` in timezone `tz`
    (IANA name; None = server local time).

    Item revenue excludes tax (price * qty); rows are sorted by revenue,
    highest first.
    """
    try:
        selected = [o for o in orders if local_date(o.date, tz) == day]
    except (KeyError, ValueError) as exc:
        raise ReportError(f"Unknown timezone: {tz}") from exc

    total_sales = sum((o.total for o in selected), Decimal("0"))
    count = len(selected)
    average = to_money(total_sales / count) if count else Decimal("0.00")

    qty_by_key: dict[str, int] = {}
    revenue_by_key: dict[str, Decimal] = {}
    for order in selected:
        for item in order.items:
            key = group_key(item)
            qty_by_key[key] = qty_by_key.get(key, 0) + item.qty
            revenue_by_key[key] = revenue_by_key.get(key, Decimal("0")) + item.line_total

    rows = [
        ItemBreakdownRow(name=key, qty=qty_by_key[key], revenue=to_money(revenue_by_key[key]))
        for key in qty_by_key
    ]
    rows.sort(key=lambda r: r.revenue, reverse=True)

    return DailyBreakdown(
        day=day,
        order_count=count,
        total_sales=to_money(total_sales),
        average_ticket=average,
        items=rows,
        orders=selected,
    )
