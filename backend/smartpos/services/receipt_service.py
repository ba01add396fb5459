# Overview: Printable receipt and day-end report documents (Jinja2 templates via Flask).

from __future__ import annotations

from datetime import timezone
from decimal import Decimal

from flask import render_template

from ..entities import Order, ShopDetails, to_money
from ..time_utils import resolve_timezone
from .analytics_service import DailyBreakdown

DEFAULT_POWERED_BY = "Powered by SmartPOS"


def _money(value: Decimal | float | int) -> str:
    return f"{to_money(value):.2f}"


def _local_time(order: Order, tz: str | None) -> str:
    when = order.date.replace(tzinfo=timezone.utc).astimezone(resolve_timezone(tz))
    return when.strftime("%d/%m/%Y, %H:%M:%S")


def receipt_context(order: Order, shop: ShopDetails, tz: str | None = None) -> dict:
    """Everything the receipt template shows, already formatted."""
    return {
        "shop": shop,
        "show_logo": bool(shop.show_logo and shop.logo),
        "show_payment_qr": bool(shop.show_payment_qr and shop.payment_qr_code),
        "order_id": order.id,
        "date": _local_time(order, tz),
        "customer": order.customer,
        "lines": [
            {"index": i, "name": item.name, "qty": item.qty, "price": _money(item.price), "amount": _money(item.line_total)}
            for i, item in enumerate(order.items, start=1)
        ],
        # subtotal is derived from the stored totals so it always reconciles with them
        "sub_total": _money(order.total - order.tax_total),
        "tax_enabled": shop.tax_enabled,
        "tax_total": _money(order.tax_total if shop.tax_enabled else 0),
        "total": _money(order.total),
        "footer_message": shop.footer_message,
        "powered_by": shop.powered_by_text or DEFAULT_POWERED_BY,
    }


def render_receipt(order: Order, shop: ShopDetails, tz: str | None = None) -> str:
    return render_template("receipt.html", **receipt_context(order, shop, tz))


def render_day_report(report: DailyBreakdown, shop: ShopDetails) -> str:
    return render_template(
        "day_report.html",
        shop=shop,
        day=report.day.isoformat(),
        order_count=report.order_count,
        total_sales=_money(report.total_sales),
        average_ticket=_money(report.average_ticket),
        rows=[{"name": r.name, "qty": r.qty, "revenue": _money(r.revenue)} for r in report.items],
    )
