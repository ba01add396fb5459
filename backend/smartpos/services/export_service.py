# Overview: Spreadsheet exports (openpyxl) for inventory, customers, orders and the day-end report.

from __future__ import annotations

import io
from datetime import date, timezone
from typing import Iterable, Sequence

from openpyxl import Workbook
from openpyxl.styles import Font

from ..entities import Customer, DEFAULT_MIN_STOCK_LEVEL, Order, Product
from ..time_utils import resolve_timezone
from .analytics_service import DailyBreakdown

XLSX_MIMETYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"

INVENTORY_HEADERS = ("Name", "Price", "Stock", "Category", "Description", "Tax Rate (%)", "Min Stock Level")
CUSTOMER_HEADERS = ("Name", "Phone", "Place")
ORDER_HEADERS = (
    "Order ID", "Date", "Total Amount", "Tax Amount", "Items Count",
    "Customer Name", "Customer Phone", "Customer Place",
)
SUMMARY_HEADERS = ("Metric", "Value")
BREAKDOWN_HEADERS = ("Product Name", "Quantity Sold", "Revenue (Excl Tax)")

WALK_IN_GUEST = "Walk-in Guest"


def _write_sheet(ws, headers: Sequence[str], rows: Iterable[Sequence]) -> None:
    ws.append(list(headers))
    for cell in ws[1]:
        cell.font = Font(bold=True)
    for row in rows:
        ws.append(list(row))
    for column in ws.columns:
        width = max(len(str(c.value)) if c.value is not None else 0 for c in column)
        ws.column_dimensions[column[0].column_letter].width = min(width + 2, 60)


def _single_sheet(title: str, headers: Sequence[str], rows: Iterable[Sequence]) -> Workbook:
    wb = Workbook()
    ws = wb.active
    ws.title = title
    _write_sheet(ws, headers, rows)
    return wb


def workbook_bytes(wb: Workbook) -> bytes:
    buf = io.BytesIO()
    wb.save(buf)
    return buf.getvalue()


def inventory_workbook(products: Iterable[Product]) -> Workbook:
    rows = (
        (
            p.name,
            float(p.price),
            p.stock,
            p.category,
            p.description or "",
            float(p.tax_rate) if p.tax_rate is not None else 0,
            p.min_stock_level if p.min_stock_level is not None else DEFAULT_MIN_STOCK_LEVEL,
        )
        for p in products
    )
    return _single_sheet("Inventory", INVENTORY_HEADERS, rows)


def customers_workbook(customers: Iterable[Customer]) -> Workbook:
    return _single_sheet("Customers", CUSTOMER_HEADERS, ((c.name, c.phone, c.place) for c in customers))


def orders_workbook(orders: Iterable[Order], tz: str | None = None) -> Workbook:
    zone = resolve_timezone(tz)

    def _local(order: Order) -> str:
        return order.date.replace(tzinfo=timezone.utc).astimezone(zone).strftime("%Y-%m-%d %H:%M:%S")

    rows = (
        (
            o.id,
            _local(o),
            float(o.total),
            float(o.tax_total),
            len(o.items),
            o.customer.name if o.customer and o.customer.name else WALK_IN_GUEST,
            o.customer.phone if o.customer else "",
            o.customer.place if o.customer else "",
        )
        for o in orders
    )
    return _single_sheet("Orders", ORDER_HEADERS, rows)


def day_report_workbook(report: DailyBreakdown) -> Workbook:
    wb = Workbook()
    summary = wb.active
    summary.title = "Report Summary"
    _write_sheet(summary, SUMMARY_HEADERS, [
        ("Total Sales (Gross)", float(report.total_sales)),
        ("Total Orders", report.order_count),
        ("Average Ticket Size", float(report.average_ticket)),
        ("Selected Date", report.day.isoformat()),
    ])
    breakdown = wb.create_sheet("Itemized Breakdown")
    _write_sheet(breakdown, BREAKDOWN_HEADERS, ((r.name, r.qty, float(r.revenue)) for r in report.items))
    return wb


def export_filename(prefix: str, day: date) -> str:
    return f"{prefix}_{day.isoformat()}.xlsx"
