# Overview: Flask API routes for order history; receipts, edit, delete and export.

import io

from flask import Blueprint, current_app, jsonify, request, send_file

from ..services import export_service, ledger_service, receipt_service
from ..services.billing_service import BillingError
from ..services.datastore import LocalStoreError
from ..services.terminal_service import get_terminal
from ..time_utils import parse_local_date, utcnow

orders_bp = Blueprint("orders", __name__, url_prefix="/api/orders")


def _filtered_orders(terminal, tz):
    """
    Query params:
    - q: search text (order id, customer name or phone)
    - from, to: YYYY-MM-DD local days, both inclusive
    """
    try:
        date_from = parse_local_date(request.args.get("from"))
        date_to = parse_local_date(request.args.get("to"))
    except ValueError:
        raise ValueError("from and to must be YYYY-MM-DD")
    return ledger_service.filter_orders(
        terminal.state.orders, request.args.get("q"), date_from, date_to, tz,
    )


@orders_bp.get("")
def list_orders():
    """Committed orders, newest first."""
    terminal = get_terminal()
    try:
        orders = _filtered_orders(terminal, request.args.get("tz") or terminal.report_timezone)
    except (KeyError, ValueError) as e:
        return jsonify({"error": str(e)}), 400
    return {"items": [o.to_dict() for o in orders], "count": len(orders)}


@orders_bp.get("/next-id")
def next_order_id():
    return {"next_id": get_terminal().next_order_id()}


@orders_bp.get("/export")
def export_orders():
    terminal = get_terminal()
    tz = request.args.get("tz") or terminal.report_timezone
    try:
        orders = _filtered_orders(terminal, tz)
    except (KeyError, ValueError) as e:
        return jsonify({"error": str(e)}), 400
    wb = export_service.orders_workbook(orders, tz)
    return send_file(
        io.BytesIO(export_service.workbook_bytes(wb)),
        mimetype=export_service.XLSX_MIMETYPE,
        as_attachment=True,
        download_name=export_service.export_filename("Shop_Orders", utcnow().date()),
    )


@orders_bp.get("/<order_id>")
def get_order(order_id: str):
    order = get_terminal().state.order(order_id)
    if order is None:
        return jsonify({"error": "Order not found"}), 404
    return {"order": order.to_dict()}


@orders_bp.get("/<order_id>/receipt")
def order_receipt(order_id: str):
    """Printable receipt (HTML). Same document for print and image export."""
    terminal = get_terminal()
    order = terminal.state.order(order_id)
    if order is None:
        return jsonify({"error": "Order not found"}), 404
    tz = request.args.get("tz") or terminal.report_timezone
    return receipt_service.render_receipt(order, terminal.state.shop, tz)


@orders_bp.post("/<order_id>/edit")
def begin_edit_route(order_id: str):
    """Give the order's stock back and load it into the bill for editing."""
    terminal = get_terminal()
    try:
        billing = terminal.begin_edit(order_id)
    except BillingError as e:
        status = 404 if "order_id" in e.details else 409
        return jsonify({"error": str(e), "details": e.details}), status
    except LocalStoreError:
        current_app.logger.exception("Failed to open order for editing")
        return jsonify({"error": "Internal server error"}), 500

    return {"cart": billing.to_dict(terminal.state.shop)}, 200


@orders_bp.delete("/<order_id>")
def delete_order_route(order_id: str):
    """Restores the order's stock, then removes it from history."""
    try:
        deleted = get_terminal().delete_order(order_id)
    except LocalStoreError:
        current_app.logger.exception("Failed to delete order")
        return jsonify({"error": "Internal server error"}), 500

    if not deleted:
        return jsonify({"error": "Order not found"}), 404
    return {"ok": True}, 200


@orders_bp.delete("")
def clear_orders_route():
    """Bulk delete of history; stock is left as it is."""
    try:
        get_terminal().clear_history()
    except LocalStoreError:
        current_app.logger.exception("Failed to clear order history")
        return jsonify({"error": "Internal server error"}), 500
    return {"ok": True}, 200
