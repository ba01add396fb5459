# Overview: Flask API routes for the current bill; cart edits, checkout and the edit flow.

# backend/smartpos/routes/billing.py
"""
Billing API routes.

One terminal, one bill: every route acts on the terminal's current
BillingState and answers with the resulting cart (items, customer, totals,
mode). Soft failures (bad quantity, price) come back as 200 with a
"warning" and an unchanged cart.
"""

from decimal import Decimal, InvalidOperation

from flask import Blueprint, current_app, jsonify, request

from ..entities import CustomerInfo
from ..services.billing_service import (
    BillingError,
    CheckoutPersistError,
    InsufficientStockError,
)
from ..services.datastore import LocalStoreError
from ..services.terminal_service import get_terminal
from ..validation import MAX_PRICE, ValidationError, parse_int

billing_bp = Blueprint("billing", __name__, url_prefix="/api/billing")


def _cart_payload(terminal, warning: str | None = None) -> dict:
    out = {"cart": terminal.state.billing.to_dict(terminal.state.shop)}
    if warning:
        out["warning"] = warning
    return out


def _billing_error(e: BillingError):
    status = 409 if isinstance(e, InsufficientStockError) else 400
    return jsonify({"error": str(e), "details": e.details}), status


@billing_bp.get("/cart")
def get_cart():
    return _cart_payload(get_terminal())


@billing_bp.post("/cart/items")
def add_item_route():
    data = request.get_json(silent=True) or {}
    product_id = data.get("product_id")
    quantity = data.get("quantity", 1)

    if not product_id:
        return jsonify({"error": "product_id required"}), 400

    terminal = get_terminal()
    if terminal.state.product(str(product_id)) is None:
        return jsonify({"error": "Product not found"}), 404

    try:
        terminal.add_to_cart(str(product_id), quantity)
    except BillingError as e:
        return _billing_error(e)
    return _cart_payload(terminal), 200


@billing_bp.patch("/cart/items/<item_id>")
def update_item_route(item_id: str):
    """
    Cart-local overrides for one line. Any of:
    - qty: positive integer, at most the product's current stock
    - name: free text
    - price: number >= 0
    """
    data = request.get_json(silent=True) or {}
    terminal = get_terminal()

    if terminal.state.billing.find(item_id) is None:
        return jsonify({"error": "Item not in cart"}), 404

    warnings = []
    if "qty" in data:
        _, warning = terminal.set_item_quantity(item_id, data["qty"])
        if warning:
            warnings.append(warning)
    if "name" in data:
        terminal.set_item_name(item_id, data["name"] or "")
    if "price" in data:
        _, warning = terminal.set_item_price(item_id, data["price"])
        if warning:
            warnings.append(warning)

    return _cart_payload(terminal, "; ".join(warnings) or None), 200


@billing_bp.delete("/cart/items/<item_id>")
def remove_item_route(item_id: str):
    terminal = get_terminal()
    terminal.remove_item(item_id)
    return _cart_payload(terminal), 200


@billing_bp.put("/cart/customer")
def set_customer_route():
    data = request.get_json(silent=True) or {}
    terminal = get_terminal()
    terminal.set_customer(CustomerInfo.from_dict(data))
    return _cart_payload(terminal), 200


@billing_bp.delete("/cart")
def clear_cart_route():
    terminal = get_terminal()
    try:
        terminal.clear_cart()
    except BillingError as e:
        return _billing_error(e)
    return _cart_payload(terminal), 200


@billing_bp.post("/checkout")
def checkout_route():
    terminal = get_terminal()
    try:
        order = terminal.checkout()
    except CheckoutPersistError as e:
        current_app.logger.exception("Failed to persist order at checkout")
        return jsonify({"error": str(e), "details": e.details}), 500
    except BillingError as e:
        return _billing_error(e)
    except Exception:
        current_app.logger.exception("Failed to check out")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify({"order": order.to_dict(), **_cart_payload(terminal)}), 201


@billing_bp.post("/cancel-edit")
def cancel_edit_route():
    terminal = get_terminal()
    terminal.cancel_edit()
    return _cart_payload(terminal), 200


@billing_bp.post("/quick-add")
def quick_add_route():
    """Create a product from the bill and add one unit of it."""
    data = request.get_json(silent=True) or {}
    name = str(data.get("name") or "").strip()
    if not name:
        return jsonify({"error": "name required"}), 400

    try:
        price = Decimal(str(data.get("price")))
    except (InvalidOperation, TypeError, ValueError):
        return jsonify({"error": "price must be a number"}), 400
    raw_stock = data.get("stock")
    try:
        stock = 0 if raw_stock in (None, "") else parse_int("stock", raw_stock)
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    if not price.is_finite() or price < 0 or price > MAX_PRICE or stock < 0:
        return jsonify({"error": "price and stock must be >= 0"}), 400

    terminal = get_terminal()
    try:
        product, _, warning = terminal.quick_add(
            name=name,
            price=price,
            stock=stock,
            category=data.get("category"),
            description=data.get("description"),
            image=data.get("image"),
        )
    except LocalStoreError:
        current_app.logger.exception("Failed to quick-add product")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify({"product": product.to_dict(), **_cart_payload(terminal, warning)}), 201
