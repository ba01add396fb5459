# Overview: Flask API routes for catalog operations; parses input and returns JSON responses.

# backend/smartpos/routes/products.py
import io

from flask import Blueprint, current_app, request, send_file

from ..models import Product
from ..services import export_service, inventory_service, products_service
from ..services.datastore import LocalStoreError
from ..services.terminal_service import get_terminal
from ..time_utils import utcnow
from ..validation import (
    ModelValidationPolicy,
    validate_payload,
    enforce_rules_product,
    ValidationError,
    ConflictError,
)

PRODUCT_POLICY = ModelValidationPolicy(
    writable_fields={
        "name", "price", "stock", "category", "description", "image",
        "tax_rate", "min_stock_level", "rental_duration",
    },
    required_on_create={"name", "price"},
)

products_bp = Blueprint("products", __name__, url_prefix="/api/products")


@products_bp.get("")
def list_products():
    """
    Catalog listing.

    Query params:
    - q: case-insensitive name search (optional)
    - category: exact category, "All" or empty for every category (optional)
    """
    terminal = get_terminal()
    items = products_service.list_products(
        list(terminal.state.products),
        query=request.args.get("q"),
        category=request.args.get("category"),
    )
    return {"items": [p.to_dict() for p in items], "count": len(items)}


@products_bp.get("/categories")
def list_categories():
    terminal = get_terminal()
    return {"items": products_service.list_categories(list(terminal.state.products))}


@products_bp.get("/low-stock")
def low_stock():
    terminal = get_terminal()
    catalog = list(terminal.state.products)
    return {
        "low_stock": [p.to_dict() for p in inventory_service.low_stock(catalog)],
        "out_of_stock": [p.to_dict() for p in inventory_service.out_of_stock(catalog)],
    }


@products_bp.get("/export")
def export_products():
    terminal = get_terminal()
    wb = export_service.inventory_workbook(terminal.state.products)
    return send_file(
        io.BytesIO(export_service.workbook_bytes(wb)),
        mimetype=export_service.XLSX_MIMETYPE,
        as_attachment=True,
        download_name=export_service.export_filename("Inventory_Export", utcnow().date()),
    )


@products_bp.post("")
def create_product_route():
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=False)
        enforce_rules_product(patch)
    except ValidationError as e:
        return {"error": str(e)}, 400

    try:
        created = get_terminal().create_product(patch)
    except ConflictError as e:
        return {"error": str(e)}, 409
    except LocalStoreError:
        current_app.logger.exception("Failed to create product")
        return {"error": "Internal server error"}, 500

    return created.to_dict(), 201


@products_bp.put("/<product_id>")
def update_product_route(product_id: str):
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=True)
        enforce_rules_product(patch)
    except ValidationError as e:
        return {"error": str(e)}, 400

    try:
        updated = get_terminal().update_product(product_id, patch)
    except LocalStoreError:
        current_app.logger.exception("Failed to update product")
        return {"error": "Internal server error"}, 500

    if updated is None:
        return {"error": "Product not found"}, 404
    return updated.to_dict(), 200


@products_bp.delete("/<product_id>")
def delete_product_route(product_id: str):
    try:
        deleted = get_terminal().delete_product(product_id)
    except LocalStoreError:
        current_app.logger.exception("Failed to delete product")
        return {"error": "Internal server error"}, 500

    if not deleted:
        return {"error": "Product not found"}, 404
    return {"ok": True}, 200


@products_bp.delete("")
def clear_products_route():
    try:
        get_terminal().clear_products()
    except LocalStoreError:
        current_app.logger.exception("Failed to clear products")
        return {"error": "Internal server error"}, 500
    return {"ok": True}, 200
