# Overview: Flask API routes for customer records; parses input and returns JSON responses.

import io

from flask import Blueprint, current_app, request, send_file

from ..models import Customer
from ..services import customer_service, export_service
from ..services.datastore import LocalStoreError
from ..services.terminal_service import get_terminal
from ..time_utils import utcnow
from ..validation import (
    ModelValidationPolicy,
    validate_payload,
    enforce_rules_customer,
    ValidationError,
)

CUSTOMER_POLICY = ModelValidationPolicy(
    writable_fields={"name", "phone", "place"},
    required_on_create={"name", "phone"},
)

customers_bp = Blueprint("customers", __name__, url_prefix="/api/customers")


@customers_bp.get("")
def list_customers():
    customers = get_terminal().state.customers
    return {"items": [c.to_dict() for c in customers], "count": len(customers)}


@customers_bp.get("/search")
def search_customers():
    """Autocomplete: up to five customers whose name or phone contains `q`."""
    hits = customer_service.search(list(get_terminal().state.customers), request.args.get("q", ""))
    return {"items": [c.to_dict() for c in hits]}


@customers_bp.get("/export")
def export_customers():
    wb = export_service.customers_workbook(get_terminal().state.customers)
    return send_file(
        io.BytesIO(export_service.workbook_bytes(wb)),
        mimetype=export_service.XLSX_MIMETYPE,
        as_attachment=True,
        download_name=export_service.export_filename("Customers_Export", utcnow().date()),
    )


@customers_bp.post("")
def create_customer_route():
    payload = request.get_json(silent=True) or {}
    try:
        patch = validate_payload(model=Customer, payload=payload, policy=CUSTOMER_POLICY, partial=False)
        enforce_rules_customer(patch, partial=False)
    except ValidationError as e:
        return {"error": str(e)}, 400

    try:
        created = get_terminal().create_customer(patch)
    except LocalStoreError:
        current_app.logger.exception("Failed to create customer")
        return {"error": "Internal server error"}, 500
    return created.to_dict(), 201


@customers_bp.put("/<customer_id>")
def update_customer_route(customer_id: str):
    payload = request.get_json(silent=True) or {}
    try:
        patch = validate_payload(model=Customer, payload=payload, policy=CUSTOMER_POLICY, partial=True)
        enforce_rules_customer(patch, partial=True)
    except ValidationError as e:
        return {"error": str(e)}, 400

    try:
        updated = get_terminal().update_customer(customer_id, patch)
    except LocalStoreError:
        current_app.logger.exception("Failed to update customer")
        return {"error": "Internal server error"}, 500

    if updated is None:
        return {"error": "Customer not found"}, 404
    return updated.to_dict(), 200


@customers_bp.delete("/<customer_id>")
def delete_customer_route(customer_id: str):
    try:
        deleted = get_terminal().delete_customer(customer_id)
    except LocalStoreError:
        current_app.logger.exception("Failed to delete customer")
        return {"error": "Internal server error"}, 500

    if not deleted:
        return {"error": "Customer not found"}, 404
    return {"ok": True}, 200


@customers_bp.delete("")
def clear_customers_route():
    try:
        get_terminal().clear_customers()
    except LocalStoreError:
        current_app.logger.exception("Failed to clear customers")
        return {"error": "Internal server error"}, 500
    return {"ok": True}, 200
