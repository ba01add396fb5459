# Overview: Flask API routes for bulk imports; parses uploads and returns counts.

"""
Import Routes

Supports CSV and Excel (.xlsx) uploads as multipart field "file".
"""

from flask import Blueprint, current_app, jsonify, request

from ..services import import_service
from ..services.datastore import LocalStoreError
from ..services.import_service import ImportError
from ..services.terminal_service import get_terminal


imports_bp = Blueprint("imports", __name__, url_prefix="/api/imports")


def _uploaded_rows():
    if "file" not in request.files:
        raise ImportError("file is required")
    file = request.files["file"]
    return import_service.read_rows(file.filename or "", file.stream)


@imports_bp.post("/products")
def import_products_route():
    try:
        rows = _uploaded_rows()
        result = get_terminal().import_products(rows)
    except ImportError as e:
        return jsonify({"error": str(e)}), 400
    except LocalStoreError:
        current_app.logger.exception("Product import failed")
        return jsonify({"error": "Internal server error"}), 500
    return jsonify(result.to_dict()), 201


@imports_bp.post("/customers")
def import_customers_route():
    try:
        rows = _uploaded_rows()
        result = get_terminal().import_customers(rows)
    except ImportError as e:
        return jsonify({"error": str(e)}), 400
    except LocalStoreError:
        current_app.logger.exception("Customer import failed")
        return jsonify({"error": "Internal server error"}), 500
    return jsonify(result.to_dict()), 201
