# Overview: Flask API route for the AI description assist.

from flask import Blueprint, jsonify, request

from ..services.terminal_service import get_terminal

ai_bp = Blueprint("ai", __name__, url_prefix="/api/ai")


@ai_bp.post("/describe")
def describe_product():
    """
    Suggest a description, price and category for a product name.

    Body: {"name": "...", "instruction": "..." (optional)}
    Answers {"suggestion": null} when the assist is unavailable.
    """
    data = request.get_json(silent=True) or {}
    name = str(data.get("name") or "").strip()
    if not name:
        return jsonify({"error": "name required"}), 400

    suggestion = get_terminal().describe_product(name, data.get("instruction"))
    return {"suggestion": suggestion.to_dict() if suggestion else None}
