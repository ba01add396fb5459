from __future__ import annotations

from flask import Blueprint, current_app, jsonify, request

from ..services.datastore import LocalStoreError
from ..services.settings_service import SettingsValidationError
from ..services.terminal_service import get_terminal


settings_bp = Blueprint("settings", __name__, url_prefix="/api/settings")


@settings_bp.get("")
def get_settings():
    return {"settings": get_terminal().state.shop.to_dict()}


@settings_bp.put("")
def save_settings():
    payload = request.get_json(silent=True)
    try:
        shop = get_terminal().save_settings(payload if payload is not None else {})
    except SettingsValidationError as exc:
        return jsonify({"error": str(exc)}), 400
    except LocalStoreError:
        current_app.logger.exception("Failed to save shop settings")
        return jsonify({"error": "Internal server error"}), 500
    return {"settings": shop.to_dict()}


@settings_bp.post("/factory-reset")
def factory_reset():
    """Delete every product, order, customer and setting; restore default shop details."""
    data = request.get_json(silent=True) or {}
    if data.get("confirm") is not True:
        return jsonify({"error": "confirm must be true"}), 400
    try:
        state = get_terminal().factory_reset()
    except LocalStoreError:
        current_app.logger.exception("Factory reset failed")
        return jsonify({"error": "Internal server error"}), 500
    return {"ok": True, "settings": state.shop.to_dict()}
