from __future__ import annotations

from decimal import Decimal
from typing import Any

from ..entities import ShopDetails
from ..validation import ValidationError, enforce_rules_settings
from .datastore import DataStore


class SettingsError(ValueError):
    pass


class SettingsValidationError(SettingsError):
    pass


WRITABLE_FIELDS = {
    "name", "address", "phone", "email", "logo", "payment_qr_code",
    "footer_message", "powered_by_text", "tax_enabled", "default_tax_rate",
    "show_logo", "show_payment_qr", "ai_description_prompt",
}
BOOL_FIELDS = {"tax_enabled", "show_logo", "show_payment_qr"}


def get_shop_details(store: DataStore) -> ShopDetails:
    """Stored shop details with every missing field filled from the defaults."""
    return store.get_shop_details() or ShopDetails()


def ensure_shop_details(store: DataStore) -> ShopDetails:
    """Persist the defaults when no shop details record exists yet."""
    current = store.get_shop_details()
    if current is not None:
        return current
    return store.save_shop_details(ShopDetails())


def _coerce(key: str, value: Any) -> Any:
    if key in BOOL_FIELDS:
        if isinstance(value, bool):
            return value
        if isinstance(value, str):
            return value.strip().lower() in {"1", "true", "yes", "on"}
        raise SettingsValidationError(f"{key} must be a boolean")
    if key == "default_tax_rate":
        if isinstance(value, bool):
            raise SettingsValidationError("default_tax_rate must be a number")
        try:
            number = Decimal(str(value).strip())
        except ArithmeticError:
            raise SettingsValidationError("default_tax_rate must be a number")
        if not number.is_finite():
            raise SettingsValidationError("default_tax_rate must be a number")
        return number
    if value is None:
        return ""
    return str(value).strip()


def normalize_patch(payload: Any) -> dict:
    if not isinstance(payload, dict):
        raise SettingsValidationError("Invalid JSON payload")
    unknown = sorted(k for k in payload if k not in WRITABLE_FIELDS)
    if unknown:
        raise SettingsValidationError(f"Unknown settings: {', '.join(unknown)}")
    patch = {k: _coerce(k, v) for k, v in payload.items()}
    try:
        enforce_rules_settings(patch)
    except ValidationError as exc:
        raise SettingsValidationError(str(exc)) from exc
    return patch


def save_shop_details(store: DataStore, current: ShopDetails, payload: Any) -> ShopDetails:
    """Read-modify-write of the singleton: apply `payload` on top of `current`."""
    patch = normalize_patch(payload)
    return store.save_shop_details(current.merged(patch))
