# backend/smartpos/config.py
from __future__ import annotations
import os


def _env_flag(name: str, default: bool) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # Local durable store, always written first
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///smartpos.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Optional remote store (dual-written, best-effort). Unset = local-only mode.
    REMOTE_DATABASE_URL = os.environ.get("REMOTE_DATABASE_URL") or None
    CHANGE_FEED_ENABLED = _env_flag("CHANGE_FEED_ENABLED", True)
    CHANGE_FEED_POLL_SECONDS = float(os.environ.get("CHANGE_FEED_POLL_SECONDS", "5"))

    # Embedded images are downscaled before they are persisted
    IMAGE_MAX_WIDTH = int(os.environ.get("IMAGE_MAX_WIDTH", "400"))
    IMAGE_JPEG_QUALITY = int(os.environ.get("IMAGE_JPEG_QUALITY", "70"))

    # IANA zone used for "local day" analytics; None = server local time
    REPORT_TIMEZONE = os.environ.get("REPORT_TIMEZONE") or None

    SEED_DEMO_CATALOG = _env_flag("SEED_DEMO_CATALOG", True)

    # AI description assist (Gemini REST API)
    GEMINI_API_KEY = os.environ.get("GEMINI_API_KEY") or os.environ.get("API_KEY") or None
    GEMINI_MODEL = os.environ.get("GEMINI_MODEL", "gemini-2.5-flash")
    GEMINI_BASE_URL = os.environ.get(
        "GEMINI_BASE_URL",
        "https://generativelanguage.googleapis.com",
    ).rstrip("/")
    GEMINI_TIMEOUT_SECONDS = float(os.environ.get("GEMINI_TIMEOUT_SECONDS", "30"))
