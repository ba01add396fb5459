# backend/smartpos/routes/system.py
"""
System health endpoint.

Reports local database reachability and whether a remote store is configured
and answering. A missing remote is not an error (local-only mode).
"""

import time

from flask import Blueprint, current_app
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from ..extensions import db
from ..services.remote_store import RemoteUnavailableError
from ..services.terminal_service import EXTENSION_KEY

system_bp = Blueprint("system", __name__)


def check_database_health() -> dict:
    start_time = time.time()
    try:
        db.session.execute(text("SELECT 1"))
        elapsed_ms = (time.time() - start_time) * 1000
        return {"status": "healthy", "latency_ms": round(elapsed_ms, 2)}
    except SQLAlchemyError:
        current_app.logger.exception("Database health check failed")
        return {"status": "unhealthy", "error": "Database error"}


def check_remote_health() -> dict:
    terminal = current_app.extensions[EXTENSION_KEY]
    remote = terminal.store.remote
    if remote is None:
        return {"status": "disabled"}
    start_time = time.time()
    try:
        remote.fetch_ids("settings")
    except RemoteUnavailableError:
        current_app.logger.warning("Remote store health check failed", exc_info=True)
        return {"status": "unreachable"}
    feed = terminal.store.change_feed
    return {
        "status": "healthy",
        "latency_ms": round((time.time() - start_time) * 1000, 2),
        "change_feed": "running" if feed is not None and feed.running else "stopped",
    }


@system_bp.get("/api/health")
def health():
    database = check_database_health()
    remote = check_remote_health()
    ok = database["status"] == "healthy"
    return {
        "status": "ok" if ok else "degraded",
        "checks": {"database": database, "remote": remote},
    }, (200 if ok else 503)
