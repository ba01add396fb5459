from __future__ import annotations

import threading
from datetime import date, datetime, timezone
from typing import Optional
from zoneinfo import ZoneInfo


def utcnow() -> datetime:
    """Server-side 'now' in UTC (naive, canonical)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def parse_iso_datetime(value: Optional[str]) -> Optional[datetime]:
    """
    Parse an ISO-8601 datetime string and normalize to UTC-naive datetime.

    - None / "" -> None
    - "YYYY-MM-DDTHH:MM" (naive) is interpreted as UTC
    - "...Z" or "...+/-HH:MM" is converted to UTC and tzinfo is stripped
    """
    if value is None:
        return None
    s = value.strip()
    if not s:
        return None

    # Accept trailing Z
    if s.endswith("Z"):
        s = s[:-1] + "+00:00"

    dt = datetime.fromisoformat(s)

    # Normalize to UTC-naive
    if dt.tzinfo is None:
        # interpret naive as UTC
        return dt.replace(tzinfo=None)

    return dt.astimezone(timezone.utc).replace(tzinfo=None)


def to_utc_z(dt: Optional[datetime]) -> Optional[str]:
    """
    Serializes datetime to ISO-8601 with trailing 'Z'.
    If dt is naive, it is treated as UTC. Milliseconds are kept so that two
    orders committed within the same second still sort correctly.
    """
    if dt is None:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    dt_utc = dt.astimezone(timezone.utc)
    return dt_utc.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def resolve_timezone(name: Optional[str]):
    """IANA zone for `name`, or the server's local zone when name is empty."""
    if name:
        return ZoneInfo(name)
    return datetime.now().astimezone().tzinfo


def local_date(dt: datetime, tz_name: Optional[str] = None) -> date:
    """Calendar day of a UTC-naive instant as seen in `tz_name`."""
    aware = dt.replace(tzinfo=timezone.utc) if dt.tzinfo is None else dt
    return aware.astimezone(resolve_timezone(tz_name)).date()


def parse_local_date(value: Optional[str]) -> Optional[date]:
    """Parse a YYYY-MM-DD calendar day; None / "" -> None."""
    if value is None:
        return None
    s = value.strip()
    if not s:
        return None
    return date.fromisoformat(s)


def epoch_millis() -> int:
    """Current Unix time in milliseconds (used for timestamp-style ids)."""
    return int(datetime.now(timezone.utc).timestamp() * 1000)


_id_lock = threading.Lock()
_last_id = 0


def timestamp_id() -> str:
    """Millisecond timestamp id, strictly increasing within this process."""
    global _last_id
    with _id_lock:
        _last_id = max(epoch_millis(), _last_id + 1)
        return str(_last_id)
