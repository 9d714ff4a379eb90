"""Hashing, JSON and timestamp helpers for persisted artifacts."""

from __future__ import annotations

import hashlib
import json
from datetime import datetime, timezone
from typing import Any


def content_hash(content: str) -> str:
    """SHA-256 hex digest of UTF-8 text."""
    return hashlib.sha256(content.encode("utf-8")).hexdigest()


def to_json(payload: Any) -> str:
    """Serialize a payload the way every artifact is stored (2-space indent)."""
    return json.dumps(payload, indent=2, ensure_ascii=False)


def format_timestamp(dt: datetime) -> str:
    """Render a datetime as ISO-8601 UTC with millisecond precision and a Z suffix."""
    dt = dt.astimezone(timezone.utc)
    return dt.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def utc_now_iso() -> str:
    return format_timestamp(datetime.now(timezone.utc))


def normalize_timestamp(value: str | None) -> str | None:
    """Parse a loosely formatted timestamp and return it normalized, or None."""
    if not value:
        return None
    raw = str(value).strip()
    if raw.endswith("Z"):
        raw = raw[:-1] + "+00:00"
    try:
        dt = datetime.fromisoformat(raw)
    except ValueError:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return format_timestamp(dt)
