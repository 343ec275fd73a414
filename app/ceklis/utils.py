from __future__ import annotations

from datetime import date, datetime
from typing import Any

from flask import request


def json_payload() -> dict:
    """Request JSON body as a dict (empty when missing or not an object)."""
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def clean_str(value: Any) -> str | None:
    """Strip strings; blank or missing values become None."""
    if value is None:
        return None
    value = str(value).strip()
    return value or None


def parse_id(value: Any) -> int | None:
    if value is None or value == "":
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def parse_date(s: Any) -> date | None:
    """Parse YYYY-MM-DD (or an ISO timestamp, keeping the day)."""
    if not s:
        return None
    s = str(s).strip()
    if not s:
        return None
    try:
        return date.fromisoformat(s[:10])
    except ValueError:
        return None


def isoformat(value: date | datetime | None) -> str | None:
    return value.isoformat() if value is not None else None
