"""Conversion of Firestore values into JSON-safe structures."""

from __future__ import annotations

import datetime
from typing import Any

from firebase_admin import firestore


def to_json_value(value: Any) -> Any:
    """Recursively convert datetimes, references and sentinels for jsonify."""
    if value is None or isinstance(value, (str, bool, int, float)):
        return value
    if isinstance(value, datetime.datetime):
        return value.isoformat()
    if isinstance(value, dict):
        return {key: to_json_value(item) for key, item in value.items()}
    if isinstance(value, (list, tuple, set)):
        return [to_json_value(item) for item in value]
    if value is firestore.SERVER_TIMESTAMP:
        # Not resolved until the write is read back.
        return None
    if hasattr(value, "id"):
        return value.id
    return str(value)
