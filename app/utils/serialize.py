from __future__ import annotations

from datetime import datetime
from typing import Any

from bson import ObjectId

from app.utils.datetime import to_iso_utc


def to_public(value: Any) -> Any:
    """Make a Mongo document JSON-safe: ``_id`` becomes ``id``, ids and datetimes become strings."""
    if isinstance(value, dict):
        out: dict[str, Any] = {}
        for k, v in value.items():
            out["id" if k == "_id" else k] = to_public(v)
        return out
    if isinstance(value, (list, tuple)):
        return [to_public(v) for v in value]
    if isinstance(value, ObjectId):
        return str(value)
    if isinstance(value, datetime):
        return to_iso_utc(value)
    return value
