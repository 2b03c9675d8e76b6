from __future__ import annotations

import re
from typing import Any, Optional

from bson import ObjectId
from bson.errors import InvalidId
from flask import request

from app.utils.errors import InvalidInput

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def require_json() -> dict[str, Any]:
    body = request.get_json(silent=True)
    if not isinstance(body, dict):
        raise InvalidInput("JSON body must be an object")
    return body


def validate_email(value: Any) -> str:
    email = str(value or "").strip().lower()
    if not email or not _EMAIL_RE.match(email):
        raise InvalidInput("Invalid email", details={"email": str(value or "")})
    return email


def maybe_object_id(value: Any) -> Optional[ObjectId]:
    if isinstance(value, ObjectId):
        return value
    s = str(value or "").strip()
    if not s:
        return None
    try:
        return ObjectId(s)
    except (InvalidId, TypeError):
        return None


def to_object_id(value: Any, *, field: str = "id") -> ObjectId:
    oid = maybe_object_id(value)
    if oid is None:
        raise InvalidInput(f"Invalid {field}", details={field: str(value or "")})
    return oid


def optional_str(value: Any) -> Optional[str]:
    s = str(value or "").strip()
    return s or None


def parse_id_csv(raw: Any, *, field: str) -> list[ObjectId]:
    out: list[ObjectId] = []
    for part in str(raw or "").split(","):
        item = part.strip()
        if item:
            out.append(to_object_id(item, field=field))
    return out


def parse_bool(value: Any, default: bool = False) -> bool:
    if isinstance(value, bool):
        return value
    raw = str(value if value is not None else "").strip().lower()
    if not raw:
        return default
    return raw in {"1", "true", "yes", "y", "on"}
