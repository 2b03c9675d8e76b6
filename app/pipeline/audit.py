from __future__ import annotations

from typing import Any

from app.pipeline.constants import AUDIT_EVENTS


def append_audit(
    ctx,
    *,
    entity_type: str,
    entity_id: Any,
    action: str,
    from_state: str = "",
    to_state: str = "",
    actor: str = "SYSTEM",
    meta: dict[str, Any] | None = None,
) -> None:
    ctx.store.db[AUDIT_EVENTS].insert_one(
        {
            "entityType": str(entity_type or "").upper(),
            "entityId": str(entity_id or ""),
            "action": str(action or "").upper(),
            "fromState": str(from_state or ""),
            "toState": str(to_state or ""),
            "actor": str(actor or "SYSTEM"),
            "meta": meta or {},
            "createdAt": ctx.now(),
        }
    )
