from __future__ import annotations

import logging
from typing import Any

from app.pipeline.audit import append_audit
from app.pipeline.constants import APPLICATION_STATUSES, APPLICATIONS, ROUNDS
from app.pipeline.reconcile import application_ids_for_company, reconcile
from app.utils.errors import InvalidInput, NotFound
from app.utils.validators import to_object_id

log = logging.getLogger(__name__)


def require_application(ctx, application_id: Any) -> dict[str, Any]:
    application = ctx.store.get(APPLICATIONS, to_object_id(application_id, field="applicationId"))
    if not application:
        raise NotFound("Application not found", details={"applicationId": str(application_id)})
    return application


def update_application_status(ctx, application_id: Any, status: Any, *, notes: Any = None, current_round: Any = None) -> dict[str, Any]:
    """Plain status write on an application.

    Setting ``current_round`` here only moves the hint; the matching
    evaluation is created by the next reconcile pass.
    """
    application = require_application(ctx, application_id)
    new_status = str(status or "").strip().upper()
    if new_status not in APPLICATION_STATUSES:
        raise InvalidInput("Invalid application status", details={"allowed": sorted(APPLICATION_STATUSES)})

    patch: dict[str, Any] = {"status": new_status}
    if notes is not None:
        patch["notes"] = str(notes)
    if current_round not in (None, ""):
        rid = to_object_id(current_round, field="currentRound")
        rnd = ctx.store.get(ROUNDS, rid)
        if not rnd:
            raise NotFound("Round not found", details={"roundId": str(rid)})
        if rnd.get("jobId") != application.get("jobId"):
            raise InvalidInput("currentRound belongs to a different job")
        patch["currentRound"] = rid

    updated = ctx.store.update(APPLICATIONS, application["_id"], patch) or application
    append_audit(
        ctx,
        entity_type="APPLICATION",
        entity_id=application["_id"],
        action="STATUS_UPDATED",
        from_state=str(application.get("status") or ""),
        to_state=new_status,
        meta={"currentRound": str(patch["currentRound"]) if "currentRound" in patch else None},
    )
    log.info("application status id=%s -> %s", application["_id"], new_status)
    return updated


def pipeline_board(ctx, company_id: Any) -> list[dict[str, Any]]:
    ids = application_ids_for_company(ctx, company_id)
    evaluations = reconcile(ctx, ids)
    by_app: dict[Any, list[dict[str, Any]]] = {aid: [] for aid in ids}
    for ev in evaluations:
        by_app.setdefault(ev.get("applicationId"), []).append(ev)
    return [{"applicationId": aid, "evaluations": evs} for aid, evs in by_app.items()]
