from __future__ import annotations

import logging
from typing import Any

from pymongo import ASCENDING

from app.pipeline.audit import append_audit
from app.pipeline.constants import APPLICATIONS, EVALUATIONS, MISSED, PENDING, ROUNDS
from app.pipeline.ledger import assign
from app.pipeline.references import default_evaluator_id
from app.pipeline.scheduling import effective_scheduled_at
from app.utils.errors import Conflict, NotFound
from app.utils.validators import maybe_object_id, to_object_id

log = logging.getLogger(__name__)


def _repair_missing(ctx, applications: list[dict[str, Any]], evaluations: list[dict[str, Any]]) -> list[dict[str, Any]]:
    have = {(ev.get("roundId"), ev.get("applicationId")) for ev in evaluations}
    created: list[dict[str, Any]] = []
    for application in applications:
        round_id = maybe_object_id(application.get("currentRound"))
        if round_id is None or (round_id, application["_id"]) in have:
            continue
        try:
            ev = assign(ctx, round_id, application["_id"], default_evaluator_id(ctx, application))
        except NotFound:
            log.warning("currentRound %s of application %s does not exist", round_id, application["_id"])
            continue
        log.info("reconcile created missing evaluation id=%s application=%s", ev["_id"], application["_id"])
        have.add((round_id, application["_id"]))
        created.append(ev)
    return created


def _mark_missed(ctx, evaluations: list[dict[str, Any]]) -> None:
    pending = [ev for ev in evaluations if ev.get("status") == PENDING]
    if not pending:
        return

    round_ids = list({ev.get("roundId") for ev in pending})
    rounds = {r["_id"]: r for r in ctx.store.find(ROUNDS, {"_id": {"$in": round_ids}})}
    now = ctx.now()

    for ev in pending:
        when = effective_scheduled_at(ctx, ev, rounds.get(ev.get("roundId")))
        if when is None or when >= now:
            continue
        ev["status"] = MISSED
        try:
            ctx.store.save(EVALUATIONS, ev)
        except Conflict:
            # Someone else wrote it since we read; their state wins this pass.
            fresh = ctx.store.get(EVALUATIONS, ev["_id"])
            if fresh:
                ev.clear()
                ev.update(fresh)
            continue
        append_audit(
            ctx,
            entity_type="EVALUATION",
            entity_id=ev["_id"],
            action="MARKED_MISSED",
            from_state=PENDING,
            to_state=MISSED,
            meta={"scheduledAt": when.isoformat()},
        )
        log.info("evaluation marked missed id=%s scheduled=%s", ev["_id"], when.isoformat())


def reconcile(ctx, application_ids: list[Any]) -> list[dict[str, Any]]:
    """Return the evaluations of ``application_ids`` after read-time repair.

    Creates the evaluation an application's ``currentRound`` points at when it
    is missing, and turns PENDING evaluations whose slot has passed into
    MISSED. Running it again on the same data changes nothing.
    """
    ids: list[Any] = []
    for raw in application_ids or []:
        oid = to_object_id(raw, field="applicationId")
        if oid not in ids:
            ids.append(oid)
    if not ids:
        return []

    applications = ctx.store.find(APPLICATIONS, {"_id": {"$in": ids}})
    evaluations = ctx.store.find(EVALUATIONS, {"applicationId": {"$in": ids}})

    evaluations.extend(_repair_missing(ctx, applications, evaluations))
    _mark_missed(ctx, evaluations)

    order = {oid: i for i, oid in enumerate(ids)}
    evaluations.sort(key=lambda ev: (order.get(ev.get("applicationId"), len(order)), str(ev["_id"])))
    return evaluations


def application_ids_for_company(ctx, company_id: Any) -> list[Any]:
    apps = ctx.store.find(
        APPLICATIONS,
        {"companyId": to_object_id(company_id, field="companyId")},
        sort=[("createdAt", ASCENDING), ("_id", ASCENDING)],
    )
    return [a["_id"] for a in apps]
