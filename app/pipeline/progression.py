from __future__ import annotations

import logging
from typing import Any, Optional

from app.notifications.notifier import MCQ_REJECTION, NEXT_ROUND
from app.pipeline.audit import append_audit
from app.pipeline.constants import (
    APPLICATIONS,
    COMPLETION_STATUSES,
    EVALUATION_STATUSES,
    EVALUATIONS,
    FAILED,
    PASSED,
    ROUNDS,
    TERMINAL_STATUSES,
)
from app.pipeline.ledger import ensure_evaluation, require_evaluation
from app.pipeline.references import default_evaluator_id, load_refs
from app.pipeline.rounds import find_next_round
from app.utils.errors import InvalidInput

log = logging.getLogger(__name__)

_UNSET = object()


def _parse_score(value: Any) -> Optional[float]:
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        raise InvalidInput("score must be a number between 0 and 100")
    try:
        score = float(value)
    except (TypeError, ValueError) as e:
        raise InvalidInput("score must be a number between 0 and 100") from e
    if score != score or score < 0 or score > 100:
        raise InvalidInput("score must be a number between 0 and 100")
    return score


def update_status(
    ctx,
    evaluation_id: Any,
    status: Any,
    *,
    notes: Any = _UNSET,
    feedback: Any = _UNSET,
    score: Any = _UNSET,
) -> dict[str, Any]:
    """Record an outcome for an evaluation and advance the candidate on PASSED.

    The evaluation is persisted before any next-round work starts; failures in
    notifications never roll it back.
    """
    ev = require_evaluation(ctx, evaluation_id)
    new_status = str(status or "").strip().upper()
    if new_status not in EVALUATION_STATUSES:
        raise InvalidInput("Invalid evaluation status", details={"allowed": sorted(EVALUATION_STATUSES)})

    from_status = str(ev.get("status") or "")
    if from_status in TERMINAL_STATUSES and new_status != from_status:
        raise InvalidInput(
            "Evaluation is already finalized", details={"status": from_status, "requested": new_status}
        )

    ev["status"] = new_status
    if notes is not _UNSET:
        ev["notes"] = None if notes is None else str(notes)
    if feedback is not _UNSET:
        ev["feedback"] = None if feedback is None else str(feedback)
    if score is not _UNSET:
        ev["score"] = _parse_score(score)
    if new_status in COMPLETION_STATUSES and (new_status != from_status or not ev.get("completedAt")):
        ev["completedAt"] = ctx.now()
    ctx.store.save(EVALUATIONS, ev)

    append_audit(
        ctx,
        entity_type="EVALUATION",
        entity_id=ev["_id"],
        action="STATUS_UPDATED",
        from_state=from_status,
        to_state=new_status,
        meta={"score": ev.get("score")},
    )
    log.info("evaluation status id=%s %s -> %s", ev["_id"], from_status, new_status)

    if new_status == PASSED and from_status != PASSED:
        advance(ctx, ev)
    elif new_status == FAILED and from_status != FAILED:
        _notify_mcq_rejection(ctx, ev)
    return ev


def _notify_mcq_rejection(ctx, ev: dict[str, Any]) -> None:
    rnd = ctx.store.get(ROUNDS, ev.get("roundId")) or {}
    if str(rnd.get("type") or "") != "MCQ":
        return
    application = ctx.store.get(APPLICATIONS, ev.get("applicationId"))
    if not application:
        return
    refs = load_refs(ctx, application)
    ctx.notify(
        MCQ_REJECTION,
        refs.candidate_recipient(),
        {
            "candidateName": refs.candidate_name,
            "jobTitle": refs.job_title,
            "companyName": refs.company_name,
            "roundName": str(rnd.get("name") or ""),
        },
    )


def advance(ctx, ev: dict[str, Any]) -> Optional[dict[str, Any]]:
    """Assign the next eligible round after ``ev``; returns the new evaluation, if any."""
    rnd = ctx.store.get(ROUNDS, ev.get("roundId"))
    if not rnd:
        log.warning("progression stopped: round %s missing for evaluation %s", ev.get("roundId"), ev["_id"])
        return None
    application = ctx.store.get(APPLICATIONS, ev.get("applicationId"))
    if not application:
        log.warning("progression stopped: application %s missing", ev.get("applicationId"))
        return None

    next_round = find_next_round(ctx, rnd.get("jobId"), int(rnd.get("order") or 0), rnd["_id"])
    if not next_round:
        log.info("progression complete application=%s last_round=%s", application["_id"], rnd["_id"])
        return None

    next_ev, created = ensure_evaluation(
        ctx, next_round["_id"], application["_id"], default_evaluator_id(ctx, application)
    )
    if _is_ahead(ctx, next_round, application.get("currentRound")):
        ctx.store.update(APPLICATIONS, application["_id"], {"currentRound": next_round["_id"]})
        log.info(
            "application advanced id=%s round=%s -> %s", application["_id"], rnd["_id"], next_round["_id"]
        )
    if not created:
        # Re-passing an earlier round; the candidate was already told about this one.
        return next_ev

    refs = load_refs(ctx, application)
    ctx.notify(
        NEXT_ROUND,
        refs.candidate_recipient(),
        {
            "candidateName": refs.candidate_name,
            "jobTitle": refs.job_title,
            "companyName": refs.company_name,
            "nextRoundName": str(next_round.get("name") or ""),
        },
    )
    return next_ev


def _is_ahead(ctx, rnd: dict[str, Any], current_round_id: Any) -> bool:
    """True when ``rnd`` comes after the round ``currentRound`` points at."""
    current = ctx.store.get(ROUNDS, current_round_id) if current_round_id else None
    if not current:
        return True
    return (int(rnd.get("order") or 0), rnd["_id"]) > (int(current.get("order") or 0), current["_id"])
