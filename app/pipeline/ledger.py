from __future__ import annotations

import logging
from typing import Any, Optional

from pymongo import ASCENDING
from pymongo.errors import DuplicateKeyError

from app.notifications.notifier import CODING_TEST_INVITATION, INTERVIEWER_ASSIGNED, MCQ_INVITATION, Recipient
from app.pipeline.audit import append_audit
from app.pipeline.constants import APPLICATIONS, EVALUATIONS, INTERVIEW_ROUND_TYPES, PENDING, ROUNDS
from app.pipeline.references import load_refs
from app.utils.errors import NotFound
from app.utils.validators import to_object_id

log = logging.getLogger(__name__)


def _find_evaluation(ctx, round_id: Any, application_id: Any) -> Optional[dict[str, Any]]:
    return ctx.store.find_one(EVALUATIONS, {"roundId": round_id, "applicationId": application_id})


def get_evaluation(ctx, evaluation_id: Any) -> Optional[dict[str, Any]]:
    return ctx.store.get(EVALUATIONS, to_object_id(evaluation_id, field="evaluationId"))


def require_evaluation(ctx, evaluation_id: Any) -> dict[str, Any]:
    ev = get_evaluation(ctx, evaluation_id)
    if not ev:
        raise NotFound("Evaluation not found", details={"evaluationId": str(evaluation_id)})
    return ev


def list_evaluations_for_application(ctx, application_id: Any) -> list[dict[str, Any]]:
    return ctx.store.find(
        EVALUATIONS,
        {"applicationId": to_object_id(application_id, field="applicationId")},
        sort=[("createdAt", ASCENDING), ("_id", ASCENDING)],
    )


def assign(ctx, round_id: Any, application_id: Any, evaluator_id: Any) -> dict[str, Any]:
    """Put an application into a round, creating its PENDING evaluation.

    Calling it again for the same (round, application) returns the existing
    evaluation untouched; the unique index covers two callers racing past the
    existence check.
    """
    return ensure_evaluation(ctx, round_id, application_id, evaluator_id)[0]


def ensure_evaluation(ctx, round_id: Any, application_id: Any, evaluator_id: Any) -> tuple[dict[str, Any], bool]:
    """Like ``assign``, also reporting whether this call created the record."""
    rid = to_object_id(round_id, field="roundId")
    aid = to_object_id(application_id, field="applicationId")

    rnd = ctx.store.get(ROUNDS, rid)
    if not rnd:
        raise NotFound("Round not found", details={"roundId": str(rid)})
    application = ctx.store.get(APPLICATIONS, aid)
    if not application:
        raise NotFound("Application not found", details={"applicationId": str(aid)})

    existing = _find_evaluation(ctx, rid, aid)
    if existing:
        return existing, False

    interviewers = [
        {"name": str(i.get("name") or ""), "email": str(i.get("email") or "")}
        for i in (rnd.get("interviewers") or [])
        if isinstance(i, dict)
    ]
    doc = {
        "roundId": rid,
        "applicationId": aid,
        "evaluatorId": evaluator_id,
        "status": PENDING,
        "score": None,
        "notes": None,
        "feedback": None,
        "scheduledAt": None,
        "completedAt": None,
        "assignedInterviewers": interviewers,
    }
    try:
        evaluation = ctx.store.insert(EVALUATIONS, doc)
    except DuplicateKeyError:
        log.info("evaluation already created concurrently round=%s application=%s", rid, aid)
        return _find_evaluation(ctx, rid, aid) or doc, False

    append_audit(
        ctx,
        entity_type="EVALUATION",
        entity_id=evaluation["_id"],
        action="ASSIGNED",
        to_state=PENDING,
        meta={"roundId": str(rid), "applicationId": str(aid)},
    )
    log.info("evaluation assigned id=%s round=%s application=%s", evaluation["_id"], rid, aid)

    _notify_assignment(ctx, rnd, application, interviewers)
    return evaluation, True


def _notify_assignment(ctx, rnd: dict[str, Any], application: dict[str, Any], interviewers: list[dict[str, str]]) -> None:
    rtype = str(rnd.get("type") or "")
    wants_mcq = rtype == "MCQ" and bool(rnd.get("formLink"))
    wants_coding = rtype == "CODING"
    wants_interviewers = rtype in INTERVIEW_ROUND_TYPES and bool(interviewers)
    if not (wants_mcq or wants_coding or wants_interviewers):
        return

    refs = load_refs(ctx, application)
    base = {
        "candidateName": refs.candidate_name,
        "jobTitle": refs.job_title,
        "companyName": refs.company_name,
        "roundName": str(rnd.get("name") or ""),
    }

    if wants_mcq:
        ctx.notify(MCQ_INVITATION, refs.candidate_recipient(), {**base, "formLink": rnd.get("formLink")})

    if wants_coding:
        ctx.notify(
            CODING_TEST_INVITATION,
            refs.candidate_recipient(),
            {
                **base,
                "platform": rnd.get("platform") or "",
                "duration": rnd.get("duration") or "",
                "instructions": rnd.get("instructions") or "",
            },
        )

    if wants_interviewers:
        for person in interviewers:
            ctx.notify(
                INTERVIEWER_ASSIGNED,
                Recipient(email=person["email"], name=person["name"]),
                {**base, "interviewerName": person["name"] or "Interviewer"},
            )
