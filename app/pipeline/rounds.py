from __future__ import annotations

import logging
from typing import Any, Optional

from pymongo import ASCENDING, DESCENDING

from app.pipeline.constants import EVALUATIONS, INTERVIEW_MODES, JOBS, ROUND_TYPES, ROUNDS
from app.utils.datetime import parse_datetime_maybe
from app.utils.errors import Conflict, InvalidInput, NotFound
from app.utils.validators import optional_str, parse_bool, to_object_id, validate_email

log = logging.getLogger(__name__)

_TEXT_FIELDS = ("description", "formLink", "platform", "duration", "instructions", "interviewType", "meetingLink")


def _parse_int(value: Any, *, field: str) -> int:
    if isinstance(value, bool):
        raise InvalidInput(f"{field} must be an integer")
    try:
        n = int(value)
    except (TypeError, ValueError) as e:
        raise InvalidInput(f"{field} must be an integer") from e
    if isinstance(value, float) and n != value:
        raise InvalidInput(f"{field} must be an integer")
    return n


def _parse_questions(raw: Any) -> list[dict[str, Any]]:
    if not isinstance(raw, list):
        raise InvalidInput("mcqQuestions must be a list")
    out: list[dict[str, Any]] = []
    for i, q in enumerate(raw):
        if not isinstance(q, dict):
            raise InvalidInput("Each MCQ question must be an object", details={"index": i})
        text = str(q.get("question") or "").strip()
        if not text:
            raise InvalidInput("MCQ question text is required", details={"index": i})
        options = [str(o) for o in (q.get("options") or [])]
        correct = _parse_int(q.get("correctAnswer"), field="correctAnswer")
        if correct < 0 or (options and correct >= len(options)):
            raise InvalidInput("correctAnswer must index one of the options", details={"index": i})
        out.append({"question": text, "options": options, "correctAnswer": correct})
    return out


def _parse_interviewers(raw: Any) -> list[dict[str, str]]:
    if not isinstance(raw, list):
        raise InvalidInput("interviewers must be a list")
    out: list[dict[str, str]] = []
    for item in raw:
        if not isinstance(item, dict):
            raise InvalidInput("Each interviewer must be an object")
        out.append({"name": str(item.get("name") or "").strip(), "email": validate_email(item.get("email"))})
    return out


def _round_fields(data: dict[str, Any], *, timezone_name: str) -> dict[str, Any]:
    fields: dict[str, Any] = {}

    if "name" in data:
        name = str(data.get("name") or "").strip()
        if not name:
            raise InvalidInput("Round name is required")
        fields["name"] = name

    if "type" in data:
        rtype = str(data.get("type") or "").strip().upper()
        if rtype not in ROUND_TYPES:
            raise InvalidInput("Invalid round type", details={"allowed": sorted(ROUND_TYPES)})
        fields["type"] = rtype

    if data.get("order") is not None:
        order = _parse_int(data.get("order"), field="order")
        if order < 0:
            raise InvalidInput("order must be >= 0")
        fields["order"] = order

    for key in _TEXT_FIELDS:
        if key in data:
            fields[key] = optional_str(data.get(key))

    if "interviewMode" in data:
        mode = optional_str(data.get("interviewMode"))
        if mode is not None:
            mode = mode.upper()
            if mode not in INTERVIEW_MODES:
                raise InvalidInput("interviewMode must be online or offline")
        fields["interviewMode"] = mode

    if "mcqQuestions" in data:
        fields["mcqQuestions"] = _parse_questions(data.get("mcqQuestions") or [])

    if "interviewers" in data:
        fields["interviewers"] = _parse_interviewers(data.get("interviewers") or [])

    if "scheduledAt" in data:
        raw = data.get("scheduledAt")
        when = parse_datetime_maybe(raw, app_timezone=timezone_name)
        if raw not in (None, "") and when is None:
            raise InvalidInput("scheduledAt is not a valid datetime")
        fields["scheduledAt"] = when

    if "scheduling" in data:
        sched = data.get("scheduling") or {}
        if not isinstance(sched, dict):
            raise InvalidInput("scheduling must be an object with date and time")
        fields["scheduling"] = {
            "date": str(sched.get("date") or "").strip(),
            "time": str(sched.get("time") or "").strip(),
        }

    if "isActive" in data:
        fields["isActive"] = parse_bool(data.get("isActive"), default=True)

    return fields


def get_round(ctx, round_id: Any) -> Optional[dict[str, Any]]:
    return ctx.store.get(ROUNDS, to_object_id(round_id, field="roundId"))


def require_round(ctx, round_id: Any) -> dict[str, Any]:
    rnd = get_round(ctx, round_id)
    if not rnd:
        raise NotFound("Round not found", details={"roundId": str(round_id)})
    return rnd


def next_order_for(ctx, job_id: Any) -> int:
    last = ctx.store.find_one(ROUNDS, {"jobId": job_id}, sort=[("order", DESCENDING)])
    if not last:
        return 0
    return int(last.get("order") or 0) + 1


def find_next_round(ctx, job_id: Any, current_order: int, current_id: Any = None) -> Optional[dict[str, Any]]:
    # Rounds sharing an order run in creation order; nothing is renumbered.
    order = int(current_order)
    after: dict[str, Any] = {"order": {"$gt": order}}
    if current_id is not None:
        after = {"$or": [after, {"order": order, "_id": {"$gt": current_id}}]}
    return ctx.store.find_one(
        ROUNDS,
        {
            "jobId": job_id,
            **after,
            "isArchived": {"$ne": True},
            "isActive": {"$ne": False},
        },
        sort=[("order", ASCENDING), ("_id", ASCENDING)],
    )


def list_rounds(ctx, job_id: Any, *, include_archived: bool = False) -> list[dict[str, Any]]:
    query: dict[str, Any] = {"jobId": to_object_id(job_id, field="jobId")}
    if not include_archived:
        query["isArchived"] = {"$ne": True}
    return ctx.store.find(ROUNDS, query, sort=[("order", ASCENDING), ("_id", ASCENDING)])


def create_round(ctx, data: dict[str, Any]) -> dict[str, Any]:
    job_id = to_object_id(data.get("jobId"), field="jobId")
    if not ctx.store.get(JOBS, job_id):
        raise NotFound("Job not found", details={"jobId": str(job_id)})

    fields = _round_fields(data, timezone_name=ctx.timezone_name)
    if "name" not in fields:
        raise InvalidInput("Round name is required")
    fields.setdefault("type", "INTERVIEW")

    if "order" not in fields:
        fields["order"] = next_order_for(ctx, job_id)
    elif ctx.store.count(ROUNDS, {"jobId": job_id, "order": fields["order"]}):
        log.warning("round order %s already used in job %s", fields["order"], job_id)

    if fields["type"] == "MCQ":
        fields.setdefault("mcqQuestions", [])

    doc = {
        "jobId": job_id,
        "isArchived": False,
        "isActive": True,
        "interviewers": [],
        **fields,
    }
    rnd = ctx.store.insert(ROUNDS, doc)
    log.info("round created id=%s job=%s order=%s type=%s", rnd["_id"], job_id, rnd["order"], rnd["type"])
    return rnd


def update_round(ctx, round_id: Any, data: dict[str, Any]) -> dict[str, Any]:
    rnd = require_round(ctx, round_id)
    if "jobId" in data and str(data.get("jobId") or "") != str(rnd["jobId"]):
        raise InvalidInput("A round cannot be moved to another job")

    fields = _round_fields(data, timezone_name=ctx.timezone_name)
    if not fields:
        return rnd
    return ctx.store.update(ROUNDS, rnd["_id"], fields) or rnd


def archive_round(ctx, round_id: Any) -> dict[str, Any]:
    rnd = require_round(ctx, round_id)
    return ctx.store.update(ROUNDS, rnd["_id"], {"isArchived": True, "archivedAt": ctx.now()}) or rnd


def activate_round(ctx, round_id: Any) -> dict[str, Any]:
    rnd = require_round(ctx, round_id)
    return ctx.store.update(ROUNDS, rnd["_id"], {"isArchived": False, "archivedAt": None}) or rnd


def delete_round(ctx, round_id: Any) -> None:
    rnd = require_round(ctx, round_id)
    in_use = ctx.store.count(EVALUATIONS, {"roundId": rnd["_id"]})
    if in_use:
        raise Conflict("Round has evaluations; archive it instead", details={"evaluations": in_use})
    ctx.store.delete(ROUNDS, rnd["_id"])
    log.info("round deleted id=%s", rnd["_id"])
