from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Optional, Union

from app.notifications.notifier import CANDIDATE_SCHEDULED, INTERVIEWER_SCHEDULED, Recipient
from app.pipeline.audit import append_audit
from app.pipeline.constants import (
    APPLICATIONS,
    EVALUATIONS,
    MISSED,
    OFFLINE,
    ONLINE,
    RESCHEDULING,
    ROUNDS,
    SCHEDULED,
    TERMINAL_STATUSES,
)
from app.pipeline.ledger import require_evaluation
from app.pipeline.references import format_slot, load_refs
from app.utils.datetime import as_utc, parse_datetime_maybe
from app.utils.errors import InvalidInput
from app.utils.validators import optional_str, to_object_id, validate_email

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class OnlineMode:
    platform: str = ""
    meeting_link: str = ""


@dataclass(frozen=True)
class OfflineMode:
    venue_name: str
    address: str
    city: str
    landmark: str = ""


InterviewMode = Union[OnlineMode, OfflineMode]


@dataclass(frozen=True)
class Interviewer:
    name: str
    email: str


def parse_mode(data: dict[str, Any]) -> InterviewMode:
    mode = str(data.get("interviewMode") or data.get("mode") or ONLINE).strip().upper()
    if mode == ONLINE:
        return OnlineMode(
            platform=str(data.get("platform") or "").strip(),
            meeting_link=str(data.get("meetingLink") or "").strip(),
        )
    if mode == OFFLINE:
        loc = data.get("locationDetails") or {}
        if not isinstance(loc, dict):
            raise InvalidInput("locationDetails must be an object")
        venue = str(loc.get("venueName") or "").strip()
        address = str(loc.get("address") or "").strip()
        city = str(loc.get("city") or "").strip()
        if not venue or not address or not city:
            raise InvalidInput("Offline interviews need venueName, address and city")
        return OfflineMode(venue_name=venue, address=address, city=city, landmark=str(loc.get("landmark") or "").strip())
    raise InvalidInput("interviewMode must be online or offline")


def parse_interviewers(raw: Any) -> list[Interviewer]:
    if isinstance(raw, dict):
        raw = [raw]
    if not isinstance(raw, list) or not raw:
        raise InvalidInput("At least one interviewer is required")
    out: list[Interviewer] = []
    for item in raw:
        if not isinstance(item, dict):
            raise InvalidInput("Each interviewer must be an object with name and email")
        out.append(Interviewer(name=str(item.get("name") or "").strip(), email=validate_email(item.get("email"))))
    return out


def _mode_fields(mode: InterviewMode) -> dict[str, Any]:
    if isinstance(mode, OfflineMode):
        return {
            "interviewMode": OFFLINE,
            "platform": None,
            "meetingLink": None,
            "locationDetails": {
                "venueName": mode.venue_name,
                "address": mode.address,
                "city": mode.city,
                "landmark": mode.landmark,
            },
        }
    return {
        "interviewMode": ONLINE,
        "platform": mode.platform or None,
        "meetingLink": mode.meeting_link or None,
        "locationDetails": None,
    }


def reporting_time_for(ctx, scheduled_at: datetime, mode: InterviewMode, explicit: Optional[datetime]) -> Optional[datetime]:
    if explicit is not None:
        return explicit
    if isinstance(mode, OfflineMode):
        return scheduled_at - timedelta(minutes=ctx.reporting_offset_minutes)
    return None


def _parse_when(ctx, value: Any, *, field: str, required: bool) -> Optional[datetime]:
    when = _stored_time(ctx, value)
    if when is None and (required or value not in (None, "")):
        raise InvalidInput(f"{field} is not a valid datetime")
    return when


def assign_interviewer(
    ctx,
    evaluation_id: Any,
    *,
    interviewers: list[Interviewer],
    scheduled_at: Any,
    mode: InterviewMode,
    evaluator_id: Any = None,
    reporting_time: Any = None,
) -> dict[str, Any]:
    """Schedule (or re-schedule) an evaluation.

    Unconditional: whatever the evaluation's current status, it ends up
    SCHEDULED with the given interviewers replacing the previous ones.
    """
    ev = require_evaluation(ctx, evaluation_id)
    when = _parse_when(ctx, scheduled_at, field="scheduledAt", required=True)
    explicit_reporting = _parse_when(ctx, reporting_time, field="reportingTime", required=False)
    if not interviewers:
        raise InvalidInput("At least one interviewer is required")

    from_status = str(ev.get("status") or "")
    if from_status in TERMINAL_STATUSES:
        log.warning("re-scheduling finalized evaluation id=%s status=%s", ev["_id"], from_status)

    if evaluator_id is not None:
        ev["evaluatorId"] = to_object_id(evaluator_id, field="evaluatorId")
    ev["assignedInterviewers"] = [{"name": i.name, "email": i.email} for i in interviewers]
    ev["scheduledAt"] = when
    ev["reportingTime"] = reporting_time_for(ctx, when, mode, explicit_reporting)
    ev.update(_mode_fields(mode))
    ev["status"] = SCHEDULED
    ctx.store.save(EVALUATIONS, ev)

    append_audit(
        ctx,
        entity_type="EVALUATION",
        entity_id=ev["_id"],
        action="SCHEDULED",
        from_state=from_status,
        to_state=SCHEDULED,
        meta={"scheduledAt": when.isoformat(), "interviewers": [i.email for i in interviewers]},
    )
    log.info("evaluation scheduled id=%s at=%s from=%s", ev["_id"], when.isoformat(), from_status)

    _notify_scheduled(ctx, ev, interviewers)
    return ev


def _notify_scheduled(ctx, ev: dict[str, Any], interviewers: list[Interviewer]) -> None:
    application = ctx.store.get(APPLICATIONS, ev.get("applicationId"))
    if not application:
        log.warning("schedule notifications skipped: application %s missing", ev.get("applicationId"))
        return
    rnd = ctx.store.get(ROUNDS, ev.get("roundId")) or {}
    refs = load_refs(ctx, application)

    date_s, time_s = format_slot(ctx, ev.get("scheduledAt"))
    reporting = ev.get("reportingTime")
    payload = {
        "candidateName": refs.candidate_name,
        "jobTitle": refs.job_title,
        "companyName": refs.company_name,
        "roundName": str(rnd.get("name") or ""),
        "date": date_s,
        "time": time_s,
        "reportingTime": format_slot(ctx, reporting)[1] if reporting else "",
        "mode": ev.get("interviewMode"),
        "platform": ev.get("platform"),
        "meetingLink": ev.get("meetingLink"),
        "locationDetails": ev.get("locationDetails"),
        "interviewerName": ", ".join(i.name or i.email for i in interviewers),
    }

    ctx.notify(CANDIDATE_SCHEDULED, refs.candidate_recipient(), payload)
    for person in interviewers:
        ctx.notify(
            INTERVIEWER_SCHEDULED,
            Recipient(email=person.email, name=person.name),
            {**payload, "interviewerName": person.name or "Interviewer"},
        )


def reschedule(ctx, evaluation_id: Any) -> dict[str, Any]:
    ev = require_evaluation(ctx, evaluation_id)
    if str(ev.get("status") or "") != MISSED:
        return ev

    ev["status"] = RESCHEDULING
    ctx.store.save(EVALUATIONS, ev)
    append_audit(ctx, entity_type="EVALUATION", entity_id=ev["_id"], action="RESCHEDULE", from_state=MISSED, to_state=RESCHEDULING)
    log.info("evaluation moved to rescheduling id=%s", ev["_id"])
    return ev


def _stored_time(ctx, value: Any) -> Optional[datetime]:
    # Stored datetimes are UTC even when the driver hands them back naive.
    if isinstance(value, datetime):
        return as_utc(value)
    return parse_datetime_maybe(value, app_timezone=ctx.timezone_name)


def effective_scheduled_at(ctx, ev: dict[str, Any], rnd: Optional[dict[str, Any]]) -> Optional[datetime]:
    """Best known interview time: evaluation, then round, then the round's date/time strings."""
    when = _stored_time(ctx, ev.get("scheduledAt"))
    if when is None and rnd:
        when = _stored_time(ctx, rnd.get("scheduledAt"))
        if when is None:
            sched = rnd.get("scheduling") or {}
            date_s = str(sched.get("date") or "").strip() if isinstance(sched, dict) else ""
            time_s = str(sched.get("time") or "").strip() if isinstance(sched, dict) else ""
            if date_s:
                when = parse_datetime_maybe(f"{date_s} {time_s}".strip(), app_timezone=ctx.timezone_name)
    return as_utc(when) if when is not None else None
