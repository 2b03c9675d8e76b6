from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

from app.notifications.notifier import Recipient
from app.pipeline.constants import COMPANIES, JOBS, USERS
from app.utils.datetime import to_display_tz


@dataclass(frozen=True)
class ApplicationRefs:
    """Read-only documents an application points at, used to fill notifications."""

    candidate: dict[str, Any]
    job: dict[str, Any]
    company: dict[str, Any]

    @property
    def candidate_name(self) -> str:
        return str(self.candidate.get("name") or "Candidate")

    @property
    def job_title(self) -> str:
        return str(self.job.get("title") or "")

    @property
    def company_name(self) -> str:
        return str(self.company.get("name") or "")

    def candidate_recipient(self) -> Recipient:
        return Recipient(email=str(self.candidate.get("email") or ""), name=self.candidate_name)


def load_refs(ctx, application: dict[str, Any]) -> ApplicationRefs:
    store = ctx.store
    return ApplicationRefs(
        candidate=store.get(USERS, application.get("candidateId")) or {},
        job=store.get(JOBS, application.get("jobId")) or {},
        company=store.get(COMPANIES, application.get("companyId")) or {},
    )


def default_evaluator_id(ctx, application: dict[str, Any]) -> Any:
    # The owning company stands in as evaluator until someone is scheduled.
    company = ctx.store.get(COMPANIES, application.get("companyId")) or {}
    return company.get("ownerId") or application.get("companyId")


def format_slot(ctx, when: Optional[Any]) -> tuple[str, str]:
    if when is None:
        return "", ""
    local = to_display_tz(when, ctx.timezone_name)
    return local.strftime("%Y-%m-%d"), local.strftime("%H:%M")
