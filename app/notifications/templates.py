from __future__ import annotations

from typing import Any

from jinja2 import Environment, PackageLoader, select_autoescape

_env = Environment(
    loader=PackageLoader("app", "templates"),
    autoescape=select_autoescape(["html"]),
    trim_blocks=True,
    lstrip_blocks=True,
)

# kind -> (subject, template). Subjects are plain text, bodies are autoescaped HTML.
_TEMPLATES: dict[str, tuple[str, str]] = {
    "MCQ_INVITATION": ("MCQ Assessment for {jobTitle} - {roundName}", "email/mcq_invitation.html"),
    "CODING_TEST_INVITATION": ("Coding Test Invitation - {jobTitle}", "email/coding_test_invitation.html"),
    "INTERVIEWER_ASSIGNED": ("Interview Assignment - {jobTitle} - {candidateName}", "email/interviewer_assigned.html"),
    "CANDIDATE_SCHEDULED": ("Interview Scheduled - {jobTitle}", "email/candidate_scheduled.html"),
    "INTERVIEWER_SCHEDULED": ("Interview Scheduled - {jobTitle} - {candidateName}", "email/interviewer_scheduled.html"),
    "NEXT_ROUND": ("Congratulations! You've Advanced to the Next Round - {jobTitle}", "email/next_round.html"),
    "MCQ_REJECTION": ("Update on Your Application - {companyName}", "email/mcq_rejection.html"),
}


class _Blank(dict):
    def __missing__(self, key: str) -> str:
        return ""


def render(kind: str, payload: dict[str, Any]) -> tuple[str, str]:
    """Return ``(subject, html)`` for a notification kind."""
    if kind not in _TEMPLATES:
        raise KeyError(f"No template for notification kind {kind}")
    subject_fmt, template_name = _TEMPLATES[kind]
    payload = payload or {}
    subject = subject_fmt.format_map(_Blank({k: "" if v is None else v for k, v in payload.items()}))
    return subject, _env.get_template(template_name).render(**payload)
