from __future__ import annotations

import json
import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeout
from dataclasses import dataclass
from typing import Any, Optional

from app.notifications.templates import render
from app.utils.errors import DependencyFailure

log = logging.getLogger(__name__)

MCQ_INVITATION = "MCQ_INVITATION"
CODING_TEST_INVITATION = "CODING_TEST_INVITATION"
INTERVIEWER_ASSIGNED = "INTERVIEWER_ASSIGNED"
CANDIDATE_SCHEDULED = "CANDIDATE_SCHEDULED"
INTERVIEWER_SCHEDULED = "INTERVIEWER_SCHEDULED"
NEXT_ROUND = "NEXT_ROUND"
MCQ_REJECTION = "MCQ_REJECTION"

NOTIFICATION_KINDS = {
    MCQ_INVITATION,
    CODING_TEST_INVITATION,
    INTERVIEWER_ASSIGNED,
    CANDIDATE_SCHEDULED,
    INTERVIEWER_SCHEDULED,
    NEXT_ROUND,
    MCQ_REJECTION,
}


@dataclass(frozen=True)
class Recipient:
    email: str
    name: str = ""


@dataclass(frozen=True)
class NotifyResult:
    ok: bool
    kind: str
    recipient: str
    error: Optional[DependencyFailure] = None


class Notifier:
    """Delivery backend. ``send`` may raise; callers go through ``dispatch``."""

    name = "base"

    def send(self, kind: str, recipient: Recipient, payload: dict[str, Any]) -> None:
        raise NotImplementedError


class LogNotifier(Notifier):
    name = "log"

    def send(self, kind: str, recipient: Recipient, payload: dict[str, Any]) -> None:
        subject, _html = render(kind, payload)
        log.info(
            json.dumps(
                {"type": "notification", "kind": kind, "to": recipient.email, "subject": subject},
                separators=(",", ":"),
            )
        )


class SendGridNotifier(Notifier):
    name = "sendgrid"

    def __init__(self, *, api_key: str, mail_from: str, mail_from_name: str):
        from sendgrid import SendGridAPIClient

        self._client = SendGridAPIClient(api_key=api_key)
        self._mail_from = mail_from
        self._mail_from_name = mail_from_name

    def send(self, kind: str, recipient: Recipient, payload: dict[str, Any]) -> None:
        from sendgrid.helpers.mail import Mail

        subject, html = render(kind, payload)
        message = Mail(
            from_email=(self._mail_from, self._mail_from_name),
            to_emails=recipient.email,
            subject=subject,
            html_content=html,
        )
        resp = self._client.send(message)
        if int(resp.status_code) >= 400:
            raise RuntimeError(f"SendGrid rejected message (HTTP {resp.status_code})")


def build_notifier(cfg) -> Notifier:
    backend = str(getattr(cfg, "MAIL_BACKEND", "log") or "log").strip().lower()
    if backend == "sendgrid":
        return SendGridNotifier(
            api_key=cfg.SENDGRID_API_KEY,
            mail_from=cfg.MAIL_FROM,
            mail_from_name=cfg.MAIL_FROM_NAME,
        )
    return LogNotifier()


_executor: ThreadPoolExecutor | None = None
_executor_lock = threading.Lock()


def _get_executor() -> ThreadPoolExecutor:
    global _executor
    with _executor_lock:
        if _executor is None:
            _executor = ThreadPoolExecutor(max_workers=4, thread_name_prefix="notify")
    return _executor


def dispatch(
    notifier: Notifier,
    kind: str,
    recipient: Recipient,
    payload: dict[str, Any],
    *,
    timeout: float,
) -> NotifyResult:
    """Send one notification without ever raising.

    The send runs on a worker thread and is waited on for at most ``timeout``
    seconds. A timeout is reported like any other failure; the worker is left
    to finish on its own.
    """
    email = str(recipient.email or "").strip()
    if kind not in NOTIFICATION_KINDS:
        err = DependencyFailure(f"Unknown notification kind: {kind}", details={"kind": kind})
        log.warning("notification dropped kind=%s to=%s reason=unknown-kind", kind, email)
        return NotifyResult(ok=False, kind=kind, recipient=email, error=err)
    if not email:
        err = DependencyFailure("Recipient has no email address", details={"kind": kind})
        log.warning("notification dropped kind=%s reason=no-recipient", kind)
        return NotifyResult(ok=False, kind=kind, recipient="", error=err)

    future = None
    try:
        future = _get_executor().submit(notifier.send, kind, recipient, payload)
        future.result(timeout=timeout)
    except FutureTimeout:
        # A send still queued behind a saturated pool must not go out after we report failure.
        cancelled = future.cancel() if future is not None else False
        err = DependencyFailure(
            f"Notification timed out after {timeout:g}s", details={"kind": kind, "recipient": email}
        )
        log.warning(
            "notification timed out kind=%s to=%s timeout=%s cancelled=%s", kind, email, timeout, cancelled
        )
        return NotifyResult(ok=False, kind=kind, recipient=email, error=err)
    except Exception as e:
        err = DependencyFailure(f"Notification failed: {e}", details={"kind": kind, "recipient": email})
        log.warning("notification failed kind=%s to=%s error=%s", kind, email, e)
        return NotifyResult(ok=False, kind=kind, recipient=email, error=err)

    return NotifyResult(ok=True, kind=kind, recipient=email)
