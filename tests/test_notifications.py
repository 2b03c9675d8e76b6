from __future__ import annotations

import time
from concurrent.futures import ThreadPoolExecutor

from app.notifications import notifier as notifier_module
from app.notifications.notifier import (
    CANDIDATE_SCHEDULED,
    CODING_TEST_INVITATION,
    MCQ_REJECTION,
    NEXT_ROUND,
    NOTIFICATION_KINDS,
    LogNotifier,
    Notifier,
    Recipient,
    build_notifier,
    dispatch,
)
from app.notifications.templates import render
from app.utils.errors import DependencyFailure


class SlowNotifier(Notifier):
    def send(self, kind, recipient, payload):
        time.sleep(0.5)


class BrokenNotifier(Notifier):
    def send(self, kind, recipient, payload):
        raise ConnectionError("relay refused")


TO = Recipient(email="cand@example.com", name="Cand")


def test_dispatch_success(notifier):
    res = dispatch(notifier, NEXT_ROUND, TO, {"nextRoundName": "Final"}, timeout=1.0)
    assert res.ok is True
    assert res.error is None
    assert notifier.kinds() == [NEXT_ROUND]


def test_dispatch_timeout_is_reported_not_raised():
    started = time.monotonic()
    res = dispatch(SlowNotifier(), NEXT_ROUND, TO, {}, timeout=0.05)
    assert time.monotonic() - started < 0.4
    assert res.ok is False
    assert isinstance(res.error, DependencyFailure)
    assert "timed out" in res.error.message


def test_dispatch_failure_is_reported_not_raised():
    res = dispatch(BrokenNotifier(), NEXT_ROUND, TO, {}, timeout=1.0)
    assert res.ok is False
    assert "relay refused" in res.error.message


def test_dispatch_unknown_kind_and_missing_email(notifier):
    assert dispatch(notifier, "BIRTHDAY", TO, {}, timeout=1.0).ok is False
    assert dispatch(notifier, NEXT_ROUND, Recipient(email=""), {}, timeout=1.0).ok is False
    assert notifier.sent == []


def test_render_escapes_and_includes_venue():
    subject, html = render(
        CANDIDATE_SCHEDULED,
        {
            "candidateName": "<b>Eve</b>",
            "jobTitle": "SRE",
            "roundName": "Onsite",
            "date": "2026-01-20",
            "time": "09:30",
            "mode": "OFFLINE",
            "locationDetails": {"venueName": "HQ", "address": "1 Main St", "city": "Pune"},
        },
    )
    assert subject
    assert "&lt;b&gt;Eve&lt;/b&gt;" in html
    assert "HQ" in html and "Pune" in html


def test_build_notifier_defaults_to_log():
    class Cfg:
        MAIL_BACKEND = "log"

    assert isinstance(build_notifier(Cfg()), LogNotifier)


def test_timed_out_send_still_queued_is_cancelled(monkeypatch, notifier):
    pool = ThreadPoolExecutor(max_workers=1)
    monkeypatch.setattr(notifier_module, "_executor", pool)
    try:
        dispatch(SlowNotifier(), NEXT_ROUND, TO, {}, timeout=0.05)
        res = dispatch(notifier, NEXT_ROUND, TO, {}, timeout=0.05)
        assert res.ok is False
        time.sleep(0.7)
        assert notifier.sent == []
    finally:
        pool.shutdown(wait=True)


def test_every_kind_has_a_template():
    payload = {
        "candidateName": "Cand",
        "jobTitle": "SRE",
        "companyName": "Acme",
        "roundName": "Round",
        "interviewerName": "Ivy",
        "nextRoundName": "Final",
        "formLink": "https://forms.example.com/q",
        "platform": "HackerRank",
        "duration": "60",
    }
    for kind in NOTIFICATION_KINDS:
        subject, html = render(kind, payload)
        assert subject.strip()
        assert "Acme" in html or "Cand" in html


def test_subjects_are_plain_text():
    subject, _html = render(MCQ_REJECTION, {"companyName": "R&D <Labs>"})
    assert subject == "Update on Your Application - R&D <Labs>"

    subject, html = render(CODING_TEST_INVITATION, {"jobTitle": "SRE", "instructions": "<script>x</script>"})
    assert subject == "Coding Test Invitation - SRE"
    assert "<script>" not in html
    assert "TBD" in html
