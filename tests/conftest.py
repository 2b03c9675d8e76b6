from __future__ import annotations

import sys
import uuid
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any

import mongomock
import pytest

BACKEND_ROOT = Path(__file__).resolve().parents[1]
if str(BACKEND_ROOT) not in sys.path:
    sys.path.insert(0, str(BACKEND_ROOT))

from app.db import ensure_indexes  # noqa: E402
from app.notifications.notifier import Notifier, Recipient  # noqa: E402
from app.pipeline.constants import APPLICATIONS, COMPANIES, JOBS, USERS  # noqa: E402
from app.pipeline.context import PipelineContext  # noqa: E402
from app.pipeline.store import DocumentStore  # noqa: E402

NOW = datetime(2026, 1, 15, 10, 0, tzinfo=timezone.utc)


class FakeClock:
    def __init__(self, now: datetime = NOW):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


class RecordingNotifier(Notifier):
    name = "recording"

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.sent: list[tuple[str, str, dict[str, Any]]] = []

    def send(self, kind: str, recipient: Recipient, payload: dict[str, Any]) -> None:
        if self.fail:
            raise RuntimeError("smtp down")
        self.sent.append((kind, recipient.email, payload))

    def kinds(self) -> list[str]:
        return [k for k, _to, _p in self.sent]


class Seeder:
    def __init__(self, ctx: PipelineContext):
        self.ctx = ctx

    def company(self, name: str = "Acme") -> dict[str, Any]:
        owner = self.ctx.store.insert(USERS, {"name": "Owner", "email": "owner@acme.test"})
        return self.ctx.store.insert(COMPANIES, {"name": name, "ownerId": owner["_id"]})

    def job(self, company: dict[str, Any], title: str = "Backend Engineer") -> dict[str, Any]:
        return self.ctx.store.insert(JOBS, {"title": title, "companyId": company["_id"]})

    def application(self, job: dict[str, Any], *, email: str = "cand@example.com", **extra) -> dict[str, Any]:
        candidate = self.ctx.store.insert(USERS, {"name": "Cand Idate", "email": email})
        doc = {
            "jobId": job["_id"],
            "companyId": job["companyId"],
            "candidateId": candidate["_id"],
            "status": "APPLIED",
            "currentRound": None,
        }
        doc.update(extra)
        return self.ctx.store.insert(APPLICATIONS, doc)


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture()
def ctx(clock: FakeClock, notifier: RecordingNotifier) -> PipelineContext:
    db = mongomock.MongoClient(tz_aware=True)[f"pipeline_{uuid.uuid4().hex[:8]}"]
    ensure_indexes(db)
    return PipelineContext(
        store=DocumentStore(db, clock=clock),
        notifier=notifier,
        clock=clock,
        notify_timeout_seconds=1.0,
        reporting_offset_minutes=15,
        timezone_name="UTC",
    )


@pytest.fixture()
def seed(ctx: PipelineContext) -> Seeder:
    return Seeder(ctx)


@pytest.fixture()
def app_client(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("ENV", "testing")
    monkeypatch.setenv("MONGODB_URI", "mongomock://localhost")
    monkeypatch.setenv("DB_NAME", f"pipeline_{uuid.uuid4().hex[:8]}")
    monkeypatch.setenv("MAIL_BACKEND", "log")
    monkeypatch.setenv("TIMEZONE_DISPLAY", "UTC")
    monkeypatch.setenv("LOG_LEVEL", "WARNING")

    from app import create_app
    from app.db import reset_client_for_tests

    reset_client_for_tests()
    app = create_app()
    app.testing = True

    with app.test_client() as client:
        yield app, client

    reset_client_for_tests()
