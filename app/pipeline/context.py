from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable

from flask import Flask, current_app

from app.notifications.notifier import Notifier, NotifyResult, Recipient, build_notifier, dispatch
from app.pipeline.store import DocumentStore
from app.utils.datetime import as_utc, utc_now


@dataclass(frozen=True)
class PipelineContext:
    store: DocumentStore
    notifier: Notifier
    clock: Callable[[], datetime] = field(default=utc_now)
    notify_timeout_seconds: float = 5.0
    reporting_offset_minutes: int = 15
    timezone_name: str = "UTC"

    def now(self) -> datetime:
        return as_utc(self.clock())

    def notify(self, kind: str, recipient: Recipient, payload: dict[str, Any]) -> NotifyResult:
        return dispatch(self.notifier, kind, recipient, payload, timeout=self.notify_timeout_seconds)


def build_context(db, cfg, *, notifier: Notifier | None = None, clock: Callable[[], datetime] = utc_now) -> PipelineContext:
    return PipelineContext(
        store=DocumentStore(db, clock=clock),
        notifier=notifier or build_notifier(cfg),
        clock=clock,
        notify_timeout_seconds=float(cfg.NOTIFY_TIMEOUT_SECONDS),
        reporting_offset_minutes=int(cfg.REPORTING_OFFSET_MINUTES),
        timezone_name=str(cfg.TIMEZONE_DISPLAY or "UTC"),
    )


def init_pipeline(app: Flask) -> None:
    app.extensions["pipeline"] = build_context(app.extensions["mongo_db"], app.config["CFG"])


def get_pipeline() -> PipelineContext:
    return current_app.extensions["pipeline"]
