from __future__ import annotations

import threading
from datetime import timezone

from flask import Flask
from pymongo import ASCENDING, DESCENDING, MongoClient
from pymongo.database import Database


_client: MongoClient | None = None
_client_lock = threading.Lock()


def _create_client(mongodb_uri: str, *, server_selection_timeout_ms: int) -> MongoClient:
    if mongodb_uri.startswith("mongomock://"):
        import mongomock  # type: ignore[import-not-found]

        return mongomock.MongoClient(tz_aware=True)

    return MongoClient(
        mongodb_uri,
        serverSelectionTimeoutMS=server_selection_timeout_ms,
        tz_aware=True,
        tzinfo=timezone.utc,
        retryWrites=True,
    )


def get_client(app: Flask) -> MongoClient:
    global _client
    cfg = app.config["CFG"]
    with _client_lock:
        if _client is None:
            _client = _create_client(cfg.MONGODB_URI, server_selection_timeout_ms=cfg.MONGO_SERVER_SELECTION_TIMEOUT_MS)
    return _client


def get_db(app: Flask) -> Database:
    cfg = app.config["CFG"]
    return get_client(app)[cfg.DB_NAME]


def ping_db(db) -> bool:
    try:
        db.command("ping")
        return True
    except Exception:
        try:
            # mongomock does not implement every admin command.
            _ = db.list_collection_names()
            return True
        except Exception:
            return False


def ensure_indexes(db) -> None:
    db.rounds.create_index([("jobId", ASCENDING), ("order", ASCENDING)], name="rounds_job_order")
    db.applications.create_index([("companyId", ASCENDING), ("createdAt", DESCENDING)], name="applications_company_createdAt")
    # One ledger entry and one MCQ response per (round, application).
    db.evaluations.create_index(
        [("roundId", ASCENDING), ("applicationId", ASCENDING)], unique=True, name="evaluations_round_application_unique"
    )
    db.evaluations.create_index([("applicationId", ASCENDING), ("status", ASCENDING)], name="evaluations_application_status")
    db.mcq_responses.create_index(
        [("roundId", ASCENDING), ("applicationId", ASCENDING)], unique=True, name="mcq_responses_round_application_unique"
    )
    db.auditlog_events.create_index([("createdAt", DESCENDING)], name="auditlog_events_createdAt_desc")
    db.auditlog_events.create_index([("entityType", ASCENDING), ("entityId", ASCENDING)], name="auditlog_events_entity")


def init_mongo(app: Flask) -> None:
    db = get_db(app)
    app.extensions["mongo_db"] = db
    ensure_indexes(db)


def reset_client_for_tests() -> None:
    global _client
    with _client_lock:
        _client = None
