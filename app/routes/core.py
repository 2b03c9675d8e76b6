from __future__ import annotations

from flask import Blueprint, current_app, jsonify

from app.db import ping_db
from app.pipeline.context import get_pipeline
from app.utils.datetime import iso_utc_now

core_bp = Blueprint("core", __name__)


@core_bp.get("/health")
def health():
    db = current_app.extensions.get("mongo_db")
    db_ok = db is not None and ping_db(db)
    body = {
        "status": "ok" if db_ok else "degraded",
        "time": iso_utc_now(),
        "db": "ok" if db_ok else "error",
        # Mail is best effort, so only the database decides the status code.
        "notifier": get_pipeline().notifier.name,
    }
    return jsonify(body), 200 if db_ok else 503


@core_bp.get("/version")
def version():
    cfg = current_app.config["CFG"]
    return jsonify(
        {
            "version": cfg.APP_VERSION,
            "env": cfg.ENV,
            "timezone": cfg.TIMEZONE_DISPLAY,
            "time": iso_utc_now(),
        }
    )
