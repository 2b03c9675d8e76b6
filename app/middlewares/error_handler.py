from __future__ import annotations

import logging
from typing import Any, Optional

from flask import Flask, g, jsonify
from pymongo.errors import DuplicateKeyError, PyMongoError
from werkzeug.exceptions import HTTPException

from app.utils.errors import ApiError

log = logging.getLogger("app")


def _body(code: str, message: str, details: Optional[Any] = None) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "success": False,
        "error": {"code": code, "message": message, "details": details},
    }
    if getattr(g, "request_id", None):
        payload["request_id"] = g.request_id
    return payload


def init_error_handlers(app: Flask) -> None:
    @app.errorhandler(ApiError)
    def _api_error(err: ApiError):
        if err.status >= 500:
            log.warning("dependency error request_id=%s code=%s %s", getattr(g, "request_id", ""), err.code, err.message)
        return jsonify(_body(err.code, err.message, err.details)), err.status

    @app.errorhandler(DuplicateKeyError)
    def _duplicate(err: DuplicateKeyError):
        return jsonify(_body("CONFLICT", "Record already exists")), 409

    @app.errorhandler(PyMongoError)
    def _db_error(err: PyMongoError):
        log.exception("database error request_id=%s", getattr(g, "request_id", ""))
        return jsonify(_body("DEPENDENCY_FAILURE", "Database unavailable")), 503

    @app.errorhandler(HTTPException)
    def _http_error(err: HTTPException):
        status = int(err.code or 500)
        return jsonify(_body(f"HTTP_{status}", str(err.description or "HTTP error"))), status

    @app.errorhandler(Exception)
    def _unhandled(err: Exception):
        log.exception("Unhandled exception request_id=%s", getattr(g, "request_id", ""))
        return jsonify(_body("INTERNAL", "Unexpected error")), 500
