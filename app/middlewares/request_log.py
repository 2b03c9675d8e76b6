from __future__ import annotations

import json
import logging
import os
import time
from typing import Any

from flask import Flask, g, request


def init_request_log(app: Flask) -> None:
    """Tag each request with an id and log one JSON line when it finishes."""
    logger = logging.getLogger("app.request")

    @app.before_request
    def _start():
        incoming = str(request.headers.get("X-Request-ID") or "").strip()
        g.request_id = incoming or os.urandom(8).hex()
        g.start_ts = time.monotonic()

    @app.after_request
    def _finish(resp):
        rid = getattr(g, "request_id", "")
        if rid:
            resp.headers["X-Request-ID"] = rid

        start = getattr(g, "start_ts", None)
        data: dict[str, Any] = {
            "type": "request",
            "request_id": rid,
            "method": request.method,
            "path": request.path,
            "status": resp.status_code,
            "latency_ms": int((time.monotonic() - start) * 1000) if isinstance(start, (int, float)) else None,
        }
        logger.info(json.dumps(data, separators=(",", ":")))
        return resp
