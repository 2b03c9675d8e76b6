from __future__ import annotations

import logging
import sys

from flask import g, has_request_context

_NOISY_LOGGERS = ("pymongo", "urllib3", "python_http_client")


class _RequestIdFilter(logging.Filter):
    """Stamp records with the current request id so pipeline logs line up with request logs."""

    def filter(self, record: logging.LogRecord) -> bool:
        rid = getattr(g, "request_id", "") if has_request_context() else ""
        record.request_id = rid or "-"
        return True


def setup_logging(level: str = "INFO") -> None:
    root = logging.getLogger()
    root.setLevel(level)

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    handler.addFilter(_RequestIdFilter())
    handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s [%(request_id)s] %(message)s"))

    root.handlers.clear()
    root.addHandler(handler)

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(logging.WARNING, root.level))
