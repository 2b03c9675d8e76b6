from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class ApiError(Exception):
    code: str
    message: str
    status: int = 400
    details: Any | None = None


class NotFound(ApiError):
    def __init__(self, message: str = "Not found", details: Any | None = None):
        super().__init__("NOT_FOUND", message, status=404, details=details)


class Conflict(ApiError):
    def __init__(self, message: str = "Conflict", details: Any | None = None):
        super().__init__("CONFLICT", message, status=409, details=details)


class InvalidInput(ApiError):
    def __init__(self, message: str = "Invalid input", details: Any | None = None):
        super().__init__("BAD_REQUEST", message, status=400, details=details)


class DependencyFailure(ApiError):
    """An external side effect (email, webhook) failed or timed out.

    Never raised out of a pipeline operation; it is carried inside a
    NotifyResult so callers can observe it.
    """

    def __init__(self, message: str = "Dependency failure", details: Any | None = None):
        super().__init__("DEPENDENCY_FAILURE", message, status=502, details=details)
