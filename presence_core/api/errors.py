"""Translate domain errors into HTTP responses and WebSocket replies.

Store-originated messages pass through unchanged.
"""

from __future__ import annotations

from typing import Any

from fastapi import HTTPException

from presence_core.adapters.registry import AdaptationError, NoAdapterFoundError
from presence_core.domain.errors import (
    CorrectionValidationError,
    PresenceError,
    ScanNotAllowedError,
    StoreUnavailableError,
    TransitionRejected,
    TransitionTimeoutError,
)

# Most specific first
_STATUS: list[tuple[type[PresenceError], int, str]] = [
    (CorrectionValidationError, 422, "invalid_duration"),
    (NoAdapterFoundError, 422, "unrecognized_payload"),
    (AdaptationError, 422, "invalid_payload"),
    (ScanNotAllowedError, 422, "scan_not_allowed"),
    (TransitionTimeoutError, 504, "timeout"),
    (StoreUnavailableError, 503, "store_unavailable"),
]


def error_code(exc: PresenceError) -> tuple[int, str]:
    if isinstance(exc, TransitionRejected):
        return 409, exc.code
    for exc_type, status, code in _STATUS:
        if isinstance(exc, exc_type):
            return status, code
    return 400, "presence_error"


def to_http(exc: PresenceError) -> HTTPException:
    status, code = error_code(exc)
    return HTTPException(status_code=status, detail={"code": code, "message": str(exc)})


def to_ws_reply(exc: PresenceError) -> dict[str, Any]:
    _, code = error_code(exc)
    return {"status": "error", "code": code, "detail": str(exc)}
