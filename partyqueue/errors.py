"""Error taxonomy shared by the admission core and the HTTP layer."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional


class ErrorKind(Enum):
    """Stable error kinds surfaced to clients."""
    INVALID_REQUEST = "invalid_request"            # malformed input, never retried
    AUTH_ERROR = "auth_error"                      # host must redo the handshake
    NOT_FOUND = "not_found"                        # handshake state missing or expired
    QUOTA_EXCEEDED = "quota_exceeded"
    VIBE_REJECTED = "vibe_rejected"
    NO_ACTIVE_TARGET = "no_active_target"          # nothing is playing on any device
    UPSTREAM_UNAVAILABLE = "upstream_unavailable"  # network, 429, 5xx, timeout
    TOKEN_EXCHANGE_FAILED = "token_exchange_failed"


class PartyQueueError(Exception):
    """Base class for errors rendered as ``{"error": kind, "message": ...}``."""

    kind: ErrorKind = ErrorKind.UPSTREAM_UNAVAILABLE
    status_code: int = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def extra(self) -> Dict[str, Any]:
        return {}

    def to_dict(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"error": self.kind.value, "message": self.message}
        body.update(self.extra())
        return body


class InvalidRequest(PartyQueueError):
    kind = ErrorKind.INVALID_REQUEST
    status_code = 400


class AuthError(PartyQueueError):
    kind = ErrorKind.AUTH_ERROR
    status_code = 401

    def __init__(self, message: str = "Not authenticated") -> None:
        super().__init__(message)


class HandshakeNotFound(PartyQueueError):
    kind = ErrorKind.NOT_FOUND
    status_code = 404

    def __init__(self, message: str = "Login state is missing or expired") -> None:
        super().__init__(message)


class TokenExchangeError(PartyQueueError):
    kind = ErrorKind.TOKEN_EXCHANGE_FAILED
    status_code = 502


class QuotaExceeded(PartyQueueError):
    kind = ErrorKind.QUOTA_EXCEEDED
    status_code = 429

    def __init__(self, limit: int, reset_at: datetime, minutes_remaining: int) -> None:
        super().__init__(
            f"You can only add {limit} songs per hour. "
            f"Try again in {minutes_remaining} minute(s)."
        )
        self.limit = limit
        self.reset_at = reset_at
        self.minutes_remaining = minutes_remaining

    def extra(self) -> Dict[str, Any]:
        return {
            "resetAt": self.reset_at.isoformat(),
            "minutesRemaining": self.minutes_remaining,
            "remaining": 0,
        }


class VibeRejected(PartyQueueError):
    kind = ErrorKind.VIBE_REJECTED
    status_code = 422

    def __init__(self, reasons: List[str], check: Optional[Dict[str, Any]] = None) -> None:
        primary = reasons[0] if reasons else "Track does not match the current vibe"
        super().__init__(primary)
        self.reasons = reasons
        self.check = check or {}

    def extra(self) -> Dict[str, Any]:
        return {"reasons": self.reasons, "vibe": self.check}


class NoActiveTarget(PartyQueueError):
    kind = ErrorKind.NO_ACTIVE_TARGET
    status_code = 404

    def __init__(self, message: str = "No active device found. Please start playing something on Spotify first.") -> None:
        super().__init__(message)


class UpstreamUnavailable(PartyQueueError):
    kind = ErrorKind.UPSTREAM_UNAVAILABLE
    status_code = 503

    def __init__(self, message: str, upstream_status: Optional[int] = None) -> None:
        super().__init__(message)
        self.upstream_status = upstream_status

    def extra(self) -> Dict[str, Any]:
        if self.upstream_status is None:
            return {}
        return {"upstreamStatus": self.upstream_status}


def classify_status(status_code: int) -> ErrorKind:
    """Map an upstream HTTP status to an error kind."""
    if status_code == 401:
        return ErrorKind.AUTH_ERROR
    elif status_code == 404:
        return ErrorKind.NO_ACTIVE_TARGET
    elif status_code == 400:
        return ErrorKind.INVALID_REQUEST
    return ErrorKind.UPSTREAM_UNAVAILABLE
