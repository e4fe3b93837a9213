"""Utility functions used across modules."""

from __future__ import annotations

import math
from datetime import datetime, timezone
from typing import Optional

import requests
from requests import Session

from .config import Settings
from .errors import ErrorKind


def create_requests_session(settings: Settings) -> Session:
    """Create a configured requests session with proxy support.

    Connection-level retries stay disabled: the single reactive
    refresh-and-retry in the upstream caller is the only retry policy.
    """
    session = requests.Session()
    proxies = {key: value for key, value in settings.proxies.items() if value}

    if proxies:
        session.proxies.update(proxies)
    else:
        session.proxies = {"http": None, "https": None}

    adapter = requests.adapters.HTTPAdapter(max_retries=0)
    session.mount("http://", adapter)
    session.mount("https://", adapter)
    return session


def mask_token(token: Optional[str], visible_chars: int = 4) -> str:
    """Safely mask a token for logging, showing only last N characters"""
    if not token or len(token) <= visible_chars:
        return "***"
    return f"...{token[-visible_chars:]}"


def to_datetime(timestamp: float) -> datetime:
    return datetime.fromtimestamp(timestamp, tz=timezone.utc)


def to_iso(timestamp: Optional[float]) -> Optional[str]:
    """Render an epoch timestamp as an ISO-8601 UTC string."""
    if timestamp is None:
        return None
    return to_datetime(timestamp).isoformat()


def minutes_until(target: float, now: float) -> int:
    """Whole minutes until ``target``, rounded up, never below zero."""
    return max(0, math.ceil((target - now) / 60))


def log_debug(settings: Settings, message: str) -> None:
    """Log message only if DEBUG_MODE is enabled."""
    if settings.debug_mode:
        print(f"[DEBUG] {message}")


def log_error(
    kind: ErrorKind,
    message: str,
    token: Optional[str] = None,
    endpoint: Optional[str] = None,
    exception: Optional[Exception] = None,
) -> None:
    """Centralized error logging with context"""
    masked = mask_token(token) if token else "N/A"
    endpoint_str = endpoint if endpoint else "N/A"
    exception_str = f" | Exception: {exception}" if exception else ""
    print(f"[ERROR] Type: {kind.value} | Token: {masked} | Endpoint: {endpoint_str} | {message}{exception_str}")
