"""Common FastAPI dependencies."""

from __future__ import annotations

from fastapi import Request

from .config import Settings
from .state import RuntimeState


def get_settings(request: Request) -> Settings:  # pragma: no cover - trivial accessor
    return request.app.state.settings  # type: ignore[attr-defined]


def get_runtime_state(request: Request) -> RuntimeState:  # pragma: no cover - trivial accessor
    return request.app.state.runtime_state  # type: ignore[attr-defined]


def get_client_id(request: Request) -> str:
    """Identify a guest by peer address, or the hop appended by the trusted proxy."""
    settings: Settings = request.app.state.settings  # type: ignore[attr-defined]
    if settings.trust_forwarded_for:
        forwarded = request.headers.get("x-forwarded-for", "")
        # Earlier entries are whatever the guest sent; only the last one is
        # written by the proxy in front of us.
        proxy_hop = forwarded.split(",")[-1].strip()
        if proxy_hop:
            return proxy_hop
    if request.client and request.client.host:
        return request.client.host
    return "unknown"
