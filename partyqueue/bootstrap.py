"""Helpers for building runtime state from configuration."""

from __future__ import annotations

from .config import Settings
from .core.credentials import CredentialManager
from .core.handshake import HandshakeStore
from .core.pipeline import EnqueuePipeline
from .core.quota import QuotaTracker
from .core.upstream import UpstreamClient
from .core.vibe import VibeFilter
from .state import RuntimeState
from .utils import create_requests_session


def load_host_keys(state: RuntimeState, settings: Settings) -> None:
    """Populate the runtime state's host API keys set."""
    state.host_keys = set(settings.host_api_keys)
    if state.host_keys:
        print(f"Successfully loaded {len(state.host_keys)} host API keys from configuration.")
    else:
        print("Warning: HOST_API_KEYS is empty; host-only endpoints will refuse every request.")


def build_services(state: RuntimeState, settings: Settings) -> None:
    """Wire the admission core around one shared HTTP session."""
    session = create_requests_session(settings)
    state.credentials = CredentialManager(settings, session)
    state.handshakes = HandshakeStore(ttl_seconds=settings.handshake_ttl_seconds)
    state.quotas = QuotaTracker(limit=settings.quota_limit, window_seconds=settings.quota_window_seconds)
    state.upstream = UpstreamClient(settings, state.credentials, session)
    state.vibe = VibeFilter(state.policies, state.upstream, settings)
    state.pipeline = EnqueuePipeline(state.quotas, state.vibe, state.upstream, settings)


def bootstrap_state(state: RuntimeState, settings: Settings) -> None:
    """Load all runtime resources from configuration."""
    load_host_keys(state, settings)
    build_services(state, settings)
