"""Runtime state container for the FastAPI application."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional, Set

from .core.credentials import CredentialManager
from .core.handshake import HandshakeStore
from .core.pipeline import EnqueuePipeline
from .core.quota import QuotaTracker
from .core.upstream import UpstreamClient
from .core.vibe import VibeFilter, VibePolicyStore


@dataclass
class RuntimeState:
    """Holds the service objects that own mutable state while the app is running."""

    host_keys: Set[str] = field(default_factory=set)
    policies: VibePolicyStore = field(default_factory=VibePolicyStore)
    credentials: Optional[CredentialManager] = None
    handshakes: Optional[HandshakeStore] = None
    quotas: Optional[QuotaTracker] = None
    upstream: Optional[UpstreamClient] = None
    vibe: Optional[VibeFilter] = None
    pipeline: Optional[EnqueuePipeline] = None
