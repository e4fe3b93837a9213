"""PKCE handshake correlation between /login and /callback."""

from __future__ import annotations

import base64
import hashlib
import secrets
import time
from dataclasses import dataclass
from threading import Lock
from typing import Callable, Dict, Optional, Tuple
from urllib.parse import urlencode

from ..config import Settings
from ..errors import HandshakeNotFound

SCOPES = (
    "user-read-playback-state",
    "user-modify-playback-state",
    "user-read-currently-playing",
)


@dataclass
class HandshakeRecord:
    verifier: str
    created_at: float


def generate_code_verifier() -> str:
    return secrets.token_urlsafe(32)


def generate_code_challenge(verifier: str) -> str:
    """S256 challenge: SHA-256 of the verifier, base64url without padding."""
    digest = hashlib.sha256(verifier.encode("ascii")).digest()
    return base64.urlsafe_b64encode(digest).decode("ascii").rstrip("=")


def generate_state() -> str:
    return secrets.token_hex(16)


def build_authorization_url(settings: Settings, state: str, challenge: str) -> str:
    params = {
        "client_id": settings.spotify_client_id,
        "response_type": "code",
        "redirect_uri": settings.spotify_redirect_uri,
        "scope": " ".join(SCOPES),
        "state": state,
        "code_challenge_method": "S256",
        "code_challenge": challenge,
    }
    return f"{settings.spotify_accounts_base}/authorize?{urlencode(params)}"


class HandshakeStore:
    """One-time records keyed by OAuth state, valid for ``ttl_seconds``."""

    def __init__(self, ttl_seconds: int = 600, clock: Callable[[], float] = time.time) -> None:
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._records: Dict[str, HandshakeRecord] = {}
        self._lock = Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)

    def begin(self) -> Tuple[str, str]:
        """Start a login; returns ``(state, code_challenge)``."""
        verifier = generate_code_verifier()
        state = generate_state()
        now = self._clock()
        with self._lock:
            self._records[state] = HandshakeRecord(verifier=verifier, created_at=now)
            self._sweep_locked(now)
        return state, generate_code_challenge(verifier)

    def complete(self, state: Optional[str]) -> str:
        """Consume the record for ``state`` and return its verifier."""
        if not state:
            raise HandshakeNotFound()
        with self._lock:
            record = self._records.pop(state, None)
        if record is None or self._expired(record, self._clock()):
            raise HandshakeNotFound()
        return record.verifier

    def _expired(self, record: HandshakeRecord, now: float) -> bool:
        return now - record.created_at > self.ttl_seconds

    def _sweep_locked(self, now: float) -> int:
        stale = [key for key, record in self._records.items() if self._expired(record, now)]
        for key in stale:
            del self._records[key]
        return len(stale)
