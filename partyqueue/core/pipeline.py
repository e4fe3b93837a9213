"""The enqueue admission pipeline: validate, reserve, vibe-check, append, commit."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Dict, Optional

from ..config import Settings
from ..errors import InvalidRequest, VibeRejected
from ..utils import log_debug
from .quota import QuotaSnapshot, QuotaTracker
from .upstream import UpstreamClient
from .vibe import VibeCheckResult, VibeFilter

TRACK_URI_PATTERN = re.compile(r"^spotify:track:([0-9A-Za-z]{22})$")


def parse_track_uri(uri: Optional[str]) -> str:
    """Return the track id of a ``spotify:track:`` URI or raise InvalidRequest."""
    if not uri:
        raise InvalidRequest("Missing track URI in request body")
    match = TRACK_URI_PATTERN.match(uri.strip())
    if not match:
        raise InvalidRequest("Invalid track URI format. Must be spotify:track:...")
    return match.group(1)


@dataclass
class EnqueueResult:
    uri: str
    quota: QuotaSnapshot
    vibe: Optional[VibeCheckResult] = None

    def to_dict(self) -> Dict[str, Any]:
        quota = self.quota.to_dict()
        return {
            "success": True,
            "message": "Track added to queue",
            "rateLimit": {"remaining": quota["remaining"], "resetAt": quota["resetAt"]},
        }


class EnqueuePipeline:
    """Decides whether a client may add a track, spending quota only on success."""

    def __init__(
        self,
        quotas: QuotaTracker,
        vibe: VibeFilter,
        upstream: UpstreamClient,
        settings: Settings,
    ) -> None:
        self._quotas = quotas
        self._vibe = vibe
        self._upstream = upstream
        self._settings = settings

    def enqueue(self, client_id: str, uri: Optional[str]) -> EnqueueResult:
        track_id = parse_track_uri(uri)
        uri = f"spotify:track:{track_id}"
        reservation = self._quotas.try_reserve(client_id)

        committed = False
        try:
            check = None
            policy = self._vibe.policies.get()
            if policy.enabled:
                check = self._vibe.check(track_id, policy)
                if not check.match:
                    raise VibeRejected(check.reasons, check.to_dict())

            self._upstream.add_to_queue(uri)
            snapshot = self._quotas.commit(reservation)
            committed = True
        finally:
            if not committed:
                self._quotas.release(reservation)

        log_debug(self._settings, f"Queued {uri} for {client_id}; {snapshot.remaining} left")
        return EnqueueResult(uri=uri, quota=snapshot, vibe=check)

    def preview(self, uri: Optional[str]) -> VibeCheckResult:
        """Vibe check without touching quota or the queue."""
        return self._vibe.check(parse_track_uri(uri))
