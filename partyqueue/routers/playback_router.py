"""Read-through projections of what is playing, queued and searchable."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends

from ..config import Settings
from ..dependencies import get_runtime_state, get_settings
from ..errors import InvalidRequest
from ..models import NowPlayingResponse, QueueResponse, SearchResponse, TrackInfo
from ..state import RuntimeState

router = APIRouter(prefix="/api")

DEFAULT_SEARCH_LIMIT = 20


@router.get("/now-playing", response_model=NowPlayingResponse)
def now_playing(state: RuntimeState = Depends(get_runtime_state)) -> NowPlayingResponse:
    data = state.upstream.currently_playing()
    if not data:
        return NowPlayingResponse(playing=False, track=None)
    return NowPlayingResponse(
        playing=bool(data.get("is_playing")),
        track=TrackInfo.from_spotify(data["item"], progress_ms=data.get("progress_ms")),
    )


@router.get("/queue", response_model=QueueResponse)
def get_queue(
    state: RuntimeState = Depends(get_runtime_state),
    settings: Settings = Depends(get_settings),
) -> QueueResponse:
    """Upcoming tracks, capped at ``queue_display_limit``."""
    data = state.upstream.queue()
    queue = [TrackInfo.from_spotify(item) for item in (data.get("queue") or [])[: settings.queue_display_limit]]
    current = data.get("currently_playing")
    return QueueResponse(
        currentlyPlaying=TrackInfo.from_spotify(current) if current else None,
        queue=queue,
        total=len(queue),
    )


@router.get("/search", response_model=SearchResponse)
def search(
    q: Optional[str] = None,
    limit: Optional[str] = None,
    state: RuntimeState = Depends(get_runtime_state),
    settings: Settings = Depends(get_settings),
) -> SearchResponse:
    if not q or not q.strip():
        raise InvalidRequest('Missing search query parameter "q"')

    try:
        requested = int(limit) if limit else DEFAULT_SEARCH_LIMIT
    except ValueError:
        requested = DEFAULT_SEARCH_LIMIT
    bounded = max(1, min(requested, settings.search_limit_max))

    data = state.upstream.search(q.strip(), bounded)
    tracks = data.get("tracks") or {}
    return SearchResponse(
        tracks=[TrackInfo.from_spotify(item) for item in tracks.get("items") or [] if item],
        total=tracks.get("total") or 0,
    )
