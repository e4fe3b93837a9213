"""Pydantic models for API request/response types."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


@dataclass(frozen=True)
class AudioProfile:
    """Audio features of a single track, used once and never stored."""

    energy: float
    valence: float
    tempo: float
    danceability: float

    @classmethod
    def from_features(cls, data: Optional[Dict[str, Any]]) -> Optional["AudioProfile"]:
        """Build a profile from an audio-features payload, or None if incomplete."""
        if not data:
            return None
        try:
            return cls(
                energy=float(data["energy"]),
                valence=float(data["valence"]),
                tempo=float(data["tempo"]),
                danceability=float(data["danceability"]),
            )
        except (KeyError, TypeError, ValueError):
            return None

    def to_dict(self) -> Dict[str, float]:
        return asdict(self)


class EnqueueRequest(BaseModel):
    uri: Optional[str] = None


class VibeCheckRequest(BaseModel):
    uri: Optional[str] = None


class VibeSetRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    preset_id: str = Field(..., alias="presetId")
    custom_settings: Optional[Dict[str, Any]] = Field(default=None, alias="customSettings")


class ArtistInfo(BaseModel):
    id: Optional[str] = None
    name: str


class AlbumInfo(BaseModel):
    id: Optional[str] = None
    name: str
    images: List[Dict[str, Any]] = Field(default_factory=list)


class TrackInfo(BaseModel):
    id: Optional[str] = None
    name: str
    artists: List[ArtistInfo] = Field(default_factory=list)
    album: Optional[AlbumInfo] = None
    duration_ms: Optional[int] = None
    progress_ms: Optional[int] = None
    uri: Optional[str] = None
    preview_url: Optional[str] = None

    @classmethod
    def from_spotify(cls, item: Dict[str, Any], progress_ms: Optional[int] = None) -> "TrackInfo":
        album = item.get("album") or None
        return cls(
            id=item.get("id"),
            name=item.get("name", ""),
            artists=[ArtistInfo(id=a.get("id"), name=a.get("name", "")) for a in item.get("artists") or []],
            album=AlbumInfo(
                id=album.get("id"),
                name=album.get("name", ""),
                images=album.get("images") or [],
            )
            if album
            else None,
            duration_ms=item.get("duration_ms"),
            progress_ms=progress_ms,
            uri=item.get("uri"),
            preview_url=item.get("preview_url"),
        )


class NowPlayingResponse(BaseModel):
    playing: bool
    track: Optional[TrackInfo] = None


class QueueResponse(BaseModel):
    currentlyPlaying: Optional[TrackInfo] = None
    queue: List[TrackInfo]
    total: int


class SearchResponse(BaseModel):
    tracks: List[TrackInfo]
    total: int


class AuthStatus(BaseModel):
    authenticated: bool
    expiresAt: Optional[str] = None


class RateLimitStatus(BaseModel):
    remaining: int
    limit: int
    resetAt: Optional[str] = None


class RateLimitInfo(BaseModel):
    remaining: int
    resetAt: Optional[str] = None


class EnqueueResponse(BaseModel):
    success: bool = True
    message: str = "Track added to queue"
    rateLimit: RateLimitInfo


class MessageResponse(BaseModel):
    success: bool = True
    message: str
