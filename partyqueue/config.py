"""Application configuration and settings helpers."""

from __future__ import annotations

from functools import lru_cache
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator


class Settings(BaseModel):
    """Centralized application configuration."""

    spotify_client_id: str = Field(..., description="SPOTIFY_CLIENT_ID value")
    spotify_client_secret: str = Field(..., description="SPOTIFY_CLIENT_SECRET value")
    spotify_redirect_uri: str = Field(..., description="SPOTIFY_REDIRECT_URI value")
    frontend_urls: List[str] = Field(default_factory=lambda: ["http://localhost:3000"])
    host_api_keys: List[str] = Field(default_factory=list, description="Comma separated HOST_API_KEYS value")
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=3001)
    debug_mode: bool = Field(default=False)
    quota_limit: int = Field(default=10)
    quota_window_seconds: int = Field(default=60 * 60)
    handshake_ttl_seconds: int = Field(default=10 * 60)
    refresh_margin_seconds: int = Field(default=60)
    upstream_timeout: float = Field(default=10.0)
    search_limit_max: int = Field(default=50)
    queue_display_limit: int = Field(default=20)
    trust_forwarded_for: bool = Field(default=False)
    spotify_api_base: str = Field(default="https://api.spotify.com/v1")
    spotify_accounts_base: str = Field(default="https://accounts.spotify.com")
    http_proxy: Optional[str] = Field(default=None)
    https_proxy: Optional[str] = Field(default=None)
    no_proxy: Optional[str] = Field(default=None)

    @field_validator("spotify_client_id", "spotify_client_secret", "spotify_redirect_uri")
    @classmethod
    def _ensure_present(cls, value: str, info):
        if not value or not value.strip():
            raise ValueError(f"{info.field_name} cannot be empty")
        return value.strip()

    @field_validator("frontend_urls")
    @classmethod
    def _ensure_frontend(cls, value: List[str]):
        if not value:
            raise ValueError("frontend_urls needs at least one origin")
        return value

    @field_validator(
        "quota_limit",
        "quota_window_seconds",
        "handshake_ttl_seconds",
        "search_limit_max",
        "queue_display_limit",
    )
    @classmethod
    def _ensure_positive(cls, value: int, info):
        if value <= 0:
            raise ValueError(f"{info.field_name} must be positive")
        return value

    @field_validator("upstream_timeout")
    @classmethod
    def _ensure_timeout(cls, value: float):
        if value <= 0:
            raise ValueError("upstream_timeout must be positive")
        return value

    @property
    def frontend_url(self) -> str:
        """Origin the OAuth callback redirects back to."""
        return self.frontend_urls[0]

    @property
    def proxies(self) -> dict[str, Optional[str]]:
        return {
            "http": self.http_proxy,
            "https": self.https_proxy,
            "no_proxy": self.no_proxy,
        }


@lru_cache()
def get_settings() -> Settings:
    """Load settings from environment variables."""

    import os
    from dotenv import load_dotenv

    load_dotenv()

    def _split_env_list(raw: Optional[str]) -> List[str]:
        if not raw:
            return []
        return [item.strip() for item in raw.split(",") if item.strip()]

    def _env_flag(name: str) -> bool:
        return os.getenv(name, "false").lower() == "true"

    return Settings(
        spotify_client_id=os.getenv("SPOTIFY_CLIENT_ID", ""),
        spotify_client_secret=os.getenv("SPOTIFY_CLIENT_SECRET", ""),
        spotify_redirect_uri=os.getenv("SPOTIFY_REDIRECT_URI", ""),
        frontend_urls=_split_env_list(os.getenv("FRONTEND_URL")) or ["http://localhost:3000"],
        host_api_keys=_split_env_list(os.getenv("HOST_API_KEYS")),
        host=os.getenv("HOST", "0.0.0.0"),
        port=int(os.getenv("PORT", "3001")),
        debug_mode=_env_flag("DEBUG_MODE"),
        quota_limit=int(os.getenv("QUOTA_LIMIT", "10")),
        quota_window_seconds=int(os.getenv("QUOTA_WINDOW_SECONDS", "3600")),
        handshake_ttl_seconds=int(os.getenv("HANDSHAKE_TTL_SECONDS", "600")),
        refresh_margin_seconds=int(os.getenv("REFRESH_MARGIN_SECONDS", "60")),
        upstream_timeout=float(os.getenv("UPSTREAM_TIMEOUT", "10")),
        search_limit_max=int(os.getenv("SEARCH_LIMIT_MAX", "50")),
        queue_display_limit=int(os.getenv("QUEUE_DISPLAY_LIMIT", "20")),
        trust_forwarded_for=_env_flag("TRUST_FORWARDED_FOR"),
        spotify_api_base=os.getenv("SPOTIFY_API_BASE", "https://api.spotify.com/v1"),
        spotify_accounts_base=os.getenv("SPOTIFY_ACCOUNTS_BASE", "https://accounts.spotify.com"),
        http_proxy=os.getenv("HTTP_PROXY"),
        https_proxy=os.getenv("HTTPS_PROXY"),
        no_proxy=os.getenv("NO_PROXY"),
    )
