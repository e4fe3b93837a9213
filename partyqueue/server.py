"""Command line entry point: ``python -m partyqueue.server``."""

from __future__ import annotations

from .app import create_app
from .config import get_settings


def main() -> None:
    import uvicorn

    settings = get_settings()

    print("\n--- Spotify Party Queue ---")
    print(f"Debug Mode: {settings.debug_mode}")
    print(f"Frontend URL: {', '.join(settings.frontend_urls)}")
    print(f"OAuth Redirect URI: {settings.spotify_redirect_uri}")
    print(f"Quota: {settings.quota_limit} tracks per {settings.quota_window_seconds}s per client")
    print("Endpoints:")
    print("  GET  /api/auth/login, /api/auth/callback, /api/auth/status")
    print("  POST /api/auth/logout (Host API Key Auth)")
    print("  GET  /api/now-playing, /api/queue, /api/search")
    print("  POST /api/queue, GET /api/rate-limit")
    print("  GET  /api/vibe, /api/vibe/presets, POST /api/vibe/check")
    print("  PUT  /api/vibe (Host API Key Auth)")
    print(f"\nHost API Keys: {len(settings.host_api_keys)}")
    print("---------------------------")

    print(f"Starting server on {settings.host}:{settings.port}")
    uvicorn.run(create_app(settings), host=settings.host, port=settings.port)


if __name__ == "__main__":
    main()
