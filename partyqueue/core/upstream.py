"""Outbound Spotify Web API calls with credential refresh."""

from __future__ import annotations

from typing import Any, Dict, Optional

import requests
from requests import Response, Session

from ..config import Settings
from ..errors import (
    AuthError,
    ErrorKind,
    InvalidRequest,
    NoActiveTarget,
    UpstreamUnavailable,
    classify_status,
)
from ..models import AudioProfile
from ..utils import log_debug, log_error
from .credentials import CredentialManager

PLAYER_PREFIX = "/me/player"


def _error_body(response: Response) -> Dict[str, Any]:
    try:
        payload = response.json()
    except ValueError:
        return {}
    if isinstance(payload, dict) and isinstance(payload.get("error"), dict):
        return payload["error"]
    return {}


class UpstreamClient:
    """
    Thin wrapper over the Spotify Web API.

    Every call takes its bearer token from the credential manager. A 401 is
    answered with exactly one refresh and one retry; a second 401 drops the
    credential.
    """

    def __init__(self, settings: Settings, credentials: CredentialManager, session: Session) -> None:
        self._settings = settings
        self._credentials = credentials
        self._session = session

    def call(
        self,
        method: str,
        endpoint: str,
        params: Optional[Dict[str, Any]] = None,
        json: Optional[Dict[str, Any]] = None,
    ) -> Response:
        token = self._credentials.acquire()
        response = self._dispatch(method, endpoint, token, params, json)

        if response.status_code == 401:
            log_debug(self._settings, f"401 from {endpoint}, refreshing and retrying once")
            token = self._credentials.refresh(token)
            response = self._dispatch(method, endpoint, token, params, json)
            if response.status_code == 401:
                log_error(ErrorKind.AUTH_ERROR, "Refreshed token rejected", token=token, endpoint=endpoint)
                self._credentials.invalidate()
                raise AuthError("Spotify rejected the host session. The host needs to log in again.")

        self._raise_for_status(endpoint, response)
        return response

    def currently_playing(self) -> Optional[Dict[str, Any]]:
        data = self._json(self.call("GET", f"{PLAYER_PREFIX}/currently-playing"))
        if not data or not data.get("item"):
            return None
        return data

    def queue(self) -> Dict[str, Any]:
        return self._json(self.call("GET", f"{PLAYER_PREFIX}/queue")) or {}

    def search(self, query: str, limit: int) -> Dict[str, Any]:
        params = {"q": query, "type": "track", "limit": limit}
        return self._json(self.call("GET", "/search", params=params)) or {}

    def add_to_queue(self, uri: str) -> None:
        self.call("POST", f"{PLAYER_PREFIX}/queue", params={"uri": uri})

    def audio_features(self, track_id: str) -> Optional[AudioProfile]:
        return AudioProfile.from_features(self._json(self.call("GET", f"/audio-features/{track_id}")))

    def _dispatch(
        self,
        method: str,
        endpoint: str,
        token: str,
        params: Optional[Dict[str, Any]],
        json: Optional[Dict[str, Any]],
    ) -> Response:
        url = f"{self._settings.spotify_api_base}{endpoint}"
        headers = {
            "Authorization": f"Bearer {token}",
            "Content-Type": "application/json",
        }
        try:
            return self._session.request(
                method,
                url,
                params=params,
                json=json,
                headers=headers,
                timeout=self._settings.upstream_timeout,
            )
        except requests.exceptions.Timeout as exc:
            log_error(ErrorKind.UPSTREAM_UNAVAILABLE, "Request timed out", token=token, endpoint=endpoint, exception=exc)
            raise UpstreamUnavailable("Spotify took too long to respond") from exc
        except requests.exceptions.RequestException as exc:
            log_error(ErrorKind.UPSTREAM_UNAVAILABLE, "Request failed", token=token, endpoint=endpoint, exception=exc)
            raise UpstreamUnavailable("Could not reach Spotify") from exc

    def _raise_for_status(self, endpoint: str, response: Response) -> None:
        status_code = response.status_code
        if status_code < 400:
            return

        body = _error_body(response)
        detail = body.get("message") or f"Spotify returned HTTP {status_code}"
        kind = classify_status(status_code)
        log_error(kind, f"HTTP {status_code}: {detail}", endpoint=endpoint)

        if kind is ErrorKind.NO_ACTIVE_TARGET:
            if endpoint.startswith(PLAYER_PREFIX) or body.get("reason") == "NO_ACTIVE_DEVICE":
                raise NoActiveTarget()
            raise InvalidRequest(detail)
        if kind is ErrorKind.INVALID_REQUEST:
            raise InvalidRequest(detail)
        raise UpstreamUnavailable(detail, status_code)

    @staticmethod
    def _json(response: Response) -> Any:
        if response.status_code == 204 or not response.content:
            return None
        try:
            return response.json()
        except ValueError as exc:
            raise UpstreamUnavailable("Spotify returned an unreadable response") from exc
