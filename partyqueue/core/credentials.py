"""Lifecycle of the host's delegated Spotify credential."""

from __future__ import annotations

import base64
import time
from dataclasses import dataclass, replace
from threading import Lock
from typing import Any, Callable, Dict, Optional

import requests
from requests import Response, Session

from ..config import Settings
from ..errors import AuthError, ErrorKind, TokenExchangeError, UpstreamUnavailable
from ..utils import log_debug, log_error, mask_token, to_iso


@dataclass
class CredentialState:
    access_token: Optional[str] = None
    refresh_token: Optional[str] = None
    expires_at: Optional[float] = None

    @property
    def authenticated(self) -> bool:
        return bool(self.access_token and self.expires_at)


class CredentialManager:
    """
    Owns the single access/refresh token pair.

    State reads and writes go through ``_state_lock``. Refreshes are
    serialized by ``_refresh_lock`` so that concurrent callers holding the
    same stale token trigger one upstream refresh and share its result.
    """

    def __init__(
        self,
        settings: Settings,
        session: Session,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._settings = settings
        self._session = session
        self._clock = clock
        self._state = CredentialState()
        self._state_lock = Lock()
        self._refresh_lock = Lock()
        # Bumped on every store and invalidate; a refresh that started under an
        # older generation must not write its result back.
        self._generation = 0

    @property
    def token_url(self) -> str:
        return f"{self._settings.spotify_accounts_base}/api/token"

    def snapshot(self) -> CredentialState:
        with self._state_lock:
            return replace(self._state)

    def status(self) -> Dict[str, Any]:
        state = self.snapshot()
        return {
            "authenticated": state.authenticated,
            "expiresAt": to_iso(state.expires_at) if state.authenticated else None,
        }

    def invalidate(self) -> None:
        """Forget the credential; the host has to log in again."""
        with self._state_lock:
            self._state = CredentialState()
            self._generation += 1

    def exchange_code(self, code: str, verifier: str) -> None:
        """Trade an authorization code plus its PKCE verifier for tokens."""
        try:
            response = self._post_token(
                {
                    "grant_type": "authorization_code",
                    "code": code,
                    "redirect_uri": self._settings.spotify_redirect_uri,
                    "code_verifier": verifier,
                }
            )
        except requests.exceptions.RequestException as exc:
            log_error(ErrorKind.TOKEN_EXCHANGE_FAILED, "Token endpoint unreachable", endpoint=self.token_url, exception=exc)
            raise TokenExchangeError("Token exchange failed") from exc

        if not response.ok:
            log_error(
                ErrorKind.TOKEN_EXCHANGE_FAILED,
                f"Token exchange rejected ({response.status_code}): {response.text}",
                endpoint=self.token_url,
            )
            raise TokenExchangeError("Token exchange failed")

        self._store(self._token_payload(response, TokenExchangeError("Token exchange failed")), None)
        print("Successfully authenticated with Spotify")

    def acquire(self) -> str:
        """Return a bearer token valid for at least the refresh margin."""
        state = self.snapshot()
        if not state.access_token:
            raise AuthError()
        if self._needs_refresh(state):
            log_debug(self._settings, "Access token near expiry, refreshing before use")
            return self.refresh(state.access_token)
        return state.access_token

    def refresh(self, stale_token: Optional[str]) -> str:
        """
        Refresh the access token unless another caller already has.

        ``stale_token`` is the token the caller found unusable. If the stored
        token has changed since and is still fresh, it is returned without
        contacting the token endpoint.
        """
        with self._refresh_lock:
            with self._state_lock:
                current = replace(self._state)
                generation = self._generation
            if not current.refresh_token:
                raise AuthError()
            if (
                current.access_token
                and current.access_token != stale_token
                and not self._needs_refresh(current)
            ):
                return current.access_token

            log_debug(self._settings, f"Refreshing access token {mask_token(stale_token)}")
            try:
                response = self._post_token(
                    {
                        "grant_type": "refresh_token",
                        "refresh_token": current.refresh_token,
                    }
                )
            except requests.exceptions.RequestException as exc:
                log_error(ErrorKind.UPSTREAM_UNAVAILABLE, "Token refresh failed to reach Spotify", endpoint=self.token_url, exception=exc)
                raise UpstreamUnavailable("Could not reach Spotify to refresh the session") from exc

            if response.status_code >= 500:
                log_error(ErrorKind.UPSTREAM_UNAVAILABLE, f"Token refresh failed ({response.status_code})", endpoint=self.token_url)
                raise UpstreamUnavailable("Spotify could not refresh the session", response.status_code)

            if not response.ok:
                log_error(
                    ErrorKind.AUTH_ERROR,
                    f"Failed to refresh token ({response.status_code}): {response.text}",
                    token=current.refresh_token,
                    endpoint=self.token_url,
                )
                self.invalidate()
                raise AuthError("Spotify session expired. The host needs to log in again.")

            payload = self._token_payload(response, UpstreamUnavailable("Unreadable token refresh response"))
            state = self._store(payload, current.refresh_token, generation)
            print("Access token refreshed successfully")
            return state.access_token  # type: ignore[return-value]

    def _needs_refresh(self, state: CredentialState) -> bool:
        if state.expires_at is None:
            return False
        return self._clock() >= state.expires_at - self._settings.refresh_margin_seconds

    def _post_token(self, data: Dict[str, str]) -> Response:
        raw = f"{self._settings.spotify_client_id}:{self._settings.spotify_client_secret}"
        headers = {
            "Content-Type": "application/x-www-form-urlencoded",
            "Authorization": "Basic " + base64.b64encode(raw.encode("utf-8")).decode("ascii"),
        }
        return self._session.post(
            self.token_url,
            data=data,
            headers=headers,
            timeout=self._settings.upstream_timeout,
        )

    @staticmethod
    def _token_payload(response: Response, error: Exception) -> Dict[str, Any]:
        try:
            payload = response.json()
        except ValueError as exc:
            raise error from exc
        if not isinstance(payload, dict) or not payload.get("access_token"):
            raise error
        expires_in = payload.get("expires_in", 3600)
        if isinstance(expires_in, bool) or not isinstance(expires_in, (int, float)) or expires_in <= 0:
            log_error(ErrorKind.UPSTREAM_UNAVAILABLE, f"Token response has unusable expires_in: {expires_in!r}")
            raise error
        return payload

    def _store(
        self,
        payload: Dict[str, Any],
        previous_refresh: Optional[str],
        generation: Optional[int] = None,
    ) -> CredentialState:
        state = CredentialState(
            access_token=payload["access_token"],
            refresh_token=payload.get("refresh_token") or previous_refresh,
            expires_at=self._clock() + int(payload.get("expires_in", 3600)),
        )
        with self._state_lock:
            if generation is not None and generation != self._generation:
                raise AuthError("Session ended while refreshing. The host needs to log in again.")
            self._state = state
            self._generation += 1
        return replace(state)
