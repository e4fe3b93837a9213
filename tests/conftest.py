"""Shared fixtures: settings, a controllable clock and a scripted HTTP session."""

from __future__ import annotations

import json
import threading
from typing import Any, Callable, Dict, List, Optional, Tuple, Union

import pytest

from partyqueue.config import Settings
from partyqueue.core.credentials import CredentialManager

API = "https://api.spotify.com/v1"
TOKEN_URL = "https://accounts.spotify.com/api/token"
TRACK_ID = "4uLU6hMCjMI75M1A2tKUQC"
TRACK_URI = f"spotify:track:{TRACK_ID}"
PLAYING_ID = "0VjIjW4GlUZAMYd2vXMi3b"


class FakeResponse:
    def __init__(self, status_code: int = 200, payload: Any = None, text: Optional[str] = None) -> None:
        self.status_code = status_code
        self._payload = payload
        if text is not None:
            self.text = text
        elif payload is not None:
            self.text = json.dumps(payload)
        else:
            self.text = ""
        self.content = self.text.encode("utf-8")

    @property
    def ok(self) -> bool:
        return self.status_code < 400

    def json(self) -> Any:
        if self._payload is None:
            raise ValueError("no json body")
        return self._payload


Scripted = Union[FakeResponse, Exception, Callable[..., FakeResponse]]


class FakeSession:
    """
    Stands in for ``requests.Session``.

    Responses are queued per ``(method, url)``; the last queued response for
    a route keeps being served once the others are used up.
    """

    def __init__(self) -> None:
        self.routes: Dict[Tuple[str, str], List[Scripted]] = {}
        self.calls: List[Tuple[str, str, Dict[str, Any]]] = []
        self._lock = threading.Lock()

    def add(self, method: str, url: str, *responses: Scripted) -> None:
        self.routes.setdefault((method, url), []).extend(responses)

    def request(self, method: str, url: str, **kwargs: Any) -> FakeResponse:
        with self._lock:
            self.calls.append((method, url, kwargs))
            queue = self.routes.get((method, url))
            if not queue:
                raise AssertionError(f"unexpected request {method} {url}")
            item = queue[0] if len(queue) == 1 else queue.pop(0)
        if isinstance(item, Exception):
            raise item
        if callable(item):
            return item(**kwargs)
        return item

    def post(self, url: str, **kwargs: Any) -> FakeResponse:
        return self.request("POST", url, **kwargs)

    def calls_to(self, method: str, url: str) -> List[Tuple[str, str, Dict[str, Any]]]:
        return [call for call in self.calls if call[0] == method and call[1] == url]


class FakeClock:
    def __init__(self, now: float = 1_700_000_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def token_response(access: str = "access-1", refresh: Optional[str] = "refresh-1", expires_in: int = 3600) -> FakeResponse:
    payload: Dict[str, Any] = {"access_token": access, "token_type": "Bearer", "expires_in": expires_in}
    if refresh:
        payload["refresh_token"] = refresh
    return FakeResponse(200, payload)


def features(energy: float = 0.8, valence: float = 0.6, tempo: float = 120.0, danceability: float = 0.7) -> Dict[str, float]:
    return {"energy": energy, "valence": valence, "tempo": tempo, "danceability": danceability}


@pytest.fixture()
def settings() -> Settings:
    return Settings(
        spotify_client_id="client-id",
        spotify_client_secret="client-secret",
        spotify_redirect_uri="http://localhost:3001/api/auth/callback",
        frontend_urls=["http://localhost:3000"],
        host_api_keys=["host-key"],
    )


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def session() -> FakeSession:
    return FakeSession()


@pytest.fixture()
def credentials(settings: Settings, session: FakeSession, clock: FakeClock) -> CredentialManager:
    return CredentialManager(settings, session, clock=clock)


@pytest.fixture()
def logged_in(credentials: CredentialManager, session: FakeSession) -> CredentialManager:
    session.add("POST", TOKEN_URL, token_response())
    credentials.exchange_code("auth-code", "verifier")
    session.routes.pop(("POST", TOKEN_URL))
    session.calls.clear()
    return credentials
