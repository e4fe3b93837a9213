"""Router for the host's Spotify login round trip."""

from __future__ import annotations

from typing import Optional
from urllib.parse import urlencode

from fastapi import APIRouter, Depends
from fastapi.responses import RedirectResponse

from ..auth import authenticate_host
from ..config import Settings
from ..core.handshake import build_authorization_url
from ..dependencies import get_runtime_state, get_settings
from ..errors import ErrorKind, HandshakeNotFound, PartyQueueError
from ..models import AuthStatus, MessageResponse
from ..state import RuntimeState
from ..utils import log_debug, log_error

router = APIRouter(prefix="/api/auth")


def _frontend_redirect(settings: Settings, **params: str) -> RedirectResponse:
    return RedirectResponse(f"{settings.frontend_url}?{urlencode(params)}", status_code=302)


@router.get("/login")
async def login(
    state: RuntimeState = Depends(get_runtime_state),
    settings: Settings = Depends(get_settings),
) -> RedirectResponse:
    """Start a PKCE login and send the browser to Spotify."""
    oauth_state, challenge = state.handshakes.begin()
    log_debug(settings, f"Login started; {len(state.handshakes)} handshakes pending")
    return RedirectResponse(build_authorization_url(settings, oauth_state, challenge), status_code=307)


@router.get("/callback")
def callback(
    code: Optional[str] = None,
    state: Optional[str] = None,
    error: Optional[str] = None,
    runtime: RuntimeState = Depends(get_runtime_state),
    settings: Settings = Depends(get_settings),
) -> RedirectResponse:
    """Finish the login: verify state, exchange the code, report via redirect."""
    if error:
        log_error(ErrorKind.AUTH_ERROR, f"OAuth error from Spotify: {error}", endpoint="/api/auth/callback")
        return _frontend_redirect(settings, error=error)

    if not code:
        return _frontend_redirect(settings, error="missing_code")

    try:
        verifier = runtime.handshakes.complete(state)
    except HandshakeNotFound:
        log_error(
            ErrorKind.NOT_FOUND,
            f"State mismatch or expired. Store size: {len(runtime.handshakes)}",
            token=state,
            endpoint="/api/auth/callback",
        )
        return _frontend_redirect(settings, error="state_mismatch")

    try:
        runtime.credentials.exchange_code(code, verifier)
    except PartyQueueError as exc:
        return _frontend_redirect(settings, error=exc.kind.value)
    except Exception as exc:
        log_error(ErrorKind.TOKEN_EXCHANGE_FAILED, "Unexpected error during token exchange", endpoint="/api/auth/callback", exception=exc)
        return _frontend_redirect(settings, error="server_error")

    return _frontend_redirect(settings, authenticated="true")


@router.get("/status", response_model=AuthStatus)
async def auth_status(state: RuntimeState = Depends(get_runtime_state)) -> AuthStatus:
    return AuthStatus(**state.credentials.status())


@router.post("/logout", response_model=MessageResponse)
async def logout(
    state: RuntimeState = Depends(get_runtime_state),
    _: None = Depends(authenticate_host),
) -> MessageResponse:
    """Forget the host credential - host only."""
    state.credentials.invalidate()
    return MessageResponse(message="Logged out successfully")
