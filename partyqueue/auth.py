"""Host authorization for endpoints guests must not reach."""

from __future__ import annotations

import hmac
from typing import Optional

from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from .dependencies import get_runtime_state
from .state import RuntimeState

security = HTTPBearer(auto_error=False)


def authenticate_host(
    state: RuntimeState = Depends(get_runtime_state),
    auth: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> None:
    """Verify the host API key from the Authorization header."""
    if not state.host_keys:
        raise HTTPException(
            status_code=503,
            detail="Service unavailable: Host API keys not configured on server.",
        )

    if not auth or not auth.credentials:
        raise HTTPException(
            status_code=401,
            detail="Host API key required in Authorization header.",
            headers={"WWW-Authenticate": "Bearer"},
        )

    if not any(hmac.compare_digest(auth.credentials, key) for key in state.host_keys):
        raise HTTPException(status_code=403, detail="Invalid host API key.")
