"""Router for reading, previewing and (host only) setting the vibe."""

from __future__ import annotations

from typing import Any, Dict, List

from fastapi import APIRouter, Depends

from ..auth import authenticate_host
from ..core.vibe import PRESETS
from ..dependencies import get_runtime_state
from ..models import VibeCheckRequest, VibeSetRequest
from ..state import RuntimeState

router = APIRouter(prefix="/api/vibe")


@router.get("")
async def get_vibe(state: RuntimeState = Depends(get_runtime_state)) -> Dict[str, Any]:
    return state.policies.get().to_dict()


@router.get("/presets")
async def list_presets() -> List[Dict[str, Any]]:
    return [preset.to_dict() for preset in PRESETS.values()]


@router.put("")
async def set_vibe(
    request: VibeSetRequest,
    state: RuntimeState = Depends(get_runtime_state),
    _: None = Depends(authenticate_host),
) -> Dict[str, Any]:
    """Replace the active vibe - host only."""
    return state.policies.set(request.preset_id, request.custom_settings).to_dict()


@router.post("/check")
def check_vibe(
    request: VibeCheckRequest,
    state: RuntimeState = Depends(get_runtime_state),
) -> Dict[str, Any]:
    """Preview whether a track would pass the current vibe."""
    return state.pipeline.preview(request.uri).to_dict()
