"""Router for guest enqueue requests and quota status."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from ..dependencies import get_client_id, get_runtime_state
from ..models import EnqueueRequest, EnqueueResponse, RateLimitStatus
from ..state import RuntimeState

router = APIRouter(prefix="/api")


@router.post("/queue", response_model=EnqueueResponse)
def add_to_queue(
    request: EnqueueRequest,
    client_id: str = Depends(get_client_id),
    state: RuntimeState = Depends(get_runtime_state),
) -> EnqueueResponse:
    """Run the admission pipeline for one track."""
    result = state.pipeline.enqueue(client_id, request.uri)
    return EnqueueResponse(**result.to_dict())


@router.get("/rate-limit", response_model=RateLimitStatus)
async def rate_limit_status(
    client_id: str = Depends(get_client_id),
    state: RuntimeState = Depends(get_runtime_state),
) -> RateLimitStatus:
    return RateLimitStatus(**state.quotas.peek(client_id).to_dict())
