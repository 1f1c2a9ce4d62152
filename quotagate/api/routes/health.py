from __future__ import annotations

from datetime import datetime, timezone

from fastapi import APIRouter

from quotagate.schemas.demo import MessageResponse

router = APIRouter(tags=["Health"])


@router.get("/health", response_model=MessageResponse, response_model_exclude_none=True)
def health_check() -> MessageResponse:
    """Health check endpoint.

    Used by load balancers and monitoring systems. It sits behind the rate
    limiter like every other route, so it also proves the counter store is
    reachable.
    """

    return MessageResponse(
        message="Rate limiter service is healthy",
        timestamp=datetime.now(timezone.utc),
    )
