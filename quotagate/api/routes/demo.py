"""Mock endpoints used to exercise the rate limiter."""

from __future__ import annotations

from datetime import datetime, timezone

from fastapi import APIRouter, Request

from quotagate.core.rate_limit import resolve_client_ip, resolve_token
from quotagate.schemas.demo import DataItem, DataResponse, MessageResponse

router = APIRouter(tags=["Demo"])

_SAMPLE_ITEMS = (
    DataItem(id=1, name="Item 1", value=100),
    DataItem(id=2, name="Item 2", value=200),
    DataItem(id=3, name="Item 3", value=300),
)


def _now() -> datetime:
    return datetime.now(timezone.utc)


@router.get("/", response_model=MessageResponse, response_model_exclude_none=True)
def home(request: Request) -> MessageResponse:
    """Welcome message with the caller's identity."""

    return MessageResponse(
        message="Welcome to the Rate Limiter API",
        timestamp=_now(),
        ip=resolve_client_ip(request),
        token=resolve_token(request),
    )


@router.api_route(
    "/api/test",
    methods=["GET", "POST"],
    response_model=MessageResponse,
    response_model_exclude_none=True,
)
def echo_method(request: Request) -> MessageResponse:
    """Echo the HTTP method used to reach the endpoint."""

    return MessageResponse(
        message=f"Test endpoint accessed via {request.method}",
        timestamp=_now(),
        ip=resolve_client_ip(request),
        token=resolve_token(request),
    )


@router.get("/api/data", response_model=DataResponse, response_model_exclude_none=True)
def data(request: Request) -> DataResponse:
    """Return a fixed mock dataset."""

    return DataResponse(
        message="Data retrieved successfully",
        timestamp=_now(),
        ip=resolve_client_ip(request),
        token=resolve_token(request),
        data=list(_SAMPLE_ITEMS),
    )
