"""Pydantic schemas for the demo endpoints."""

from __future__ import annotations

from datetime import datetime
from typing import List

from pydantic import BaseModel, Field


class MessageResponse(BaseModel):
    """Generic message echoed back with the caller identity."""

    message: str = Field(..., description="Human-readable message.")
    timestamp: datetime = Field(..., description="Server time of the response.")
    ip: str | None = Field(
        default=None, description="Client IP as seen by the rate limiter."
    )
    token: str | None = Field(
        default=None, description="API token sent by the client, if any."
    )


class DataItem(BaseModel):
    id: int
    name: str
    value: int


class DataResponse(MessageResponse):
    """Mock dataset payload."""

    data: List[DataItem] = Field(default_factory=list)
