"""Pydantic schemas for throttle inspection responses."""

from __future__ import annotations

from pydantic import BaseModel, Field


class PingResponse(BaseModel):
    """Echo returned by the throttled ping endpoint."""

    status: str = Field("ok", description="Always 'ok' when the request was admitted.")
    decision: str = Field(..., description="Throttle decision that admitted the request.")


class UsageResponse(BaseModel):
    """Current window usage for the calling identity."""

    window: str = Field(..., description="Calendar-hour bucket label (YYYY-MM-DD-HH).")
    limit: int = Field(..., description="Admitted requests per window.")
    count: int | None = Field(
        None,
        description="Requests counted in this window, including this one. None when unthrottled.",
    )
    remaining: int | None = Field(
        None,
        description="Admissions left in this window. None when unthrottled.",
    )
