"""Pydantic schemas for quota administration."""

from __future__ import annotations

from pydantic import BaseModel, Field


class QuotaUpsertRequest(BaseModel):
    """Request body for creating or replacing a limit.

    The limit is validated by the quota store so invalid values are reported
    with the same error code however they reach it.
    """

    endpoint: str = Field(
        ..., min_length=1, description="Endpoint path; query string and trailing slash are ignored."
    )
    identity: str = Field(..., min_length=1, description="Caller bearer token.")
    limit: int = Field(..., description="Maximum requests per window (must be >= 1).")


class QuotaResponse(BaseModel):
    """A stored limit."""

    endpoint: str = Field(..., description="Normalized endpoint path.")
    identity: str = Field(..., description="Caller bearer token.")
    limit: int = Field(..., description="Maximum requests per window.")
    window_seconds: int = Field(..., description="Window size the limit applies to.")
