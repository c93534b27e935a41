"""Pydantic schemas for the simulated API endpoint."""

from __future__ import annotations

from typing import Any, Dict

from pydantic import BaseModel, Field


class SimulateResponse(BaseModel):
    """Echo response of the simulated endpoint."""

    message: str = Field(..., description="Processing status message.")
    timestamp: str = Field(..., description="ISO-8601 UTC completion time.")
    request_body: Dict[str, Any] = Field(
        default_factory=dict, description="JSON body received with the request."
    )
