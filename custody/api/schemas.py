from __future__ import annotations

from pydantic import BaseModel, Field


class HealthOut(BaseModel):
    """Health check response."""

    status: str = Field(description="`ok` when the process is serving requests.", examples=["ok"])
    records: int = Field(description="Number of records held by the store.", examples=[3])
