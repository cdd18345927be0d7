"""
Pydantic schemas for API responses.

The rewind payloads are plain JSON dicts produced by the dataclass
``to_dict()`` methods; only the envelope and bangers are typed here.
"""

from typing import Any, Optional

from pydantic import BaseModel, Field


class BangerResponse(BaseModel):
    """One shareable line."""

    id: str
    category: str
    line1: str
    line2: Optional[str] = None
    score: int
    shareable: bool


class BangerSetResponse(BaseModel):
    """Ranked page view, curated share set and every candidate."""

    page: list[BangerResponse] = Field(default_factory=list)
    share: list[BangerResponse] = Field(default_factory=list)
    all: list[BangerResponse] = Field(default_factory=list)


class RewindResponse(BaseModel):
    """Response for an analyzed export."""

    client_id: Optional[str] = None
    rewind: dict[str, Any]
    sanitized: dict[str, Any]
    bangers: BangerSetResponse


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    version: str
