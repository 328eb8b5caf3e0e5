"""
API response models.

Pydantic models for FastAPI endpoint responses and OpenAPI schema generation.
Message bodies are read raw and decoded by the domain, not by FastAPI.
"""

from pydantic import BaseModel

from src.domain.ports import DispatchOutcome


class DispatchResponse(BaseModel):
    """Response model for an acknowledged message."""

    outcome: DispatchOutcome
    message_id: str | None = None


class ErrorResponse(BaseModel):
    """Standard error response model."""

    detail: str
