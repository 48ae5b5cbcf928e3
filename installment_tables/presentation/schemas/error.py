"""Pydantic schema for API error responses."""

from typing import Dict, List

from pydantic import BaseModel, Field


class ErrorResponseSchema(BaseModel):
    """Standard error response format for all API errors."""
    error: str = Field(
        ...,
        description="Error code",
        examples=["PLAN_NOT_FOUND"],
    )
    message: str = Field(
        ...,
        description="Human-readable error message",
        examples=["Plan not found: 42"],
    )
    request_id: str | None = Field(
        None,
        description="Request ID for tracing",
    )
    errors: Dict[str, List[str]] | None = Field(
        None,
        description="Field errors reported by the plans API",
    )

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "error": "PLAN_NOT_FOUND",
                    "message": "Plan not found: 42",
                    "request_id": "abc123",
                }
            ]
        }
    }
