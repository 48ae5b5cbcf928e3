"""Pydantic schemas for API request/response validation."""

from .plan import (
    DecodeRequestSchema,
    DraftRequestSchema,
    EncodeResponseSchema,
    EvaluationSchema,
    OptionSchema,
    PlanPageSchema,
    PlanSchema,
    PlanStateSchema,
    PreviewRequestSchema,
    PreviewResponseSchema,
    SubmitRequestSchema,
    SubmitResponseSchema,
    TermSchema,
    TransitionRequestSchema,
)
from .error import ErrorResponseSchema

__all__ = [
    "DecodeRequestSchema",
    "DraftRequestSchema",
    "EncodeResponseSchema",
    "EvaluationSchema",
    "OptionSchema",
    "PlanPageSchema",
    "PlanSchema",
    "PlanStateSchema",
    "PreviewRequestSchema",
    "PreviewResponseSchema",
    "SubmitRequestSchema",
    "SubmitResponseSchema",
    "TermSchema",
    "TransitionRequestSchema",
    "ErrorResponseSchema",
]
