"""Data Transfer Objects for application layer."""

from .plan import PlanEvaluation, SubmitOutcome, SubmitResult

__all__ = [
    "PlanEvaluation",
    "SubmitOutcome",
    "SubmitResult",
]
