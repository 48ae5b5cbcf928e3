"""Application services (use cases)."""

from .plan_service import PlanService

__all__ = [
    "PlanService",
]
