"""Plan-related domain exceptions."""

from typing import Dict, List

from .base import DomainException


class PlanNotFoundException(DomainException):
    """Raised when the plans API has no plan with the given id."""

    def __init__(self, plan_id: str):
        super().__init__(
            message=f"Plan not found: {plan_id}",
            code="PLAN_NOT_FOUND",
        )
        self.plan_id = plan_id


class InvalidPlanException(DomainException):
    """Raised when a plan, or an edit to it, is malformed (e.g. duplicate option index)."""

    def __init__(self, message: str):
        super().__init__(
            message=message,
            code="INVALID_PLAN",
        )


class PlanValidationException(DomainException):
    """
    Raised when the plans API rejects a payload field by field.

    The API answers 422 with ``{"message": ..., "errors": {field: [msg, ...]}}``.
    """

    def __init__(
        self,
        message: str = "Erro de validação",
        errors: Dict[str, List[str]] | None = None,
    ):
        super().__init__(
            message=message,
            code="PLAN_VALIDATION_ERROR",
        )
        self.errors = errors or {}

    def first_messages(self) -> Dict[str, str]:
        """Map each field to its first non-empty message."""
        out: Dict[str, str] = {}
        for field, messages in self.errors.items():
            if isinstance(messages, (list, tuple)):
                first = str(messages[0]) if messages else ""
            else:
                first = str(messages or "")
            if first:
                out[field] = first
        return out

    def summary(self) -> str:
        """Combined message: the API message followed by every first field message."""
        parts = [self.message, *self.first_messages().values()]
        return " - ".join(p for p in parts if p)
