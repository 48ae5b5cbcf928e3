"""Exceptions for operator edits the reducer refuses."""

from .base import DomainException


class OptionNotFoundException(DomainException):
    """Raised when an edit targets an option index the plan does not have."""

    def __init__(self, index: int):
        super().__init__(
            message=f"Option not found: {index}",
            code="OPTION_NOT_FOUND",
        )
        self.index = index


class OptionIndexConflictException(DomainException):
    """Raised when moving an option onto an index that is taken or out of range."""

    def __init__(self, index: int, reason: str = "already in use"):
        super().__init__(
            message=f"Option index {index} {reason}",
            code="OPTION_INDEX_CONFLICT",
        )
        self.index = index


class InvalidInstallmentCountException(DomainException):
    """Raised when an installment count falls outside 1..max."""

    def __init__(self, count, maximum: int):
        super().__init__(
            message=f"Installment count must be between 1 and {maximum}: {count}",
            code="INVALID_INSTALLMENT_COUNT",
        )
        self.count = count


class TermNotFoundException(DomainException):
    """Raised when an edit targets a term position that does not exist."""

    def __init__(self, position: int):
        super().__init__(
            message=f"Term not found at position {position}",
            code="TERM_NOT_FOUND",
        )
        self.position = position


class UnknownPlanActionException(DomainException):
    """Raised when the reducer is asked for an action it does not know."""

    def __init__(self, action: str):
        super().__init__(
            message=f"Unknown plan action: {action}",
            code="UNKNOWN_PLAN_ACTION",
        )
        self.action = action
