"""Domain Exceptions - Business rule violations and domain errors."""

from .base import DomainException
from .plan import (
    InvalidPlanException,
    PlanNotFoundException,
    PlanValidationException,
)
from .gateway import (
    PlanGatewayException,
    PlanGatewayTimeoutException,
)
from .transition import (
    InvalidInstallmentCountException,
    OptionIndexConflictException,
    OptionNotFoundException,
    TermNotFoundException,
    UnknownPlanActionException,
)

__all__ = [
    "DomainException",
    "InvalidPlanException",
    "PlanNotFoundException",
    "PlanValidationException",
    "PlanGatewayException",
    "PlanGatewayTimeoutException",
    "InvalidInstallmentCountException",
    "OptionIndexConflictException",
    "OptionNotFoundException",
    "TermNotFoundException",
    "UnknownPlanActionException",
]
