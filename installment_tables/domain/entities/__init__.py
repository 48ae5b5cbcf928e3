"""Domain Entities - Core business objects."""

from .plan import ActiveStatus, InstallmentPlan, ParcelOption, TermEntry

__all__ = [
    "ActiveStatus",
    "InstallmentPlan",
    "ParcelOption",
    "TermEntry",
]
