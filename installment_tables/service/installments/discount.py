"""
Discount Invariant checking for the installment table engine.

A row's discount may never exceed its effective value. Rows with no
priced baseline (no explicit value and nothing derivable) are never
flagged. The result gates submission; it is not raised as an error.
"""

from decimal import Decimal
from typing import Iterable, Set

from installment_tables.domain.entities import ParcelOption

from .money import to_decimal
from .per_installment import derive_amount

ZERO = Decimal("0")


def effective_value(option: ParcelOption, total) -> Decimal:
    """
    The row's explicit value if set, else total / installment count.

    Returns:
        The effective value, or 0 when none can be resolved
    """
    if option.value and option.value.strip():
        amount = to_decimal(option.value)
    else:
        amount = derive_amount(total, option.installment_count)
    return amount if amount is not None else ZERO


def discount_amount(option: ParcelOption) -> Decimal:
    """The row's discount, 0 when absent or unreadable."""
    amount = to_decimal(option.discount) if option.discount else None
    return amount if amount is not None else ZERO


def is_discount_valid(option: ParcelOption, total) -> bool:
    """True unless the discount exceeds a positive effective value."""
    value = effective_value(option, total)
    if value <= 0:
        return True
    return discount_amount(option) <= value


def invalid_indices(options: Iterable[ParcelOption], total) -> Set[int]:
    """
    Indices of every row whose discount exceeds its effective value.

    Args:
        options: Plan rows
        total: Plan total (display-masked or canonical, may be blank)

    Returns:
        Set of offending "Opção" indices (empty when all rows are valid)
    """
    return {opt.index for opt in options if not is_discount_valid(opt, total)}


def has_invalid(options: Iterable[ParcelOption], total) -> bool:
    """True iff at least one row breaks the discount ceiling."""
    return bool(invalid_indices(options, total))
