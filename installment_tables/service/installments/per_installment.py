"""
Per-Installment Value computation for the installment table engine.

A row without an explicit value is worth the plan total divided by the
row's installment count, rounded to cents (ROUND_HALF_UP). Because each
row is rounded independently, `value * count` may differ from the total by
less than one cent per installment.
"""

import re
from decimal import Decimal
from typing import Optional

from .money import format_amount, quantize_cents, to_canonical, to_decimal
from .settings import EngineSettings, engine_settings

_NOT_DIGITS = re.compile(r"\D+")


def parse_installment_count(raw) -> Optional[int]:
    """
    Read an installment count from form input.

    Non-digits are dropped before parsing ("6x" -> 6).

    Returns:
        A positive integer, or None when there is none
    """
    if raw is None or isinstance(raw, bool):
        return None
    if isinstance(raw, int):
        return raw if raw > 0 else None
    digits = _NOT_DIGITS.sub("", str(raw))
    if not digits:
        return None
    count = int(digits)
    return count if count > 0 else None


def derive_amount(total, count) -> Optional[Decimal]:
    """
    Compute total / count rounded to cents.

    Args:
        total: Plan total, display-masked or canonical
        count: Installment count (int or form text)

    Returns:
        The per-installment amount, or None when either input is unusable
        (blank total, total <= 0, count not a positive integer)
    """
    n = parse_installment_count(count)
    if n is None:
        return None
    if total is None or not str(total).strip():
        return None
    amount = to_decimal(total)
    if amount is None or amount <= 0:
        return None
    return quantize_cents(amount / Decimal(n))


def derive_value(total, count) -> str:
    """Per-installment value as a canonical string ("400.00"), or ""."""
    amount = derive_amount(total, count)
    return to_canonical(amount) if amount is not None else ""


def derive_display(
    total,
    count,
    settings: EngineSettings = engine_settings,
) -> str:
    """Per-installment value formatted for display ("R$ 400,00"), or ""."""
    amount = derive_amount(total, count)
    if amount is None:
        return ""
    return format_amount(amount, settings=settings)
