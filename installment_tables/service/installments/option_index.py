"""
Option Index allocation for the installment table engine.

Rows are keyed by a 1-based "Opção" slot. Slots may be sparse (an
operator can remove row 3 and keep 1, 2, 4), so the selectable range
grows with both the row count and the highest slot in use.
"""

from typing import Iterable, List

from installment_tables.domain.entities import ParcelOption

from .settings import EngineSettings, engine_settings


def compute_range(
    options: Iterable[ParcelOption],
    settings: EngineSettings = engine_settings,
) -> List[int]:
    """
    Selectable slot numbers for the "Opção" field.

    The range is 1..upper where
    upper = max(highest index + 1, row count + 1, settings.min_option_slots).

    Args:
        options: Current plan rows
        settings: Engine settings (uses defaults if not provided)

    Returns:
        Ascending list of slot numbers
    """
    options = list(options)
    used = [opt.index for opt in options]
    max_used = max(used) if used else 0
    upper = max(max_used + 1, len(options) + 1, settings.min_option_slots)
    return list(range(1, upper + 1))


def next_available(
    options: Iterable[ParcelOption],
    settings: EngineSettings = engine_settings,
) -> int:
    """
    Lowest slot in the computed range that no row uses.

    The range always holds at least one slot more than there are rows, so
    a free slot exists; the last slot is returned only as a fallback.
    """
    options = list(options)
    used = {opt.index for opt in options}
    slots = compute_range(options, settings)
    for slot in slots:
        if slot not in used:
            return slot
    return slots[-1]
