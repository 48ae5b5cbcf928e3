"""Data transfer objects for installment plan operations."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from installment_tables.domain.entities import InstallmentPlan


class SubmitOutcome(str, Enum):
    """What happened to a submission."""

    SAVED = "saved"
    BLOCKED = "blocked"  # discount ceiling broken, nothing sent
    REJECTED = "rejected"  # plans API returned field errors
    FAILED = "failed"  # transport or unexpected error


@dataclass(frozen=True)
class PlanEvaluation:
    """Derived state the editor needs after every edit."""

    option_range: List[int]
    next_option_index: int
    effective_values: Dict[int, str]
    invalid_indices: List[int]

    @property
    def can_submit(self) -> bool:
        return not self.invalid_indices

    def to_dict(self) -> dict:
        return {
            "option_range": self.option_range,
            "next_option_index": self.next_option_index,
            "effective_values": {str(k): v for k, v in self.effective_values.items()},
            "invalid_indices": self.invalid_indices,
            "can_submit": self.can_submit,
        }


@dataclass(frozen=True)
class SubmitResult:
    """
    Result of a save attempt.

    The operator's plan is always handed back, saved or not, so edits are
    never lost on a blocked, rejected or failed submission.
    """

    outcome: SubmitOutcome
    plan: InstallmentPlan
    finish: bool = False
    record: Optional[Dict[str, Any]] = None
    invalid_indices: List[int] = field(default_factory=list)
    field_errors: Dict[str, str] = field(default_factory=dict)
    message: str = ""

    @property
    def saved(self) -> bool:
        return self.outcome is SubmitOutcome.SAVED

    @property
    def close_form(self) -> bool:
        """True when the UI should go back to the list ("save and finish")."""
        return self.saved and self.finish
