"""Installment table domain entities."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Optional, Tuple

from installment_tables.domain.exceptions import InvalidPlanException


class ActiveStatus(str, Enum):
    """
    Active flag as stored by the plans API.

    "y" shows up in records written by an older client; it is read as
    active but kept as-is so it survives a load/save cycle.
    """

    ACTIVE = "s"
    INACTIVE = "n"
    LEGACY = "y"

    @property
    def is_active(self) -> bool:
        return self is not ActiveStatus.INACTIVE

    @classmethod
    def parse(cls, raw) -> "ActiveStatus":
        """Read a wire value; anything unrecognised falls back to active."""
        if isinstance(raw, bool):
            return cls.ACTIVE if raw else cls.INACTIVE
        text = str(raw or "").strip().lower()
        for member in cls:
            if member.value == text:
                return member
        return cls.ACTIVE


@dataclass(frozen=True)
class TermEntry:
    """Free-form label/text clause shown alongside the plan (tx2)."""

    label: str = ""
    text: str = ""

    def to_dict(self) -> dict:
        return {"label": self.label, "text": self.text}


@dataclass(frozen=True)
class ParcelOption:
    """
    One selectable row ("Opção") of an installment table.

    Attributes:
        index: 1-based slot number, unique within the plan
        installment_count: number of payments (1-12), None while unset
        entry_type: down-payment kind ("%" or "R$"), passed through
        entry_value: down-payment amount, passed through
        interest: interest rate, passed through
        value: canonical decimal string ("400.00"); blank means derived
        discount: canonical decimal string; blank means no discount
        locked: keep `value` when the plan total changes (never on the wire)
    """

    index: int
    installment_count: Optional[int] = None
    entry_type: str = ""
    entry_value: str = ""
    interest: str = ""
    value: str = ""
    discount: str = ""
    locked: bool = False

    def to_dict(self) -> dict:
        return {
            "index": self.index,
            "installment_count": self.installment_count,
            "entry_type": self.entry_type,
            "entry_value": self.entry_value,
            "interest": self.interest,
            "value": self.value,
            "discount": self.discount,
            "locked": self.locked,
        }


@dataclass(frozen=True)
class InstallmentPlan:
    """
    A payment-plan template for a course, optionally scoped to some classes.

    The plan is immutable; edits go through the transition functions in
    `installment_tables.service.installments.transitions`, which return a
    new plan. An empty `class_scope` means the plan applies to every class
    of the course.
    """

    course_id: str = ""
    name: str = ""
    total_value: str = ""
    active: ActiveStatus = ActiveStatus.ACTIVE
    note: str = ""
    legacy_course_type: str = ""
    class_scope: Tuple[str, ...] = ()
    options: Tuple[ParcelOption, ...] = ()
    terms: Tuple[TermEntry, ...] = ()
    id: Optional[str] = None
    updated_at: Optional[str] = None

    def __post_init__(self) -> None:
        seen = set()
        for option in self.options:
            if not isinstance(option.index, int) or option.index < 1:
                raise InvalidPlanException(
                    f"Option index must be a positive integer: {option.index!r}"
                )
            if option.index in seen:
                raise InvalidPlanException(f"Duplicate option index: {option.index}")
            seen.add(option.index)

    @property
    def is_persisted(self) -> bool:
        return bool(self.id)

    @property
    def option_map(self) -> Dict[int, ParcelOption]:
        """Options keyed by their slot index, in row order."""
        return {option.index: option for option in self.options}

    def get_option(self, index: int) -> Optional[ParcelOption]:
        return self.option_map.get(index)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "course_id": self.course_id,
            "name": self.name,
            "total_value": self.total_value,
            "active": self.active.value,
            "note": self.note,
            "legacy_course_type": self.legacy_course_type,
            "class_scope": list(self.class_scope),
            "options": [option.to_dict() for option in self.options],
            "terms": [term.to_dict() for term in self.terms],
            "updated_at": self.updated_at,
        }
