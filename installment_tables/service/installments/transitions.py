"""
Plan transitions for the installment table engine.

Each operator edit is a pure function from an `InstallmentPlan` to a new
`InstallmentPlan`. Derived row values are recomputed here, synchronously,
whenever the total or a row's installment count changes:

- Changing the total recomputes every row whose installment count is set,
  overwriting the row value. Rows flagged `locked` keep their value.
- Changing a row's installment count recomputes only that row.

`apply_action` dispatches an action name plus payload, for callers that
drive the plan through a single reducer entry point.
"""

from dataclasses import replace
from typing import Any, Callable, Dict, Iterable, Mapping, Optional

from installment_tables.domain.entities import (
    ActiveStatus,
    InstallmentPlan,
    ParcelOption,
    TermEntry,
)
from installment_tables.domain.exceptions import (
    InvalidInstallmentCountException,
    InvalidPlanException,
    OptionIndexConflictException,
    OptionNotFoundException,
    TermNotFoundException,
    UnknownPlanActionException,
)

from .money import remove_mask
from .option_index import compute_range, next_available
from .per_installment import derive_value, parse_installment_count
from .settings import EngineSettings, engine_settings
from .wire import default_option

PASS_THROUGH_FIELDS = ("entry_type", "entry_value", "interest")

DEFAULT_TERM = TermEntry(
    label="Desconto de Pontualidade Mensalidade",
    text="R$1.000,00 de desconto na mensalidade para pagamentos até a data de vencimento.",
)


def new_plan(
    course_id: str = "",
    name: str = "",
    settings: EngineSettings = engine_settings,
) -> InstallmentPlan:
    """
    Blank plan for the create form.

    Active, with one default row whose entry type is the one new rows get,
    and the punctuality-discount term pre-filled.
    """
    first_row = replace(default_option(settings), entry_type=settings.new_option_entry_type)
    return InstallmentPlan(
        course_id=course_id,
        name=name,
        legacy_course_type=settings.default_legacy_course_type,
        options=(first_row,),
        terms=(DEFAULT_TERM,),
    )


def _replace_option(plan: InstallmentPlan, target: int, **changes) -> InstallmentPlan:
    if plan.get_option(target) is None:
        raise OptionNotFoundException(target)
    options = tuple(
        replace(option, **changes) if option.index == target else option
        for option in plan.options
    )
    return replace(plan, options=options)


def _recomputed(option: ParcelOption, total: str) -> ParcelOption:
    if option.locked or option.installment_count is None:
        return option
    derived = derive_value(total, option.installment_count)
    if not derived:
        return option
    return replace(option, value=derived)


# =============================================================================
# Total and rows
# =============================================================================

def set_total(
    plan: InstallmentPlan,
    total,
    settings: EngineSettings = engine_settings,
) -> InstallmentPlan:
    """
    Set the plan total and recompute every row with an installment count.

    Args:
        plan: Current plan
        total: New total, display-masked or canonical; blank clears it

    Returns:
        New plan with the canonical total and recomputed row values
    """
    canonical = remove_mask(total)
    options = tuple(_recomputed(option, canonical) for option in plan.options)
    return replace(plan, total_value=canonical, options=options)


def set_installment_count(
    plan: InstallmentPlan,
    index: int,
    count,
    settings: EngineSettings = engine_settings,
) -> InstallmentPlan:
    """
    Change one row's installment count and recompute only that row.

    A blank count clears the field and leaves the value alone.

    Raises:
        OptionNotFoundException: No row at `index`
        InvalidInstallmentCountException: Count outside 1..max_installment_count
    """
    option = plan.get_option(index)
    if option is None:
        raise OptionNotFoundException(index)

    if count is None or str(count).strip() == "":
        return _replace_option(plan, index, installment_count=None)

    parsed = parse_installment_count(count)
    if parsed is None or parsed > settings.max_installment_count:
        raise InvalidInstallmentCountException(count, settings.max_installment_count)

    updated = _recomputed(replace(option, installment_count=parsed), plan.total_value)
    return _replace_option(
        plan, index, installment_count=updated.installment_count, value=updated.value
    )


def set_option_value(plan: InstallmentPlan, index: int, value) -> InstallmentPlan:
    """Set a row's explicit value (canonicalized); blank returns it to derived."""
    return _replace_option(plan, index, value=remove_mask(value))


def set_option_discount(plan: InstallmentPlan, index: int, discount) -> InstallmentPlan:
    """Set a row's discount (canonicalized); blank removes it."""
    return _replace_option(plan, index, discount=remove_mask(discount))


def set_option_field(plan: InstallmentPlan, index: int, field: str, value) -> InstallmentPlan:
    """Set one of the pass-through fields (entry type, entry value, interest)."""
    if field not in PASS_THROUGH_FIELDS:
        raise InvalidPlanException(f"Field cannot be edited directly: {field}")
    return _replace_option(plan, index, **{field: "" if value is None else str(value)})


def set_option_locked(plan: InstallmentPlan, index: int, locked: bool) -> InstallmentPlan:
    return _replace_option(plan, index, locked=bool(locked))


def change_option_index(
    plan: InstallmentPlan,
    index: int,
    new_index: int,
    settings: EngineSettings = engine_settings,
) -> InstallmentPlan:
    """
    Move a row to another "Opção" slot.

    Raises:
        OptionNotFoundException: No row at `index`
        OptionIndexConflictException: Target taken or outside the selectable range
    """
    if plan.get_option(index) is None:
        raise OptionNotFoundException(index)
    if new_index == index:
        return plan
    if new_index not in compute_range(plan.options, settings):
        raise OptionIndexConflictException(new_index, reason="is out of range")
    if plan.get_option(new_index) is not None:
        raise OptionIndexConflictException(new_index)
    return _replace_option(plan, index, index=new_index)


def add_option(
    plan: InstallmentPlan,
    settings: EngineSettings = engine_settings,
) -> InstallmentPlan:
    """Append an empty row at the lowest free slot."""
    option = ParcelOption(
        index=next_available(plan.options, settings),
        entry_type=settings.new_option_entry_type,
    )
    return replace(plan, options=plan.options + (option,))


def remove_option(plan: InstallmentPlan, index: int) -> InstallmentPlan:
    if plan.get_option(index) is None:
        raise OptionNotFoundException(index)
    return replace(plan, options=tuple(o for o in plan.options if o.index != index))


# =============================================================================
# Terms (tx2)
# =============================================================================

def _check_term(plan: InstallmentPlan, position: int) -> None:
    if not 0 <= position < len(plan.terms):
        raise TermNotFoundException(position)


def add_term(plan: InstallmentPlan, label: str = "", text: str = "") -> InstallmentPlan:
    return replace(plan, terms=plan.terms + (TermEntry(label=label, text=text),))


def update_term(
    plan: InstallmentPlan,
    position: int,
    label: Optional[str] = None,
    text: Optional[str] = None,
) -> InstallmentPlan:
    """Edit the label and/or text of the term at `position` (0-based)."""
    _check_term(plan, position)
    terms = list(plan.terms)
    current = terms[position]
    terms[position] = TermEntry(
        label=current.label if label is None else label,
        text=current.text if text is None else text,
    )
    return replace(plan, terms=tuple(terms))


def remove_term(plan: InstallmentPlan, position: int) -> InstallmentPlan:
    _check_term(plan, position)
    terms = plan.terms[:position] + plan.terms[position + 1:]
    return replace(plan, terms=terms)


# =============================================================================
# Class scope and plan details
# =============================================================================

def add_class(plan: InstallmentPlan, class_id) -> InstallmentPlan:
    class_id = str(class_id or "").strip()
    if not class_id or class_id in plan.class_scope:
        return plan
    return replace(plan, class_scope=plan.class_scope + (class_id,))


def remove_class(plan: InstallmentPlan, class_id) -> InstallmentPlan:
    class_id = str(class_id or "").strip()
    return replace(plan, class_scope=tuple(c for c in plan.class_scope if c != class_id))


def set_class_scope(plan: InstallmentPlan, class_ids: Iterable) -> InstallmentPlan:
    """Replace the class scope; an empty iterable means every class."""
    scoped = replace(plan, class_scope=())
    for class_id in class_ids or ():
        scoped = add_class(scoped, class_id)
    return scoped


def update_details(
    plan: InstallmentPlan,
    name: Optional[str] = None,
    course_id: Optional[str] = None,
    note: Optional[str] = None,
    active=None,
    legacy_course_type: Optional[str] = None,
) -> InstallmentPlan:
    """Change scalar plan fields; arguments left as None are kept."""
    changes: Dict[str, Any] = {}
    if name is not None:
        changes["name"] = str(name)
    if course_id is not None:
        changes["course_id"] = str(course_id)
    if note is not None:
        changes["note"] = str(note)
    if active is not None:
        changes["active"] = ActiveStatus.parse(active)
    if legacy_course_type is not None:
        changes["legacy_course_type"] = str(legacy_course_type)
    return replace(plan, **changes) if changes else plan


# =============================================================================
# Reducer entry point
# =============================================================================

def _require(payload: Mapping[str, Any], key: str, action: str):
    if key not in payload:
        raise InvalidPlanException(f"Action '{action}' requires '{key}'")
    return payload[key]


def _int(payload: Mapping[str, Any], key: str, action: str) -> int:
    raw = _require(payload, key, action)
    try:
        return int(raw)
    except (TypeError, ValueError):
        raise InvalidPlanException(f"Action '{action}' expects an integer '{key}': {raw!r}") from None


Handler = Callable[[InstallmentPlan, Mapping[str, Any], EngineSettings], InstallmentPlan]

_ACTIONS: Dict[str, Handler] = {
    "set_total": lambda plan, p, s: set_total(plan, p.get("total"), s),
    "set_installment_count": lambda plan, p, s: set_installment_count(
        plan, _int(p, "index", "set_installment_count"), p.get("count"), s
    ),
    "set_option_value": lambda plan, p, s: set_option_value(
        plan, _int(p, "index", "set_option_value"), p.get("value")
    ),
    "set_option_discount": lambda plan, p, s: set_option_discount(
        plan, _int(p, "index", "set_option_discount"), p.get("discount")
    ),
    "set_option_field": lambda plan, p, s: set_option_field(
        plan,
        _int(p, "index", "set_option_field"),
        _require(p, "field", "set_option_field"),
        p.get("value"),
    ),
    "set_option_locked": lambda plan, p, s: set_option_locked(
        plan, _int(p, "index", "set_option_locked"), p.get("locked", True)
    ),
    "change_option_index": lambda plan, p, s: change_option_index(
        plan,
        _int(p, "index", "change_option_index"),
        _int(p, "new_index", "change_option_index"),
        s,
    ),
    "add_option": lambda plan, p, s: add_option(plan, s),
    "remove_option": lambda plan, p, s: remove_option(plan, _int(p, "index", "remove_option")),
    "add_term": lambda plan, p, s: add_term(plan, p.get("label", ""), p.get("text", "")),
    "update_term": lambda plan, p, s: update_term(
        plan, _int(p, "position", "update_term"), p.get("label"), p.get("text")
    ),
    "remove_term": lambda plan, p, s: remove_term(plan, _int(p, "position", "remove_term")),
    "add_class": lambda plan, p, s: add_class(plan, _require(p, "class_id", "add_class")),
    "remove_class": lambda plan, p, s: remove_class(
        plan, _require(p, "class_id", "remove_class")
    ),
    "set_class_scope": lambda plan, p, s: set_class_scope(plan, p.get("class_ids") or ()),
    "update_details": lambda plan, p, s: update_details(
        plan,
        name=p.get("name"),
        course_id=p.get("course_id"),
        note=p.get("note"),
        active=p.get("active"),
        legacy_course_type=p.get("legacy_course_type"),
    ),
}

PLAN_ACTIONS = tuple(_ACTIONS)


def apply_action(
    plan: InstallmentPlan,
    action: str,
    payload: Optional[Mapping[str, Any]] = None,
    settings: EngineSettings = engine_settings,
) -> InstallmentPlan:
    """
    Apply one named transition.

    Args:
        plan: Current plan
        action: One of PLAN_ACTIONS
        payload: Action arguments (e.g. {"index": 2, "count": 3})
        settings: Engine settings

    Raises:
        UnknownPlanActionException: `action` is not a known transition
        InvalidPlanException: Payload misses or mistypes a required argument
    """
    handler = _ACTIONS.get(action)
    if handler is None:
        raise UnknownPlanActionException(action)
    return handler(plan, payload or {}, settings)
