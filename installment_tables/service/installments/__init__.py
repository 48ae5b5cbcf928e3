"""
Installment table engine.

Pure, synchronous functions over `InstallmentPlan`: money formatting,
per-installment derivation, option slot allocation, the discount ceiling
check, the plans API wire codec, edit transitions and previews.

Usage:
    from installment_tables.service.installments import (
        new_plan, set_total, add_option, invalid_indices, encode, decode,
    )

    plan = set_total(new_plan(course_id="12", name="Padrão"), "R$ 1.200,00")
    pairs = encode(plan)
"""

from .discount import (
    discount_amount,
    effective_value,
    has_invalid,
    invalid_indices,
    is_discount_valid,
)
from .money import apply_mask, format_amount, format_money, remove_mask, to_decimal
from .option_index import compute_range, next_available
from .per_installment import (
    derive_amount,
    derive_display,
    derive_value,
    parse_installment_count,
)
from .preview import InstallmentPreview, build_preview, render_terms, resolve_shortcodes
from .settings import EngineSettings, engine_settings, get_engine_settings
from .transitions import (
    PLAN_ACTIONS,
    add_class,
    add_option,
    add_term,
    apply_action,
    change_option_index,
    new_plan,
    remove_class,
    remove_option,
    remove_term,
    set_class_scope,
    set_installment_count,
    set_option_discount,
    set_option_field,
    set_option_locked,
    set_option_value,
    set_total,
    update_details,
    update_term,
)
from .wire import (
    decode,
    decode_wire,
    default_option,
    encode,
    parse_urlencoded,
    parse_wire,
    to_urlencoded,
)

__all__ = [
    # Settings
    "EngineSettings",
    "engine_settings",
    "get_engine_settings",
    # Money
    "apply_mask",
    "format_amount",
    "format_money",
    "remove_mask",
    "to_decimal",
    # Derivation
    "derive_amount",
    "derive_display",
    "derive_value",
    "parse_installment_count",
    # Allocation
    "compute_range",
    "next_available",
    # Discount ceiling
    "discount_amount",
    "effective_value",
    "has_invalid",
    "invalid_indices",
    "is_discount_valid",
    # Wire codec
    "decode",
    "decode_wire",
    "default_option",
    "encode",
    "parse_urlencoded",
    "parse_wire",
    "to_urlencoded",
    # Transitions
    "PLAN_ACTIONS",
    "add_class",
    "add_option",
    "add_term",
    "apply_action",
    "change_option_index",
    "new_plan",
    "remove_class",
    "remove_option",
    "remove_term",
    "set_class_scope",
    "set_installment_count",
    "set_option_discount",
    "set_option_field",
    "set_option_locked",
    "set_option_value",
    "set_total",
    "update_details",
    "update_term",
    # Preview
    "InstallmentPreview",
    "build_preview",
    "render_terms",
    "resolve_shortcodes",
]
