"""
Installment preview for the installment table engine.

Term texts (tx2) may embed shortcodes that are filled with the figures of
a chosen row:

    {total_parcelas}         installment count
    {valor_parcela}          effective value, display-formatted
    {desconto_pontualidade}  discount, display-formatted
    {parcela_com_desconto}   max(value - discount, 0), display-formatted

Shortcodes match case-insensitively; unknown ones are left untouched.
"""

import re
from dataclasses import dataclass
from typing import Dict, List, Optional

from installment_tables.domain.entities import InstallmentPlan, ParcelOption, TermEntry
from installment_tables.domain.exceptions import OptionNotFoundException

from .discount import ZERO, discount_amount, effective_value
from .money import format_amount
from .settings import EngineSettings, engine_settings

_SHORTCODE = re.compile(r"\{\s*([a-z_]+)\s*\}", re.IGNORECASE)


@dataclass(frozen=True)
class InstallmentPreview:
    """Display figures of one row, as shown next to the table and in terms."""

    index: int
    installment_count: Optional[int]
    value: str
    discount: str
    value_with_discount: str

    def shortcodes(self) -> Dict[str, str]:
        return {
            "total_parcelas": "" if self.installment_count is None else str(self.installment_count),
            "valor_parcela": self.value,
            "desconto_pontualidade": self.discount,
            "parcela_com_desconto": self.value_with_discount,
        }

    def to_dict(self) -> dict:
        return {
            "index": self.index,
            "installment_count": self.installment_count,
            "value": self.value,
            "discount": self.discount,
            "value_with_discount": self.value_with_discount,
        }


def build_preview(
    option: ParcelOption,
    total,
    settings: EngineSettings = engine_settings,
) -> InstallmentPreview:
    """
    Compute the display figures of a row.

    Value and value-with-discount are blank when the row has no positive
    effective value; the discount is blank when the row has none.
    """
    value = effective_value(option, total)
    discount = discount_amount(option)

    if value > ZERO:
        value_text = format_amount(value, settings=settings)
        with_discount = format_amount(max(value - discount, ZERO), settings=settings)
    else:
        value_text = with_discount = ""

    return InstallmentPreview(
        index=option.index,
        installment_count=option.installment_count,
        value=value_text,
        discount=format_amount(discount, settings=settings) if discount > ZERO else "",
        value_with_discount=with_discount,
    )


def resolve_shortcodes(text: str, preview: InstallmentPreview) -> str:
    """Replace known shortcodes in `text` with the preview's figures."""
    values = preview.shortcodes()

    def _substitute(match: re.Match) -> str:
        name = match.group(1).lower()
        return values[name] if name in values else match.group(0)

    return _SHORTCODE.sub(_substitute, text or "")


def render_terms(
    plan: InstallmentPlan,
    index: int,
    settings: EngineSettings = engine_settings,
) -> List[TermEntry]:
    """
    The plan's terms with shortcodes resolved for the row at `index`.

    Raises:
        OptionNotFoundException: No row at `index`
    """
    option = plan.get_option(index)
    if option is None:
        raise OptionNotFoundException(index)
    preview = build_preview(option, plan.total_value, settings)
    return [
        TermEntry(label=term.label, text=resolve_shortcodes(term.text, preview))
        for term in plan.terms
    ]
