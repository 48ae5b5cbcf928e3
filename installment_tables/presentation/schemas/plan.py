"""Installment plan Pydantic schemas."""

from typing import Any, Dict, List, Literal, Optional, Tuple

from pydantic import BaseModel, Field, field_validator

from installment_tables.application.dto import PlanEvaluation, SubmitResult
from installment_tables.domain.entities import (
    ActiveStatus,
    InstallmentPlan,
    ParcelOption,
    TermEntry,
)
from installment_tables.domain.interfaces import PlanPage
from installment_tables.service.installments import InstallmentPreview


def _as_text(value: Any) -> Any:
    if value is None:
        return ""
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return value


class OptionSchema(BaseModel):
    """One "Opção" row of a plan."""

    index: int = Field(..., ge=1, description="1-based slot number", examples=[1])
    installment_count: Optional[int] = Field(
        None,
        ge=1,
        description="Number of payments this row represents",
        examples=[6],
    )
    entry_type: str = Field("", description="Down-payment kind, passed through", examples=["%"])
    entry_value: str = Field("", description="Down-payment amount, passed through")
    interest: str = Field("", description="Interest rate, passed through")
    value: str = Field(
        "",
        description="Canonical per-installment value; blank means derived",
        examples=["200.00"],
    )
    discount: str = Field("", description="Canonical discount", examples=["20.00"])
    locked: bool = Field(False, description="Keep the value when the total changes")

    @field_validator("entry_type", "entry_value", "interest", "value", "discount", mode="before")
    @classmethod
    def coerce_text(cls, v: Any) -> Any:
        return _as_text(v)

    def to_entity(self) -> ParcelOption:
        return ParcelOption(**self.model_dump())

    @classmethod
    def from_entity(cls, option: ParcelOption) -> "OptionSchema":
        return cls(**option.to_dict())


class TermSchema(BaseModel):
    """Label/text clause attached to a plan (tx2)."""

    label: str = Field("", examples=["Pontualidade"])
    text: str = Field(
        "",
        examples=["{total_parcelas}x de {valor_parcela}, com desconto {parcela_com_desconto}"],
    )


class PlanSchema(BaseModel):
    """Structured installment plan as edited by the UI."""

    id: Optional[str] = Field(None, description="Set once the plan is persisted")
    course_id: str = Field("", description="Owning course", examples=["12"])
    name: str = Field("", description="Plan label", examples=["Padrão 2026"])
    total_value: str = Field("", description="Canonical total", examples=["1200.00"])
    active: Literal["s", "n", "y"] = Field("s", description="Active flag as stored by the plans API")
    note: str = Field("", description="Rich-text annotation")
    legacy_course_type: str = Field("", description="Opaque legacy course type", examples=["4"])
    class_scope: List[str] = Field(
        default_factory=list,
        description="Class ids the plan applies to; empty means every class",
    )
    options: List[OptionSchema] = Field(default_factory=list)
    terms: List[TermSchema] = Field(default_factory=list)
    updated_at: Optional[str] = None

    @field_validator("course_id", "total_value", "legacy_course_type", mode="before")
    @classmethod
    def coerce_text(cls, v: Any) -> Any:
        return _as_text(v)

    @field_validator("id", mode="before")
    @classmethod
    def coerce_id(cls, v: Any) -> Any:
        if v is None or v == "":
            return None
        return str(v)

    @field_validator("class_scope", mode="before")
    @classmethod
    def coerce_class_ids(cls, v: Any) -> Any:
        if isinstance(v, list):
            return [str(item) for item in v]
        return v

    def to_entity(self) -> InstallmentPlan:
        """
        Build the domain plan.

        Raises:
            InvalidPlanException: If option indices repeat
        """
        return InstallmentPlan(
            id=self.id,
            course_id=self.course_id,
            name=self.name,
            total_value=self.total_value,
            active=ActiveStatus(self.active),
            note=self.note,
            legacy_course_type=self.legacy_course_type,
            class_scope=tuple(self.class_scope),
            options=tuple(option.to_entity() for option in self.options),
            terms=tuple(TermEntry(label=t.label, text=t.text) for t in self.terms),
            updated_at=self.updated_at,
        )

    @classmethod
    def from_entity(cls, plan: InstallmentPlan) -> "PlanSchema":
        return cls(**plan.to_dict())


class EvaluationSchema(BaseModel):
    """Derived editor state: slot range, next slot, values and the submit gate."""

    option_range: List[int]
    next_option_index: int
    effective_values: Dict[str, str] = Field(
        ...,
        description="Effective value per option index (blank when unresolvable)",
    )
    invalid_indices: List[int] = Field(
        ...,
        description="Options whose discount exceeds the effective value",
    )
    can_submit: bool

    @classmethod
    def from_dto(cls, evaluation: PlanEvaluation) -> "EvaluationSchema":
        return cls(**evaluation.to_dict())


class PlanStateSchema(BaseModel):
    """A plan together with its evaluation."""

    plan: PlanSchema
    evaluation: EvaluationSchema


class DraftRequestSchema(BaseModel):
    course_id: str = ""
    name: str = ""


class TransitionRequestSchema(BaseModel):
    """One reducer action applied to a plan."""

    plan: PlanSchema
    action: str = Field(..., examples=["set_total"])
    payload: Dict[str, Any] = Field(default_factory=dict, examples=[{"total": "R$ 1.200,00"}])


class EncodeResponseSchema(BaseModel):
    pairs: List[Tuple[str, str]] = Field(..., description="Ordered form pairs")
    body: str = Field(..., description="application/x-www-form-urlencoded body")


class DecodeRequestSchema(BaseModel):
    """A persisted record, or an urlencoded form body."""

    record: Optional[Dict[str, Any]] = None
    body: Optional[str] = None


class PreviewRequestSchema(BaseModel):
    plan: PlanSchema
    index: int = Field(..., ge=1)


class PreviewResponseSchema(BaseModel):
    index: int
    installment_count: Optional[int]
    value: str
    discount: str
    value_with_discount: str
    terms: List[TermSchema]

    @classmethod
    def from_preview(
        cls, preview: InstallmentPreview, terms: List[TermEntry]
    ) -> "PreviewResponseSchema":
        return cls(
            **preview.to_dict(),
            terms=[TermSchema(label=t.label, text=t.text) for t in terms],
        )


class SubmitRequestSchema(BaseModel):
    plan: PlanSchema
    finish: bool = Field(False, description="Save and finish (True) or save and continue")


class SubmitResponseSchema(BaseModel):
    """Outcome of a save attempt; the plan is always returned."""

    outcome: Literal["saved", "blocked", "rejected", "failed"]
    plan: PlanSchema
    finish: bool
    close_form: bool
    invalid_indices: List[int] = Field(default_factory=list)
    field_errors: Dict[str, str] = Field(default_factory=dict)
    message: str = ""

    @classmethod
    def from_result(cls, result: SubmitResult) -> "SubmitResponseSchema":
        return cls(
            outcome=result.outcome.value,
            plan=PlanSchema.from_entity(result.plan),
            finish=result.finish,
            close_form=result.close_form,
            invalid_indices=result.invalid_indices,
            field_errors=result.field_errors,
            message=result.message,
        )


class PlanPageSchema(BaseModel):
    items: List[PlanSchema]
    current_page: int
    last_page: int
    per_page: int
    total: int

    @classmethod
    def from_page(cls, page: PlanPage, plans: List[InstallmentPlan]) -> "PlanPageSchema":
        return cls(
            items=[PlanSchema.from_entity(plan) for plan in plans],
            current_page=page.current_page,
            last_page=page.last_page,
            per_page=page.per_page,
            total=page.total,
        )
