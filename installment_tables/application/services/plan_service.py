"""Plan service - orchestrates editing, evaluating and saving installment plans."""

from dataclasses import replace
from typing import Any, Dict, Mapping, Optional

import structlog

from installment_tables.application.dto import PlanEvaluation, SubmitOutcome, SubmitResult
from installment_tables.core.metrics import record_submission
from installment_tables.domain.entities import InstallmentPlan
from installment_tables.domain.exceptions import (
    PlanGatewayException,
    PlanNotFoundException,
    PlanValidationException,
)
from installment_tables.domain.interfaces import PlanPage, PlanPersistenceGateway
from installment_tables.service.installments import (
    EngineSettings,
    apply_action,
    compute_range,
    decode,
    effective_value,
    encode,
    engine_settings,
    invalid_indices,
    new_plan,
    next_available,
)
from installment_tables.service.installments.money import to_canonical

logger = structlog.get_logger(__name__)

BLOCKED_MESSAGE = "O desconto não pode ser maior que o valor da parcela (opções: {indices})"
FAILED_MESSAGE = "Não foi possível salvar a tabela de parcelamento. Tente novamente."


class PlanService:
    """
    Application service for installment plan use cases.

    Edits are applied by the pure engine; this service adds the submit gate
    and the round trip through the plans API.
    """

    def __init__(
        self,
        gateway: PlanPersistenceGateway,
        settings: EngineSettings = engine_settings,
    ):
        self._gateway = gateway
        self._settings = settings

    # =========================================================================
    # Editing
    # =========================================================================

    def new_draft(self, course_id: str = "", name: str = "") -> InstallmentPlan:
        """Blank plan with the default row."""
        return new_plan(course_id=course_id, name=name, settings=self._settings)

    def apply(
        self,
        plan: InstallmentPlan,
        action: str,
        payload: Optional[Mapping[str, Any]] = None,
    ) -> InstallmentPlan:
        """
        Apply one operator edit.

        Raises:
            UnknownPlanActionException: If the action is not known
            DomainException: If the edit is refused (missing row, bad count...)
        """
        updated = apply_action(plan, action, payload, self._settings)
        logger.debug("plan_transition_applied", action=action, plan_id=plan.id)
        return updated

    def evaluate(self, plan: InstallmentPlan) -> PlanEvaluation:
        """Compute the option range, next free slot, effective values and gate."""
        values: Dict[int, str] = {}
        for option in plan.options:
            amount = effective_value(option, plan.total_value)
            values[option.index] = to_canonical(amount) if amount > 0 else ""

        return PlanEvaluation(
            option_range=compute_range(plan.options, self._settings),
            next_option_index=next_available(plan.options, self._settings),
            effective_values=values,
            invalid_indices=sorted(invalid_indices(plan.options, plan.total_value)),
        )

    # =========================================================================
    # Persistence
    # =========================================================================

    async def load(self, plan_id: str) -> InstallmentPlan:
        """
        Fetch a persisted plan and hydrate it for editing.

        Raises:
            PlanNotFoundException: If the plan does not exist
            PlanGatewayException: If the plans API fails
        """
        record = await self._gateway.get_by_id(plan_id)
        plan = decode(record, self._settings)

        logger.info(
            "plan_loaded",
            plan_id=plan_id,
            num_options=len(plan.options),
            num_classes=len(plan.class_scope),
        )
        return plan

    async def list_plans(
        self,
        page: int = 1,
        per_page: int = 15,
        filters: Optional[Mapping[str, Any]] = None,
    ) -> PlanPage:
        params: Dict[str, Any] = {"page": page, "per_page": per_page}
        for key, value in (filters or {}).items():
            if value is not None and value != "":
                params[key] = value
        result = await self._gateway.list(params)

        logger.info("plans_listed", page=result.current_page, total=result.total)
        return result

    async def list_trash(self, page: int = 1, per_page: int = 15) -> PlanPage:
        return await self._gateway.list_trash({"page": page, "per_page": per_page})

    async def submit(self, plan: InstallmentPlan, finish: bool = False) -> SubmitResult:
        """
        Save a plan, creating it or updating it depending on `plan.id`.

        Nothing is sent while any row's discount exceeds its effective
        value. Field errors and transport failures come back as a result
        holding the operator's plan, never as an exception.

        Args:
            plan: The plan being edited
            finish: "Save and finish" (True) or "save and continue" (False)

        Returns:
            SubmitResult with outcome saved, blocked, rejected or failed
        """
        log = logger.bind(plan_id=plan.id, course_id=plan.course_id, finish=finish)

        invalid = sorted(invalid_indices(plan.options, plan.total_value))
        if invalid:
            record_submission(SubmitOutcome.BLOCKED.value, invalid_rows=len(invalid))
            log.warning("plan_submission_blocked", invalid_indices=invalid)
            return SubmitResult(
                outcome=SubmitOutcome.BLOCKED,
                plan=plan,
                finish=finish,
                invalid_indices=invalid,
                message=BLOCKED_MESSAGE.format(indices=", ".join(map(str, invalid))),
            )

        payload = encode(plan, self._settings)

        try:
            if plan.is_persisted:
                record = await self._gateway.update(plan.id, payload)
            else:
                record = await self._gateway.create(payload)
        except PlanValidationException as e:
            record_submission(SubmitOutcome.REJECTED.value)
            log.info("plan_submission_rejected", fields=sorted(e.errors))
            return SubmitResult(
                outcome=SubmitOutcome.REJECTED,
                plan=plan,
                finish=finish,
                field_errors=e.first_messages(),
                message=e.summary(),
            )
        except (PlanGatewayException, PlanNotFoundException) as e:
            record_submission(SubmitOutcome.FAILED.value)
            log.error("plan_submission_failed", error=e.message, code=e.code)
            return SubmitResult(
                outcome=SubmitOutcome.FAILED,
                plan=plan,
                finish=finish,
                message=FAILED_MESSAGE,
            )

        saved = self._saved_plan(plan, record)
        record_submission(SubmitOutcome.SAVED.value)
        log.info("plan_submitted", saved_id=saved.id, num_options=len(saved.options))

        return SubmitResult(
            outcome=SubmitOutcome.SAVED,
            plan=saved,
            finish=finish,
            record=record,
        )

    async def delete(self, plan_id: str) -> None:
        await self._gateway.delete(plan_id)
        logger.info("plan_deleted", plan_id=plan_id)

    async def restore(self, plan_id: str) -> InstallmentPlan:
        record = await self._gateway.restore(plan_id)
        logger.info("plan_restored", plan_id=plan_id)
        return decode(record, self._settings)

    async def force_delete(self, plan_id: str) -> None:
        await self._gateway.force_delete(plan_id)
        logger.info("plan_force_deleted", plan_id=plan_id)

    def _saved_plan(self, plan: InstallmentPlan, record: Mapping[str, Any]) -> InstallmentPlan:
        """The plan as persisted, keeping the operator's row locks."""
        if not record or record.get("nome") is None:
            saved_id = record.get("id") if record else None
            return replace(plan, id=str(saved_id) if saved_id else plan.id)

        saved = decode(record, self._settings)
        locked = {option.index for option in plan.options if option.locked}
        if not locked:
            return saved
        options = tuple(
            replace(option, locked=True) if option.index in locked else option
            for option in saved.options
        )
        return replace(saved, options=options)
