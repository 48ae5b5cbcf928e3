"""Installment plan API endpoints.

Editing endpoints (draft, evaluate, transition, encode, decode, preview)
run the engine on the plan sent by the UI and hold no state. The rest go
through the plans API.
"""

from dataclasses import replace
from typing import Annotated, Literal, Optional

from fastapi import APIRouter, Depends, Path, Query, Response

from installment_tables.application.dto import SubmitOutcome
from installment_tables.application.services import PlanService
from installment_tables.core.dependencies import get_plan_service
from installment_tables.domain.exceptions import InvalidPlanException, OptionNotFoundException
from installment_tables.presentation.schemas import (
    DecodeRequestSchema,
    DraftRequestSchema,
    EncodeResponseSchema,
    ErrorResponseSchema,
    EvaluationSchema,
    PlanPageSchema,
    PlanSchema,
    PlanStateSchema,
    PreviewRequestSchema,
    PreviewResponseSchema,
    SubmitRequestSchema,
    SubmitResponseSchema,
    TransitionRequestSchema,
)
from installment_tables.service.installments import (
    build_preview,
    decode,
    encode,
    parse_urlencoded,
    render_terms,
    to_urlencoded,
)

plan_router = APIRouter(
    prefix="/plans",
    responses={
        400: {"model": ErrorResponseSchema, "description": "Edit refused or malformed plan"},
        503: {"model": ErrorResponseSchema, "description": "Plans API unavailable"},
    },
)

SUBMIT_STATUS = {
    SubmitOutcome.SAVED: 200,
    SubmitOutcome.BLOCKED: 409,
    SubmitOutcome.REJECTED: 422,
    SubmitOutcome.FAILED: 502,
}

PlanServiceDep = Annotated[PlanService, Depends(get_plan_service)]
PlanIdPath = Annotated[str, Path(min_length=1, description="Plan id in the plans API")]


def _state(service: PlanService, plan) -> PlanStateSchema:
    return PlanStateSchema(
        plan=PlanSchema.from_entity(plan),
        evaluation=EvaluationSchema.from_dto(service.evaluate(plan)),
    )


# =============================================================================
# Editing
# =============================================================================

@plan_router.post(
    "/draft",
    response_model=PlanStateSchema,
    summary="New Plan Draft",
    description="Returns a blank plan with the default row, ready to edit.",
)
async def create_draft(
    request: DraftRequestSchema,
    plan_service: PlanServiceDep,
) -> PlanStateSchema:
    plan = plan_service.new_draft(course_id=request.course_id, name=request.name)
    return _state(plan_service, plan)


@plan_router.post(
    "/evaluate",
    response_model=EvaluationSchema,
    summary="Evaluate Plan",
    description="""
    Computes the selectable option range, the next free option index, the
    effective value of every row and the rows whose discount exceeds it.
    """,
)
async def evaluate_plan(
    request: PlanSchema,
    plan_service: PlanServiceDep,
) -> EvaluationSchema:
    return EvaluationSchema.from_dto(plan_service.evaluate(request.to_entity()))


@plan_router.post(
    "/transition",
    response_model=PlanStateSchema,
    summary="Apply Plan Edit",
    description="Applies one edit (set_total, add_option, set_installment_count, ...).",
)
async def apply_transition(
    request: TransitionRequestSchema,
    plan_service: PlanServiceDep,
) -> PlanStateSchema:
    plan = plan_service.apply(request.plan.to_entity(), request.action, request.payload)
    return _state(plan_service, plan)


@plan_router.post(
    "/encode",
    response_model=EncodeResponseSchema,
    summary="Encode Plan",
    description="Returns the form pairs and urlencoded body sent to the plans API.",
)
async def encode_plan(request: PlanSchema) -> EncodeResponseSchema:
    pairs = encode(request.to_entity())
    return EncodeResponseSchema(pairs=pairs, body=to_urlencoded(pairs))


@plan_router.post(
    "/decode",
    response_model=PlanSchema,
    summary="Decode Plan",
    description="Hydrates a plan from a persisted record or an urlencoded form body.",
)
async def decode_plan(request: DecodeRequestSchema) -> PlanSchema:
    if request.record is not None:
        record = request.record
    elif request.body is not None:
        record = parse_urlencoded(request.body)
    else:
        raise InvalidPlanException("Either 'record' or 'body' is required")
    return PlanSchema.from_entity(decode(record))


@plan_router.post(
    "/preview",
    response_model=PreviewResponseSchema,
    summary="Preview Option",
    description="Display figures of one option and the terms with shortcodes resolved.",
)
async def preview_option(request: PreviewRequestSchema) -> PreviewResponseSchema:
    plan = request.plan.to_entity()
    option = plan.get_option(request.index)
    if option is None:
        raise OptionNotFoundException(request.index)
    preview = build_preview(option, plan.total_value)
    return PreviewResponseSchema.from_preview(preview, render_terms(plan, request.index))


# =============================================================================
# Persistence
# =============================================================================

@plan_router.get(
    "",
    response_model=PlanPageSchema,
    summary="List Plans",
)
async def list_plans(
    plan_service: PlanServiceDep,
    page: Annotated[int, Query(ge=1)] = 1,
    per_page: Annotated[int, Query(ge=1, le=100)] = 15,
    course_id: Annotated[Optional[str], Query(description="Filter by course")] = None,
    active: Annotated[Optional[Literal["s", "n"]], Query(description="Filter by active flag")] = None,
    q: Annotated[Optional[str], Query(description="Search by name")] = None,
    include_trashed: Annotated[bool, Query()] = False,
) -> PlanPageSchema:
    filters = {
        "id_curso": course_id,
        "ativo": active,
        "q": q,
        "include_trashed": include_trashed or None,
    }
    result = await plan_service.list_plans(page=page, per_page=per_page, filters=filters)
    return PlanPageSchema.from_page(result, [decode(item) for item in result.items])


@plan_router.get(
    "/trash",
    response_model=PlanPageSchema,
    summary="List Trashed Plans",
)
async def list_trash(
    plan_service: PlanServiceDep,
    page: Annotated[int, Query(ge=1)] = 1,
    per_page: Annotated[int, Query(ge=1, le=100)] = 15,
) -> PlanPageSchema:
    result = await plan_service.list_trash(page=page, per_page=per_page)
    return PlanPageSchema.from_page(result, [decode(item) for item in result.items])


@plan_router.get(
    "/{plan_id}",
    response_model=PlanStateSchema,
    summary="Load Plan",
    responses={404: {"model": ErrorResponseSchema, "description": "Plan not found"}},
)
async def load_plan(plan_id: PlanIdPath, plan_service: PlanServiceDep) -> PlanStateSchema:
    plan = await plan_service.load(plan_id)
    return _state(plan_service, plan)


@plan_router.post(
    "",
    response_model=SubmitResponseSchema,
    summary="Create Plan",
    description="""
    Saves a new plan. 200 when saved, 409 when a discount exceeds its
    installment value (nothing sent), 422 when the plans API rejects
    fields, 502 when the plans API cannot be reached.
    """,
)
async def create_plan(
    request: SubmitRequestSchema,
    response: Response,
    plan_service: PlanServiceDep,
) -> SubmitResponseSchema:
    plan = replace(request.plan.to_entity(), id=None)
    result = await plan_service.submit(plan, finish=request.finish)
    response.status_code = SUBMIT_STATUS[result.outcome]
    return SubmitResponseSchema.from_result(result)


@plan_router.put(
    "/{plan_id}",
    response_model=SubmitResponseSchema,
    summary="Update Plan",
    description="Saves an existing plan; status codes as for create.",
)
async def update_plan(
    plan_id: PlanIdPath,
    request: SubmitRequestSchema,
    response: Response,
    plan_service: PlanServiceDep,
) -> SubmitResponseSchema:
    plan = replace(request.plan.to_entity(), id=plan_id)
    result = await plan_service.submit(plan, finish=request.finish)
    response.status_code = SUBMIT_STATUS[result.outcome]
    return SubmitResponseSchema.from_result(result)


@plan_router.delete(
    "/{plan_id}",
    status_code=204,
    summary="Delete Plan",
    description="Moves the plan to the trash.",
)
async def delete_plan(plan_id: PlanIdPath, plan_service: PlanServiceDep) -> Response:
    await plan_service.delete(plan_id)
    return Response(status_code=204)


@plan_router.put(
    "/{plan_id}/restore",
    response_model=PlanSchema,
    summary="Restore Plan",
)
async def restore_plan(plan_id: PlanIdPath, plan_service: PlanServiceDep) -> PlanSchema:
    return PlanSchema.from_entity(await plan_service.restore(plan_id))


@plan_router.delete(
    "/{plan_id}/force",
    status_code=204,
    summary="Delete Plan Permanently",
)
async def force_delete_plan(plan_id: PlanIdPath, plan_service: PlanServiceDep) -> Response:
    await plan_service.force_delete(plan_id)
    return Response(status_code=204)
