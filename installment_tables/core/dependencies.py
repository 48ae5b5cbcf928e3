"""Dependency injection for FastAPI."""

from typing import Annotated

from fastapi import Depends

from installment_tables.application.services import PlanService
from installment_tables.domain.interfaces import PlanPersistenceGateway
from installment_tables.infrastructure.clients import HttpPlanGatewayClient
from installment_tables.service.installments import EngineSettings, get_engine_settings


# External client dependencies
def get_plan_gateway() -> PlanPersistenceGateway:
    """Get a PlanPersistenceGateway instance."""
    return HttpPlanGatewayClient()


# Service dependencies
def get_plan_service(
    gateway: Annotated[PlanPersistenceGateway, Depends(get_plan_gateway)],
    engine: Annotated[EngineSettings, Depends(get_engine_settings)],
) -> PlanService:
    """Get a PlanService instance."""
    return PlanService(gateway=gateway, settings=engine)
