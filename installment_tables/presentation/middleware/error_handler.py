"""Error handling middleware and exception handlers."""

from typing import Any, Dict

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from installment_tables.domain.exceptions import (
    DomainException,
    PlanGatewayException,
    PlanGatewayTimeoutException,
    PlanNotFoundException,
    PlanValidationException,
)
from .request_context import get_request_id

logger = structlog.get_logger(__name__)


def _error_body(code: str, message: str, **extra: Any) -> Dict[str, Any]:
    return {"error": code, "message": message, "request_id": get_request_id(), **extra}


def error_handler_middleware(app: FastAPI) -> None:
    """
    Register exception handlers with the FastAPI app.

    Maps domain exceptions to HTTP responses:
        PlanNotFoundException        -> 404
        PlanValidationException      -> 422 (with field errors)
        PlanGatewayTimeoutException  -> 503
        PlanGatewayException         -> 503
        other DomainException        -> 400 (refused edits, malformed plans)
        anything else                -> 500
    """

    @app.exception_handler(PlanNotFoundException)
    async def plan_not_found_handler(
        request: Request,
        exc: PlanNotFoundException,
    ) -> JSONResponse:
        return JSONResponse(status_code=404, content=_error_body(exc.code, exc.message))

    @app.exception_handler(PlanValidationException)
    async def plan_validation_handler(
        request: Request,
        exc: PlanValidationException,
    ) -> JSONResponse:
        """Field errors from the plans API, passed on as-is."""
        return JSONResponse(
            status_code=422,
            content=_error_body(exc.code, exc.summary(), errors=exc.errors),
        )

    @app.exception_handler(PlanGatewayTimeoutException)
    async def gateway_timeout_handler(
        request: Request,
        exc: PlanGatewayTimeoutException,
    ) -> JSONResponse:
        logger.error("plans_api_timeout", request_id=get_request_id())
        return JSONResponse(
            status_code=503,
            content=_error_body(exc.code, "Service temporarily unavailable. Please try again."),
        )

    @app.exception_handler(PlanGatewayException)
    async def gateway_error_handler(
        request: Request,
        exc: PlanGatewayException,
    ) -> JSONResponse:
        logger.error(
            "plans_api_error",
            request_id=get_request_id(),
            message=exc.message,
            status_code=exc.status_code,
        )
        return JSONResponse(
            status_code=503,
            content=_error_body(exc.code, "Unable to reach the plans API. Please try again later."),
        )

    @app.exception_handler(DomainException)
    async def domain_exception_handler(
        request: Request,
        exc: DomainException,
    ) -> JSONResponse:
        """Refused edits and malformed plans."""
        logger.warning(
            "domain_exception",
            request_id=get_request_id(),
            code=exc.code,
            message=exc.message,
        )
        return JSONResponse(status_code=400, content=_error_body(exc.code, exc.message))

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(
        request: Request,
        exc: Exception,
    ) -> JSONResponse:
        logger.exception(
            "unhandled_exception",
            request_id=get_request_id(),
            error=str(exc),
            error_type=type(exc).__name__,
        )
        return JSONResponse(
            status_code=500,
            content=_error_body("INTERNAL_ERROR", "An unexpected error occurred."),
        )
