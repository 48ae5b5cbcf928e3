"""
Installment Tables - Main Application Entry Point

Editor API for course installment tables ("Tabelas de Parcelamentos"):
drafts and edits plans with the engine, gates submission on the discount
ceiling and saves plans through the plans API.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

import structlog
from fastapi import FastAPI, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import RedirectResponse

from installment_tables import __version__
from installment_tables.core.config import settings
from installment_tables.core.logging import setup_logging
from installment_tables.core.metrics import get_metrics, get_metrics_content_type
from installment_tables.presentation.api import api_router
from installment_tables.presentation.middleware import (
    LoggingMiddleware,
    RequestContextMiddleware,
    error_handler_middleware,
)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Application lifespan manager.

    Sets up logging on startup and logs shutdown. The service owns no
    persistent resources; the plans API client opens a connection per call.
    """
    setup_logging()

    logger = structlog.get_logger(__name__)
    logger.info(
        "application_started",
        version=__version__,
        plans_api_url=settings.plans_api_url,
    )

    yield

    logger.info("application_stopped")


app = FastAPI(
    title="Installment Tables",
    description="Installment plan engine and editor API",
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(LoggingMiddleware)
app.add_middleware(RequestContextMiddleware)

error_handler_middleware(app)

app.include_router(api_router)


@app.get("/metrics", include_in_schema=False)
async def metrics() -> Response:
    """Prometheus metrics endpoint."""
    return Response(
        content=get_metrics(),
        media_type=get_metrics_content_type(),
    )


@app.get("/", include_in_schema=False)
async def root():
    """Redirect to API documentation."""

    return RedirectResponse(url="/docs")
