"""
LeaveDesk: Application entry point.

This is the **only** file that assembles the app.  All business logic
lives in the `services/`, `integrations/`, `models/`, and `core/` packages.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from leavedesk.api.v1.api import api_router
from leavedesk.core.config import settings
from leavedesk.core.exceptions import register_exception_handlers
from leavedesk.db.base import Base
from leavedesk.db.session import async_session_factory, engine
from leavedesk.integrations.graph import GraphClient, GraphSettings

# Ensure all models are imported so metadata.create_all can see them
from leavedesk.models.absence import Absence  # noqa: F401
from leavedesk.models.absence_analytics import AbsenceAnalytics  # noqa: F401
from leavedesk.models.company_settings import CompanySettings  # noqa: F401
from leavedesk.models.user import User  # noqa: F401
from leavedesk.services.policy import get_or_create_settings

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
)
logger = logging.getLogger(__name__)


def build_graph_client() -> GraphClient | None:
    graph_settings = GraphSettings.from_settings(settings)
    if not graph_settings.configured:
        logger.warning("Graph credentials missing; calendar, auto-reply and chat are disabled")
        return None
    return GraphClient(graph_settings)


# ── Lifespan ────────────────────────────────────────────────────────
@asynccontextmanager
async def lifespan(app: FastAPI):
    # Create all tables
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database tables initialised")

    # Seed the company settings row on first run
    async with async_session_factory() as session:
        await get_or_create_settings(session)

    app.state.graph = build_graph_client()

    logger.info("LeaveDesk v%s started", settings.VERSION)
    yield
    if app.state.graph is not None:
        await app.state.graph.aclose()
    await engine.dispose()
    logger.info("Shutdown complete")


# ── App factory ─────────────────────────────────────────────────────
def create_app() -> FastAPI:
    application = FastAPI(
        title=settings.PROJECT_NAME,
        description="Absence management for Microsoft 365 organisations",
        version=settings.VERSION,
        openapi_url=f"{settings.API_V1_PREFIX}/openapi.json",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    # CORS
    application.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Global exception handlers (prevent stack-trace leakage)
    register_exception_handlers(application)

    # Mount API v1
    application.include_router(api_router, prefix=settings.API_V1_PREFIX)

    return application


app = create_app()
