"""
Glowfit - FastAPI application.

All caller-facing routes live under /api; /health is unauthenticated.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from glowfit import __version__
from glowfit.config import configure_logging
from glowfit.web.dependencies import get_orchestrator, get_sequencer
from glowfit.web.plan_routes import router as plan_router
from onboarding.api import router as onboarding_router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging()
    yield
    # Let in-flight background work write its terminal status
    if get_orchestrator.cache_info().currsize:
        await get_orchestrator().drain()
    if get_sequencer.cache_info().currsize:
        await get_sequencer().wait_for_background()
    logger.info("Glowfit API stopped")


app = FastAPI(title="Glowfit", version=__version__, lifespan=lifespan)

app.include_router(onboarding_router, prefix="/api")
app.include_router(plan_router, prefix="/api")


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "version": __version__, "service": "glowfit"}


def create_app() -> FastAPI:
    """Create and return the FastAPI application."""
    return app
