"""
Plan generation API endpoints.

POST /plans/generate returns as soon as the generating record exists; callers
then poll /plans/status or subscribe to /plans/status/stream.
"""

import logging
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Query, Response
from pydantic import BaseModel
from sse_starlette.sse import EventSourceResponse

from glowfit.errors import GlowfitError
from glowfit.models.plan import GenerationStatus, PlanRecord, PlanType
from glowfit.plans.orchestrator import GenerationOrchestrator
from glowfit.plans.poller import StatusPoller
from glowfit.web.auth import AuthenticatedUser, get_current_user
from glowfit.web.dependencies import get_orchestrator, get_poller, http_error

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/plans", tags=["plans"])


# =============================================================================
# Request/Response Models
# =============================================================================


class GenerateRequest(BaseModel):
    regenerate: bool = False
    plan_type: PlanType = PlanType.BOTH


class GenerateResponse(BaseModel):
    outcome: str
    plan_id: str
    version: int
    status: str
    plan_type: str


# =============================================================================
# Endpoints
# =============================================================================


@router.post("/generate", response_model=GenerateResponse)
async def generate_plan(
    request: GenerateRequest,
    response: Response,
    user: AuthenticatedUser = Depends(get_current_user),
    orchestrator: GenerationOrchestrator = Depends(get_orchestrator),
) -> GenerateResponse:
    """Start plan generation (202), or report an existing completed plan (200)."""
    try:
        result = await orchestrator.request_generation(
            user.id,
            regenerate=request.regenerate,
            plan_type=request.plan_type,
        )
    except GlowfitError as e:
        logger.info(f"Generation request rejected for user {user.id}: {e}")
        raise http_error(e) from e

    response.status_code = 202 if result.accepted else 200
    return GenerateResponse(
        outcome=result.outcome,
        plan_id=result.plan.id,
        version=result.plan.version,
        status=result.plan.status.value,
        plan_type=result.plan.plan_type.value,
    )


@router.get("/status", response_model=GenerationStatus)
async def get_generation_status(
    user: AuthenticatedUser = Depends(get_current_user),
    orchestrator: GenerationOrchestrator = Depends(get_orchestrator),
) -> GenerationStatus:
    try:
        return await orchestrator.status(user.id)
    except GlowfitError as e:
        raise http_error(e) from e


@router.get("/status/stream")
async def stream_generation_status(
    interval_ms: int | None = Query(default=None, ge=250, le=60000),
    user: AuthenticatedUser = Depends(get_current_user),
    poller: StatusPoller = Depends(get_poller),
):
    """Server-sent status events until the plan completes or fails."""

    async def event_generator():
        async for status in poller.poll(user.id, interval_ms):
            event = "done" if status.is_terminal else "status"
            yield {"event": event, "data": status.model_dump_json()}

    return EventSourceResponse(event_generator())


@router.get("/active")
async def get_active_plan(
    user: AuthenticatedUser = Depends(get_current_user),
    orchestrator: GenerationOrchestrator = Depends(get_orchestrator),
) -> dict[str, Any]:
    try:
        record: PlanRecord | None = await orchestrator.read_active_plan(user.id)
    except GlowfitError as e:
        raise http_error(e) from e

    if record is None:
        raise HTTPException(status_code=404, detail="No active plan")
    return record.model_dump(mode="json")
