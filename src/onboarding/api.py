"""
Onboarding API Endpoints.

Separate router from the plan endpoints. Every accepted step is persisted
before the response is sent, so a client can resume from GET /state after
any interruption.
"""

import logging
from typing import Any

from fastapi import APIRouter, Body, Depends, Path
from pydantic import BaseModel

from glowfit.errors import GlowfitError
from glowfit.models.profile import OnboardingProgress
from glowfit.web.auth import AuthenticatedUser, get_current_user
from glowfit.web.dependencies import get_sequencer, http_error

from .forms import get_form_options
from .sequencer import StepSequencer
from .state import resume_target

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/onboarding", tags=["onboarding"])


# =============================================================================
# Response Models
# =============================================================================


class StateResponse(BaseModel):
    """Current onboarding state response."""
    user_id: str
    current_step: int
    terminal_step: int
    complete: bool
    resume: dict
    answers: dict[str, Any]


class StepResponse(BaseModel):
    """Response after completing a step."""
    success: bool
    current_step: int
    complete: bool


def _state_response(progress: OnboardingProgress, sequencer: StepSequencer) -> StateResponse:
    target = resume_target(progress, sequencer.first_step, sequencer.terminal_step)
    return StateResponse(
        user_id=progress.user_id,
        current_step=progress.current_step,
        terminal_step=sequencer.terminal_step,
        complete=progress.complete,
        resume=target.to_dict(),
        answers=progress.answers,
    )


# =============================================================================
# Endpoints
# =============================================================================


@router.get("/state", response_model=StateResponse)
async def get_onboarding_state(
    user: AuthenticatedUser = Depends(get_current_user),
    sequencer: StepSequencer = Depends(get_sequencer),
) -> StateResponse:
    """Get or create the user's onboarding progress and resume target."""
    try:
        progress = await sequencer.progress(user.id, user.email)
    except GlowfitError as e:
        raise http_error(e) from e
    return _state_response(progress, sequencer)


@router.get("/options")
async def get_onboarding_options():
    """Selectable values and accepted ranges for the onboarding screens."""
    return get_form_options()


@router.post("/steps/{step}", response_model=StepResponse)
async def submit_step(
    step: int = Path(ge=1),
    payload: dict[str, Any] = Body(default_factory=dict),
    user: AuthenticatedUser = Depends(get_current_user),
    sequencer: StepSequencer = Depends(get_sequencer),
) -> StepResponse:
    """Complete a step with its answers."""
    try:
        progress = await sequencer.advance(user.id, step, payload)
    except GlowfitError as e:
        logger.info(f"Step {step} rejected for user {user.id}: {e}")
        raise http_error(e) from e

    return StepResponse(success=True, current_step=progress.current_step, complete=progress.complete)


@router.post("/reset", response_model=StateResponse)
async def reset_onboarding(
    user: AuthenticatedUser = Depends(get_current_user),
    sequencer: StepSequencer = Depends(get_sequencer),
) -> StateResponse:
    """Return to the first step. Collected answers are kept."""
    try:
        progress = await sequencer.reset(user.id)
    except GlowfitError as e:
        raise http_error(e) from e
    return _state_response(progress, sequencer)
