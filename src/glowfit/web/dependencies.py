"""
Shared FastAPI dependencies.

Stores, orchestrator and sequencer are process-wide singletons wired from
settings. Tests replace them through app.dependency_overrides.
"""

from functools import lru_cache

from fastapi import Depends, HTTPException

from glowfit.config import settings
from glowfit.db.plans import PlanStore, SupabasePlanStore
from glowfit.db.profiles import ProfileStore, SupabaseProfileStore
from glowfit.errors import (
    GenerationConflictError,
    GenerationError,
    GlowfitError,
    PersistenceError,
    ProfileValidationError,
)
from glowfit.plans.orchestrator import GenerationOrchestrator
from glowfit.plans.poller import StatusPoller
from glowfit.plans.service import GenerationService
from onboarding.sequencer import StepSequencer


@lru_cache
def get_profile_store() -> ProfileStore:
    return SupabaseProfileStore(first_step=settings.onboarding_first_step)


@lru_cache
def get_plan_store() -> PlanStore:
    return SupabasePlanStore()


@lru_cache
def get_orchestrator() -> GenerationOrchestrator:
    plans = get_plan_store()
    return GenerationOrchestrator(get_profile_store(), plans, GenerationService(plans))


@lru_cache
def get_sequencer() -> StepSequencer:
    return StepSequencer(
        get_profile_store(),
        first_step=settings.onboarding_first_step,
        terminal_step=settings.onboarding_terminal_step,
        on_complete=get_orchestrator().start_generation,
    )


def get_poller(orchestrator: GenerationOrchestrator = Depends(get_orchestrator)) -> StatusPoller:
    return StatusPoller(orchestrator.status)


def http_error(error: GlowfitError) -> HTTPException:
    """Map a domain error to the HTTP status callers see."""
    if isinstance(error, ProfileValidationError):
        return HTTPException(status_code=422, detail={"message": str(error), "fields": error.fields})
    if isinstance(error, GenerationConflictError):
        return HTTPException(status_code=409, detail={"message": str(error), "plan_id": error.plan_id})
    if isinstance(error, PersistenceError):
        return HTTPException(status_code=503, detail={"message": str(error)})
    if isinstance(error, GenerationError):
        return HTTPException(status_code=502, detail=error.to_dict())
    return HTTPException(status_code=500, detail={"message": str(error)})
