"""
Glowfit - Shared data contracts.
"""

from glowfit.models.plan import (
    DAY_NAMES,
    DAYS_PER_PLAN,
    DietDay,
    GeneratedPlan,
    GenerationState,
    GenerationStatus,
    PlanRecord,
    PlanStatus,
    PlanType,
    WorkoutDay,
)
from glowfit.models.profile import (
    MAINTAIN_GOAL,
    OnboardingProgress,
    ProfileSnapshot,
)

__all__ = [
    "DAY_NAMES",
    "DAYS_PER_PLAN",
    "DietDay",
    "GeneratedPlan",
    "GenerationState",
    "GenerationStatus",
    "MAINTAIN_GOAL",
    "OnboardingProgress",
    "PlanRecord",
    "PlanStatus",
    "PlanType",
    "ProfileSnapshot",
    "WorkoutDay",
]
