"""
Onboarding State Rules.

Pure functions over OnboardingProgress: where the cursor moves after a step,
where a returning user resumes, and when calorie targets can be computed.
The StepSequencer applies these rules and persists the result.
"""

from dataclasses import dataclass
from enum import Enum

from glowfit.models.profile import MAINTAIN_GOAL, OnboardingProgress

DEFAULT_FIRST_STEP = 1
DEFAULT_TERMINAL_STEP = 22

# Calorie inputs are all collected by these steps
CALORIE_STEP_MAINTAIN = 10   # maintain-weight never asks for a target weight
CALORIE_STEP_DEFAULT = 12    # target weight + timeline screen


class ResumeRoute(Enum):
    """Where a returning user lands."""
    ONBOARDING = "onboarding"
    MAIN_APP = "main_app"


@dataclass(frozen=True)
class ResumeTarget:
    route: ResumeRoute
    step: int | None = None

    def to_dict(self) -> dict:
        return {"route": self.route.value, "step": self.step}


def next_cursor(current_step: int, completed_step: int, terminal_step: int) -> int:
    """
    Cursor after completing a step.

    Never the completed step itself, never backwards, never past the terminal step.
    """
    return min(terminal_step, max(current_step, completed_step + 1))


def calorie_step_for(fitness_goal: str | None) -> int:
    """Step after which all calorie inputs have been collected."""
    if fitness_goal == MAINTAIN_GOAL:
        return CALORIE_STEP_MAINTAIN
    return CALORIE_STEP_DEFAULT


def needs_calorie_target(progress: OnboardingProgress, completed_step: int) -> bool:
    """True once the goal's calorie step is done and no target is stored yet."""
    if progress.has_calorie_target:
        return False
    return completed_step >= calorie_step_for(progress.answers.get("fitness_goal"))


def resume_target(
    progress: OnboardingProgress,
    first_step: int = DEFAULT_FIRST_STEP,
    terminal_step: int = DEFAULT_TERMINAL_STEP,
) -> ResumeTarget:
    """Main app when complete; otherwise the first incomplete step, clamped to the flow."""
    if progress.complete:
        return ResumeTarget(ResumeRoute.MAIN_APP)
    step = min(terminal_step, max(first_step, progress.current_step))
    return ResumeTarget(ResumeRoute.ONBOARDING, step)
