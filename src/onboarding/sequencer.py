"""
Step Sequencer.

Moves a user through the onboarding steps. Each accepted step is one profile
write that merges the step's answers and moves the cursor, so progress survives
interruption and resumes at the first incomplete step.

Side effects hang off successful writes only:
- Calorie targets are computed in the background once their inputs exist
- The completion hook (plan generation) runs after the terminal write
"""

import asyncio
import logging
from functools import partial
from typing import Any, Awaitable, Callable

from glowfit.calories import ensure_calorie_target
from glowfit.db.profiles import ProfileStore
from glowfit.errors import StepOrderError
from glowfit.models.profile import OnboardingProgress

from .forms import validate_answers
from .state import (
    DEFAULT_FIRST_STEP,
    DEFAULT_TERMINAL_STEP,
    ResumeTarget,
    needs_calorie_target,
    next_cursor,
    resume_target,
)

logger = logging.getLogger(__name__)

UserHook = Callable[[str], Awaitable[Any]]


class StepSequencer:
    """Validates, persists and sequences onboarding steps for each user."""

    def __init__(
        self,
        profiles: ProfileStore,
        *,
        first_step: int = DEFAULT_FIRST_STEP,
        terminal_step: int = DEFAULT_TERMINAL_STEP,
        calorie_trigger: UserHook | None = None,
        on_complete: UserHook | None = None,
    ):
        if terminal_step < first_step:
            raise ValueError(f"terminal_step {terminal_step} is before first_step {first_step}")
        self._profiles = profiles
        self.first_step = first_step
        self.terminal_step = terminal_step
        self._calorie_trigger = calorie_trigger or partial(ensure_calorie_target, profiles)
        self._on_complete = on_complete
        self._calorie_tasks: dict[str, asyncio.Task] = {}

    async def progress(self, user_id: str, email: str | None = None) -> OnboardingProgress:
        """Current progress, creating the profile on first access."""
        return await self._profiles.get_or_create(user_id, email)

    async def advance(self, user_id: str, step: int, payload: dict[str, Any] | None = None) -> OnboardingProgress:
        """
        Complete a step: validate its answers, merge them and move the cursor.

        Submitting an already-completed step again is allowed and leaves the
        cursor where it is. Once onboarding is complete this is a no-op.

        Raises:
            ProfileValidationError: the payload has unknown or out-of-range fields
            StepOrderError: the step is outside the flow or beyond the first incomplete step
            PersistenceError: the write failed; progress is unchanged
        """
        progress = await self._profiles.get_or_create(user_id)

        if progress.complete:
            logger.info(f"Onboarding already complete for user {user_id}; step {step} ignored")
            return progress

        if step < self.first_step or step > self.terminal_step or step > progress.current_step:
            raise StepOrderError(step, progress.current_step, self.terminal_step)

        answers = validate_answers(payload or {})
        is_terminal = step == self.terminal_step
        cursor = next_cursor(progress.current_step, step, self.terminal_step)

        updated = await self._profiles.write_profile(user_id, answers, cursor, is_terminal)
        logger.info(f"User {user_id} completed step {step} (cursor {updated.current_step})")

        if needs_calorie_target(updated, step):
            self._schedule_calorie_target(user_id)

        if is_terminal:
            await self._run_completion_hook(user_id)

        return updated

    async def resume(self, user_id: str) -> ResumeTarget:
        """Where a returning user should land."""
        progress = await self._profiles.get_or_create(user_id)
        return resume_target(progress, self.first_step, self.terminal_step)

    async def reset(self, user_id: str) -> OnboardingProgress:
        """Send the user back to the first step. Answers are kept."""
        await self._profiles.get_or_create(user_id)
        progress = await self._profiles.reset_progress(user_id)
        logger.info(f"Onboarding reset for user {user_id}")
        return progress

    async def wait_for_background(self) -> None:
        """Wait for in-flight calorie computations."""
        while self._calorie_tasks:
            await asyncio.gather(*list(self._calorie_tasks.values()), return_exceptions=True)

    def _schedule_calorie_target(self, user_id: str) -> None:
        task = self._calorie_tasks.get(user_id)
        if task is not None and not task.done():
            return
        task = asyncio.create_task(self._compute_calories(user_id))
        self._calorie_tasks[user_id] = task
        task.add_done_callback(partial(self._forget_calorie_task, user_id))

    def _forget_calorie_task(self, user_id: str, task: asyncio.Task) -> None:
        if self._calorie_tasks.get(user_id) is task:
            del self._calorie_tasks[user_id]

    async def _compute_calories(self, user_id: str) -> None:
        try:
            await self._calorie_trigger(user_id)
        except Exception as e:
            logger.warning(f"Calorie calculation failed for user {user_id}: {e}")

    async def _run_completion_hook(self, user_id: str) -> None:
        if self._on_complete is None:
            return
        pending = self._calorie_tasks.get(user_id)
        if pending is not None:
            # Generation reads the stored calorie target
            await asyncio.gather(pending, return_exceptions=True)
        try:
            await self._on_complete(user_id)
        except Exception:
            logger.exception(f"Onboarding completion hook failed for user {user_id}")
