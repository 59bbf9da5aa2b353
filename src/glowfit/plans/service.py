"""
Plan Generation Service.

Runs one generation attempt for a plan record:

    prompt → model call → fence strip / extract → truncation check
           → repair → parse (with fallback) → 7+7 shape check → persist

Every attempt ends with the record in a terminal status. Generation errors
are stored on the record as its error message; nothing is retried here.
"""

import logging
from typing import Any, Awaitable, Protocol

from glowfit.config import settings
from glowfit.db.plans import PlanStore
from glowfit.errors import GenerationError, InvalidShapeError
from glowfit.llm.client import LLMResponse, call_llm_text
from glowfit.models.plan import DAYS_PER_PLAN, DietDay, GeneratedPlan, PlanRecord, PlanStatus, PlanType
from glowfit.models.profile import ProfileSnapshot
from glowfit.plans.parser import parse_plan_text
from glowfit.plans.prompt import CALORIE_TOLERANCE_KCAL, build_plan_prompt

logger = logging.getLogger(__name__)


class LLMCall(Protocol):
    def __call__(
        self,
        prompt: str,
        *,
        max_tokens: int | None = None,
        temperature: float | None = None,
    ) -> Awaitable[LLMResponse]: ...


def log_calorie_drift(diet: list[DietDay], target_calories: int, tolerance: int = CALORIE_TOLERANCE_KCAL) -> list[str]:
    """
    Log days whose meals drift from the calorie target by more than the tolerance.

    Drift is informational only; it never fails a generation.

    Returns:
        Names of the drifting days
    """
    drifting = []
    for day in diet:
        total = day.meal_calories()
        if total and abs(total - target_calories) > tolerance:
            drifting.append(day.day)
            logger.info(f"Diet day {day.day}: {total:.0f} kcal vs target {target_calories} kcal")
    return drifting


class GenerationService:
    """Turns a profile snapshot into a persisted plan version."""

    def __init__(
        self,
        plans: PlanStore,
        llm: LLMCall = call_llm_text,
        *,
        max_tokens: int | None = None,
        temperature: float | None = None,
    ):
        self._plans = plans
        self._llm = llm
        self._max_tokens = max_tokens or settings.plan_max_output_tokens
        self._temperature = settings.plan_temperature if temperature is None else temperature

    async def generate(self, snapshot: ProfileSnapshot, plan_type: PlanType = PlanType.BOTH) -> GeneratedPlan:
        """
        Call the model and return a validated plan. Persists nothing.

        Raises:
            UpstreamFailureError, TruncatedOutputError,
            UnparseableOutputError, InvalidShapeError
        """
        prompt = build_plan_prompt(snapshot, plan_type)
        response = await self._llm(prompt, max_tokens=self._max_tokens, temperature=self._temperature)

        if response.hit_length_limit:
            logger.warning(f"Model output for user {snapshot.user_id} hit the token limit")

        plan = parse_plan_text(response.text, plan_type)

        if plan_type.includes_diet:
            log_calorie_drift(plan.diet, snapshot.target_calories)

        return plan

    async def run(
        self,
        record: PlanRecord,
        snapshot: ProfileSnapshot,
        carry_over: PlanRecord | None = None,
    ) -> PlanRecord:
        """
        Generate for a record in generating status and write its terminal status.

        Args:
            record: The freshly created plan record
            snapshot: Profile the record was created from
            carry_over: Completed record whose other half is reused on a partial regeneration

        Returns:
            The record as persisted after the terminal write

        Raises:
            PersistenceError: the terminal write could not be made
        """
        logger.info(f"Generating {record.plan_type.value} plan v{record.version} for user {record.user_id}")

        try:
            plan = await self.generate(snapshot, record.plan_type)
            workout, diet = self._merge(record.plan_type, plan, carry_over)
        except GenerationError as e:
            logger.warning(f"Plan {record.id} failed ({e.kind}): {e}")
            return await self._finish(record, PlanStatus.FAILED, error_message=e.to_error_message())
        except Exception as e:
            logger.exception(f"Unexpected error generating plan {record.id}")
            await self._finish(record, PlanStatus.FAILED, error_message=f"internal_error: {e}")
            raise

        finished = await self._finish(record, PlanStatus.COMPLETED, workout_plan=workout, diet_plan=diet)
        logger.info(f"Plan {record.id} completed for user {record.user_id}")
        return finished

    def _merge(
        self,
        plan_type: PlanType,
        plan: GeneratedPlan,
        carry_over: PlanRecord | None,
    ) -> tuple[list[dict[str, Any]], list[dict[str, Any]]]:
        """Combine freshly generated halves with carried-over ones."""
        previous_workout = carry_over.workout_plan if carry_over else []
        previous_diet = carry_over.diet_plan if carry_over else []

        workout = plan.workout_body() if plan_type.includes_workout else list(previous_workout)
        diet = plan.diet_body() if plan_type.includes_diet else list(previous_diet)

        if len(workout) != DAYS_PER_PLAN or len(diet) != DAYS_PER_PLAN:
            raise InvalidShapeError(
                f"combined plan has {len(workout)} workout and {len(diet)} diet days",
                workout_days=len(workout),
                diet_days=len(diet),
            )
        return workout, diet

    async def _finish(self, record: PlanRecord, status: PlanStatus, **fields: Any) -> PlanRecord:
        updated = await self._plans.update_plan_status(record.id, status, **fields)
        if updated is not None:
            return updated
        # Already terminal; report what is stored
        current = await self._plans.get_plan(record.id)
        return current or record
