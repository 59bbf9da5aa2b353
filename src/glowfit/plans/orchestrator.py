"""
Plan Generation Orchestrator.

Owns the rules around a generation request:

- At most one generation in flight per user (enforced by the store)
- A completed active plan is returned as-is unless regeneration is asked for
- Profile validation happens before any record or model call
- Each request creates a new version; previous versions are deactivated

The model call itself runs as a background task so the request returns as
soon as the generating record exists.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Literal

from glowfit.db.plans import PlanStore
from glowfit.db.profiles import ProfileStore
from glowfit.errors import GenerationConflictError, InvalidRequestError, PersistenceError, ProfileValidationError
from glowfit.models.plan import GenerationStatus, PlanRecord, PlanStatus, PlanType
from glowfit.models.profile import ProfileSnapshot
from glowfit.plans.service import GenerationService

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GenerationRequestResult:
    """Outcome of a generation request."""

    outcome: Literal["accepted", "already_completed"]
    plan: PlanRecord

    @property
    def accepted(self) -> bool:
        return self.outcome == "accepted"


class GenerationOrchestrator:
    """Accepts generation requests and reports their status."""

    def __init__(self, profiles: ProfileStore, plans: PlanStore, service: GenerationService):
        self._profiles = profiles
        self._plans = plans
        self._service = service
        self._last_status: dict[str, GenerationStatus] = {}
        self._jobs: dict[str, asyncio.Task] = {}

    async def request_generation(
        self,
        user_id: str,
        *,
        regenerate: bool = False,
        plan_type: PlanType | str = PlanType.BOTH,
        background: bool = True,
    ) -> GenerationRequestResult:
        """
        Start generating a plan for the user.

        Args:
            user_id: Profile owner
            regenerate: Replace a completed active plan with a new version
            plan_type: Generate both halves, or one half and carry over the other
            background: Return once the record exists (True) or after the terminal write

        Raises:
            GenerationConflictError: a generation is already in flight
            ProfileValidationError: the profile is missing or invalid
            InvalidRequestError: partial regeneration with nothing to carry over
            PersistenceError: the store could not be read or written
        """
        plan_type = PlanType(plan_type)
        active = await self._plans.read_active_plan(user_id)

        if active is not None and active.status == PlanStatus.GENERATING:
            # TODO: expire generating records left behind by a crashed worker
            raise GenerationConflictError(user_id, active.id)

        if active is not None and active.status == PlanStatus.COMPLETED and not regenerate:
            logger.info(f"User {user_id} already has completed plan v{active.version}")
            self._remember(GenerationStatus.from_record(user_id, active))
            return GenerationRequestResult("already_completed", active)

        carry_over = None
        if plan_type != PlanType.BOTH:
            if active is None or active.status != PlanStatus.COMPLETED or not active.has_full_body:
                raise InvalidRequestError(
                    "plan_type",
                    f"cannot regenerate only the {plan_type.value} plan without a completed plan to keep",
                )
            carry_over = active

        profile = await self._profiles.read_profile(user_id)
        if profile is None:
            raise ProfileValidationError({"profile": "missing"}, message=f"No profile for user {user_id}")
        snapshot = ProfileSnapshot.from_profile({**profile, "user_id": user_id})

        version = await self._plans.latest_version(user_id) + 1
        previous_ids = await self._plans.deactivate_active_plans(user_id)

        try:
            record = await self._plans.create_plan(user_id, version, snapshot.to_record(), plan_type)
        except GenerationConflictError:
            # A concurrent request won; its record is the active one now
            raise
        except PersistenceError:
            await self._restore(previous_ids)
            raise

        logger.info(f"Created plan v{version} ({plan_type.value}) for user {user_id}")
        self._remember(GenerationStatus.from_record(user_id, record))

        if background:
            self._dispatch(record, snapshot, carry_over)
            return GenerationRequestResult("accepted", record)

        finished = await self._service.run(record, snapshot, carry_over)
        self._remember(GenerationStatus.from_record(user_id, finished))
        return GenerationRequestResult("accepted", finished)

    async def start_generation(self, user_id: str) -> None:
        """Fire a first-time generation; used as the onboarding completion hook."""
        result = await self.request_generation(user_id)
        if not result.accepted:
            logger.info(f"Generation not started for user {user_id}: {result.outcome}")

    async def status(self, user_id: str) -> GenerationStatus:
        """Read the generation status from the store."""
        record = await self._plans.read_active_plan(user_id)
        status = GenerationStatus.from_record(user_id, record)
        self._remember(status)
        return status

    def last_known_status(self, user_id: str) -> GenerationStatus | None:
        """Most recent status this process has seen, without touching the store."""
        return self._last_status.get(user_id)

    async def read_active_plan(self, user_id: str) -> PlanRecord | None:
        return await self._plans.read_active_plan(user_id)

    def is_running(self, plan_id: str) -> bool:
        task = self._jobs.get(plan_id)
        return task is not None and not task.done()

    async def drain(self) -> None:
        """Wait for every background generation started by this process."""
        while self._jobs:
            await asyncio.gather(*list(self._jobs.values()), return_exceptions=True)

    def _remember(self, status: GenerationStatus) -> None:
        self._last_status[status.user_id] = status

    def _dispatch(self, record: PlanRecord, snapshot: ProfileSnapshot, carry_over: PlanRecord | None) -> None:
        task = asyncio.create_task(self._run_job(record, snapshot, carry_over))
        self._jobs[record.id] = task
        task.add_done_callback(lambda _: self._jobs.pop(record.id, None))

    async def _run_job(self, record: PlanRecord, snapshot: ProfileSnapshot, carry_over: PlanRecord | None) -> None:
        try:
            finished = await self._service.run(record, snapshot, carry_over)
            self._remember(GenerationStatus.from_record(record.user_id, finished))
        except Exception:
            logger.exception(f"Background generation failed for plan {record.id}")

    async def _restore(self, plan_ids: list[str]) -> None:
        """Re-activate records deactivated for a request that never created its own."""
        for plan_id in plan_ids:
            try:
                await self._plans.activate_plan(plan_id)
            except PersistenceError as e:
                logger.error(f"Could not re-activate plan {plan_id}: {e}")
