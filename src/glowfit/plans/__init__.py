"""
Glowfit - Weekly plan generation.

Orchestrator (single-flight + versioning), generation service (prompt, model
call, repair, parse, validate, persist) and the status poller.
"""

from glowfit.plans.orchestrator import GenerationOrchestrator, GenerationRequestResult
from glowfit.plans.parser import parse_plan_text
from glowfit.plans.poller import StatusPoller
from glowfit.plans.prompt import build_plan_prompt
from glowfit.plans.service import GenerationService

__all__ = [
    "GenerationOrchestrator",
    "GenerationRequestResult",
    "GenerationService",
    "StatusPoller",
    "build_plan_prompt",
    "parse_plan_text",
]
