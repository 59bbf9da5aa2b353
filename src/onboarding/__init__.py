"""
Glowfit Onboarding.

Step-by-step collection of the fitness profile. Each step's answers are
validated, merged into the profile and the cursor advanced in one write.
Completing the terminal step marks onboarding complete and then requests the
first plan.
"""

from .sequencer import StepSequencer
from .state import ResumeRoute, ResumeTarget, resume_target

__all__ = [
    "ResumeRoute",
    "ResumeTarget",
    "StepSequencer",
    "resume_target",
]
