"""
Glowfit - Error taxonomy.

Validation errors are raised before any network call. Generation errors are
terminal for the plan version they occurred on and are stored on the record as
its error message. Persistence errors mean the store could not be read or
written; they never leave a half-applied change behind.
"""

from typing import Any


class GlowfitError(Exception):
    """Base exception for all Glowfit errors."""


# =============================================================================
# Validation
# =============================================================================


class ProfileValidationError(GlowfitError):
    """A profile field is missing or outside its plausible range."""

    def __init__(self, fields: dict[str, str], message: str | None = None):
        self.fields = dict(fields)
        if message is None:
            details = "; ".join(f"{name}: {reason}" for name, reason in sorted(self.fields.items()))
            message = f"Invalid profile: {details}" if details else "Invalid profile"
        super().__init__(message)


class StepOrderError(ProfileValidationError):
    """A step was submitted out of order (beyond the first incomplete step)."""

    def __init__(self, step: int, current_step: int, terminal_step: int):
        self.step = step
        self.current_step = current_step
        self.terminal_step = terminal_step
        super().__init__(
            {"step": f"cannot complete step {step}; next incomplete step is {current_step}"},
            message=f"Step {step} is not reachable (current step {current_step}, terminal {terminal_step})",
        )


class InvalidRequestError(ProfileValidationError):
    """The generation request itself cannot be satisfied (e.g. nothing to carry over)."""

    def __init__(self, field: str, reason: str):
        super().__init__({field: reason}, message=f"Invalid request: {reason}")


# =============================================================================
# Persistence / concurrency
# =============================================================================


class PersistenceError(GlowfitError):
    """The backing store was unreachable or rejected a read/write."""


class GenerationConflictError(GlowfitError):
    """A generation job is already in flight for this user."""

    def __init__(self, user_id: str, plan_id: str | None = None):
        self.user_id = user_id
        self.plan_id = plan_id
        super().__init__(f"Plan generation already in progress for user {user_id}")


# =============================================================================
# Generation
# =============================================================================


class GenerationError(GlowfitError):
    """Base class for failures in the generation pipeline."""

    kind = "generation_error"

    def to_error_message(self) -> str:
        """Human-readable message stored on a failed plan record."""
        return f"{self.kind}: {self}"

    def to_dict(self) -> dict[str, Any]:
        return {"kind": self.kind, "message": str(self)}


class UpstreamFailureError(GenerationError):
    """The generative model returned a non-success response."""

    kind = "upstream_failure"

    def __init__(self, status_code: int | None, upstream_message: str):
        self.status_code = status_code
        self.upstream_message = upstream_message
        status = status_code if status_code is not None else "no status"
        super().__init__(f"model request failed ({status}): {upstream_message}")

    def to_dict(self) -> dict[str, Any]:
        return {**super().to_dict(), "status_code": self.status_code}


class TruncatedOutputError(GenerationError):
    """Model output has unbalanced braces/brackets and was not repaired."""

    kind = "truncated"

    def __init__(self, open_braces: int, close_braces: int, open_brackets: int, close_brackets: int):
        self.open_braces = open_braces
        self.close_braces = close_braces
        self.open_brackets = open_brackets
        self.close_brackets = close_brackets
        super().__init__(
            f"output appears truncated (braces {open_braces}/{close_braces}, "
            f"brackets {open_brackets}/{close_brackets})"
        )


class UnparseableOutputError(GenerationError):
    """Model output could not be parsed after all repair passes."""

    kind = "unparseable"

    def __init__(self, reason: str, position: int, context: str):
        self.reason = reason
        self.position = position
        self.context = context
        super().__init__(f"{reason} at offset {position}: {context}")

    def to_dict(self) -> dict[str, Any]:
        return {**super().to_dict(), "position": self.position, "context": self.context}


class InvalidShapeError(GenerationError):
    """Parsed output is not exactly seven workout days and seven diet days."""

    kind = "invalid_shape"

    def __init__(self, detail: str, workout_days: int | None = None, diet_days: int | None = None):
        self.detail = detail
        self.workout_days = workout_days
        self.diet_days = diet_days
        super().__init__(detail)
