"""
Per-model circuit breaker.

After CIRCUIT_FAILURE_THRESHOLD consecutive upstream failures a model is
skipped for the cooldown period, so a systemically failing endpoint is not
called again for every new generation request. A success closes the circuit.

State is in-process only. Nothing here retries a call.
"""

import logging
import time
from dataclasses import dataclass
from typing import Callable

logger = logging.getLogger(__name__)

CIRCUIT_FAILURE_THRESHOLD = 3     # Consecutive failures before the circuit opens
CIRCUIT_COOLDOWN_S = 5 * 60       # 5 minutes


@dataclass
class CircuitState:
    failures: int = 0
    last_failure_at: float = 0.0
    is_open: bool = False


class CircuitBreaker:
    """Tracks consecutive failures per model name."""

    def __init__(
        self,
        failure_threshold: int = CIRCUIT_FAILURE_THRESHOLD,
        cooldown_s: float = CIRCUIT_COOLDOWN_S,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.failure_threshold = failure_threshold
        self.cooldown_s = cooldown_s
        self._clock = clock
        self._states: dict[str, CircuitState] = {}

    def _state(self, model: str) -> CircuitState:
        return self._states.setdefault(model, CircuitState())

    def should_skip(self, model: str) -> bool:
        """True while the model's circuit is open and cooling down."""
        state = self._state(model)
        if not state.is_open:
            return False

        if self._clock() - state.last_failure_at < self.cooldown_s:
            return True

        logger.info(f"Circuit cooldown passed for {model}; closing")
        state.is_open = False
        state.failures = 0
        return False

    def record_failure(self, model: str) -> None:
        state = self._state(model)
        state.failures += 1
        state.last_failure_at = self._clock()
        if state.failures >= self.failure_threshold and not state.is_open:
            state.is_open = True
            logger.warning(f"Circuit opened for {model} after {state.failures} consecutive failures")

    def record_success(self, model: str) -> None:
        state = self._state(model)
        state.failures = 0
        state.is_open = False

    def remaining_cooldown(self, model: str) -> float:
        state = self._state(model)
        if not state.is_open:
            return 0.0
        return max(0.0, self.cooldown_s - (self._clock() - state.last_failure_at))
