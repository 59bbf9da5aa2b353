"""
Glowfit - LLM Client.

Raw-text completions for plan generation. Output is repaired and validated by
glowfit.plans, not by the client.
"""

from glowfit.llm.circuit import CircuitBreaker
from glowfit.llm.client import LLMResponse, call_llm_text, get_circuit_breaker, get_client

__all__ = [
    "CircuitBreaker",
    "LLMResponse",
    "call_llm_text",
    "get_circuit_breaker",
    "get_client",
]
