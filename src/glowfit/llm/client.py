"""
Glowfit - LLM Client.

Wraps the OpenAI SDK for single-prompt text completions. The base URL is
configurable so any OpenAI-compatible endpoint (including Gemini's) works.

Non-success responses are raised as UpstreamFailureError and are never retried
here; retrying is a caller decision (regenerate).
"""

from dataclasses import dataclass

import openai
from openai import AsyncOpenAI

from glowfit.config import settings
from glowfit.errors import UpstreamFailureError
from glowfit.llm.circuit import CircuitBreaker
from glowfit.llm.prompt_logger import log_prompt

# Singleton client instance
_client: AsyncOpenAI | None = None
_breaker: CircuitBreaker | None = None


@dataclass(frozen=True)
class LLMResponse:
    """Raw completion text plus the metadata needed to diagnose it."""

    text: str
    model: str
    finish_reason: str | None = None

    @property
    def hit_length_limit(self) -> bool:
        return self.finish_reason == "length"


def get_client() -> AsyncOpenAI:
    """
    Get the async OpenAI client.

    Uses singleton pattern to reuse connection.
    """
    global _client

    if _client is None:
        _client = AsyncOpenAI(
            api_key=settings.openai_api_key,
            base_url=settings.openai_base_url,
        )

    return _client


def get_circuit_breaker() -> CircuitBreaker:
    """Get the process-wide circuit breaker for model calls."""
    global _breaker

    if _breaker is None:
        _breaker = CircuitBreaker(
            failure_threshold=settings.llm_circuit_failure_threshold,
            cooldown_s=settings.llm_circuit_cooldown_s,
        )

    return _breaker


async def call_llm_text(
    prompt: str,
    *,
    max_tokens: int | None = None,
    temperature: float | None = None,
    model: str | None = None,
    node: str = "generate_plan",
) -> LLMResponse:
    """
    Send one prompt and return the raw completion text.

    Args:
        prompt: The full instruction text
        max_tokens: Output length cap (defaults to settings.plan_max_output_tokens)
        temperature: Sampling temperature (defaults to settings.plan_temperature)
        model: Model name (defaults to settings.plan_model)
        node: Label used for prompt logging

    Raises:
        UpstreamFailureError: non-success status, connection failure, empty output,
            or the model's circuit is open (no request is sent)
    """
    model = model or settings.plan_model
    breaker = get_circuit_breaker()
    if breaker.should_skip(model):
        remaining = breaker.remaining_cooldown(model)
        raise UpstreamFailureError(None, f"circuit open for {model} after repeated failures; retry in {remaining:.0f}s")

    client = get_client()
    config = {
        "max_tokens": max_tokens or settings.plan_max_output_tokens,
        "temperature": settings.plan_temperature if temperature is None else temperature,
    }

    try:
        response = await client.chat.completions.create(
            model=model,
            messages=[{"role": "user", "content": prompt}],
            **config,
        )
    except openai.APIStatusError as e:
        log_prompt(node=node, model=model, prompt=prompt, error=str(e), config=config)
        breaker.record_failure(model)
        raise UpstreamFailureError(e.status_code, e.message) from e
    except openai.APIError as e:
        # Connection errors and timeouts carry no HTTP status
        log_prompt(node=node, model=model, prompt=prompt, error=str(e), config=config)
        breaker.record_failure(model)
        raise UpstreamFailureError(None, str(e)) from e

    choice = response.choices[0] if response.choices else None
    text = choice.message.content if choice and choice.message else None
    finish_reason = choice.finish_reason if choice else None

    log_prompt(node=node, model=model, prompt=prompt, response=text, config=config)

    if not text:
        breaker.record_failure(model)
        raise UpstreamFailureError(200, "model returned an empty response")

    breaker.record_success(model)

    return LLMResponse(text=text, model=model, finish_reason=finish_reason)
