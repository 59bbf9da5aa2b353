"""
Glowfit - Configuration and settings.

All externally supplied configuration (model endpoint and credential, polling
interval, output length cap, Supabase connection) lives here.
"""

import logging
from functools import lru_cache
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class GlowfitSettings(BaseSettings):
    """Application settings loaded from the environment and `.env`."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Generative model (OpenAI-compatible endpoint)
    openai_api_key: str = ""
    openai_base_url: str | None = None
    plan_model: str = "gpt-4.1-mini"
    plan_max_output_tokens: int = 8192
    plan_temperature: float = 0.7
    llm_circuit_failure_threshold: int = 3
    llm_circuit_cooldown_s: float = 300.0

    # Status polling
    poll_interval_ms: int = 3000
    poll_max_backoff_ms: int = 30000

    # Supabase
    supabase_url: str = ""
    supabase_service_role_key: str = ""

    # Onboarding flow
    onboarding_first_step: int = 1
    onboarding_terminal_step: int = 22

    # Application
    glowfit_env: Literal["development", "staging", "production"] = "development"
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"

    # GLOWFIT_LOG_PROMPTS=1 - log prompts and raw model output to local files
    glowfit_log_prompts: bool = False

    @property
    def is_development(self) -> bool:
        return self.glowfit_env == "development"

    @property
    def is_production(self) -> bool:
        return self.glowfit_env == "production"


@lru_cache
def get_settings() -> GlowfitSettings:
    """Get cached settings instance."""
    return GlowfitSettings()


class _SettingsProxy:
    """Lazy proxy for settings to avoid loading .env at import time."""

    _instance: GlowfitSettings | None = None

    def __getattr__(self, name: str):
        if self._instance is None:
            self._instance = get_settings()
        return getattr(self._instance, name)


settings = _SettingsProxy()


def configure_logging(level: str | None = None) -> None:
    """Configure root logging for the CLI and web entry points."""
    logging.basicConfig(
        level=level or settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
