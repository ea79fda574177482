"""Application settings loaded from environment variables."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Literal

from pydantic_settings import BaseSettings

if TYPE_CHECKING:
    from biosig.core.llm.retry import RetryPolicy


class Settings(BaseSettings):
    """Biosignal analysis pipeline configuration."""

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}

    biosig_log_level: str = "info"

    # Completion service
    llm_provider: Literal["gemini", "anthropic", "openai", "mock"] = "gemini"
    gemini_api_key: str = ""
    gemini_model: str = "gemini-2.5-flash"
    gemini_base_url: str = "https://generativelanguage.googleapis.com/v1beta"
    anthropic_api_key: str = ""
    anthropic_model: str = "claude-sonnet-4-5-20250929"
    openai_api_key: str = ""
    openai_model: str = "gpt-4o"

    # Retry policy for the mental / physical / stress stages
    llm_max_retries: int = 3
    llm_retry_delay_ms: int = 1000
    llm_timeout_ms: int = 90_000

    # The synthesis stage consumes and produces more text
    synthesis_max_retries: int = 2
    synthesis_retry_delay_ms: int = 2000
    synthesis_timeout_ms: int = 180_000

    # Reference data (empty = bundled norms.yaml)
    norms_path: str = ""

    def model_for_provider(self) -> str:
        """Return the model identifier configured for the active provider."""
        return {
            "gemini": self.gemini_model,
            "anthropic": self.anthropic_model,
            "openai": self.openai_model,
            "mock": "mock",
        }[self.llm_provider]

    def default_policy(self) -> RetryPolicy:
        from biosig.core.llm.retry import RetryPolicy

        return RetryPolicy(
            model=self.model_for_provider(),
            max_retries=self.llm_max_retries,
            retry_delay_ms=self.llm_retry_delay_ms,
            timeout_ms=self.llm_timeout_ms,
        )

    def synthesis_policy(self) -> RetryPolicy:
        from biosig.core.llm.retry import RetryPolicy

        return RetryPolicy(
            model=self.model_for_provider(),
            max_retries=self.synthesis_max_retries,
            retry_delay_ms=self.synthesis_retry_delay_ms,
            timeout_ms=self.synthesis_timeout_ms,
            max_output_tokens=32768,
        )


def get_settings() -> Settings:
    """Create and return a Settings instance."""
    return Settings()


def configure_logging(level: str | None = None) -> None:
    """Configure root logging for applications embedding the pipeline."""
    level_name = (level or get_settings().biosig_log_level).upper()
    logging.basicConfig(
        level=getattr(logging, level_name, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
