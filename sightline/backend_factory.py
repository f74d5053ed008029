"""Factory for creating model backends based on configuration."""

from __future__ import annotations

from typing import TYPE_CHECKING

from sightline.backend_base import ModelBackend
from sightline.backend_gemini import GeminiBackend, GeminiConfig

if TYPE_CHECKING:
    from sightline.config import Config


def create_backend(config: Config) -> ModelBackend:
    """Create a backend based on config.llm_provider."""
    if config.llm_provider in ("openai", "ollama"):
        from sightline.backend_openai import OpenAIBackend

        if config.llm_provider == "ollama":
            return OpenAIBackend(
                api_key="ollama",
                base_url=config.ollama_base_url,
                timeout=config.request_timeout,
            )
        return OpenAIBackend(api_key=config.api_key, timeout=config.request_timeout)
    return GeminiBackend(
        GeminiConfig(
            api_key=config.api_key,
            base_url=config.gemini_base_url,
            timeout=config.request_timeout,
        )
    )
