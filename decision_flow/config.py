"""Configuration helpers for the Decision Flow backend."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Dict, List, Mapping

from dotenv import load_dotenv

PLACEHOLDER_API_KEY = "YOUR_API_KEY"
DEFAULT_TEMPERATURE = 0.5

DEFAULT_MODELS: Dict[str, str] = {
    "openai": "gpt-4o-mini",
    "gemini": "gemini-2.0-flash",
}
PROVIDER_BASE_URLS: Dict[str, str | None] = {
    "openai": None,
    "gemini": "https://generativelanguage.googleapis.com/v1beta/openai/",
}

DEFAULT_ALLOWED_ORIGINS = [
    "http://localhost:3000",
    "http://127.0.0.1:3000",
    "http://localhost:5173",
    "http://127.0.0.1:5173",
]

load_dotenv(override=False)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LLMSettings:
    """Settings container for the generative service.

    OpenAI is considered the primary provider; if its key is missing the
    configuration falls back to Gemini through its OpenAI-compatible endpoint.
    """

    openai_api_key: str | None = None
    gemini_api_key: str | None = None
    model: str | None = None
    temperature: float = DEFAULT_TEMPERATURE

    @property
    def primary_provider(self) -> str | None:
        """Return the preferred provider based on available credentials."""

        if self.openai_api_key:
            return "openai"
        if self.gemini_api_key:
            return "gemini"
        return None

    def get_api_key(self, provider: str | None = None) -> str | None:
        """Return the API key for the requested provider.

        When *provider* is omitted the primary provider's key is returned.
        """

        resolved_provider = provider or self.primary_provider
        if resolved_provider == "openai":
            return self.openai_api_key
        if resolved_provider == "gemini":
            return self.gemini_api_key
        return None

    @property
    def has_any_keys(self) -> bool:
        """True when at least one provider API key is configured."""

        return self.primary_provider is not None

    @property
    def resolved_provider(self) -> str:
        return self.primary_provider or "openai"

    @property
    def resolved_api_key(self) -> str:
        """Return the key to hand the SDK, or the placeholder when none is set."""

        return self.get_api_key() or PLACEHOLDER_API_KEY

    @property
    def resolved_model(self) -> str:
        return self.model or DEFAULT_MODELS[self.resolved_provider]

    @property
    def base_url(self) -> str | None:
        return PROVIDER_BASE_URLS[self.resolved_provider]


def _parse_temperature(environ: Mapping[str, str]) -> float:
    raw = environ.get("DECISIONFLOW_TEMPERATURE")
    if not raw:
        return DEFAULT_TEMPERATURE
    try:
        return float(raw)
    except ValueError:
        logger.warning("Ignoring invalid DECISIONFLOW_TEMPERATURE=%r", raw)
        return DEFAULT_TEMPERATURE


@lru_cache(maxsize=1)
def get_llm_settings() -> LLMSettings:
    """Read environment variables and return cached LLM settings."""

    environ = os.environ
    settings = LLMSettings(
        openai_api_key=environ.get("OPENAI_API_KEY") or None,
        gemini_api_key=environ.get("GEMINI_API_KEY") or None,
        model=environ.get("DECISIONFLOW_MODEL") or None,
        temperature=_parse_temperature(environ),
    )
    if not settings.has_any_keys:
        logger.warning(
            "No OPENAI_API_KEY or GEMINI_API_KEY set. Using a placeholder; generation calls will fail."
        )
    return settings


def resolve_allowed_origins() -> List[str]:
    """Return allowed origins, optionally sourced from an env override."""

    raw = os.getenv("DECISIONFLOW_ALLOWED_ORIGINS")
    if raw:
        return [origin.strip() for origin in raw.split(",") if origin.strip()]
    return DEFAULT_ALLOWED_ORIGINS


def configure_logging() -> None:
    """Apply the process-wide log level from ``DECISIONFLOW_LOG_LEVEL``."""

    level_name = os.getenv("DECISIONFLOW_LOG_LEVEL", "INFO").upper()
    level = getattr(logging, level_name, logging.INFO)
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
