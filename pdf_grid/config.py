"""
Settings read from the environment (populated from .env by the CLI).
"""

import os
from dataclasses import dataclass

from pdf_grid.errors import ConfigurationError

DEFAULT_MODEL = "claude-sonnet-4-6"
DEFAULT_MAX_TOKENS = 16000
DEFAULT_BATCH_ATTEMPTS = 1


@dataclass(frozen=True)
class Settings:
    api_key: str | None = None
    model: str = DEFAULT_MODEL
    max_tokens: int = DEFAULT_MAX_TOKENS
    batch_attempts: int = DEFAULT_BATCH_ATTEMPTS


def _env_positive_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = int(raw.strip())
    except ValueError:
        raise ConfigurationError(f"{name} must be an integer, got {raw!r}") from None
    if value < 1:
        raise ConfigurationError(f"{name} must be >= 1, got {value}")
    return value


def load_settings() -> Settings:
    return Settings(
        api_key=os.getenv("ANTHROPIC_API_KEY") or None,
        model=os.getenv("PDF_GRID_MODEL") or DEFAULT_MODEL,
        max_tokens=_env_positive_int("PDF_GRID_MAX_TOKENS", DEFAULT_MAX_TOKENS),
        batch_attempts=_env_positive_int("PDF_GRID_BATCH_ATTEMPTS", DEFAULT_BATCH_ATTEMPTS),
    )
