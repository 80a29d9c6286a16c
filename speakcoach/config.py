"""App configuration — environment variable loading with typed defaults.

Loads settings from .env file (via python-dotenv) and os.environ.
Real environment variables take precedence over .env file values.

The chat model env var (CHAT_MODEL=GEMINI_FLASH) is resolved to an actual
API model ID at load time via MODEL_MAP from speakcoach.models. When unset
it defaults to a model served by the selected AI_BACKEND.

Usage:
    from speakcoach.config import get_settings
    settings = get_settings()
    print(settings.session_limit_seconds)  # 300.0
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

from speakcoach.models import MODEL_MAP

# Only load .env from the project root — don't traverse parent directories.
PROJECT_ROOT = Path(__file__).resolve().parent.parent
_DOTENV_PATH = PROJECT_ROOT / ".env"

_AI_BACKENDS = ("gemini", "anthropic", "mock")
_QUOTA_BACKENDS = ("memory", "sql")

# CHAT_MODEL default when unset, per AI_BACKEND.
_DEFAULT_CHAT_MODELS = {"gemini": "GEMINI_FLASH", "anthropic": "CLAUDE_HAIKU", "mock": "MOCK"}


@dataclass(frozen=True)
class Settings:
    """Typed configuration for the speakcoach service.

    All fields have sensible defaults for local development.
    chat_model stores the resolved API model ID (not the family name).
    """

    # App
    app_env: str
    app_port: int
    log_level: str
    cors_origins: list[str]

    # AI
    ai_backend: str
    chat_model: str
    google_api_key: str
    anthropic_api_key: str
    stt_language: str
    stt_max_bytes: int

    # Lesson engine
    lesson_script_path: Path
    session_limit_seconds: float

    # Quota storage
    quota_backend: str
    database_url: str


def _resolve_model(env_var: str, value: str) -> str:
    """Resolves a family-name string to an actual model ID via MODEL_MAP.

    Raises:
        ValueError: If the value doesn't match any key in MODEL_MAP.
    """
    if value in MODEL_MAP:
        return MODEL_MAP[value]
    valid = ", ".join(sorted(MODEL_MAP.keys()))
    raise ValueError(
        f"Invalid value for {env_var}: {value!r}. "
        f"Valid options: {valid}"
    )


def _choice(env_var: str, value: str, options: tuple[str, ...]) -> str:
    """Validates that an enum-like env var holds one of the allowed options."""
    normalized = value.strip().lower()
    if normalized not in options:
        raise ValueError(
            f"Invalid value for {env_var}: {value!r}. "
            f"Valid options: {', '.join(options)}"
        )
    return normalized


def _positive_float(env_var: str, value: str) -> float:
    """Parses a strictly positive number of seconds."""
    try:
        parsed = float(value)
    except ValueError:
        raise ValueError(f"Invalid value for {env_var}: {value!r} is not a number") from None
    if parsed <= 0:
        raise ValueError(f"Invalid value for {env_var}: must be positive, got {parsed}")
    return parsed


def _positive_int(env_var: str, value: str) -> int:
    """Parses a strictly positive integer, e.g. a byte limit."""
    try:
        parsed = int(value)
    except ValueError:
        raise ValueError(f"Invalid value for {env_var}: {value!r} is not an integer") from None
    if parsed <= 0:
        raise ValueError(f"Invalid value for {env_var}: must be positive, got {parsed}")
    return parsed


def _split_csv(value: str) -> list[str]:
    """Splits a comma-separated string into a list of stripped, non-empty values."""
    return [item.strip() for item in value.split(",") if item.strip()]


def _resolve_path(value: str) -> Path:
    """Resolves relative paths against the project root."""
    path = Path(value)
    if not path.is_absolute():
        path = PROJECT_ROOT / path
    return path


def _load_settings() -> Settings:
    """Loads configuration from .env file and environment variables.

    Returns:
        A fully resolved Settings instance.
    """
    load_dotenv(_DOTENV_PATH)
    ai_backend = _choice("AI_BACKEND", os.environ.get("AI_BACKEND", "gemini"), _AI_BACKENDS)

    return Settings(
        # App
        app_env=os.environ.get("APP_ENV", "development"),
        app_port=int(os.environ.get("APP_PORT", "3000")),
        log_level=os.environ.get("LOG_LEVEL", "info"),
        cors_origins=_split_csv(os.environ.get("CORS_ORIGINS", "*")),
        # AI
        ai_backend=ai_backend,
        chat_model=_resolve_model(
            "CHAT_MODEL",
            os.environ.get("CHAT_MODEL", _DEFAULT_CHAT_MODELS[ai_backend]),
        ),
        google_api_key=os.environ.get("GOOGLE_API_KEY", ""),
        anthropic_api_key=os.environ.get("ANTHROPIC_API_KEY", ""),
        stt_language=os.environ.get("STT_LANGUAGE", "en"),
        stt_max_bytes=_positive_int(
            "STT_MAX_BYTES", os.environ.get("STT_MAX_BYTES", str(10 * 1024 * 1024)),
        ),
        # Lesson engine
        lesson_script_path=_resolve_path(
            os.environ.get("LESSON_SCRIPT_PATH", "content/script_b1_b2.json")
        ),
        session_limit_seconds=_positive_float(
            "SESSION_LIMIT_SECONDS", os.environ.get("SESSION_LIMIT_SECONDS", "300"),
        ),
        # Quota storage
        quota_backend=_choice(
            "QUOTA_BACKEND", os.environ.get("QUOTA_BACKEND", "memory"), _QUOTA_BACKENDS,
        ),
        database_url=os.environ.get("DATABASE_URL", "sqlite:///./usage.db"),
    )


_settings: Settings | None = None


def get_settings() -> Settings:
    """Returns the singleton Settings instance. Loads .env on first call."""
    global _settings
    if _settings is None:
        _settings = _load_settings()
    return _settings
