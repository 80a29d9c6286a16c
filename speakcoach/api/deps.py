"""Shared FastAPI dependencies — orchestrator, transcriber, identity.

Module-level singletons set by main.create_app() at startup. Route
handlers access them via FastAPI's Depends() system — never by importing
services directly. Tests swap a singleton by assigning the module
attribute (e.g. ``deps._orchestrator = TurnOrchestrator(...)``).

Usage:
    from speakcoach.api.deps import get_orchestrator, resolve_identity

    @router.post("/something")
    async def do_thing(
        orchestrator: TurnOrchestrator = Depends(get_orchestrator),
    ): ...
"""

import logging

from fastapi import HTTPException, Request

from speakcoach.ai.providers.base import AIProvider, Transcriber
from speakcoach.config import Settings
from speakcoach.engine.orchestrator import TurnOrchestrator
from speakcoach.hooks.interfaces import QuotaStore
from speakcoach.models import ModelConfig
from speakcoach.schemas import ApiError, ApiResponse

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Service singletons — set by create_app() in main.py
# ---------------------------------------------------------------------------

_orchestrator: TurnOrchestrator | None = None
_transcriber: Transcriber | None = None
_transcribe_config: ModelConfig | None = None


# ---------------------------------------------------------------------------
# Dependency providers
# ---------------------------------------------------------------------------


def _unavailable(component: str) -> HTTPException:
    return HTTPException(
        status_code=503,
        detail=ApiResponse(
            ok=False,
            error=ApiError(
                code="SERVICE_UNAVAILABLE",
                message=f"{component} is not available.",
            ),
        ).model_dump(),
    )


def get_orchestrator() -> TurnOrchestrator:
    """Returns the turn orchestrator singleton.

    Raises HTTPException(503) if no chat provider could be configured
    at startup.
    """
    if _orchestrator is None:
        raise _unavailable("Tutor engine")
    return _orchestrator


def get_transcriber() -> tuple[Transcriber, ModelConfig] | None:
    """Returns the transcriber and its model config, or None if unconfigured.

    Speech-to-text degrades to an empty transcript rather than an error,
    so this dependency never raises.
    """
    if _transcriber is None or _transcribe_config is None:
        return None
    return _transcriber, _transcribe_config


# ---------------------------------------------------------------------------
# Identity
# ---------------------------------------------------------------------------


def resolve_identity(request: Request, user_id: str | None) -> str:
    """Picks the identity key for a request.

    Precedence: explicit user id, then the first X-Forwarded-For hop,
    then the socket peer address.

    Raises:
        HTTPException: 400 if none of the sources yields a value.
    """
    if user_id and user_id.strip():
        return user_id.strip()

    forwarded = request.headers.get("x-forwarded-for", "")
    first_hop = forwarded.split(",")[0].strip()
    if first_hop:
        return first_hop

    if request.client is not None and request.client.host:
        return request.client.host

    raise HTTPException(
        status_code=400,
        detail=ApiResponse(
            ok=False,
            error=ApiError(
                code="IDENTITY_REQUIRED",
                message="Could not determine who is practising.",
            ),
        ).model_dump(),
    )


# ---------------------------------------------------------------------------
# Factories
# ---------------------------------------------------------------------------


def create_provider(backend: str, settings: Settings) -> AIProvider:
    """Routes an AI backend name to a concrete provider instance.

    Raises:
        ValueError: If the backend name is not recognized.
    """
    # Local imports keep SDKs out of module load for the mock path.
    if backend == "gemini":
        from speakcoach.ai.providers.gemini import GeminiProvider

        return GeminiProvider(api_key=settings.google_api_key)

    if backend == "anthropic":
        from speakcoach.ai.providers.anthropic import AnthropicProvider

        return AnthropicProvider(api_key=settings.anthropic_api_key)

    if backend == "mock":
        from speakcoach.ai.providers.mock import MockProvider

        return MockProvider()

    raise ValueError(
        f"Unknown provider: {backend!r}. "
        f"Expected 'gemini', 'anthropic' or 'mock'."
    )


def create_quota_store(settings: Settings) -> QuotaStore:
    """Builds the quota store selected by QUOTA_BACKEND."""
    if settings.quota_backend == "sql":
        from speakcoach.hooks.quota import SqlQuotaStore

        return SqlQuotaStore(settings.database_url)

    from speakcoach.hooks.quota import InMemoryQuotaStore

    return InMemoryQuotaStore()
