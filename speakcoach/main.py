"""FastAPI application — entry point, middleware, and health endpoint.

Creates the speakcoach API with:
- API versioning via router prefix (/api/v1/)
- CORS middleware (origins from settings)
- Request logging middleware (raw ASGI — no response body buffering)
- Global exception handlers (HTTPException, validation, domain errors, catch-all)
- Health endpoint

Startup loads the lesson script first. A missing or malformed script
raises ScriptLoadError out of create_app(), so the process never serves
traffic without one. A chat provider that cannot be built is logged and
leaves the tutor endpoints answering 503.

Run with: uvicorn speakcoach.main:app --reload
"""

from __future__ import annotations

import logging
import random
import time
from typing import Any

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from speakcoach.config import Settings, get_settings
from speakcoach.errors import CollaboratorError, QuotaStoreError
from speakcoach.schemas import ApiError, ApiResponse

logger = logging.getLogger("speakcoach")


# ---------------------------------------------------------------------------
# Request logging middleware (raw ASGI)
# ---------------------------------------------------------------------------


class RequestLoggingMiddleware:
    """Logs method, path, status code, and duration for every request.

    Does NOT log request/response bodies, query params or client IPs —
    learner utterances and identities stay out of access logs.
    """

    def __init__(self, app: ASGIApp) -> None:
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        """Wraps the ASGI call to measure timing and capture status code."""
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        method = scope.get("method", "?")
        path = scope.get("path", "?")
        start = time.monotonic()
        status_code = 0

        async def logging_send(message: Message) -> None:
            nonlocal status_code
            if message["type"] == "http.response.start":
                status_code = message.get("status", 0)
            await send(message)

        try:
            await self.app(scope, receive, logging_send)
        finally:
            duration_ms = (time.monotonic() - start) * 1000
            logger.info(
                "%s %s %d %.1fms", method, path, status_code, duration_ms
            )


# ---------------------------------------------------------------------------
# Exception handlers
# ---------------------------------------------------------------------------


def _error(status_code: int, code: str, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ApiResponse(
            ok=False,
            error=ApiError(code=code, message=message),
        ).model_dump(),
    )


def _http_exception_response(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Wraps HTTPException in ApiResponse envelope.

    If the detail is already an ApiResponse dict (from deps.py), returns it
    directly. Otherwise wraps in a generic error.
    """
    if isinstance(exc.detail, dict) and "ok" in exc.detail:
        return JSONResponse(status_code=exc.status_code, content=exc.detail)
    return _error(exc.status_code, "HTTP_ERROR", str(exc.detail))


def _validation_error_response(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Wraps Pydantic validation errors in ApiResponse envelope.

    Returns a human-readable summary without leaking internal details.
    """
    errors = exc.errors()
    if errors:
        first = errors[0]
        loc = " -> ".join(str(part) for part in first.get("loc", []))
        msg = first.get("msg", "Validation error")
        detail = f"{loc}: {msg}" if loc else msg
    else:
        detail = "Request validation failed."
    return _error(422, "VALIDATION_ERROR", detail)


def _collaborator_error_response(request: Request, exc: CollaboratorError) -> JSONResponse:
    """The tutor model failed; the learner's lesson did not advance."""
    return _error(502, "AI_UNAVAILABLE", "The tutor is unavailable right now. Please try again.")


def _quota_store_error_response(request: Request, exc: QuotaStoreError) -> JSONResponse:
    """Practice time could not be stored."""
    logger.error("Quota storage failure on %s: %s", request.url.path, exc)
    return _error(503, "QUOTA_UNAVAILABLE", "Practice time could not be saved.")


def _unhandled_exception_response(request: Request, exc: Exception) -> JSONResponse:
    """Catches all unhandled exceptions — never leaks internals to client.

    Logs the full traceback server-side. Returns a generic 500 response.
    """
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    return _error(500, "INTERNAL_ERROR", "An unexpected error occurred.")


# ---------------------------------------------------------------------------
# Service wiring
# ---------------------------------------------------------------------------


def _init_services(settings: Settings) -> None:
    """Loads the lesson script and builds the orchestrator and transcriber.

    Raises:
        ScriptLoadError: If the lesson script cannot be loaded.
    """
    from speakcoach.ai.providers.base import Transcriber
    from speakcoach.api import deps
    from speakcoach.engine.orchestrator import TurnOrchestrator
    from speakcoach.engine.quota import QuotaLedger
    from speakcoach.hooks.sessions import InMemorySessionStore
    from speakcoach.lesson.loader import load_script
    from speakcoach.models import MOCK_MODEL, ModelConfig, config_for_model, resolve_tier

    # 1. Lesson script — fatal on failure
    script = load_script(settings.lesson_script_path)

    # 2. Chat provider — degrade to 503 on failure
    deps._orchestrator = None
    deps._transcriber = None
    deps._transcribe_config = None
    try:
        provider = deps.create_provider(settings.ai_backend, settings)
    except Exception:
        logger.warning(
            "Failed to create AI provider %r. Tutor endpoints will be unavailable.",
            settings.ai_backend,
            exc_info=True,
        )
        return

    if settings.ai_backend == "mock":
        model_config = ModelConfig(provider="mock", model_id=MOCK_MODEL)
    else:
        model_config = config_for_model(settings.chat_model)
        if model_config.provider != settings.ai_backend:
            logger.error(
                "CHAT_MODEL %s belongs to %s, not AI_BACKEND=%s. "
                "Tutor endpoints will be unavailable.",
                settings.chat_model,
                model_config.provider,
                settings.ai_backend,
            )
            return

    # 3. Orchestrator
    deps._orchestrator = TurnOrchestrator(
        script=script,
        session_store=InMemorySessionStore(),
        ledger=QuotaLedger(deps.create_quota_store(settings)),
        provider=provider,
        model_config=model_config,
        rng=random.Random(),
        session_limit_seconds=settings.session_limit_seconds,
    )

    # 4. Transcriber — only providers that accept audio
    if isinstance(provider, Transcriber):
        deps._transcriber = provider
        deps._transcribe_config = (
            model_config if settings.ai_backend == "mock" else resolve_tier("fast")
        )
    else:
        logger.warning("AI_BACKEND=%s has no speech-to-text; /stt will return empty text", settings.ai_backend)

    _check_api_keys(settings)

    logger.info(
        "Tutor services initialized: provider=%s, model=%s, quota=%s, limit=%.0fs",
        settings.ai_backend,
        model_config.model_id,
        settings.quota_backend,
        settings.session_limit_seconds,
    )


def _check_api_keys(settings: Settings) -> None:
    """Warns when the selected backend has no API key configured."""
    key_map = {
        "gemini": ("GOOGLE_API_KEY", settings.google_api_key),
        "anthropic": ("ANTHROPIC_API_KEY", settings.anthropic_api_key),
    }
    if settings.ai_backend in key_map:
        env_var, key_value = key_map[settings.ai_backend]
        if not key_value:
            logger.warning(
                "Missing %s for provider '%s'. Chat turns will fail at runtime.",
                env_var,
                settings.ai_backend,
            )


# ---------------------------------------------------------------------------
# App creation
# ---------------------------------------------------------------------------


def create_app(settings: Settings | None = None) -> FastAPI:
    """Creates and configures the FastAPI application."""
    settings = settings or get_settings()

    logging.basicConfig(level=getattr(logging, settings.log_level.upper(), logging.INFO))

    application = FastAPI(
        title="speakcoach",
        description="Conversational English tutor with a daily practice quota",
        version="0.1.0",
    )

    # -- Middleware (order matters: last added = first executed) --
    application.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials="*" not in settings.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    application.add_middleware(RequestLoggingMiddleware)

    # -- Exception handlers --
    application.add_exception_handler(StarletteHTTPException, _http_exception_response)
    application.add_exception_handler(RequestValidationError, _validation_error_response)
    application.add_exception_handler(CollaboratorError, _collaborator_error_response)
    application.add_exception_handler(QuotaStoreError, _quota_store_error_response)
    application.add_exception_handler(Exception, _unhandled_exception_response)

    # -- Routers --
    _register_routes(application)

    # -- Services (script load is fatal) --
    _init_services(settings)

    return application


def _register_routes(application: FastAPI) -> None:
    """Registers all API routers on the application."""
    from fastapi import APIRouter

    from speakcoach.api.tutor import router as tutor_router

    v1 = APIRouter(prefix="/api/v1")

    @v1.get("/health")
    async def health() -> dict[str, Any]:
        return ApiResponse(ok=True, data={"status": "healthy"}).model_dump()

    v1.include_router(tutor_router, tags=["tutor"])

    application.include_router(v1)


app = create_app()
