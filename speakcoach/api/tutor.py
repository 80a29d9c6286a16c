"""Tutor API routes — chat turns, practice time, speech-to-text, sessions.

- POST /chat            one lesson turn: {reply, timeSpentToday}
- POST /practice-time   add practice seconds: {ok, total}
                        (also served at /ttsTime for existing clients)
- GET  /practice-time   today's seconds and the daily limit
- POST /stt             transcribe an uploaded recording: {text}
- GET  /session         current lesson state for an identity
- DELETE /session       restart the identity's lesson

Chat and practice-time keep the flat wire shapes the browser client
reads; auxiliary endpoints and all errors use the ApiResponse envelope.
Identity comes from userId when given, otherwise from the client IP.
"""

import logging
import time

from fastapi import APIRouter, Depends, File, HTTPException, Query, Request, UploadFile
from pydantic import BaseModel, ConfigDict, Field

from speakcoach.ai.providers.base import Transcriber
from speakcoach.ai.usage import log_ai_call
from speakcoach.api.deps import get_orchestrator, get_transcriber, resolve_identity
from speakcoach.config import get_settings
from speakcoach.engine.orchestrator import TurnOrchestrator
from speakcoach.models import ModelConfig
from speakcoach.schemas import ApiError, ApiResponse, ConversationTurn

logger = logging.getLogger(__name__)

router = APIRouter()

_DEFAULT_AUDIO_TYPE = "audio/webm"


# ---------------------------------------------------------------------------
# Request / response bodies (API-boundary types, local to this module)
# ---------------------------------------------------------------------------


class ChatRequest(BaseModel):
    """Request body for POST /chat."""

    model_config = ConfigDict(populate_by_name=True)

    message: str = Field(min_length=1)
    history: list[ConversationTurn] = Field(default_factory=list)
    user_id: str | None = Field(default=None, alias="userId")


class ChatResponse(BaseModel):
    """Response body for POST /chat."""

    model_config = ConfigDict(populate_by_name=True)

    reply: str
    time_spent_today: float = Field(alias="timeSpentToday")


class PracticeTimeRequest(BaseModel):
    """Request body for POST /practice-time."""

    model_config = ConfigDict(populate_by_name=True)

    seconds: float = Field(ge=0, allow_inf_nan=False)
    user_id: str | None = Field(default=None, alias="userId")


class PracticeTimeResponse(BaseModel):
    """Response body for POST /practice-time."""

    ok: bool = True
    total: float


class TranscriptResponse(BaseModel):
    """Response body for POST /stt."""

    text: str


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------


@router.post("/chat", response_model=ChatResponse)
async def chat(
    body: ChatRequest,
    request: Request,
    orchestrator: TurnOrchestrator = Depends(get_orchestrator),
) -> ChatResponse:
    """Runs one lesson turn for the caller's identity."""
    identity = resolve_identity(request, body.user_id)
    result = await orchestrator.handle_chat_turn(identity, body.message, body.history)
    return ChatResponse(reply=result.reply, time_spent_today=result.time_spent_today)


@router.post("/practice-time", response_model=PracticeTimeResponse)
@router.post("/ttsTime", response_model=PracticeTimeResponse, include_in_schema=False)
async def practice_time(
    body: PracticeTimeRequest,
    request: Request,
    orchestrator: TurnOrchestrator = Depends(get_orchestrator),
) -> PracticeTimeResponse:
    """Adds practice seconds (e.g. finished reply playback) to today's total."""
    identity = resolve_identity(request, body.user_id)
    total = await orchestrator.record_practice_time(identity, body.seconds)
    return PracticeTimeResponse(total=total)


@router.get("/practice-time")
async def get_practice_time(
    request: Request,
    user_id: str | None = Query(default=None, alias="userId"),
    orchestrator: TurnOrchestrator = Depends(get_orchestrator),
) -> dict:
    """Today's practice seconds and the daily allowance."""
    identity = resolve_identity(request, user_id)
    record = await orchestrator.practice_time_today(identity)
    data = record.model_dump()
    data["limit"] = orchestrator.session_limit_seconds
    return ApiResponse(ok=True, data=data).model_dump()


@router.post("/stt", response_model=TranscriptResponse)
async def speech_to_text(
    request: Request,
    audio: UploadFile | None = File(default=None),
    transcriber: tuple[Transcriber, ModelConfig] | None = Depends(get_transcriber),
) -> TranscriptResponse:
    """Transcribes a recorded utterance.

    Any failure, including a recording over STT_MAX_BYTES, yields an empty
    transcript.
    """
    identity = resolve_identity(request, None)
    if audio is None:
        return TranscriptResponse(text="")
    if transcriber is None:
        logger.warning("STT requested but no transcriber is configured")
        return TranscriptResponse(text="")

    engine, model_config = transcriber
    settings = get_settings()
    data = await audio.read(settings.stt_max_bytes + 1)
    if not data:
        return TranscriptResponse(text="")
    if len(data) > settings.stt_max_bytes:
        logger.warning("Recording exceeds %d bytes, not transcribed", settings.stt_max_bytes)
        return TranscriptResponse(text="")

    start = time.monotonic()
    try:
        text = await engine.transcribe(
            audio=data,
            mime_type=audio.content_type or _DEFAULT_AUDIO_TYPE,
            language=settings.stt_language,
            model_config=model_config,
        )
    except Exception:
        logger.exception("Transcription failed (%d bytes)", len(data))
        return TranscriptResponse(text="")

    log_ai_call(
        model_id=model_config.model_id,
        prompt_tokens=0,
        completion_tokens=0,
        latency_ms=(time.monotonic() - start) * 1000,
        identity=identity,
        phase="",
        call_type="transcribe",
    )
    return TranscriptResponse(text=text or "")


@router.get("/session")
async def get_session(
    request: Request,
    user_id: str | None = Query(default=None, alias="userId"),
    orchestrator: TurnOrchestrator = Depends(get_orchestrator),
) -> dict:
    """Returns the caller's lesson state without creating one."""
    identity = resolve_identity(request, user_id)
    session = await orchestrator.get_session(identity)
    if session is None:
        raise HTTPException(
            status_code=404,
            detail=ApiResponse(
                ok=False,
                error=ApiError(
                    code="SESSION_NOT_FOUND",
                    message="No lesson in progress for this learner.",
                ),
            ).model_dump(),
        )
    return ApiResponse(ok=True, data=session.model_dump(mode="json")).model_dump()


@router.delete("/session")
async def reset_session(
    request: Request,
    user_id: str | None = Query(default=None, alias="userId"),
    orchestrator: TurnOrchestrator = Depends(get_orchestrator),
) -> dict:
    """Drops the caller's lesson; the next chat turn starts at warmup."""
    identity = resolve_identity(request, user_id)
    await orchestrator.reset_session(identity)
    return ApiResponse(ok=True).model_dump()
