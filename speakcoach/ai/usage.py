"""Structured usage logging for AI calls.

Emits one structured log line per AI call with all fields needed for
cost analysis. Machine-parseable via the ``extra`` dict — standard JSON
log formatters pick these up automatically.

Logger name: ``speakcoach.ai.usage``

Never logs utterance or reply text, only identifiers and counters.
"""

import logging

logger = logging.getLogger("speakcoach.ai.usage")


def log_ai_call(
    *,
    model_id: str,
    prompt_tokens: int,
    completion_tokens: int,
    latency_ms: float,
    identity: str,
    phase: str,
    call_type: str,
) -> None:
    """Emits a structured INFO log for a completed AI call.

    Args:
        model_id: The model identifier used for this call.
        prompt_tokens: Number of input tokens consumed.
        completion_tokens: Number of output tokens generated.
        latency_ms: Wall-clock duration of the AI call in milliseconds.
        identity: The learner identity the call served.
        phase: The lesson phase the call was made in ("" for transcription).
        call_type: "chat" or "transcribe".
    """
    logger.info(
        "AI call: %s %s tokens_in=%d tokens_out=%d latency=%.0fms identity=%s phase=%s",
        call_type,
        model_id,
        prompt_tokens,
        completion_tokens,
        latency_ms,
        identity,
        phase,
        extra={
            "model_id": model_id,
            "prompt_tokens": prompt_tokens,
            "completion_tokens": completion_tokens,
            "latency_ms": latency_ms,
            "identity": identity,
            "phase": phase,
            "call_type": call_type,
        },
    )
