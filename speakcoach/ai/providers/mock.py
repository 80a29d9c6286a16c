"""Mock AI provider for testing and development.

Deterministic, zero-cost implementation of both AIProvider and Transcriber.
Used by:
- The test suite (via conftest.mock_provider fixture)
- Development mode (AI_BACKEND=mock) for running without API keys
- Reference implementation of the provider contracts

Records every call so tests can assert on the exact instruction and
message list the orchestrator sent.
"""

from dataclasses import dataclass

from speakcoach.ai.providers.base import (
    AIProvider,
    ModelConfig,
    Transcriber,
    UsageInfo,
)

_DEFAULT_REPLY = "Hello from MockProvider"
_DEFAULT_USAGE = UsageInfo(prompt_tokens=10, completion_tokens=5)


@dataclass(frozen=True)
class RecordedCall:
    """One complete() invocation as the provider saw it."""

    system_prompt: str
    messages: list[dict[str, str]]
    model_config: ModelConfig


class MockProvider(AIProvider, Transcriber):
    """Deterministic AI provider for testing.

    Args:
        reply: Text returned by complete(). None simulates a response
            with no text part.
        transcript: Text returned by transcribe().
        usage: Token usage returned by complete(). Defaults to 10/5.
        error: If set, complete() and transcribe() raise this immediately.
    """

    def __init__(
        self,
        reply: str | None = _DEFAULT_REPLY,
        transcript: str = "",
        usage: UsageInfo | None = None,
        error: Exception | None = None,
    ) -> None:
        self.reply = reply
        self.transcript = transcript
        self.usage = usage or _DEFAULT_USAGE
        self.error = error
        self.calls: list[RecordedCall] = []
        self.transcribed: list[bytes] = []

    async def complete(
        self,
        *,
        system_prompt: str,
        messages: list[dict[str, str]],
        model_config: ModelConfig,
    ) -> tuple[str | None, UsageInfo]:
        """Records the call and returns the configured reply."""
        self.calls.append(
            RecordedCall(
                system_prompt=system_prompt,
                messages=list(messages),
                model_config=model_config,
            )
        )
        if self.error is not None:
            raise self.error
        return self.reply, self.usage

    async def transcribe(
        self,
        *,
        audio: bytes,
        mime_type: str,
        language: str,
        model_config: ModelConfig,
    ) -> str:
        """Records the audio and returns the configured transcript."""
        self.transcribed.append(audio)
        if self.error is not None:
            raise self.error
        return self.transcript
