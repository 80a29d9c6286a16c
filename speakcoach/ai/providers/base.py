"""Base AI provider interfaces and usage type.

Defines the contracts every language-model collaborator must satisfy:
AIProvider for chat completion and Transcriber for speech-to-text. The
lesson engine depends only on these ABCs, never on an SDK.

Leaf module — imports only stdlib and speakcoach.models.
No schemas, no config, no framework imports.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass

from speakcoach.models import ModelConfig


@dataclass(frozen=True)
class UsageInfo:
    """Token usage from a completed AI call, for cost logging."""

    prompt_tokens: int
    completion_tokens: int


# ---------------------------------------------------------------------------
# AIProvider ABC — chat completion
# ---------------------------------------------------------------------------


class AIProvider(ABC):
    """Abstract base for chat-completion providers.

    Concrete implementations (GeminiProvider, AnthropicProvider,
    MockProvider) implement complete() against their respective APIs.
    Transient transport errors may be retried inside the provider; any
    error that escapes complete() fails the current turn.
    """

    @abstractmethod
    async def complete(
        self,
        *,
        system_prompt: str,
        messages: list[dict[str, str]],
        model_config: ModelConfig,
    ) -> tuple[str | None, UsageInfo]:
        """Returns the reply text and usage info.

        Args:
            system_prompt: The phase instruction for this turn.
            messages: Prior turns plus the new utterance as
                {"role": "user" | "assistant", "content": ...} dicts.
            model_config: Provider-specific configuration (model ID,
                thinking budget, output cap).

        Returns:
            Tuple of (reply text, token usage). The text is None or empty
            when the response carried no usable text.
        """


# ---------------------------------------------------------------------------
# Transcriber ABC — speech-to-text
# ---------------------------------------------------------------------------


class Transcriber(ABC):
    """Abstract base for audio transcription."""

    @abstractmethod
    async def transcribe(
        self,
        *,
        audio: bytes,
        mime_type: str,
        language: str,
        model_config: ModelConfig,
    ) -> str:
        """Transcribes a recorded utterance.

        Args:
            audio: Raw audio bytes as uploaded by the client.
            mime_type: Audio MIME type, e.g. "audio/webm".
            language: Expected spoken language code, e.g. "en".
            model_config: Provider-specific configuration.

        Returns:
            The transcript text (may be empty for silence).
        """
