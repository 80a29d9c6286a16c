"""Google Gemini provider: tutor replies and speech-to-text via google-genai.

One client serves both jobs. Chat turns send the phase instruction as
the system instruction with a short output cap, since replies are spoken
back to the learner. Transcription sends the recording inline next to a
verbatim-transcript instruction and lets the answer run uncapped.

Thinking parts never reach the learner. 429 and 5xx responses go through
the shared backoff in speakcoach.ai.providers.retry; everything else
propagates to the orchestrator.
"""

import logging

from google import genai
from google.genai import errors as genai_errors
from google.genai import types

from speakcoach.ai.providers.base import (
    AIProvider,
    ModelConfig,
    Transcriber,
    UsageInfo,
)
from speakcoach.ai.providers.retry import with_retries

logger = logging.getLogger(__name__)

_DEFAULT_TEMPERATURE = 0.7
_SDK_ERRORS = (genai_errors.ClientError, genai_errors.ServerError)

_TRANSCRIBE_INSTRUCTION = (
    "Transcribe this recording of a language learner speaking {language}. "
    "Return only the words spoken, exactly as said, including mistakes. "
    "Return an empty response if nothing intelligible is said."
)

# Provider-neutral role → Gemini role.
_ROLES = {"user": "user", "assistant": "model"}


def _is_retryable(exc: Exception) -> bool:
    """True for rate limiting (ClientError 429) and any ServerError."""
    if isinstance(exc, genai_errors.ServerError):
        return True
    return isinstance(exc, genai_errors.ClientError) and exc.code == 429


def _build_contents(messages: list[dict[str, str]]) -> list[types.Content]:
    """Turns {"role", "content"} dicts into Gemini Content objects."""
    return [
        types.Content(
            role=_ROLES.get(msg["role"], msg["role"]),
            parts=[types.Part(text=msg["content"])],
        )
        for msg in messages
    ]


def _build_config(
    system_prompt: str | None,
    model_config: ModelConfig,
    temperature: float = _DEFAULT_TEMPERATURE,
    capped: bool = True,
) -> types.GenerateContentConfig:
    """Generation settings for one call.

    ``capped`` applies model_config.max_output_tokens; transcription turns
    it off so long recordings are not cut mid-sentence.
    """
    return types.GenerateContentConfig(
        system_instruction=system_prompt,
        temperature=temperature,
        max_output_tokens=model_config.max_output_tokens if capped else None,
        thinking_config=types.ThinkingConfig(
            thinking_budget=model_config.thinking_budget,
        ),
    )


def _extract_text(response: types.GenerateContentResponse) -> str:
    """Concatenates visible text across candidates, skipping thought parts."""
    chunks: list[str] = []
    for candidate in response.candidates or []:
        if candidate.content is None or candidate.content.parts is None:
            continue
        for part in candidate.content.parts:
            if getattr(part, "thought", False) or part.text is None:
                continue
            chunks.append(part.text)
    return "".join(chunks)


def _extract_usage(response: types.GenerateContentResponse) -> UsageInfo:
    meta = response.usage_metadata
    if meta is None:
        return UsageInfo(prompt_tokens=0, completion_tokens=0)
    return UsageInfo(
        prompt_tokens=meta.prompt_token_count or 0,
        completion_tokens=meta.candidates_token_count or 0,
    )


class GeminiProvider(AIProvider, Transcriber):
    """Gemini chat and transcription over one google-genai client.

    Args:
        api_key: Google API key for Gemini access.
    """

    def __init__(self, api_key: str) -> None:
        # The SDK's own retries are off; with_retries owns backoff.
        self._client = genai.Client(
            api_key=api_key,
            http_options=types.HttpOptions(
                retry_options=types.HttpRetryOptions(attempts=1),
            ),
        )

    async def _generate(
        self,
        label: str,
        model_config: ModelConfig,
        contents: list[types.Content],
        config: types.GenerateContentConfig,
    ) -> types.GenerateContentResponse:
        return await with_retries(
            f"Gemini {label}",
            lambda: self._client.aio.models.generate_content(
                model=model_config.model_id,
                contents=contents,
                config=config,
            ),
            retry_on=_SDK_ERRORS,
            is_retryable=_is_retryable,
        )

    async def complete(
        self,
        *,
        system_prompt: str,
        messages: list[dict[str, str]],
        model_config: ModelConfig,
    ) -> tuple[str | None, UsageInfo]:
        """Returns the tutor reply and token usage for one turn."""
        response = await self._generate(
            "complete",
            model_config,
            _build_contents(messages),
            _build_config(system_prompt, model_config),
        )
        return _extract_text(response), _extract_usage(response)

    async def transcribe(
        self,
        *,
        audio: bytes,
        mime_type: str,
        language: str,
        model_config: ModelConfig,
    ) -> str:
        """Returns a verbatim transcript of the recording.

        Temperature 0 keeps repeated uploads of the same clip stable.
        """
        contents = [
            types.Content(
                role="user",
                parts=[
                    types.Part.from_bytes(data=audio, mime_type=mime_type),
                    types.Part(text=_TRANSCRIBE_INSTRUCTION.format(language=language)),
                ],
            )
        ]
        response = await self._generate(
            "transcribe",
            model_config,
            contents,
            _build_config(None, model_config, temperature=0.0, capped=False),
        )
        text = _extract_text(response).strip()
        logger.debug("Transcribed %d bytes of %s into %d chars", len(audio), mime_type, len(text))
        return text
