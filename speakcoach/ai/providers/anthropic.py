"""Anthropic Claude provider: tutor replies through the Messages API.

Claude takes no audio input, so this provider only implements AIProvider;
with AI_BACKEND=anthropic, /stt answers with an empty transcript.
Rate limits and 5xx responses go through the shared backoff in
speakcoach.ai.providers.retry.
"""

import logging

import anthropic

from speakcoach.ai.providers.base import AIProvider, ModelConfig, UsageInfo
from speakcoach.ai.providers.retry import with_retries

logger = logging.getLogger(__name__)

_DEFAULT_TEMPERATURE = 0.7


def _is_retryable(exc: Exception) -> bool:
    """429 and 5xx are transient; 400/401/403/404 are the caller's problem."""
    return isinstance(exc, (anthropic.RateLimitError, anthropic.InternalServerError))


class AnthropicProvider(AIProvider):
    """Claude chat completion.

    Args:
        api_key: Anthropic API key for Claude access.
    """

    def __init__(self, api_key: str) -> None:
        self._client = anthropic.AsyncAnthropic(api_key=api_key, max_retries=0)

    async def complete(
        self,
        *,
        system_prompt: str,
        messages: list[dict[str, str]],
        model_config: ModelConfig,
    ) -> tuple[str | None, UsageInfo]:
        """Returns the joined text blocks of Claude's reply and token usage."""
        if model_config.thinking_budget > 0:
            logger.debug("thinking_budget ignored for %s", model_config.model_id)

        response = await with_retries(
            "Anthropic complete",
            lambda: self._client.messages.create(
                model=model_config.model_id,
                system=system_prompt,
                messages=messages,
                max_tokens=model_config.max_output_tokens,
                temperature=_DEFAULT_TEMPERATURE,
            ),
            retry_on=(anthropic.APIStatusError,),
            is_retryable=_is_retryable,
        )

        text = "".join(block.text for block in response.content if block.type == "text")
        usage = UsageInfo(
            prompt_tokens=response.usage.input_tokens,
            completion_tokens=response.usage.output_tokens,
        )
        return text, usage
