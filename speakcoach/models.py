"""Model ID registry — single source of truth for AI model identifiers.

Every language-model call in the tutor resolves its model ID through this
module. The rest of the codebase imports family-name constants from here —
no raw model ID strings anywhere else.

Two-layer abstraction:
  Layer 1: TIER_MAP resolves a capability tier → ModelConfig
  Layer 2: Model ID constants (updated when providers release new versions)

Tutor replies are short spoken turns, so every tier caps output at
DEFAULT_MAX_OUTPUT_TOKENS unless overridden.
"""

from dataclasses import dataclass

# ---------------------------------------------------------------------------
# Model IDs (update when providers release new versions)
# ---------------------------------------------------------------------------

# --- Claude models ---
CLAUDE_HAIKU: str = "claude-haiku-4-5-20251001"
CLAUDE_SONNET: str = "claude-sonnet-4-6"

# --- Gemini models ---
GEMINI_FLASH_LITE: str = "gemini-flash-lite-latest"
GEMINI_FLASH: str = "gemini-3-flash-preview"

# --- Offline ---
MOCK_MODEL: str = "mock-v1"

DEFAULT_MAX_OUTPUT_TOKENS = 120


# ---------------------------------------------------------------------------
# ModelConfig — bundles all provider-specific configuration for a call
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ModelConfig:
    """Bundles all provider-specific configuration for a model call.

    Leaf module — no project imports. Constructed in TIER_MAP below or
    from settings via config_for_model(), consumed by providers.
    """

    provider: str          # "gemini", "anthropic" or "mock"
    model_id: str          # e.g. "gemini-3-flash-preview"
    thinking_budget: int = 0  # Gemini thinking tokens (0 = off)
    max_output_tokens: int = DEFAULT_MAX_OUTPUT_TOKENS


# ---------------------------------------------------------------------------
# Capability tier → ModelConfig
# ---------------------------------------------------------------------------
# "standard" drives the chat turn; "fast" drives transcription.

TIER_MAP: dict[str, ModelConfig] = {
    "fast": ModelConfig(provider="gemini", model_id=GEMINI_FLASH_LITE),
    "standard": ModelConfig(provider="gemini", model_id=GEMINI_FLASH),
}


def resolve_tier(tier: str) -> ModelConfig:
    """Resolves a capability tier name to its ModelConfig.

    Raises:
        KeyError: If the tier name is not found in TIER_MAP.
    """
    return TIER_MAP[tier]


# ---------------------------------------------------------------------------
# Lookup maps — env var value → actual model ID / owning provider
# ---------------------------------------------------------------------------
# Keys match the constant names exactly (case-sensitive).
MODEL_MAP: dict[str, str] = {
    "CLAUDE_HAIKU": CLAUDE_HAIKU,
    "CLAUDE_SONNET": CLAUDE_SONNET,
    "GEMINI_FLASH_LITE": GEMINI_FLASH_LITE,
    "GEMINI_FLASH": GEMINI_FLASH,
    "MOCK": MOCK_MODEL,
}

_PROVIDER_BY_MODEL: dict[str, str] = {
    CLAUDE_HAIKU: "anthropic",
    CLAUDE_SONNET: "anthropic",
    GEMINI_FLASH_LITE: "gemini",
    GEMINI_FLASH: "gemini",
    MOCK_MODEL: "mock",
}


def config_for_model(model_id: str) -> ModelConfig:
    """Builds a ModelConfig for a resolved model ID.

    Args:
        model_id: An actual model ID (a MODEL_MAP value).

    Returns:
        ModelConfig routed to the provider that serves the model.

    Raises:
        KeyError: If the model ID is not registered.
    """
    return ModelConfig(provider=_PROVIDER_BY_MODEL[model_id], model_id=model_id)
