"""
LLM package for LLM Race Bench.

This package contains the model client adapter that queries Large Language
Models during a race, with support for OpenAI, Anthropic, Google Gemini,
OpenAI-compatible hosts (Groq, xAI, DeepInfra) and a random baseline, plus the
static model catalog.
"""

from .client import (
    LLMClient,
    BaseLLMProvider,
    OpenAIProvider,
    AnthropicProvider,
    GeminiProvider,
    RandomProvider,
    LLMProviderError,
)

from .models import (
    MODEL_CATALOG,
    PRESET_CONFIGS,
    get_model,
    preset_models,
    select_models,
)

__all__ = [
    # Main client
    "LLMClient",

    # Provider base and implementations
    "BaseLLMProvider",
    "OpenAIProvider",
    "AnthropicProvider",
    "GeminiProvider",
    "RandomProvider",

    # Exceptions
    "LLMProviderError",

    # Catalog
    "MODEL_CATALOG",
    "PRESET_CONFIGS",
    "get_model",
    "preset_models",
    "select_models",
]
