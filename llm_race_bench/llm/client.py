"""
LLM client module for race rounds.

This module provides the model client adapter used by the round executor: a
unified interface for querying models across LLM providers within a
per-request deadline, with prompt rendering from round payloads.
"""

from __future__ import annotations

import asyncio
import json
import logging
import os
import random
import time
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, Iterable, List, Optional

from ..core.models import ModelClientAdapter, ModelConfig, ModelResponse, RaceContext, TokenUsage
from ..core.wordle import WORDLE_WORDS
from .models import ANTHROPIC_REASONING_MODELS, GROQ_REASONING_MODELS, REASONING_MODELS

logger = logging.getLogger(__name__)

DEFAULT_MAX_TOKENS = 16
ANTHROPIC_THINKING_BUDGET = 1024


class LLMProviderError(Exception):
    """Custom exception for LLM provider errors."""
    pass


class BaseLLMProvider(ABC):
    """
    Abstract base class for LLM providers.

    One provider instance serves every model of that provider in a race. The
    blocking SDK call runs in a worker thread bounded by the request timeout;
    a timeout propagates as asyncio.TimeoutError, anything else as
    LLMProviderError.
    """

    name = "base"

    async def complete(
        self,
        model: ModelConfig,
        prompt: str,
        timeout_s: float,
        max_tokens: int = DEFAULT_MAX_TOKENS,
    ) -> ModelResponse:
        """
        Query a model.

        Args:
            model: Model configuration
            prompt: Rendered prompt text
            timeout_s: Seconds left before the request deadline
            max_tokens: Completion token cap

        Returns:
            The model's response

        Raises:
            asyncio.TimeoutError: If the request does not finish in time
            LLMProviderError: If the request fails
        """
        try:
            return await asyncio.wait_for(
                asyncio.to_thread(self._call, model, prompt, max_tokens, timeout_s),
                timeout=timeout_s,
            )
        except asyncio.TimeoutError:
            raise
        except LLMProviderError:
            raise
        except Exception as e:
            raise LLMProviderError(f"{self.name} API error: {e}") from e

    @abstractmethod
    def _call(
        self,
        model: ModelConfig,
        prompt: str,
        max_tokens: int,
        timeout_s: Optional[float] = None,
    ) -> ModelResponse:
        """Make the synchronous API call, bounded by timeout_s where the SDK supports it."""
        pass


class OpenAIProvider(BaseLLMProvider):
    """OpenAI chat completions provider; also serves OpenAI-compatible endpoints."""

    name = "openai"
    api_key_env = "OPENAI_API_KEY"
    base_url: Optional[str] = None

    def __init__(self):
        # Import OpenAI only when needed
        try:
            from openai import OpenAI
        except ImportError:
            raise LLMProviderError(
                "OpenAI package not installed. Install with: pip install openai"
            )

        api_key = os.getenv(self.api_key_env)
        if not api_key:
            raise LLMProviderError(
                f"{self.api_key_env} environment variable is required for {self.name} provider"
            )

        if self.base_url:
            self.client = OpenAI(api_key=api_key, base_url=self.base_url)
        else:
            self.client = OpenAI(api_key=api_key)

    def _request_params(self, model: ModelConfig, prompt: str, max_tokens: int) -> Dict[str, Any]:
        params: Dict[str, Any] = {
            "model": model.model_name,
            "messages": [{"role": "user", "content": prompt}],
            "n": 1,
        }

        if model.id in REASONING_MODELS or model.model_name.startswith(("o1", "o3")):
            # Reasoning models reject sampling parameters
            params["max_completion_tokens"] = max_tokens
            if model.reasoning_effort:
                params["reasoning_effort"] = model.reasoning_effort
        else:
            params["temperature"] = model.temperature
            params["top_p"] = model.top_p
            params["max_tokens"] = max_tokens

        return params

    def _call(
        self,
        model: ModelConfig,
        prompt: str,
        max_tokens: int,
        timeout_s: Optional[float] = None,
    ) -> ModelResponse:
        params = self._request_params(model, prompt, max_tokens)
        if timeout_s:
            params["timeout"] = timeout_s

        try:
            response = self.client.chat.completions.create(**params)
        except Exception as e:
            raise LLMProviderError(f"{self.name} completion failed: {e}")

        content = response.choices[0].message.content
        if not content:
            raise LLMProviderError(f"{self.name} returned empty response")

        usage = None
        if response.usage:
            usage = TokenUsage(
                prompt=response.usage.prompt_tokens or 0,
                completion=response.usage.completion_tokens or 0,
                total=response.usage.total_tokens or 0,
            )

        return ModelResponse(
            text=content.strip(),
            usage=usage,
            raw={"provider": self.name, "model": model.model_name},
        )


class GroqProvider(OpenAIProvider):
    """Groq through its OpenAI-compatible endpoint."""

    name = "groq"
    api_key_env = "GROQ_API_KEY"
    base_url = "https://api.groq.com/openai/v1"

    def _request_params(self, model: ModelConfig, prompt: str, max_tokens: int) -> Dict[str, Any]:
        params = super()._request_params(model, prompt, max_tokens)
        if model.id in GROQ_REASONING_MODELS:
            params["extra_body"] = {"reasoning_format": "parsed" if model.enable_thinking else "hidden"}
        return params


class XAIProvider(OpenAIProvider):
    """xAI Grok through its OpenAI-compatible endpoint."""

    name = "xai"
    api_key_env = "XAI_API_KEY"
    base_url = "https://api.x.ai/v1"


class DeepInfraProvider(OpenAIProvider):
    """DeepInfra through its OpenAI-compatible endpoint."""

    name = "deepinfra"
    api_key_env = "DEEPINFRA_API_KEY"
    base_url = "https://api.deepinfra.com/v1/openai"


class AnthropicProvider(BaseLLMProvider):
    """Anthropic Claude provider."""

    name = "anthropic"

    def __init__(self):
        # Import Anthropic only when needed
        try:
            import anthropic
        except ImportError:
            raise LLMProviderError(
                "Anthropic package not installed. Install with: pip install anthropic"
            )

        api_key = os.getenv("ANTHROPIC_API_KEY")
        if not api_key:
            raise LLMProviderError(
                "ANTHROPIC_API_KEY environment variable is required for Anthropic provider"
            )

        self.client = anthropic.Anthropic(api_key=api_key)

    def _call(
        self,
        model: ModelConfig,
        prompt: str,
        max_tokens: int,
        timeout_s: Optional[float] = None,
    ) -> ModelResponse:
        # Anthropic rejects temperature and top_p together; only temperature is sent
        params: Dict[str, Any] = {
            "model": model.model_name,
            "max_tokens": max_tokens,
            "messages": [{"role": "user", "content": prompt}],
        }
        if model.enable_thinking and model.id in ANTHROPIC_REASONING_MODELS:
            # Extended thinking requires the default temperature
            params["thinking"] = {"type": "enabled", "budget_tokens": ANTHROPIC_THINKING_BUDGET}
            params["max_tokens"] = max_tokens + ANTHROPIC_THINKING_BUDGET
        else:
            params["temperature"] = model.temperature
        if timeout_s:
            params["timeout"] = timeout_s

        try:
            response = self.client.messages.create(**params)
        except Exception as e:
            raise LLMProviderError(f"Anthropic completion failed: {e}")

        if not response.content:
            raise LLMProviderError("Anthropic returned empty response")

        text_content = ""
        for content_block in response.content:
            if getattr(content_block, "type", "text") == "text" and hasattr(content_block, "text"):
                text_content += content_block.text

        if not text_content:
            raise LLMProviderError("No text content in Anthropic response")

        usage = None
        if response.usage:
            usage = TokenUsage(
                prompt=response.usage.input_tokens,
                completion=response.usage.output_tokens,
                total=response.usage.input_tokens + response.usage.output_tokens,
            )

        return ModelResponse(
            text=text_content.strip(),
            usage=usage,
            raw={"provider": self.name, "model": model.model_name},
        )


class GeminiProvider(BaseLLMProvider):
    """Google Gemini provider."""

    name = "google"

    def __init__(self):
        # Import Google Generative AI only when needed
        try:
            import google.generativeai as genai
            self._genai = genai
        except ImportError:
            raise LLMProviderError(
                "Google Generative AI package not installed. Install with: pip install google-generativeai"
            )

        api_key = os.getenv("GEMINI_API_KEY")
        if not api_key:
            raise LLMProviderError(
                "GEMINI_API_KEY environment variable is required for Gemini provider"
            )

        self._genai.configure(api_key=api_key)
        self._models: Dict[str, Any] = {}

    def _get_model(self, model_name: str):
        if model_name not in self._models:
            try:
                self._models[model_name] = self._genai.GenerativeModel(model_name)
            except Exception as e:
                raise LLMProviderError(f"Failed to create Gemini model {model_name}: {e}")
        return self._models[model_name]

    def _call(
        self,
        model: ModelConfig,
        prompt: str,
        max_tokens: int,
        timeout_s: Optional[float] = None,
    ) -> ModelResponse:
        generation_config = {
            "temperature": model.temperature,
            "top_p": model.top_p,
            "max_output_tokens": max_tokens,
        }

        try:
            response = self._get_model(model.model_name).generate_content(
                prompt,
                generation_config=generation_config,
                request_options={"timeout": timeout_s} if timeout_s else None,
            )
            text = response.text
        except LLMProviderError:
            raise
        except Exception as e:
            raise LLMProviderError(f"Gemini completion failed: {e}")

        if not text:
            raise LLMProviderError("Gemini returned empty response")

        usage = None
        metadata = getattr(response, "usage_metadata", None)
        if metadata:
            usage = TokenUsage(
                prompt=metadata.prompt_token_count or 0,
                completion=metadata.candidates_token_count or 0,
                total=metadata.total_token_count or 0,
            )

        return ModelResponse(
            text=text.strip(),
            usage=usage,
            raw={"provider": self.name, "model": model.model_name},
        )


class RandomProvider(BaseLLMProvider):
    """Random word provider (baseline)."""

    name = "random"

    def __init__(self, seed: Optional[int] = None, max_delay_s: float = 0.05):
        """Initialize the random word provider."""
        self.random = random.Random(seed)
        self.max_delay_s = max_delay_s

    async def complete(
        self,
        model: ModelConfig,
        prompt: str,
        timeout_s: float,
        max_tokens: int = DEFAULT_MAX_TOKENS,
    ) -> ModelResponse:
        """Answer with a random dictionary word after a short simulated delay."""
        delay = self.random.uniform(0, self.max_delay_s)
        await asyncio.wait_for(asyncio.sleep(delay), timeout=timeout_s)
        return ModelResponse(text=self._call(model, prompt, max_tokens).text, raw={"provider": self.name})

    def _call(
        self,
        model: ModelConfig,
        prompt: str,
        max_tokens: int,
        timeout_s: Optional[float] = None,
    ) -> ModelResponse:
        word = self.random.choice(WORDLE_WORDS)
        if '"answer"' in prompt:
            return ModelResponse(text=json.dumps({"answer": word}))
        return ModelResponse(text=word)


class LLMClient(ModelClientAdapter):
    """
    Model client adapter backed by real LLM providers.

    Resolves each model id to its configuration, renders the round payload
    into a prompt for that model and queries the model's provider within the
    remaining time before the deadline. Provider instances are created lazily,
    one per provider name.
    """

    # Registry of available providers
    PROVIDERS: Dict[str, type] = {
        "openai": OpenAIProvider,
        "anthropic": AnthropicProvider,
        "google": GeminiProvider,
        "gemini": GeminiProvider,
        "groq": GroqProvider,
        "xai": XAIProvider,
        "deepinfra": DeepInfraProvider,
        "random": RandomProvider,
    }

    def __init__(
        self,
        models: Iterable[ModelConfig],
        max_tokens: int = DEFAULT_MAX_TOKENS,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Initialize the LLM client.

        Args:
            models: Every model that may be invoked
            max_tokens: Default completion token cap (a model's own max_tokens wins)
            clock: Clock the deadlines are expressed on
        """
        self.models: Dict[str, ModelConfig] = {model.id: model for model in models}
        self.max_tokens = max_tokens
        self.clock = clock
        self._providers: Dict[str, BaseLLMProvider] = {}

        for model in self.models.values():
            if model.provider not in self.PROVIDERS:
                available = ", ".join(self.PROVIDERS.keys())
                raise LLMProviderError(
                    f"Unsupported provider '{model.provider}' for model {model.id}. Available: {available}"
                )

    async def invoke(
        self,
        model_id: str,
        payload: Any,
        context: RaceContext,
        deadline: float,
    ) -> ModelResponse:
        """Query one model for one round."""
        model = self.models.get(model_id)
        if model is None:
            raise LLMProviderError(f"Unknown model: {model_id}")

        prompt = self.render_prompt(model, payload, context)
        remaining = self.remaining(deadline, self.clock)
        if remaining <= 0:
            raise asyncio.TimeoutError()

        provider = self.get_provider(model.provider)
        logger.debug(f"Querying {model} ({remaining:.2f}s left)")
        return await provider.complete(model, prompt, remaining, model.max_tokens or self.max_tokens)

    def render_prompt(self, model: ModelConfig, payload: Any, context: Optional[RaceContext] = None) -> str:
        """
        Render a round payload into this model's prompt.

        String payloads are used as-is; other payloads must provide
        to_prompt(context, model_id). A model's custom prompt wraps the result
        through its {prompt} placeholder, or is prepended when it has none.
        """
        if isinstance(payload, str):
            prompt = payload
        elif hasattr(payload, "to_prompt"):
            prompt = payload.to_prompt(context, model.id)
        else:
            raise LLMProviderError(f"Cannot render a prompt from {type(payload).__name__}")

        if model.custom_prompt:
            if "{prompt}" in model.custom_prompt:
                prompt = model.custom_prompt.replace("{prompt}", prompt)
            else:
                prompt = f"{model.custom_prompt}\n\n{prompt}"

        return prompt

    def get_provider(self, name: str) -> BaseLLMProvider:
        """Get or create the provider instance for a provider name."""
        if name not in self._providers:
            provider_class = self.PROVIDERS.get(name)
            if provider_class is None:
                available = ", ".join(self.PROVIDERS.keys())
                raise LLMProviderError(f"Unsupported provider '{name}'. Available: {available}")
            try:
                self._providers[name] = provider_class()
            except LLMProviderError:
                raise
            except Exception as e:
                raise LLMProviderError(f"Failed to initialize provider {name}: {e}")
            logger.info(f"Initialized {name} provider")
        return self._providers[name]

    @classmethod
    def get_available_providers(cls) -> List[str]:
        """Get list of available LLM providers."""
        return list(cls.PROVIDERS.keys())

    @classmethod
    def register_provider(cls, name: str, provider_class: type) -> None:
        """
        Register a custom LLM provider.

        Args:
            name: Provider name (lowercase)
            provider_class: Provider implementation class
        """
        cls.PROVIDERS[name.lower()] = provider_class
        logger.info(f"Registered custom provider: {name}")
