"""
Model catalog for all supported LLM providers.

This module defines the models that can be raced, grouped by provider, along
with the reasoning/thinking capability sets the providers need and preset
lineups for common comparisons.
"""

import logging
from typing import Dict, Iterable, List

from rich.console import Console
from rich.table import Table

from ..core.models import ModelConfig

logger = logging.getLogger(__name__)


# OpenAI Models
OPENAI_MODELS = [
    ModelConfig(id="o1", name="OpenAI o1 (Reasoning)", model_string="openai/o1", enable_thinking=True),
    ModelConfig(id="o3-mini", name="OpenAI o3-mini (Reasoning)", model_string="openai/o3-mini", enable_thinking=True),
    ModelConfig(id="gpt-5", name="GPT-5", model_string="openai/gpt-5", enable_thinking=True),
    ModelConfig(id="gpt-5-mini", name="GPT-5 Mini", model_string="openai/gpt-5-mini"),
    ModelConfig(
        id="gpt-5.1",
        name="GPT-5.1",
        model_string="openai/gpt-5.1",
        enable_thinking=True,
        reasoning_effort="medium",
    ),
    ModelConfig(
        id="gpt-5.1-high",
        name="GPT-5.1 (High Reasoning)",
        model_string="openai/gpt-5.1",
        enable_thinking=True,
        reasoning_effort="high",
    ),
    ModelConfig(
        id="gpt-5.1-low",
        name="GPT-5.1 (Low Reasoning)",
        model_string="openai/gpt-5.1",
        enable_thinking=True,
        reasoning_effort="low",
    ),
    ModelConfig(
        id="gpt-5.1-none",
        name="GPT-5.1 (No Reasoning)",
        model_string="openai/gpt-5.1",
        enable_thinking=True,
        reasoning_effort="none",
    ),
    ModelConfig(id="gpt-4.1-mini", name="GPT-4.1 Mini", model_string="openai/gpt-4.1-mini"),
]

# Anthropic Models
ANTHROPIC_MODELS = [
    ModelConfig(id="claude-haiku-4.5", name="Claude Haiku 4.5", model_string="anthropic/claude-haiku-4-5"),
    ModelConfig(id="claude-sonnet-4.5", name="Claude Sonnet 4.5", model_string="anthropic/claude-sonnet-4-5"),
    ModelConfig(id="claude-opus-4", name="Claude Opus 4", model_string="anthropic/claude-opus-4-20250514"),
    ModelConfig(
        id="claude-opus-4-thinking",
        name="Claude Opus 4 (Thinking)",
        model_string="anthropic/claude-opus-4-20250514",
        enable_thinking=True,
    ),
    ModelConfig(id="claude-sonnet-4", name="Claude Sonnet 4", model_string="anthropic/claude-sonnet-4-20250514"),
    ModelConfig(
        id="claude-sonnet-4-thinking",
        name="Claude Sonnet 4 (Thinking)",
        model_string="anthropic/claude-sonnet-4-20250514",
        enable_thinking=True,
    ),
]

# Google Gemini Models
GOOGLE_MODELS = [
    ModelConfig(id="gemini-2.5-flash", name="Gemini 2.5 Flash", model_string="google/gemini-2.5-flash"),
    ModelConfig(
        id="gemini-2.5-flash-thinking",
        name="Gemini 2.5 Flash (Thinking)",
        model_string="google/gemini-2.5-flash",
        enable_thinking=True,
    ),
    ModelConfig(id="gemini-2.5-pro", name="Gemini 2.5 Pro", model_string="google/gemini-2.5-pro"),
]

# Groq-hosted open models
GROQ_MODELS = [
    ModelConfig(id="llama-3.3-70b", name="Llama 3.3 70B (Groq)", model_string="groq/llama-3.3-70b-versatile"),
    ModelConfig(id="kimi-k2-0905", name="Kimi K2 0905 (Groq)", model_string="groq/moonshotai/kimi-k2-instruct-0905"),
    ModelConfig(id="qwen3-32b", name="Qwen3-32B (Groq)", model_string="groq/qwen/qwen3-32b"),
    ModelConfig(
        id="qwen3-32b-thinking",
        name="Qwen3-32B (Groq, Thinking)",
        model_string="groq/qwen/qwen3-32b",
        enable_thinking=True,
    ),
]

# xAI Models
XAI_MODELS = [
    ModelConfig(id="grok-4-fast", name="Grok 4 Fast", model_string="xai/grok-4-fast-non-reasoning"),
]

# Offline baselines (no API key required)
BASELINE_MODELS = [
    ModelConfig(id="random", name="Random Baseline", model_string="random/words"),
    ModelConfig(id="random-2", name="Random Baseline 2", model_string="random/words"),
]

# Models grouped by provider
MODELS_BY_PROVIDER: Dict[str, List[ModelConfig]] = {
    "openai": OPENAI_MODELS,
    "anthropic": ANTHROPIC_MODELS,
    "google": GOOGLE_MODELS,
    "groq": GROQ_MODELS,
    "xai": XAI_MODELS,
    "random": BASELINE_MODELS,
}

# All models by id
MODEL_CATALOG: Dict[str, ModelConfig] = {
    model.id: model for models in MODELS_BY_PROVIDER.values() for model in models
}

# Models that take an OpenAI-style reasoning effort instead of sampling parameters
REASONING_MODELS = {
    "o1", "o1-preview", "o1-mini", "o3-mini",
    "gpt-5", "gpt-5.1", "gpt-5.1-high", "gpt-5.1-medium", "gpt-5.1-low", "gpt-5.1-none",
}

# Models that accept an Anthropic extended thinking block
ANTHROPIC_REASONING_MODELS = {
    "claude-opus-4", "claude-opus-4-thinking",
    "claude-sonnet-4", "claude-sonnet-4-thinking",
    "claude-3-7-sonnet", "claude-3-7-sonnet-thinking",
}

# Models with a Gemini thinking budget
THINKING_CAPABLE_MODELS = {
    "gemini-2.5-flash", "gemini-2.5-flash-thinking",
    "gemini-2.5-pro", "gemini-2.5-pro-thinking",
}

# Groq models that emit reasoning unless told to hide it
GROQ_REASONING_MODELS = {
    "qwen3-32b", "qwen3-32b-thinking",
    "qwen-qwq-32b", "qwen-qwq-32b-thinking",
    "deepseek-r1-distill-llama-70b", "deepseek-r1-distill-llama-70b-thinking",
}

# Preset configurations for common use cases
PRESET_CONFIGS = {
    "fast": {
        "models": ["gpt-5-mini", "gpt-4.1-mini", "claude-haiku-4.5", "gemini-2.5-flash", "llama-3.3-70b", "grok-4-fast"],
        "description": "Low-latency models from each provider",
    },
    "thinking-ab": {
        "models": [
            "gemini-2.5-flash", "gemini-2.5-flash-thinking",
            "claude-sonnet-4", "claude-sonnet-4-thinking",
            "qwen3-32b", "qwen3-32b-thinking",
        ],
        "description": "Same models with and without thinking, side by side",
    },
    "reasoning-effort": {
        "models": ["gpt-5.1-none", "gpt-5.1-low", "gpt-5.1", "gpt-5.1-high"],
        "description": "GPT-5.1 across reasoning effort levels",
    },
    "baseline": {
        "models": ["random", "random-2"],
        "description": "Offline random baselines (no API keys needed)",
    },
}


def get_model(model_id: str) -> ModelConfig:
    """
    Get a catalog model by id.

    Raises:
        ValueError: If the model is not in the catalog
    """
    try:
        return MODEL_CATALOG[model_id]
    except KeyError:
        raise ValueError(f"Unknown model: {model_id}")


def select_models(model_ids: Iterable[str], max_models: int = 8) -> List[ModelConfig]:
    """
    Resolve model ids into a race lineup.

    Catalog ids resolve to their configuration; "provider/model" strings that
    are not in the catalog become ad-hoc models. Unknown ids are skipped with a
    warning, duplicates are dropped and the lineup is capped at max_models.
    """
    selected: List[ModelConfig] = []
    seen = set()

    for raw_id in model_ids:
        model_id = raw_id.strip()
        if not model_id or model_id in seen:
            continue

        if model_id in MODEL_CATALOG:
            model = MODEL_CATALOG[model_id]
        elif "/" in model_id:
            model = ModelConfig(id=model_id, model_string=model_id)
        else:
            logger.warning(f"Skipping unknown model: {model_id}")
            continue

        if len(selected) >= max_models:
            logger.warning(f"Model limit of {max_models} reached, skipping {model_id}")
            continue

        selected.append(model)
        seen.add(model_id)

    return selected


def preset_models(preset: str, max_models: int = 8) -> List[ModelConfig]:
    """
    Get the lineup of a preset.

    Raises:
        ValueError: If the preset does not exist
    """
    if preset not in PRESET_CONFIGS:
        available = ", ".join(PRESET_CONFIGS)
        raise ValueError(f"Unknown preset '{preset}'. Available: {available}")
    return select_models(PRESET_CONFIGS[preset]["models"], max_models)


def print_available_models(console: Console = None) -> None:
    """Print a table of every catalog model."""
    console = console or Console()

    table = Table(title="🏁 Available Models")
    table.add_column("ID", style="cyan")
    table.add_column("Name", style="green")
    table.add_column("Provider", style="magenta")
    table.add_column("Model String", style="dim")
    table.add_column("Thinking", justify="center")

    for provider, models in MODELS_BY_PROVIDER.items():
        for model in models:
            thinking = model.reasoning_effort or ("✓" if model.enable_thinking else "")
            table.add_row(model.id, model.name, provider, model.model_string, thinking)

    console.print(table)


def print_presets(console: Console = None) -> None:
    """Print the available preset lineups."""
    console = console or Console()

    table = Table(title="📋 Presets")
    table.add_column("Preset", style="cyan")
    table.add_column("Description", style="green")
    table.add_column("Models", style="dim")

    for name, preset in PRESET_CONFIGS.items():
        table.add_row(name, preset["description"], ", ".join(preset["models"]))

    console.print(table)
