"""
Unit tests for the model catalog and presets.
"""

import io
import unittest

from rich.console import Console

from llm_race_bench.llm.client import LLMClient
from llm_race_bench.llm.models import (
    MODEL_CATALOG,
    PRESET_CONFIGS,
    get_model,
    preset_models,
    print_available_models,
    print_presets,
    select_models,
)


class CatalogTests(unittest.TestCase):
    """Test catalog lookups."""

    def test_get_model(self):
        model = get_model("claude-haiku-4.5")
        self.assertEqual(model.provider, "anthropic")
        self.assertEqual(model.model_name, "claude-haiku-4-5")

    def test_get_unknown_model(self):
        with self.assertRaises(ValueError):
            get_model("gpt-17")

    def test_catalog_ids_unique_and_providers_known(self):
        """Every catalog entry is keyed by its id and has a registered provider."""
        providers = LLMClient.get_available_providers()
        for model_id, model in MODEL_CATALOG.items():
            self.assertEqual(model_id, model.id)
            self.assertIn(model.provider, providers)

    def test_presets_resolve(self):
        """Every preset names catalog models only."""
        for name, preset in PRESET_CONFIGS.items():
            with self.subTest(preset=name):
                models = preset_models(name)
                self.assertEqual([m.id for m in models], preset["models"])
                self.assertTrue(preset["description"])

    def test_unknown_preset(self):
        with self.assertRaises(ValueError):
            preset_models("slowest")


class SelectModelsTests(unittest.TestCase):
    """Test select_models."""

    def test_catalog_and_ad_hoc_ids(self):
        """Catalog ids resolve; provider/model strings become ad-hoc models."""
        models = select_models(["gpt-5-mini", " groq/llama-3.1-8b-instant "])
        self.assertEqual(models[0], get_model("gpt-5-mini"))
        self.assertEqual(models[1].id, "groq/llama-3.1-8b-instant")
        self.assertEqual(models[1].provider, "groq")
        self.assertEqual(models[1].model_name, "llama-3.1-8b-instant")

    def test_unknown_and_duplicate_ids_skipped(self):
        with self.assertLogs("llm_race_bench.llm.models", level="WARNING") as logs:
            models = select_models(["random", "nonsense", "random", ""])
        self.assertEqual([m.id for m in models], ["random"])
        self.assertIn("nonsense", logs.output[0])

    def test_max_models(self):
        with self.assertLogs("llm_race_bench.llm.models", level="WARNING"):
            models = select_models(["random", "random-2", "gpt-5-mini"], max_models=2)
        self.assertEqual([m.id for m in models], ["random", "random-2"])


class PrintingTests(unittest.TestCase):
    """Test catalog tables."""

    def test_print_tables(self):
        output = io.StringIO()
        console = Console(file=output, width=200)
        print_available_models(console)
        print_presets(console)
        text = output.getvalue()
        self.assertIn("claude-haiku-4.5", text)
        self.assertIn("thinking-ab", text)


if __name__ == "__main__":
    unittest.main()
