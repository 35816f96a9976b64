"""
Unit tests for the LLM client adapter and providers.

Tests prompt rendering, provider resolution, deadline handling, provider
request parameters and full races against the offline random baseline.
"""

import asyncio
import json
import os
import time
import unittest
from types import MappingProxyType, SimpleNamespace
from unittest.mock import Mock, patch

from llm_race_bench.core.models import (
    ModelConfig,
    ModelResponse,
    OutcomeStatus,
    RaceConfig,
    RaceContext,
    RaceStatus,
)
from llm_race_bench.core.race import run_race
from llm_race_bench.core.scoring import Clue, example_rounds
from llm_race_bench.core.wordle import WORDLE_WORDS, WordleTurn, wordle_rounds
from llm_race_bench.llm.client import (
    ANTHROPIC_THINKING_BUDGET,
    AnthropicProvider,
    BaseLLMProvider,
    GroqProvider,
    LLMClient,
    LLMProviderError,
    OpenAIProvider,
    RandomProvider,
)
from llm_race_bench.llm.models import BASELINE_MODELS, get_model


def make_context(round_index=0):
    return RaceContext(race_id="race-test", round_index=round_index, standings=MappingProxyType({}))


class RecordingProvider(BaseLLMProvider):
    """Provider that records its calls and echoes the prompt."""

    name = "recording"
    calls = []

    def _call(self, model, prompt, max_tokens, timeout_s=None):
        RecordingProvider.calls.append((model.id, prompt, max_tokens))
        return ModelResponse(text=f"echo:{prompt}")


class LLMClientTests(unittest.IsolatedAsyncioTestCase):
    """Test the LLMClient adapter."""

    def setUp(self):
        RecordingProvider.calls = []
        LLMClient.register_provider("recording", RecordingProvider)
        self.addCleanup(LLMClient.PROVIDERS.pop, "recording", None)

    def test_unsupported_provider(self):
        """Unknown providers are rejected when the client is built."""
        with self.assertRaises(LLMProviderError):
            LLMClient([ModelConfig(id="x", model_string="nowhere/model")])

    def test_available_providers(self):
        providers = LLMClient.get_available_providers()
        for name in ("openai", "anthropic", "google", "groq", "xai", "deepinfra", "random", "recording"):
            self.assertIn(name, providers)

    def test_render_prompt(self):
        """Strings pass through; payload objects render themselves."""
        client = LLMClient([])
        model = ModelConfig(id="m", model_string="recording/m")
        self.assertEqual(client.render_prompt(model, "plain prompt"), "plain prompt")

        clue = Clue(id="c1", clue="Capital of France (5)", answer="paris", length=5)
        self.assertIn("Capital of France (5)", client.render_prompt(model, clue))

        turn = WordleTurn(target="crane", guess_index=0)
        self.assertIn("Wordle", client.render_prompt(model, turn, make_context()))

    def test_custom_prompt(self):
        """A custom prompt wraps the rendered prompt or is prepended to it."""
        client = LLMClient([])
        wrapped = ModelConfig(id="m", model_string="recording/m", custom_prompt="Be brief.\n{prompt}\nGo!")
        self.assertEqual(client.render_prompt(wrapped, "Q"), "Be brief.\nQ\nGo!")

        prefixed = ModelConfig(id="m", model_string="recording/m", custom_prompt="Be brief.")
        self.assertEqual(client.render_prompt(prefixed, "Q"), "Be brief.\n\nQ")

    def test_unrenderable_payload(self):
        client = LLMClient([])
        with self.assertRaises(LLMProviderError):
            client.render_prompt(ModelConfig(id="m", model_string="recording/m"), 42)

    async def test_invoke(self):
        """invoke renders the prompt and applies the token cap."""
        models = [
            ModelConfig(id="a", model_string="recording/a"),
            ModelConfig(id="b", model_string="recording/b", max_tokens=64),
        ]
        client = LLMClient(models, max_tokens=8)
        deadline = time.monotonic() + 5.0

        response = await client.invoke("a", "hello", make_context(), deadline)
        self.assertEqual(response.text, "echo:hello")
        await client.invoke("b", "hello", make_context(), deadline)
        self.assertEqual(RecordingProvider.calls, [("a", "hello", 8), ("b", "hello", 64)])

    async def test_provider_instance_shared(self):
        client = LLMClient([ModelConfig(id="a", model_string="recording/a")])
        self.assertIs(client.get_provider("recording"), client.get_provider("recording"))

    async def test_unknown_model(self):
        client = LLMClient([ModelConfig(id="a", model_string="recording/a")])
        with self.assertRaises(LLMProviderError):
            await client.invoke("zzz", "hello", make_context(), time.monotonic() + 5.0)

    async def test_expired_deadline(self):
        """A deadline already passed times out without calling the provider."""
        client = LLMClient([ModelConfig(id="a", model_string="recording/a")])
        with self.assertRaises(asyncio.TimeoutError):
            await client.invoke("a", "hello", make_context(), time.monotonic() - 1.0)
        self.assertEqual(RecordingProvider.calls, [])

    async def test_missing_api_key(self):
        """A provider without credentials fails with a provider error."""
        client = LLMClient([get_model("gpt-5-mini")])
        with patch.dict(os.environ, {}, clear=True):
            with self.assertRaises(LLMProviderError):
                await client.invoke("gpt-5-mini", "hello", make_context(), time.monotonic() + 5.0)

    async def test_provider_errors_become_failures(self):
        """In a race a misconfigured provider only fails its own models."""
        models = [get_model("claude-haiku-4.5"), BASELINE_MODELS[0]]
        config = RaceConfig(id="race-mixed", name="Mixed", rounds=example_rounds("quick-sprint"), models=models)
        with patch.dict(os.environ, {}, clear=True):
            result = await run_race(config, LLMClient(models), budget_s=None)

        self.assertIs(result.status, RaceStatus.COMPLETED)
        for round_result in result.round_results:
            self.assertIs(round_result.entry("claude-haiku-4.5").status, OutcomeStatus.FAILURE)
            self.assertIs(round_result.entry("random").status, OutcomeStatus.SUCCESS)
        self.assertEqual(result.ranking[0].model_id, "random")


class BaseProviderTests(unittest.IsolatedAsyncioTestCase):
    """Test BaseLLMProvider error handling."""

    async def test_errors_wrapped(self):
        class BrokenProvider(BaseLLMProvider):
            name = "broken"

            def _call(self, model, prompt, max_tokens, timeout_s=None):
                raise ValueError("bad request")

        with self.assertRaises(LLMProviderError) as ctx:
            await BrokenProvider().complete(ModelConfig(id="m"), "hi", timeout_s=1.0)
        self.assertIn("bad request", str(ctx.exception))

    async def test_slow_call_times_out(self):
        class SlowProvider(BaseLLMProvider):
            name = "slow"

            def _call(self, model, prompt, max_tokens, timeout_s=None):
                time.sleep(0.3)
                return ModelResponse(text="late")

        with self.assertRaises(asyncio.TimeoutError):
            await SlowProvider().complete(ModelConfig(id="m"), "hi", timeout_s=0.05)

    async def test_deadline_passed_to_call(self):
        class TimedProvider(BaseLLMProvider):
            name = "timed"
            seen = []

            def _call(self, model, prompt, max_tokens, timeout_s=None):
                TimedProvider.seen.append(timeout_s)
                return ModelResponse(text="ok")

        await TimedProvider().complete(ModelConfig(id="m"), "hi", timeout_s=1.5)
        self.assertEqual(TimedProvider.seen, [1.5])


class RandomProviderTests(unittest.IsolatedAsyncioTestCase):
    """Test the offline random baseline."""

    async def test_json_prompt_gets_json_answer(self):
        provider = RandomProvider(seed=1)
        clue = Clue(id="c1", clue="Capital of France (5)", answer="paris", length=5)
        response = await provider.complete(BASELINE_MODELS[0], clue.to_prompt(), timeout_s=1.0)
        self.assertIn(json.loads(response.text)["answer"], WORDLE_WORDS)

    async def test_plain_prompt_gets_word(self):
        provider = RandomProvider(seed=1)
        response = await provider.complete(BASELINE_MODELS[0], "guess a word", timeout_s=1.0)
        self.assertIn(response.text, WORDLE_WORDS)

    async def test_seeded(self):
        first = await RandomProvider(seed=7, max_delay_s=0).complete(BASELINE_MODELS[0], "w", timeout_s=1.0)
        second = await RandomProvider(seed=7, max_delay_s=0).complete(BASELINE_MODELS[0], "w", timeout_s=1.0)
        self.assertEqual(first.text, second.text)

    async def test_crossword_race(self):
        """The baselines race a full clue set offline."""
        rounds = example_rounds("tech-challenge")
        config = RaceConfig.create(rounds, BASELINE_MODELS)
        result = await run_race(config, LLMClient(BASELINE_MODELS), budget_s=None)

        self.assertIs(result.status, RaceStatus.COMPLETED)
        self.assertEqual(result.rounds_completed, len(rounds))
        self.assertEqual(len(result.ranking), 2)
        for round_result in result.round_results:
            for entry in round_result.entries:
                self.assertIs(entry.status, OutcomeStatus.SUCCESS)
                self.assertTrue(entry.details["format_ok"] or entry.score_delta == 0.0)

    async def test_wordle_race(self):
        rounds = wordle_rounds("crane", max_guesses=3)
        config = RaceConfig.create(rounds, BASELINE_MODELS)
        result = await run_race(config, LLMClient(BASELINE_MODELS), budget_s=None)
        self.assertIn(result.status, (RaceStatus.COMPLETED, RaceStatus.COMPLETED_ALL_ELIMINATED))
        self.assertGreaterEqual(result.rounds_completed, 1)


class ProviderParamsTests(unittest.TestCase):
    """Test provider request construction without network access."""

    def test_openai_reasoning_params(self):
        """Reasoning models get a completion cap and effort, no sampling params."""
        provider = OpenAIProvider.__new__(OpenAIProvider)
        params = provider._request_params(get_model("gpt-5.1-low"), "hi", 16)
        self.assertEqual(params["model"], "gpt-5.1")
        self.assertEqual(params["max_completion_tokens"], 16)
        self.assertEqual(params["reasoning_effort"], "low")
        self.assertNotIn("temperature", params)
        self.assertNotIn("max_tokens", params)

    def test_openai_standard_params(self):
        provider = OpenAIProvider.__new__(OpenAIProvider)
        params = provider._request_params(get_model("gpt-4.1-mini"), "hi", 16)
        self.assertEqual(params["max_tokens"], 16)
        self.assertEqual(params["temperature"], 0.1)
        self.assertEqual(params["messages"], [{"role": "user", "content": "hi"}])

    def test_groq_reasoning_format(self):
        provider = GroqProvider.__new__(GroqProvider)
        hidden = provider._request_params(get_model("qwen3-32b"), "hi", 16)
        parsed = provider._request_params(get_model("qwen3-32b-thinking"), "hi", 16)
        self.assertEqual(hidden["model"], "qwen/qwen3-32b")
        self.assertEqual(hidden["extra_body"], {"reasoning_format": "hidden"})
        self.assertEqual(parsed["extra_body"], {"reasoning_format": "parsed"})
        self.assertNotIn("extra_body", provider._request_params(get_model("llama-3.3-70b"), "hi", 16))

    def test_openai_empty_response(self):
        provider = OpenAIProvider.__new__(OpenAIProvider)
        provider.client = Mock()
        provider.client.chat.completions.create.return_value = SimpleNamespace(
            choices=[SimpleNamespace(message=SimpleNamespace(content=""))],
            usage=None,
        )
        with self.assertRaises(LLMProviderError):
            provider._call(get_model("gpt-4.1-mini"), "hi", 16)

    def test_openai_usage(self):
        provider = OpenAIProvider.__new__(OpenAIProvider)
        provider.client = Mock()
        provider.client.chat.completions.create.return_value = SimpleNamespace(
            choices=[SimpleNamespace(message=SimpleNamespace(content=' {"answer":"paris"} '))],
            usage=SimpleNamespace(prompt_tokens=40, completion_tokens=6, total_tokens=46),
        )
        response = provider._call(get_model("gpt-4.1-mini"), "hi", 16)
        self.assertEqual(response.text, '{"answer":"paris"}')
        self.assertEqual(response.usage.total, 46)

    def anthropic_provider(self):
        provider = AnthropicProvider.__new__(AnthropicProvider)
        provider.client = Mock()
        provider.client.messages.create.return_value = SimpleNamespace(
            content=[
                SimpleNamespace(type="thinking", thinking="hmm"),
                SimpleNamespace(type="text", text=" paris "),
            ],
            usage=SimpleNamespace(input_tokens=30, output_tokens=4),
        )
        return provider

    def test_anthropic_sampling(self):
        """Anthropic gets temperature only, never top_p."""
        provider = self.anthropic_provider()
        response = provider._call(get_model("claude-haiku-4.5"), "hi", 16)

        kwargs = provider.client.messages.create.call_args.kwargs
        self.assertEqual(kwargs["model"], "claude-haiku-4-5")
        self.assertEqual(kwargs["temperature"], 0.1)
        self.assertNotIn("top_p", kwargs)
        self.assertNotIn("thinking", kwargs)
        self.assertEqual(response.text, "paris")
        self.assertEqual(response.usage.total, 34)

    def test_anthropic_thinking(self):
        """Thinking models get a thinking budget on top of the answer cap."""
        provider = self.anthropic_provider()
        provider._call(get_model("claude-sonnet-4-thinking"), "hi", 16)

        kwargs = provider.client.messages.create.call_args.kwargs
        self.assertEqual(kwargs["thinking"], {"type": "enabled", "budget_tokens": ANTHROPIC_THINKING_BUDGET})
        self.assertEqual(kwargs["max_tokens"], 16 + ANTHROPIC_THINKING_BUDGET)
        self.assertNotIn("temperature", kwargs)

    def test_sdk_calls_bounded_by_timeout(self):
        """The remaining request time is handed to the SDK as its own timeout."""
        openai = OpenAIProvider.__new__(OpenAIProvider)
        openai.client = Mock()
        openai.client.chat.completions.create.return_value = SimpleNamespace(
            choices=[SimpleNamespace(message=SimpleNamespace(content="paris"))],
            usage=None,
        )
        openai._call(get_model("gpt-4.1-mini"), "hi", 16, timeout_s=3.5)
        self.assertEqual(openai.client.chat.completions.create.call_args.kwargs["timeout"], 3.5)

        anthropic = self.anthropic_provider()
        anthropic._call(get_model("claude-haiku-4.5"), "hi", 16, timeout_s=2.0)
        self.assertEqual(anthropic.client.messages.create.call_args.kwargs["timeout"], 2.0)

        anthropic._call(get_model("claude-haiku-4.5"), "hi", 16)
        self.assertNotIn("timeout", anthropic.client.messages.create.call_args.kwargs)


if __name__ == "__main__":
    unittest.main()
