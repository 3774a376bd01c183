# Copyright 2025 Vijaykumar Singh <singhvjd@gmail.com>
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""Tests for the generation orchestrator state machine."""

import asyncio
from unittest.mock import MagicMock

import pytest

from cadenceqa.config.settings import QAConfig
from cadenceqa.core.errors import ConfigurationError, ErrorCategory, GenerationFailure
from cadenceqa.core.models import ContractCategory, GenerationRequest, UserExperience
from cadenceqa.generation.fallback import FallbackGenerator
from cadenceqa.generation.orchestrator import (
    GenerationOptions,
    GenerationOrchestrator,
    GenerationState,
)
from cadenceqa.generation.prompts import FAILURE_INSTRUCTIONS
from cadenceqa.generation.templates import emergency_template
from cadenceqa.performance.optimizer import PerformanceOptimizer
from cadenceqa.validation.optimized import OptimizedValidator

EMPTY_CONTRACT = "access(all) contract Empty {\n    init() {}\n}\n"


class ScriptedGenerator:
    """Async generation function replaying a fixed list of outputs.

    Exceptions in the list are raised instead of returned. The last entry
    repeats once the list is exhausted.
    """

    def __init__(self, *outputs):
        self.outputs = list(outputs)
        self.calls = []

    async def __call__(self, prompt, temperature):
        self.calls.append((prompt, temperature))
        output = self.outputs[min(len(self.calls), len(self.outputs)) - 1]
        if isinstance(output, Exception):
            raise output
        return output


def counter_request(**kwargs):
    return GenerationRequest(prompt="Create a counter contract", category=ContractCategory.GENERIC, **kwargs)


@pytest.fixture
def orchestrator():
    return GenerationOrchestrator(QAConfig())


class TestConstruction:
    """Tests for orchestrator setup."""

    def test_invalid_config_rejected(self):
        """Out-of-range configuration fails at construction."""
        with pytest.raises(ConfigurationError):
            GenerationOrchestrator(QAConfig(max_retries=11))

    @pytest.mark.parametrize(
        "attempt,expected",
        [(1, 0.7), (2, 0.6), (3, 0.5), (10, 0.1)],
    )
    def test_temperature_schedule(self, orchestrator, attempt, expected):
        """Temperature drops by the step per attempt down to the minimum."""
        assert orchestrator.temperature_for(0.7, attempt) == pytest.approx(expected)


class TestAcceptance:
    """Tests for runs that end in ACCEPTED."""

    @pytest.mark.asyncio
    async def test_clean_first_attempt(self, orchestrator, counter_contract):
        """Valid code above the threshold is accepted immediately."""
        generator = ScriptedGenerator(counter_contract)

        result = await orchestrator.generate_with_quality_assurance(counter_request(), generator)

        assert result.code == counter_contract
        assert result.final_state == GenerationState.ACCEPTED.value
        assert not result.fallback_used
        assert result.quality_score >= 80
        assert result.generation_metrics.attempt_count == 1
        assert result.correction_history == ()
        assert len(generator.calls) == 1
        assert generator.calls[0][1] == pytest.approx(0.7)

    @pytest.mark.asyncio
    async def test_correction_rescues_attempt(self, orchestrator, counter_contract):
        """An undefined initializer is corrected and then accepted."""
        broken = counter_contract.replace(
            "access(all) var count: Int\n", "access(all) var count: Int = undefined\n"
        )
        generator = ScriptedGenerator(broken)

        result = await orchestrator.generate_with_quality_assurance(counter_request(), generator)

        assert result.final_state == GenerationState.ACCEPTED.value
        assert "access(all) var count: Int = 0" in result.code
        assert "undefined" not in result.code
        assert result.generation_metrics.attempt_count == 1
        (attempt,) = result.correction_history
        assert attempt.success
        assert attempt.quality_improvement > 0
        assert result.generation_metrics.issues_fixed >= 1

    @pytest.mark.asyncio
    async def test_retry_after_failed_attempt(self, orchestrator, counter_contract):
        """A failed attempt is retried at a lower temperature."""
        generator = ScriptedGenerator(RuntimeError("model overloaded"), counter_contract)

        result = await orchestrator.generate_with_quality_assurance(counter_request(), generator)

        assert result.final_state == GenerationState.ACCEPTED.value
        assert result.generation_metrics.attempt_count == 2
        assert [round(t, 4) for _, t in generator.calls] == [0.7, 0.6]

    @pytest.mark.asyncio
    async def test_retry_prompt_reports_failures(self, orchestrator, counter_contract):
        """The retry prompt tells the model what went wrong."""
        generator = ScriptedGenerator("", counter_contract)

        await orchestrator.generate_with_quality_assurance(counter_request(), generator)

        first_prompt, second_prompt = [prompt for prompt, _ in generator.calls]
        assert "Create a Cadence 1.0 smart contract for: Create a counter contract" in first_prompt
        assert FAILURE_INSTRUCTIONS["generation-error"] not in first_prompt
        assert FAILURE_INSTRUCTIONS["generation-error"] in second_prompt

    @pytest.mark.asyncio
    async def test_raw_prompt_without_enhancement(self, orchestrator, counter_contract):
        """Disabling enhancement passes the prompt through unchanged."""
        generator = ScriptedGenerator(counter_contract)

        await orchestrator.generate_with_quality_assurance(
            counter_request(), generator, GenerationOptions(enhance_prompts=False)
        )

        assert generator.calls[0][0] == "Create a counter contract"

    @pytest.mark.asyncio
    async def test_threshold_override(self, orchestrator):
        """A per-call threshold of zero accepts any verdict."""
        generator = ScriptedGenerator(EMPTY_CONTRACT)

        result = await orchestrator.generate_with_quality_assurance(
            counter_request(), generator, GenerationOptions(quality_threshold=0)
        )

        assert result.final_state == GenerationState.ACCEPTED.value
        assert result.code == EMPTY_CONTRACT

    @pytest.mark.asyncio
    async def test_sync_generation_function(self, orchestrator, counter_contract):
        """Plain functions are run in a worker thread."""
        generation_fn = MagicMock(return_value=counter_contract)

        result = await orchestrator.generate_with_quality_assurance(counter_request(), generation_fn)

        assert result.code == counter_contract
        generation_fn.assert_called_once()

    @pytest.mark.asyncio
    async def test_experience_raises_threshold(self, orchestrator, counter_contract):
        """Beginner requests are held to the beginner score floor."""
        generator = ScriptedGenerator(counter_contract)
        request = counter_request(user_experience=UserExperience.BEGINNER)

        await orchestrator.generate_with_quality_assurance(request, generator)

        assert "quality score of 90" in generator.calls[0][0]


    @pytest.mark.asyncio
    async def test_invalid_code_never_accepted_on_score(self, orchestrator, counter_contract):
        """A contract with no init is corrected or replaced, never accepted."""
        no_init = counter_contract.replace("    init() {\n        self.count = 0\n    }\n", "")
        generator = ScriptedGenerator(no_init)

        result = await orchestrator.generate_with_quality_assurance(
            counter_request(), generator, GenerationOptions(quality_threshold=0)
        )

        assert result.final_state != GenerationState.ACCEPTED.value
        assert result.fallback_used
        assert result.code != no_init
        assert len(result.correction_history) == 3
        assert not any(attempt.success for attempt in result.correction_history)

    @pytest.mark.asyncio
    async def test_cached_validator_records_run(self, counter_contract):
        """With a cached validator, each run is reported to its optimizer."""
        cached = OptimizedValidator(optimizer=PerformanceOptimizer(QAConfig()))
        orchestrator = GenerationOrchestrator(QAConfig(), validator=cached.validator, cached_validator=cached)

        result = await orchestrator.generate_with_quality_assurance(
            counter_request(), ScriptedGenerator(counter_contract)
        )

        assert result.final_state == GenerationState.ACCEPTED.value
        stats = cached.optimizer.stats()
        assert stats.generations == 1
        assert stats.generation_overruns == 0
        assert stats.cache_misses >= 1


class TestFallback:
    """Tests for retry exhaustion."""

    @pytest.mark.asyncio
    async def test_fallback_after_retries(self, orchestrator):
        """Three failed attempts activate the category template."""
        generator = ScriptedGenerator(RuntimeError("model offline"))

        result = await orchestrator.generate_with_quality_assurance(
            GenerationRequest(prompt="Create a basic NFT collection"), generator
        )

        assert result.fallback_used
        assert result.final_state == GenerationState.FALLBACK_ACTIVATED.value
        assert len(generator.calls) == 3
        assert result.generation_metrics.attempt_count == 4
        assert "NonFungibleToken" in result.code
        assert result.quality_score > 0

    @pytest.mark.asyncio
    async def test_single_retry_fallback(self, orchestrator):
        """With max_retries=1 the fallback is the second attempt."""
        generator = ScriptedGenerator(RuntimeError("model offline"))

        result = await orchestrator.generate_with_quality_assurance(
            GenerationRequest(prompt="Create a basic NFT collection", max_retries=1), generator
        )

        assert result.fallback_used
        assert result.quality_score >= 50
        assert result.generation_metrics.attempt_count == 2

    @pytest.mark.asyncio
    async def test_timeouts_count_as_failures(self, counter_contract):
        """A generation function slower than the budget times out."""
        orchestrator = GenerationOrchestrator(QAConfig(max_generation_time=0.05))

        async def slow(prompt, temperature):
            await asyncio.sleep(1)
            return counter_contract

        result = await orchestrator.generate_with_quality_assurance(counter_request(), slow)

        assert result.fallback_used
        assert result.generation_metrics.attempt_count == 4

    @pytest.mark.asyncio
    async def test_zero_retries_goes_straight_to_fallback(self, orchestrator):
        """With max_retries=0 the generation function is never called."""
        generator = ScriptedGenerator("unused")

        result = await orchestrator.generate_with_quality_assurance(counter_request(max_retries=0), generator)

        assert generator.calls == []
        assert result.fallback_used
        assert result.generation_metrics.attempt_count == 1

    @pytest.mark.asyncio
    async def test_invalid_template_uses_emergency(self):
        """A fallback template that fails validation is replaced."""
        provider = MagicMock(return_value="access(all) contract X {\n    access(all) let a: Int = undefined\n}\n")
        orchestrator = GenerationOrchestrator(
            QAConfig(max_retries=1), fallback_generator=FallbackGenerator(provider)
        )

        result = await orchestrator.generate_with_quality_assurance(
            counter_request(), ScriptedGenerator(RuntimeError("down"))
        )

        assert result.fallback_used
        assert result.code == emergency_template()

    @pytest.mark.asyncio
    async def test_degraded_returns_best_attempt(self, orchestrator):
        """Without fallback, the best attempt seen is returned."""
        generator = ScriptedGenerator(EMPTY_CONTRACT)

        result = await orchestrator.generate_with_quality_assurance(
            counter_request(), generator, GenerationOptions(enable_fallback_generation=False)
        )

        assert result.final_state == GenerationState.DEGRADED.value
        assert not result.fallback_used
        assert result.code == EMPTY_CONTRACT
        assert result.quality_score < 80
        assert len(generator.calls) == 3

    @pytest.mark.asyncio
    async def test_degraded_without_any_code(self, orchestrator):
        """Without fallback and without any output, the result is empty."""
        generator = ScriptedGenerator(RuntimeError("down"))

        result = await orchestrator.generate_with_quality_assurance(
            counter_request(), generator, GenerationOptions(enable_fallback_generation=False)
        )

        assert result.code == ""
        assert result.quality_score == 0
        assert result.validation_results == ()
        assert result.final_state == GenerationState.DEGRADED.value


class TestCallGeneration:
    """Tests for single-call isolation."""

    @pytest.mark.asyncio
    async def test_exception_becomes_failed_outcome(self, orchestrator):
        """Exceptions are wrapped in GenerationFailure."""
        outcome = await orchestrator.call_generation(
            ScriptedGenerator(ValueError("bad request")), "prompt", 0.7, attempt=2
        )
        assert not outcome.success
        assert isinstance(outcome.error, GenerationFailure)
        assert outcome.error.category == ErrorCategory.GENERATION
        assert outcome.error.details["attempt"] == 2
        assert isinstance(outcome.error.cause, ValueError)

    @pytest.mark.asyncio
    async def test_timeout_becomes_failed_outcome(self, orchestrator):
        """Timeouts are reported with their own category."""

        async def slow(prompt, temperature):
            await asyncio.sleep(1)
            return "late"

        outcome = await orchestrator.call_generation(slow, "prompt", 0.7, timeout=0.01)
        assert not outcome.success
        assert outcome.error.category == ErrorCategory.GENERATION_TIMEOUT
        assert outcome.error.details["timed_out"] is True

    @pytest.mark.asyncio
    async def test_blank_output_is_a_failure(self, orchestrator):
        """Whitespace-only output is not code."""
        outcome = await orchestrator.call_generation(ScriptedGenerator("   \n"), "prompt", 0.7)
        assert not outcome.success

    @pytest.mark.asyncio
    async def test_success(self, orchestrator):
        """Non-empty output is returned as is."""
        outcome = await orchestrator.call_generation(ScriptedGenerator("code"), "prompt", 0.7)
        assert outcome.unwrap() == "code"
        assert outcome.elapsed >= 0
