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

"""Tests for the QualityPipeline composition root."""

from unittest.mock import MagicMock

import pytest

from cadenceqa import (
    ConfigurationError,
    ContractCategory,
    GenerationRequest,
    QAConfig,
    QualityPipeline,
    ValidationPolicy,
)


class TestQualityPipeline:
    """Tests for QualityPipeline."""

    def test_invalid_config(self):
        """Construction validates the configuration."""
        with pytest.raises(ConfigurationError) as exc_info:
            QualityPipeline(QAConfig(quality_threshold=150))
        assert exc_info.value.field_name == "quality_threshold"

    def test_strict_mode_sets_policy(self):
        """strict_mode selects the strict validity policy."""
        assert QualityPipeline(QAConfig(strict_mode=True)).policy == ValidationPolicy.STRICT
        assert QualityPipeline().policy == ValidationPolicy.LENIENT

    def test_components_share_config(self):
        """The orchestrator uses the pipeline's validator and engine."""
        pipeline = QualityPipeline(QAConfig(max_correction_rounds=2))
        assert pipeline.orchestrator.validator is pipeline.validator
        assert pipeline.orchestrator.correction_engine is pipeline.correction_engine
        assert pipeline.correction_engine.max_rounds == 2

    def test_validate_and_correct(self, counter_contract):
        """Validation and correction are exposed directly."""
        pipeline = QualityPipeline()
        broken = counter_contract.replace("access(all) var count: Int\n", "access(all) var count: Int = undefined\n")

        assert not pipeline.validate(broken).is_valid
        repaired = pipeline.correct(broken)
        assert pipeline.validate(repaired.corrected_code).is_valid

    @pytest.mark.asyncio
    async def test_cached_validate(self, counter_contract):
        """Repeated validation of the same text is served from the cache."""
        pipeline = QualityPipeline()
        detector = pipeline.validator.undefined_detector
        detector.detect = MagicMock(wraps=detector.detect)

        first = await pipeline.cached_validate(counter_contract)
        second = await pipeline.cached_validate(counter_contract)

        assert first is second
        detector.detect.assert_called_once()
        assert pipeline.optimizer.stats().cache_hits == 1

    @pytest.mark.asyncio
    async def test_cache_keyed_by_policy(self, counter_contract):
        """Strict and lenient verdicts are cached separately over shared passes."""
        pipeline = QualityPipeline()
        detector = pipeline.validator.undefined_detector
        detector.detect = MagicMock(wraps=detector.detect)

        lenient = await pipeline.cached_validate(counter_contract)
        strict = await pipeline.cached_validate(counter_contract, policy=ValidationPolicy.STRICT)

        assert lenient.policy == ValidationPolicy.LENIENT
        assert strict.policy == ValidationPolicy.STRICT
        detector.detect.assert_called_once()

    @pytest.mark.asyncio
    async def test_cached_validate_matches_validate(self, counter_contract):
        """The cached path reaches the same verdict as direct validation."""
        pipeline = QualityPipeline()
        broken = counter_contract.replace("self.count = 0", "self.count = undefined")

        direct = pipeline.validate(broken)
        cached = await pipeline.cached_validate(broken)

        assert cached.score == direct.score
        assert cached.is_valid == direct.is_valid
        assert [issue.type for issue in cached.issues] == [issue.type for issue in direct.issues]

    @pytest.mark.asyncio
    async def test_generation_feeds_optimizer(self, counter_contract):
        """Each orchestrated run is recorded for tuning."""
        pipeline = QualityPipeline()

        async def model_call(prompt, temperature):
            return counter_contract

        await pipeline.generate_with_quality_assurance(
            GenerationRequest(prompt="Create a counter", category=ContractCategory.GENERIC), model_call
        )

        stats = pipeline.optimizer.stats()
        assert stats.generations == 1
        assert stats.generation_overruns == 0
        assert stats.cache_misses >= 1

    @pytest.mark.asyncio
    async def test_generate_with_quality_assurance(self, counter_contract):
        """Generation runs through the orchestrator."""
        pipeline = QualityPipeline()

        async def model_call(prompt, temperature):
            return counter_contract

        result = await pipeline.generate_with_quality_assurance(
            GenerationRequest(prompt="Create a counter", category=ContractCategory.GENERIC), model_call
        )

        assert result.code == counter_contract
        assert not result.fallback_used

    @pytest.mark.asyncio
    async def test_template_provider_used_for_fallback(self):
        """A custom template provider supplies the fallback contract."""
        template = (
            "access(all) contract Custom {\n"
            "    access(all) fun ping(): Bool {\n"
            "        return true\n"
            "    }\n"
            "    init() {}\n"
            "}\n"
        )
        provider = MagicMock(return_value=template)
        pipeline = QualityPipeline(QAConfig(max_retries=1), template_provider=provider)

        async def model_call(prompt, temperature):
            raise ConnectionError("offline")

        result = await pipeline.generate_with_quality_assurance(
            GenerationRequest(prompt="Create a counter", category=ContractCategory.GENERIC), model_call
        )

        assert result.fallback_used
        assert result.code == template
        provider.assert_called_once_with(ContractCategory.GENERIC)

    def test_clear_cache(self):
        """clear_cache empties the validation cache."""
        pipeline = QualityPipeline()
        pipeline.optimizer.cache.put("k", 1)
        pipeline.tune()
        pipeline.clear_cache()
        assert len(pipeline.optimizer.cache) == 0
