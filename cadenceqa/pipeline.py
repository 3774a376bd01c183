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

"""Composition root for the quality pipeline.

``QualityPipeline`` builds every component from one ``QAConfig`` and wires
them together through constructors. It exposes the entry points used by
callers:

    pipeline = QualityPipeline(QAConfig(quality_threshold=85))
    verdict = pipeline.validate(code)
    repaired = pipeline.correct(code)
    result = await pipeline.generate_with_quality_assurance(request, model_call)
    verdict = await pipeline.cached_validate(code)
"""

from __future__ import annotations

import logging
from typing import Optional

from cadenceqa.config.settings import QAConfig
from cadenceqa.core.models import (
    ComprehensiveValidationResult,
    GenerationContext,
    GenerationRequest,
    QualityAssuredResult,
    ValidationPolicy,
)
from cadenceqa.correction.engine import AutoCorrectionEngine, CorrectionResult
from cadenceqa.generation.fallback import FallbackGenerator, TemplateProvider
from cadenceqa.generation.orchestrator import (
    GenerationFn,
    GenerationOptions,
    GenerationOrchestrator,
)
from cadenceqa.performance.optimizer import PerformanceOptimizer
from cadenceqa.validation.optimized import OptimizedValidator
from cadenceqa.validation.validator import CompositeValidator

logger = logging.getLogger(__name__)


class QualityPipeline:
    """Validation, correction, orchestration and caching behind one object.

    Args:
        config: Pipeline configuration; validated on construction
        template_provider: Optional ``(category) -> str`` fallback source
        logger: Logger handed to the validator, engine and orchestrator

    Raises:
        ConfigurationError: If ``config`` holds an out-of-range value
    """

    def __init__(
        self,
        config: Optional[QAConfig] = None,
        template_provider: Optional[TemplateProvider] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self.config = (config or QAConfig()).validate()
        self.policy = ValidationPolicy.STRICT if self.config.strict_mode else ValidationPolicy.LENIENT
        self.validator = CompositeValidator(policy=self.policy, logger=logger)
        self.correction_engine = AutoCorrectionEngine(
            max_rounds=self.config.max_correction_rounds,
            regeneration_threshold=self.config.regeneration_confidence_threshold,
            logger=logger,
        )
        self.fallback_generator = FallbackGenerator(template_provider)
        self.optimizer = PerformanceOptimizer(self.config)
        self.cached_validator = OptimizedValidator(self.validator, self.optimizer, logger=logger)
        self.orchestrator = GenerationOrchestrator(
            config=self.config,
            validator=self.validator,
            correction_engine=self.correction_engine,
            fallback_generator=self.fallback_generator,
            cached_validator=self.cached_validator,
            logger=logger,
        )

    def validate(
        self,
        text: str,
        context: Optional[GenerationContext] = None,
        policy: Optional[ValidationPolicy] = None,
    ) -> ComprehensiveValidationResult:
        return self.validator.validate(text, context, policy)

    def correct(self, text: str, context: Optional[GenerationContext] = None) -> CorrectionResult:
        return self.correction_engine.correct(text, context)

    async def generate_with_quality_assurance(
        self,
        request: GenerationRequest,
        generation_fn: GenerationFn,
        options: Optional[GenerationOptions] = None,
    ) -> QualityAssuredResult:
        """Run one orchestrated generation, then retune from its timings."""
        result = await self.orchestrator.generate_with_quality_assurance(request, generation_fn, options)
        self.optimizer.tune()
        return result

    async def cached_validate(
        self,
        text: str,
        context: Optional[GenerationContext] = None,
        policy: Optional[ValidationPolicy] = None,
    ) -> ComprehensiveValidationResult:
        """Validate through the cache; identical inputs are validated once."""
        return await self.cached_validator.validate(text, context, policy or self.policy)

    def tune(self) -> None:
        """Run the performance self-tuning rules between requests."""
        self.optimizer.tune()

    def clear_cache(self) -> None:
        self.optimizer.clear()
