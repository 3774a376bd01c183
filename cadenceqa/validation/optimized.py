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

"""Cached, concurrent validation.

``OptimizedValidator`` produces the same verdict as ``CompositeValidator``
but runs the check families through the optimizer's parallel runner. Two
cache levels are used:

- the full verdict, keyed by ``make_cache_key(text, context, policy)``
- each pass, keyed by pass name, category and text hash, so a policy or
  requirements change only reassembles the verdict

A failing pass is never cached. Like the composite validator, this one
never raises; failures come back as the validator's failure result.

Example:
    validator = OptimizedValidator(CompositeValidator(), PerformanceOptimizer())
    verdict = await validator.validate(code, context)
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, Dict, Optional

from cadenceqa.core.models import (
    ComprehensiveValidationResult,
    ContractCategory,
    GenerationContext,
    ValidationPolicy,
)
from cadenceqa.performance.cache import make_cache_key
from cadenceqa.performance.optimizer import PerformanceOptimizer
from cadenceqa.validation.validator import CompositeValidator


class OptimizedValidator:
    """Runs a composite validator's passes concurrently behind the cache."""

    def __init__(
        self,
        validator: Optional[CompositeValidator] = None,
        optimizer: Optional[PerformanceOptimizer] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self.validator = validator or CompositeValidator()
        self.optimizer = optimizer or PerformanceOptimizer()
        self.logger = logger or logging.getLogger(__name__)

    @property
    def policy(self) -> ValidationPolicy:
        return self.validator.policy

    async def validate(
        self,
        text: str,
        context: Optional[GenerationContext] = None,
        policy: Optional[ValidationPolicy] = None,
    ) -> ComprehensiveValidationResult:
        """Validate ``text``, serving repeats from the cache. Never raises."""
        policy = policy or self.validator.policy
        key = make_cache_key(text, context, policy)
        try:
            return await self.optimizer.optimized_validation(
                key, lambda: self._validate(text, context, policy, key)
            )
        except Exception as exc:
            self.logger.warning(f"Validation system failure: {exc}")
            return self.validator.failure_result(exc, policy)

    async def _validate(
        self,
        text: str,
        context: Optional[GenerationContext],
        policy: ValidationPolicy,
        key: str,
    ) -> ComprehensiveValidationResult:
        start = time.monotonic()
        category = self.validator.category_for(text, context)
        passes = self.validator.validation_passes(text, category)
        outputs = await self._run_passes(passes, self._pass_prefix(key, category))
        verdict = self.validator.assemble(text, context, policy, category, outputs)
        self.logger.debug(
            "Validated %d chars over %d parallel passes in %.1fms: score=%d valid=%s",
            len(text),
            len(passes),
            (time.monotonic() - start) * 1000,
            verdict.score,
            verdict.is_valid,
        )
        return verdict

    async def _run_passes(self, passes: Dict[str, Any], prefix: str) -> Dict[str, Any]:
        cache = self.optimizer.cache
        names = list(passes)
        tasks = [
            cache.optimized_validation(
                f"{name}:{prefix}", lambda run=passes[name]: asyncio.to_thread(run)
            )
            for name in names
        ]
        outcomes = await self.optimizer.runner.execute_parallel_validations(tasks)
        for name, outcome in zip(names, outcomes):
            if not outcome.success:
                self.logger.debug("Validation pass %s failed: %s", name, outcome.error)
                raise outcome.error
        return {name: outcome.value for name, outcome in zip(names, outcomes)}

    @staticmethod
    def _pass_prefix(key: str, category: ContractCategory) -> str:
        # Passes depend on the text and the category only
        text_hash = key.split(":", 1)[0]
        return f"{category.value}:{text_hash}"
