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

"""Generation orchestrator.

Turns an unreliable generation function into a usable contract with an
explicit state machine:

    GENERATING -> VALIDATING -> [CORRECTING -> REVALIDATING] -> ACCEPTED
                                                             \\-> RETRYING -> GENERATING
    RETRYING (retries exhausted) -> FALLBACK_ACTIVATED | DEGRADED

Every generation attempt is isolated: an exception or timeout from the
generation function becomes a failed attempt, never a pipeline error. Once
``max_retries`` attempts have failed, a deterministic fallback template is
validated and returned, or, with fallback disabled, the best attempt seen.

Example:
    orchestrator = GenerationOrchestrator(QAConfig())
    result = await orchestrator.generate_with_quality_assurance(
        GenerationRequest(prompt="Create a basic NFT collection"),
        my_model_call,
    )
    print(result.quality_score, result.fallback_used)
"""

from __future__ import annotations

import asyncio
import inspect
import logging
import time
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Awaitable, Callable, List, Optional, Union

from cadenceqa.config.requirements import requirements_for_experience
from cadenceqa.config.settings import QAConfig
from cadenceqa.core.errors import GenerationFailure
from cadenceqa.core.models import (
    ComprehensiveValidationResult,
    ContractType,
    CorrectionAttempt,
    GenerationContext,
    GenerationMetrics,
    GenerationRequest,
    PerformanceRequirements,
    QualityAssuredResult,
    QualityRequirements,
    QualityScore,
    UserExperience,
    ValidationPolicy,
)
from cadenceqa.core.outcome import Outcome
from cadenceqa.correction.engine import AutoCorrectionEngine, CorrectionResult
from cadenceqa.generation.fallback import FallbackGenerator
from cadenceqa.generation.prompts import PromptEnhancer, failure_types_from
from cadenceqa.generation.templates import emergency_template
from cadenceqa.validation.optimized import OptimizedValidator
from cadenceqa.validation.validator import CompositeValidator

logger = logging.getLogger(__name__)

GenerationFn = Callable[[str, float], Union[str, Awaitable[str]]]


class GenerationState(str, Enum):
    GENERATING = "generating"
    VALIDATING = "validating"
    CORRECTING = "correcting"
    REVALIDATING = "revalidating"
    ACCEPTED = "accepted"
    RETRYING = "retrying"
    FALLBACK_ACTIVATED = "fallback-activated"
    DEGRADED = "degraded"


@dataclass(frozen=True)
class GenerationOptions:
    """Per-call overrides of ``QAConfig``. ``None`` keeps the config value."""

    quality_threshold: Optional[int] = None
    max_retries: Optional[int] = None
    enable_auto_correction: Optional[bool] = None
    enable_fallback_generation: Optional[bool] = None
    strict_mode: Optional[bool] = None
    enhance_prompts: bool = True


@dataclass
class _Candidate:
    code: str
    verdict: ComprehensiveValidationResult
    attempt_number: int


@dataclass
class _Run:
    """Mutable bookkeeping for one orchestration run."""

    context: GenerationContext
    threshold: int
    max_retries: int
    auto_correct: bool
    fallback_enabled: bool
    policy: ValidationPolicy
    base_temperature: float
    attempt: int = 0
    code: str = ""
    verdict: Optional[ComprehensiveValidationResult] = None
    correction: Optional[CorrectionResult] = None
    best: Optional[_Candidate] = None
    previous_failures: List[str] = field(default_factory=list)
    correction_history: List[CorrectionAttempt] = field(default_factory=list)
    validation_time: float = 0.0
    correction_time: float = 0.0
    issues_detected: int = 0
    issues_fixed: int = 0
    started: float = field(default_factory=time.monotonic)
    start_time: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def consider(self, code: str, verdict: ComprehensiveValidationResult) -> None:
        if self.best is None or verdict.score > self.best.verdict.score:
            self.best = _Candidate(code, verdict, self.attempt)

    def note_failures(self, failures: List[str]) -> None:
        for failure in failures:
            if failure not in self.previous_failures:
                self.previous_failures.append(failure)


class GenerationOrchestrator:
    """Retry, correction and fallback loop around a generation function."""

    def __init__(
        self,
        config: Optional[QAConfig] = None,
        validator: Optional[CompositeValidator] = None,
        correction_engine: Optional[AutoCorrectionEngine] = None,
        fallback_generator: Optional[FallbackGenerator] = None,
        prompt_enhancer: Optional[PromptEnhancer] = None,
        cached_validator: Optional[OptimizedValidator] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self.config = (config or QAConfig()).validate()
        self.validator = validator or CompositeValidator()
        self.correction_engine = correction_engine or AutoCorrectionEngine(
            max_rounds=self.config.max_correction_rounds,
            regeneration_threshold=self.config.regeneration_confidence_threshold,
        )
        self.fallback_generator = fallback_generator or FallbackGenerator()
        self.prompt_enhancer = prompt_enhancer or PromptEnhancer()
        # With a cached validator, attempts validate concurrently behind the cache
        # and every finished run is reported to its optimizer
        self.cached_validator = cached_validator
        self.optimizer = cached_validator.optimizer if cached_validator is not None else None
        self.logger = logger or logging.getLogger(__name__)

    # -------------------------------------------------------------------------
    # Public API
    # -------------------------------------------------------------------------

    async def generate_with_quality_assurance(
        self,
        request: GenerationRequest,
        generation_fn: GenerationFn,
        options: Optional[GenerationOptions] = None,
    ) -> QualityAssuredResult:
        """Run the state machine for one request. Never raises."""
        run = self._start_run(request, options or GenerationOptions())
        enhance = options.enhance_prompts if options is not None else True
        self.logger.info(
            f"Starting quality-assured generation: category={run.context.contract_type.category.value} "
            f"threshold={run.threshold} max_retries={run.max_retries}"
        )

        state = GenerationState.GENERATING if run.max_retries > 0 else GenerationState.RETRYING
        while True:
            if state == GenerationState.GENERATING:
                run.attempt += 1
                state = await self._generate(run, generation_fn, enhance)

            elif state == GenerationState.VALIDATING:
                run.verdict = await self._validate(run, run.code, run.policy)
                run.issues_detected += len(run.verdict.issues)
                run.consider(run.code, run.verdict)
                # An invalid verdict is never accepted on score alone
                if not run.verdict.is_valid and run.auto_correct:
                    state = GenerationState.CORRECTING
                elif run.verdict.is_valid and run.verdict.score >= run.threshold:
                    state = GenerationState.ACCEPTED
                else:
                    run.note_failures(failure_types_from(run.verdict.validation_results))
                    state = GenerationState.RETRYING

            elif state == GenerationState.CORRECTING:
                state = self._correct(run)

            elif state == GenerationState.REVALIDATING:
                state = await self._revalidate(run)

            elif state == GenerationState.RETRYING:
                run.context.previous_attempts = list(run.correction_history)
                if run.attempt < run.max_retries:
                    self.logger.info(f"Attempt {run.attempt} rejected; retrying")
                    state = GenerationState.GENERATING
                elif run.fallback_enabled:
                    state = GenerationState.FALLBACK_ACTIVATED
                else:
                    state = GenerationState.DEGRADED

            elif state == GenerationState.ACCEPTED:
                if run.verdict is None:
                    state = GenerationState.VALIDATING
                    continue
                self.logger.info(f"Accepted attempt {run.attempt} with score {run.verdict.score}")
                return self._finish(run, run.code, run.verdict, fallback_used=False, final=state)

            elif state == GenerationState.FALLBACK_ACTIVATED:
                return await self._fallback(run, request)

            else:
                return self._degraded(run)

    # -------------------------------------------------------------------------
    # Setup
    # -------------------------------------------------------------------------

    def _start_run(self, request: GenerationRequest, options: GenerationOptions) -> _Run:
        config = self.config
        detection = self.fallback_generator.detect_contract_type(request.prompt)
        contract_type = detection.contract_type
        if request.category is not None:
            contract_type = ContractType(request.category, contract_type.complexity, contract_type.features)

        if request.user_experience is not None:
            requirements = requirements_for_experience(request.user_experience, config)
        else:
            requirements = QualityRequirements(
                minimum_quality_score=config.quality_threshold,
                performance=PerformanceRequirements(
                    max_generation_time=config.max_generation_time,
                    max_validation_time=config.max_validation_time,
                    max_retry_attempts=config.max_retries,
                ),
            )
        if options.quality_threshold is not None:
            requirements = replace(requirements, minimum_quality_score=options.quality_threshold)

        intent = request.prompt if not request.context else f"{request.prompt}\n\nContext: {request.context}"
        context = GenerationContext(
            user_intent=intent,
            contract_type=contract_type,
            quality_requirements=requirements,
            user_experience=request.user_experience or UserExperience.INTERMEDIATE,
        )

        strict = _first_set(request.strict_mode, options.strict_mode, config.strict_mode)
        return _Run(
            context=context,
            threshold=requirements.minimum_quality_score,
            max_retries=max(0, _first_set(request.max_retries, options.max_retries, config.max_retries)),
            auto_correct=_first_set(options.enable_auto_correction, config.enable_auto_correction),
            fallback_enabled=_first_set(
                options.enable_fallback_generation, config.enable_fallback_generation
            ),
            policy=ValidationPolicy.STRICT if strict else ValidationPolicy.LENIENT,
            base_temperature=_first_set(request.temperature, config.base_temperature),
        )

    def temperature_for(self, base: float, attempt: int) -> float:
        """Temperature of attempt ``attempt`` (1-based), lowered per retry."""
        lowered = base - (attempt - 1) * self.config.temperature_step
        return round(max(self.config.min_temperature, lowered), 4)

    # -------------------------------------------------------------------------
    # States
    # -------------------------------------------------------------------------

    async def _generate(
        self,
        run: _Run,
        generation_fn: GenerationFn,
        enhance: bool,
    ) -> GenerationState:
        temperature = self.temperature_for(run.base_temperature, run.attempt)
        prompt = run.context.user_intent
        if enhance:
            prompt = self.prompt_enhancer.enhance(
                prompt,
                run.context,
                attempt_number=run.attempt,
                previous_failures=run.previous_failures,
                strict_mode=run.policy == ValidationPolicy.STRICT,
            ).as_text()

        self.logger.info(f"Generation attempt {run.attempt}/{run.max_retries} at temperature {temperature}")
        outcome = await self.call_generation(
            generation_fn,
            prompt,
            temperature,
            attempt=run.attempt,
            timeout=run.context.quality_requirements.performance.max_generation_time,
        )
        if not outcome.success:
            run.note_failures(["generation-error"])
            return GenerationState.RETRYING
        run.code = outcome.unwrap()
        return GenerationState.VALIDATING

    async def call_generation(
        self,
        generation_fn: GenerationFn,
        prompt: str,
        temperature: float,
        attempt: int = 1,
        timeout: Optional[float] = None,
    ) -> Outcome[str]:
        """Invoke the generation function once, encoding any failure as an Outcome."""
        start = time.monotonic()
        timeout = timeout if timeout is not None else self.config.max_generation_time
        try:
            code = await asyncio.wait_for(_invoke(generation_fn, prompt, temperature), timeout=timeout)
        except asyncio.TimeoutError:
            error = GenerationFailure(
                f"Generation timed out after {timeout}s", attempt=attempt, timed_out=True
            )
        except Exception as e:
            error = GenerationFailure(f"Generation failed: {e}", attempt=attempt, cause=e)
        else:
            if isinstance(code, str) and code.strip():
                return Outcome.ok(code, elapsed=time.monotonic() - start)
            error = GenerationFailure("Generation returned no code", attempt=attempt)

        self.logger.warning(f"Generation attempt {attempt} failed: {error.message}")
        return Outcome.fail(error, elapsed=time.monotonic() - start)

    async def _validate(
        self, run: _Run, code: str, policy: ValidationPolicy
    ) -> ComprehensiveValidationResult:
        start = time.monotonic()
        if self.cached_validator is not None:
            verdict = await self.cached_validator.validate(code, run.context, policy)
        else:
            verdict = self.validator.validate(code, run.context, policy)
        run.validation_time += time.monotonic() - start
        return verdict

    def _correct(self, run: _Run) -> GenerationState:
        if run.verdict is None:
            return GenerationState.VALIDATING
        start = time.monotonic()
        run.correction = self.correction_engine.correct(run.code, run.context)
        run.correction_time += time.monotonic() - start

        if run.correction.corrections_applied:
            return GenerationState.REVALIDATING

        run.correction_history.append(
            CorrectionAttempt(
                attempt_number=run.attempt,
                corrections=(),
                success=False,
                quality_improvement=0.0,
            )
        )
        run.note_failures(failure_types_from(run.verdict.validation_results))
        return GenerationState.RETRYING

    async def _revalidate(self, run: _Run) -> GenerationState:
        if run.verdict is None or run.correction is None:
            return GenerationState.CORRECTING
        before = run.verdict
        corrected = run.correction.corrected_code
        after = await self._validate(run, corrected, run.policy)

        improvement = float(after.score - before.score)
        run.correction_history.append(
            CorrectionAttempt(
                attempt_number=run.attempt,
                corrections=tuple(run.correction.corrections_applied),
                success=improvement > 0,
                quality_improvement=improvement,
            )
        )
        run.issues_fixed += max(0, len(before.issues) - len(after.issues))
        self.logger.debug(
            "Correction of attempt %d: %d repairs, score %d -> %d, confidence %d",
            run.attempt,
            len(run.correction.corrections_applied),
            before.score,
            after.score,
            run.correction.confidence,
        )

        run.code, run.verdict = corrected, after
        run.consider(corrected, after)
        accepted = after.is_valid and after.score >= run.threshold
        if accepted and not run.correction.requires_regeneration:
            return GenerationState.ACCEPTED
        run.note_failures(failure_types_from(after.validation_results))
        return GenerationState.RETRYING

    async def _fallback(self, run: _Run, request: GenerationRequest) -> QualityAssuredResult:
        # The fallback counts as one more attempt
        run.attempt += 1
        category = run.context.contract_type.category
        self.logger.info(f"Retries exhausted; activating {category.value} fallback template")

        fallback = self.fallback_generator.generate_fallback(request.prompt, category)
        verdict = await self._validate(run, fallback.code, ValidationPolicy.LENIENT)
        code = fallback.code
        if not verdict.is_valid and code != emergency_template():
            self.logger.warning(
                f"Fallback template {fallback.template_used} failed validation; using emergency template"
            )
            code = emergency_template()
            verdict = await self._validate(run, code, ValidationPolicy.LENIENT)
        return self._finish(
            run, code, verdict, fallback_used=True, final=GenerationState.FALLBACK_ACTIVATED
        )

    def _degraded(self, run: _Run) -> QualityAssuredResult:
        if run.best is None:
            self.logger.warning("Every generation attempt failed and fallback is disabled")
            return self._finish(run, "", None, fallback_used=False, final=GenerationState.DEGRADED)
        self.logger.warning(
            f"Returning best attempt {run.best.attempt_number} with score {run.best.verdict.score}"
        )
        return self._finish(
            run, run.best.code, run.best.verdict, fallback_used=False, final=GenerationState.DEGRADED
        )

    # -------------------------------------------------------------------------
    # Result assembly
    # -------------------------------------------------------------------------

    def _finish(
        self,
        run: _Run,
        code: str,
        verdict: Optional[ComprehensiveValidationResult],
        fallback_used: bool,
        final: GenerationState,
    ) -> QualityAssuredResult:
        elapsed = time.monotonic() - run.started
        budget_exceeded = elapsed > self.config.total_time_budget
        if budget_exceeded:
            self.logger.warning(
                f"Generation took {elapsed:.2f}s, over the {self.config.total_time_budget}s budget"
            )
        if self.optimizer is not None:
            self.optimizer.record_generation(elapsed, budget_exceeded)
        quality = verdict.overall_score if verdict is not None else QualityScore.zero()
        metrics = GenerationMetrics(
            attempt_count=run.attempt,
            total_generation_time=elapsed,
            validation_time=run.validation_time,
            correction_time=run.correction_time,
            final_quality_score=quality.overall,
            issues_detected=run.issues_detected,
            issues_fixed=run.issues_fixed,
            start_time=run.start_time,
            end_time=datetime.now(timezone.utc),
            budget_exceeded=budget_exceeded,
        )
        return QualityAssuredResult(
            code=code,
            quality_score=quality.overall,
            validation_results=verdict.validation_results if verdict is not None else (),
            correction_history=tuple(run.correction_history),
            fallback_used=fallback_used,
            generation_metrics=metrics,
            final_state=final.value,
            quality=quality,
        )


async def _invoke(generation_fn: GenerationFn, prompt: str, temperature: float) -> str:
    """Await async generation functions; run sync ones in a worker thread."""
    if inspect.iscoroutinefunction(generation_fn):
        return await generation_fn(prompt, temperature)
    result = await asyncio.to_thread(generation_fn, prompt, temperature)
    if inspect.isawaitable(result):
        result = await result
    return result


def _first_set(*values):
    """First value that is not None."""
    for value in values:
        if value is not None:
            return value
    return None
