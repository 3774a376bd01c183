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

"""Composite validator.

Runs every detector over a candidate text, groups the findings into six
results in a fixed order, computes the weighted quality score and the
completeness percentage, applies the validity policy and produces
recommendations.

Result order:
    syntax, logic, completeness, best-practices, contract-specific,
    functional-completeness

The validator never raises. Any internal exception is converted into a
failed result with a single ``system`` result and score 0.

Example:
    validator = CompositeValidator()
    verdict = validator.validate(code)
    if not verdict.is_valid:
        for line in verdict.recommendations:
            print(line)
"""

from __future__ import annotations

import logging
import re
import time
from functools import partial
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence

from cadenceqa.config.requirements import feature_present
from cadenceqa.core.errors import ValidationSystemFailure
from cadenceqa.core.models import (
    CodeLocation,
    ComprehensiveValidationResult,
    ContractCategory,
    GenerationContext,
    QualityRequirements,
    QualityScore,
    ResultType,
    Severity,
    ValidationIssue,
    ValidationPolicy,
    ValidationResult,
    count_by_severity,
)
from cadenceqa.detection.brackets import BracketMatcher
from cadenceqa.detection.scanner import location_at, mask_non_code
from cadenceqa.detection.statements import IncompleteStatementDetector
from cadenceqa.detection.structure import StructuralDetector, StructureReport, infer_contract_category
from cadenceqa.detection.undefined import UndefinedValueDetector
from cadenceqa.validation.completeness import (
    MISSING_RETURN,
    NO_BODY,
    FunctionalCompletenessValidator,
    FunctionalReport,
)
from cadenceqa.validation.contract_rules import ContractSpecificReport, ContractSpecificValidator
from cadenceqa.validation.recommendations import (
    SYSTEM_FAILURE_RECOMMENDATION,
    build_recommendations,
)
from cadenceqa.validation.scoring import BLOCKING_ISSUE_TYPES, QualityScoreCalculator

STRICT_COMPLETENESS_THRESHOLD = 80

# Weights of the completeness percentage
FUNCTION_WEIGHT = 30
STRUCTURE_WEIGHT = 30
EVENT_WEIGHT = 15
FUNCTIONAL_WEIGHT = 25


def _penalty_score(issues: Sequence[ValidationIssue], critical: int, warning: int, info: int) -> int:
    counts = count_by_severity(issues)
    return (
        100
        - counts[Severity.CRITICAL] * critical
        - counts[Severity.WARNING] * warning
        - counts[Severity.INFO] * info
    )


def is_valid_under(
    policy: ValidationPolicy,
    results: Sequence[ValidationResult],
    completeness_percentage: int,
) -> bool:
    """Apply a validity policy to a set of results."""
    issues = [issue for result in results for issue in result.issues]
    if policy == ValidationPolicy.STRICT:
        return (
            not any(issue.is_critical for issue in issues)
            and completeness_percentage >= STRICT_COMPLETENESS_THRESHOLD
        )
    return not any(issue.type in BLOCKING_ISSUE_TYPES for issue in issues)


class CompositeValidator:
    """Runs every check family and aggregates a verdict."""

    def __init__(
        self,
        undefined_detector: Optional[UndefinedValueDetector] = None,
        bracket_matcher: Optional[BracketMatcher] = None,
        statement_detector: Optional[IncompleteStatementDetector] = None,
        structural_detector: Optional[StructuralDetector] = None,
        contract_validator: Optional[ContractSpecificValidator] = None,
        functional_validator: Optional[FunctionalCompletenessValidator] = None,
        score_calculator: Optional[QualityScoreCalculator] = None,
        policy: ValidationPolicy = ValidationPolicy.LENIENT,
        logger: Optional[logging.Logger] = None,
    ):
        self.undefined_detector = undefined_detector or UndefinedValueDetector()
        self.bracket_matcher = bracket_matcher or BracketMatcher()
        self.statement_detector = statement_detector or IncompleteStatementDetector()
        self.structural_detector = structural_detector or StructuralDetector()
        self.contract_validator = contract_validator or ContractSpecificValidator()
        self.functional_validator = functional_validator or FunctionalCompletenessValidator(
            self.structural_detector
        )
        self.score_calculator = score_calculator or QualityScoreCalculator()
        self.policy = policy
        self.logger = logger or logging.getLogger(__name__)

    def validate(
        self,
        text: str,
        context: Optional[GenerationContext] = None,
        policy: Optional[ValidationPolicy] = None,
    ) -> ComprehensiveValidationResult:
        """Validate ``text``. Never raises."""
        policy = policy or self.policy
        start = time.monotonic()
        try:
            verdict = self._validate(text, context, policy)
        except Exception as exc:
            self.logger.warning(f"Validation system failure: {exc}", exc_info=True)
            return self.failure_result(exc, policy)
        self.logger.debug(
            "Validated %d chars in %.1fms: score=%d valid=%s",
            len(text),
            (time.monotonic() - start) * 1000,
            verdict.score,
            verdict.is_valid,
        )
        return verdict

    def _validate(
        self,
        text: str,
        context: Optional[GenerationContext],
        policy: ValidationPolicy,
    ) -> ComprehensiveValidationResult:
        category = self.category_for(text, context)
        outputs = {name: run() for name, run in self.validation_passes(text, category).items()}
        return self.assemble(text, context, policy, category, outputs)

    def validation_passes(self, text: str, category: ContractCategory) -> Dict[str, Callable[[], Any]]:
        """The independent check families, keyed by name.

        Each pass reads only ``text`` and ``category`` and shares no state
        with the others, so they may run in any order or concurrently.
        ``assemble`` turns their outputs into a verdict.
        """
        return {
            "brackets": partial(self.bracket_matcher.detect, text),
            "undefined": partial(self.undefined_detector.detect, text),
            "statements": partial(self.statement_detector.detect, text),
            "logic": partial(self.contract_validator.check_logic, text, category),
            "structure": partial(self.structural_detector.analyze, text, category),
            "contract": partial(self.contract_validator.validate, text, category),
        }

    def assemble(
        self,
        text: str,
        context: Optional[GenerationContext],
        policy: ValidationPolicy,
        category: ContractCategory,
        outputs: Mapping[str, Any],
    ) -> ComprehensiveValidationResult:
        """Build the verdict from the outputs of ``validation_passes``."""
        requirements = context.quality_requirements if context else QualityRequirements()

        syntax_issues: List[ValidationIssue] = []
        syntax_issues.extend(outputs["brackets"])
        syntax_issues.extend(outputs["undefined"])
        syntax_issues.extend(outputs["statements"])
        syntax = ValidationResult.from_issues(
            ResultType.SYNTAX,
            syntax_issues,
            _penalty_score(syntax_issues, 25, 10, 2),
            message="Syntax validation",
        )

        logic: ValidationResult = outputs["logic"]

        structure: StructureReport = outputs["structure"]
        structural_issues = structure.issues_in("structural", "completeness", "functional")
        completeness = ValidationResult.from_issues(
            ResultType.COMPLETENESS,
            structural_issues,
            _penalty_score(structural_issues, 25, 10, 5),
            message="Structural completeness validation",
        )

        practice_issues = structure.issues_in("best-practices")
        practice_issues.extend(self._prohibited_patterns(text, requirements))
        best_practices = ValidationResult.from_issues(
            ResultType.BEST_PRACTICES,
            practice_issues,
            _penalty_score(practice_issues, 15, 8, 3),
            message="Best practices validation",
        )

        contract_report: ContractSpecificReport = outputs["contract"]
        functional = self.functional_validator.validate(text, category, structure)

        results = (
            syntax,
            logic,
            completeness,
            best_practices,
            contract_report.result,
            functional.to_result(),
        )

        features = requirements.required_features
        fraction = (
            sum(1 for f in features if feature_present(f, text)) / len(features) if features else 1.0
        )
        score = self.score_calculator.calculate(results, functional.score, fraction)
        percentage = self.completeness_percentage(structure, functional)

        return ComprehensiveValidationResult(
            is_valid=is_valid_under(policy, results, percentage),
            overall_score=score,
            validation_results=results,
            completeness_percentage=percentage,
            recommendations=tuple(build_recommendations(results, structure, functional)),
            policy=policy,
        )

    @staticmethod
    def category_for(text: str, context: Optional[GenerationContext]) -> ContractCategory:
        if context is not None and context.contract_type.category != ContractCategory.GENERIC:
            return context.contract_type.category
        return infer_contract_category(text)

    @staticmethod
    def _prohibited_patterns(text: str, requirements: QualityRequirements) -> List[ValidationIssue]:
        masked = mask_non_code(text)
        issues = []
        for pattern in requirements.prohibited_patterns:
            if re.fullmatch(r"\w+", pattern):
                match = re.search(rf"\b{re.escape(pattern)}\b", masked)
            else:
                match = re.search(re.escape(pattern), text)
            if match is None:
                continue
            issues.append(
                ValidationIssue(
                    severity=Severity.WARNING,
                    type="prohibited-pattern",
                    location=location_at(text, match.start(), length=len(pattern)),
                    message=f"Prohibited pattern '{pattern}' found",
                    suggested_fix=f"Remove '{pattern}' from the code",
                    auto_fixable=False,
                    category="best-practices",
                )
            )
        return issues

    @staticmethod
    def completeness_percentage(structure: StructureReport, functional: FunctionalReport) -> int:
        """Weighted completeness: functions 30, structure 30, events 15, functional 25."""
        total = 0.0

        if structure.functions:
            function_scores = []
            for func in structure.functions:
                reasons = functional.incomplete_functions.get(func.name, [])
                critical = (
                    NO_BODY in reasons
                    or MISSING_RETURN in reasons
                    or func.name in structure.invalid_function_params
                    or func.name in structure.empty_functions
                )
                score = 0
                if func.access:
                    score += 25
                if func.has_body and func.name not in structure.empty_functions:
                    score += 50
                if func.return_type:
                    score += 25
                if not critical:
                    score = max(score, 75)
                function_scores.append(score)
            total += sum(function_scores) / len(function_scores) * FUNCTION_WEIGHT / 100

        structure_score = 0
        if structure.has_declaration:
            structure_score += 40
        if structure.has_init:
            structure_score += 30
        if not any(i.type == "missing-access-modifier" for i in structure.issues):
            structure_score += 20
        if not structure.missing_imports:
            structure_score += 10
        total += structure_score * STRUCTURE_WEIGHT / 100

        if structure.events:
            event_scores = [
                (25 if event.has_access else 0)
                + (50 if event.params_valid else 0)
                + (25 if event.emitted else 0)
                for event in structure.events
            ]
            total += sum(event_scores) / len(event_scores) * EVENT_WEIGHT / 100

        total += functional.score * FUNCTIONAL_WEIGHT / 100
        return max(0, min(100, round(total)))

    def failure_result(
        self, exc: BaseException, policy: Optional[ValidationPolicy] = None
    ) -> ComprehensiveValidationResult:
        """Build the verdict returned when the validator itself fails."""
        failure = exc if isinstance(exc, ValidationSystemFailure) else ValidationSystemFailure(
            f"Validation system failure: {exc}", stage="validate", cause=exc
        )
        issue = ValidationIssue(
            severity=Severity.CRITICAL,
            type="validation-system-failure",
            location=CodeLocation(line=1),
            message=f"Validation system failure: {exc}",
            suggested_fix="Manual review required",
            auto_fixable=False,
            category="system",
        )
        result = ValidationResult(
            type=ResultType.SYSTEM,
            passed=False,
            issues=(issue,),
            score=0,
            message="Validation system failure",
        )
        return ComprehensiveValidationResult(
            is_valid=False,
            overall_score=QualityScore.zero(),
            validation_results=(result,),
            completeness_percentage=0,
            recommendations=(SYSTEM_FAILURE_RECOMMENDATION,),
            policy=policy or self.policy,
            failure=failure,
        )
