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

"""Weighted quality score.

overall = 0.25 syntax + 0.25 logic + 0.25 completeness
        + 0.15 best practices + 0.10 production readiness

followed by three caps: a critical syntax issue caps the score at 59, so
does any issue that blocks compilation (a missing init, say), and a
completeness component below 60 caps it at completeness + 20. Every term
only decreases as critical issues are added, so the overall score is
monotone in the number of critical issues.
"""

from __future__ import annotations

from typing import Dict, Optional, Sequence

from cadenceqa.core.models import (
    QUALITY_THRESHOLDS,
    QualityScore,
    ResultType,
    ValidationResult,
    clamp_score,
)

WEIGHTS: Dict[str, float] = {
    "syntax": 0.25,
    "logic": 0.25,
    "completeness": 0.25,
    "best_practices": 0.15,
    "production_readiness": 0.10,
}

# Issue types that stop a contract from compiling at all
BLOCKING_ISSUE_TYPES = frozenset(
    {
        "literal-undefined",
        "incomplete-declaration",
        "incomplete-assignment",
        "missing-close",
        "missing-open",
        "incomplete-function-signature",
        "missing-contract-declaration",
        "missing-init",
        "missing-return",
    }
)

SYNTAX_CRITICAL_CAP = 59
# A blocking issue anywhere keeps the score below the minimum as well
BLOCKING_ISSUE_CAP = SYNTAX_CRITICAL_CAP
COMPLETENESS_CAP_MARGIN = 20
NON_FIXABLE_CRITICAL_PENALTY = 30


def _score_of(results: Sequence[ValidationResult], result_type: ResultType, default: int = 100) -> int:
    for result in results:
        if result.type == result_type:
            return result.score
    return default


class QualityScoreCalculator:
    """Turns per-family results into a ``QualityScore``."""

    def calculate(
        self,
        results: Sequence[ValidationResult],
        functional_score: Optional[int] = None,
        feature_fraction: float = 1.0,
    ) -> QualityScore:
        """Compute the weighted score.

        Args:
            results: Validation results in any order.
            functional_score: Functional-completeness score; read from the
                results when omitted.
            feature_fraction: Share of required features present, in [0, 1].
        """
        syntax = _score_of(results, ResultType.SYNTAX)
        logic = _score_of(results, ResultType.LOGIC)
        best_practices = _score_of(results, ResultType.BEST_PRACTICES)
        if functional_score is None:
            functional_score = _score_of(results, ResultType.FUNCTIONAL_COMPLETENESS)
        structural = _score_of(results, ResultType.COMPLETENESS)
        fraction = min(1.0, max(0.0, feature_fraction))
        completeness = clamp_score(min(structural, functional_score) * fraction)

        non_fixable_criticals = sum(
            1
            for result in results
            for issue in result.issues
            if issue.is_critical and not issue.auto_fixable
        )
        readiness = self.production_readiness(
            syntax, logic, completeness, best_practices, non_fixable_criticals
        )

        overall = (
            syntax * WEIGHTS["syntax"]
            + logic * WEIGHTS["logic"]
            + completeness * WEIGHTS["completeness"]
            + best_practices * WEIGHTS["best_practices"]
            + readiness * WEIGHTS["production_readiness"]
        )
        syntax_result = next((r for r in results if r.type == ResultType.SYNTAX), None)
        if syntax_result is not None and syntax_result.critical_issues:
            overall = min(overall, SYNTAX_CRITICAL_CAP)
        if any(issue.type in BLOCKING_ISSUE_TYPES for result in results for issue in result.issues):
            overall = min(overall, BLOCKING_ISSUE_CAP)
        if completeness < QUALITY_THRESHOLDS["minimum"]:
            overall = min(overall, completeness + COMPLETENESS_CAP_MARGIN)

        return QualityScore(
            overall=clamp_score(overall),
            syntax=clamp_score(syntax),
            logic=clamp_score(logic),
            completeness=completeness,
            best_practices=clamp_score(best_practices),
            production_readiness=clamp_score(readiness),
        )

    @staticmethod
    def production_readiness(
        syntax: int,
        logic: int,
        completeness: int,
        best_practices: int,
        non_fixable_criticals: int = 0,
    ) -> int:
        minimum = QUALITY_THRESHOLDS["minimum"]
        if syntax < minimum or logic < minimum or completeness < minimum:
            return 0
        raw = (syntax + logic + completeness + best_practices) / 4
        raw -= non_fixable_criticals * NON_FIXABLE_CRITICAL_PENALTY
        if raw >= QUALITY_THRESHOLDS["excellent"]:
            return 100
        if raw >= QUALITY_THRESHOLDS["good"]:
            return QUALITY_THRESHOLDS["production_ready"]
        if raw >= minimum:
            return 70
        return clamp_score(raw)
