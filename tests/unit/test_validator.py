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

"""Tests for the composite validator and quality scoring."""

from unittest.mock import MagicMock

import pytest

from cadenceqa.core.errors import ValidationSystemFailure
from cadenceqa.core.models import (
    CodeLocation,
    ContractCategory,
    ContractType,
    GenerationContext,
    QualityRequirements,
    ResultType,
    Severity,
    ValidationIssue,
    ValidationPolicy,
    ValidationResult,
)
from cadenceqa.validation.recommendations import (
    DEFAULT_RECOMMENDATION,
    SYSTEM_FAILURE_RECOMMENDATION,
)
from cadenceqa.validation.scoring import BLOCKING_ISSUE_CAP, SYNTAX_CRITICAL_CAP, QualityScoreCalculator
from cadenceqa.validation.validator import CompositeValidator

RESULT_ORDER = [
    ResultType.SYNTAX,
    ResultType.LOGIC,
    ResultType.COMPLETENESS,
    ResultType.BEST_PRACTICES,
    ResultType.CONTRACT_SPECIFIC,
    ResultType.FUNCTIONAL_COMPLETENESS,
]


def clean_results():
    return [ValidationResult.from_issues(result_type, [], 100) for result_type in RESULT_ORDER]


class TestQualityScoreCalculator:
    """Tests for QualityScoreCalculator."""

    def setup_method(self):
        self.calculator = QualityScoreCalculator()

    def test_perfect_results(self):
        """Clean results score 100 everywhere."""
        score = self.calculator.calculate(clean_results())
        assert score.overall == 100
        assert score.production_readiness == 100

    def test_syntax_critical_caps_score(self):
        """A critical syntax issue caps the overall score."""
        issue = ValidationIssue(
            severity=Severity.CRITICAL,
            type="literal-undefined",
            location=CodeLocation(line=1),
            message="undefined",
            auto_fixable=True,
        )
        results = clean_results()
        results[0] = ValidationResult.from_issues(ResultType.SYNTAX, [issue], 75)
        assert self.calculator.calculate(results).overall == SYNTAX_CRITICAL_CAP

    def test_blocking_issue_caps_score(self):
        """A blocking issue outside the syntax family caps the score too."""
        issue = ValidationIssue(
            severity=Severity.CRITICAL,
            type="missing-init",
            location=CodeLocation(line=1),
            message="Contract has no init() function",
        )
        results = clean_results()
        results[2] = ValidationResult.from_issues(ResultType.COMPLETENESS, [issue], 75)
        assert self.calculator.calculate(results).overall == BLOCKING_ISSUE_CAP

    def test_low_completeness_caps_score(self):
        """Completeness below 60 caps the score at completeness + 20."""
        score = self.calculator.calculate(clean_results(), functional_score=30)
        assert score.completeness == 30
        assert score.overall == 50
        assert score.production_readiness == 0

    def test_feature_fraction_scales_completeness(self):
        """Missing required features lower completeness."""
        score = self.calculator.calculate(clean_results(), feature_fraction=0.5)
        assert score.completeness == 50

    @pytest.mark.parametrize(
        "raw,expected",
        [(95, 100), (80, 85), (65, 70)],
    )
    def test_production_readiness_bands(self, raw, expected):
        """Readiness is banded by the mean of the components."""
        assert QualityScoreCalculator.production_readiness(raw, raw, raw, raw) == expected

    def test_non_fixable_criticals_penalize_readiness(self):
        """Each non-fixable critical lowers readiness."""
        assert QualityScoreCalculator.production_readiness(100, 100, 100, 100, 1) == 70


class TestCompositeValidator:
    """Tests for CompositeValidator."""

    def test_clean_contract_is_valid(self, validator, counter_contract):
        """A defect-free contract is valid with a high score."""
        verdict = validator.validate(counter_contract)
        assert verdict.is_valid
        assert verdict.issues == []
        assert verdict.score >= 90
        assert verdict.recommendations == (DEFAULT_RECOMMENDATION,)
        assert verdict.policy == ValidationPolicy.LENIENT

    def test_result_order(self, validator, counter_contract):
        """Results come back in a fixed order."""
        verdict = validator.validate(counter_contract)
        assert [r.type for r in verdict.validation_results] == RESULT_ORDER

    def test_nft_template_scores_high(self, validator, nft_contract):
        """The NFT fallback contract passes with a good score."""
        verdict = validator.validate(nft_contract)
        assert verdict.is_valid
        assert verdict.score >= 80

    def test_undefined_is_blocking(self, validator, counter_contract):
        """An undefined literal invalidates the contract under either policy."""
        code = counter_contract.replace("self.count = 0", "self.count = undefined")
        verdict = validator.validate(code)
        assert not verdict.is_valid
        assert verdict.score <= SYNTAX_CRITICAL_CAP
        assert "Remove undefined values and replace with appropriate defaults" in verdict.recommendations

    def test_policies_differ_on_non_blocking_criticals(self, validator, counter_contract):
        """Strict rejects any critical issue; lenient only blocking ones."""
        code = counter_contract.replace("access(all) fun increment", "fun increment")
        lenient = validator.validate(code, policy=ValidationPolicy.LENIENT)
        strict = validator.validate(code, policy=ValidationPolicy.STRICT)
        assert lenient.critical_issues
        assert lenient.is_valid
        assert not strict.is_valid
        assert strict.policy == ValidationPolicy.STRICT
        assert lenient.score == strict.score

    def test_score_monotone_in_criticals(self, validator, counter_contract):
        """Adding critical issues never raises the score."""
        scores = []
        code = counter_contract
        for index in range(3):
            code = code.replace(
                "    init() {",
                f"    access(all) let extra{index}: Int = undefined\n\n    init() {{",
                1,
            )
            scores.append(validator.validate(code).score)
        assert scores == sorted(scores, reverse=True)

    def test_prohibited_patterns(self, validator, counter_contract):
        """Prohibited patterns produce one warning each."""
        code = counter_contract.replace("self.count = self.count + 1", "self.count = self.count + 1 // TODO")
        verdict = validator.validate(code)
        practices = verdict.result_for(ResultType.BEST_PRACTICES)
        prohibited = [i for i in practices.issues if i.type == "prohibited-pattern"]
        assert len(prohibited) == 1
        assert "// TODO" in prohibited[0].message

    def test_required_features_from_context(self, validator, counter_contract):
        """Missing required features lower the score."""
        context = GenerationContext(
            quality_requirements=QualityRequirements(required_features=("complete-documentation",))
        )
        plain = validator.validate(counter_contract)
        demanding = validator.validate(counter_contract, context)
        assert demanding.score < plain.score

    def test_context_category_overrides_inference(self, validator, counter_contract):
        """The context category decides which rules apply."""
        context = GenerationContext(contract_type=ContractType(category=ContractCategory.NFT))
        verdict = validator.validate(counter_contract, context)
        contract_result = verdict.result_for(ResultType.CONTRACT_SPECIFIC)
        assert "nft" in contract_result.message

    def test_internal_error_becomes_failure_result(self, counter_contract):
        """A detector crash yields a failed verdict instead of an exception."""
        broken = MagicMock()
        broken.detect.side_effect = RuntimeError("detector exploded")
        validator = CompositeValidator(bracket_matcher=broken)

        verdict = validator.validate(counter_contract)

        assert not verdict.is_valid
        assert verdict.score == 0
        assert verdict.completeness_percentage == 0
        assert [r.type for r in verdict.validation_results] == [ResultType.SYSTEM]
        assert verdict.recommendations == (SYSTEM_FAILURE_RECOMMENDATION,)
        assert isinstance(verdict.failure, ValidationSystemFailure)
        assert verdict.failure.cause is broken.detect.side_effect

    def test_completeness_percentage(self, validator, counter_contract):
        """Completeness is reported as a percentage."""
        verdict = validator.validate(counter_contract)
        assert 0 <= verdict.completeness_percentage <= 100
        assert verdict.completeness_percentage >= 80

    def test_missing_init_is_invalid_and_capped(self, validator, counter_contract):
        """A contract without init is rejected and scores below the minimum."""
        code = counter_contract.replace("    init() {\n        self.count = 0\n    }\n", "")
        verdict = validator.validate(code)
        assert "missing-init" in [issue.type for issue in verdict.issues]
        assert not verdict.is_valid
        assert verdict.score <= BLOCKING_ISSUE_CAP

    def test_recommendation_order(self, validator, counter_contract):
        """Recommendations follow the rule order when several rules fire."""
        code = (
            counter_contract.replace("    init() {\n        self.count = 0\n    }\n", "")
            .replace("self.count = self.count + 1", "self.count = undefined")
            .replace("access(all) fun increment", "fun increment")
        )
        expected = [
            "Fix syntax errors to ensure code compiles correctly",
            "Add init() function for contract initialization",
            "Remove undefined values and replace with appropriate defaults",
            "Add explicit access modifiers to all functions and resources",
        ]

        recommendations = list(validator.validate(code).recommendations)

        assert all(line in recommendations for line in expected)
        positions = [recommendations.index(line) for line in expected]
        assert positions == sorted(positions)
