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

"""Tests for core value types, errors and outcomes."""

import dataclasses

import pytest

from cadenceqa.core.errors import (
    ConfigurationError,
    CorrectionFailure,
    ErrorCategory,
    GenerationFailure,
    QAError,
    ValidationSystemFailure,
)
from cadenceqa.core.models import (
    CodeLocation,
    ComprehensiveValidationResult,
    QualityLevel,
    QualityScore,
    ResultType,
    Severity,
    ValidationIssue,
    ValidationResult,
    clamp_score,
    count_by_severity,
)
from cadenceqa.core.outcome import Outcome


def make_issue(severity=Severity.CRITICAL, issue_type="literal-undefined", line=1):
    return ValidationIssue(
        severity=severity,
        type=issue_type,
        location=CodeLocation(line=line),
        message="test issue",
    )


class TestCodeLocation:
    """Tests for CodeLocation."""

    def test_rejects_non_positive_line(self):
        """Lines are 1-based."""
        with pytest.raises(ValueError):
            CodeLocation(line=0)

    def test_rejects_negative_length(self):
        """Length cannot be negative."""
        with pytest.raises(ValueError):
            CodeLocation(line=1, length=-1)

    def test_on_line_strips_context(self):
        """Context is the stripped source line."""
        location = CodeLocation.on_line("    let x = 1   ", line=4, column=5)
        assert location.context == "let x = 1"
        assert location.line == 4

    def test_is_frozen(self):
        """Locations cannot be mutated after creation."""
        location = CodeLocation(line=1)
        with pytest.raises(dataclasses.FrozenInstanceError):
            location.line = 2


class TestValidationResult:
    """Tests for ValidationResult and its helpers."""

    def test_passed_derived_from_criticals(self):
        """A result with a critical issue does not pass."""
        result = ValidationResult.from_issues(ResultType.SYNTAX, [make_issue()], 75)
        assert result.passed is False
        assert len(result.critical_issues) == 1

    def test_passed_with_only_warnings(self):
        """Warnings alone do not fail a result."""
        result = ValidationResult.from_issues(ResultType.SYNTAX, [make_issue(Severity.WARNING)], 90)
        assert result.passed is True

    def test_explicit_passed_wins(self):
        """An explicit passed flag overrides the derived one."""
        result = ValidationResult.from_issues(
            ResultType.FUNCTIONAL_COMPLETENESS, [make_issue()], 85, passed=True
        )
        assert result.passed is True

    def test_score_is_clamped(self):
        """Scores stay inside [0, 100]."""
        assert ValidationResult.from_issues(ResultType.SYNTAX, [], -40).score == 0
        assert ValidationResult.from_issues(ResultType.SYNTAX, [], 140).score == 100

    def test_count_by_severity_includes_zero(self):
        """Every severity is present in the counts."""
        counts = count_by_severity([make_issue(Severity.WARNING)])
        assert counts == {Severity.CRITICAL: 0, Severity.WARNING: 1, Severity.INFO: 0}

    def test_clamp_score_rounds(self):
        """Raw scores are rounded before clamping."""
        assert clamp_score(59.6) == 60


class TestQualityScore:
    """Tests for QualityScore."""

    @pytest.mark.parametrize(
        "overall,level",
        [
            (95, QualityLevel.EXCELLENT),
            (90, QualityLevel.EXCELLENT),
            (80, QualityLevel.GOOD),
            (60, QualityLevel.FAIR),
            (10, QualityLevel.POOR),
        ],
    )
    def test_level_bands(self, overall, level):
        """Overall score maps to a quality level."""
        score = QualityScore(overall, 100, 100, 100, 100, 100)
        assert score.level == level

    def test_zero(self):
        """Zero score has every field at 0."""
        score = QualityScore.zero()
        assert score.overall == 0
        assert score.to_dict()["level"] == "poor"


class TestComprehensiveValidationResult:
    """Tests for the aggregate verdict."""

    def test_issue_views(self):
        """Issues are flattened in result order and criticals filtered."""
        syntax = ValidationResult.from_issues(ResultType.SYNTAX, [make_issue()], 75)
        practices = ValidationResult.from_issues(
            ResultType.BEST_PRACTICES, [make_issue(Severity.WARNING, "todo-comment")], 92
        )
        verdict = ComprehensiveValidationResult(
            is_valid=False,
            overall_score=QualityScore(59, 75, 100, 100, 92, 0),
            validation_results=(syntax, practices),
            completeness_percentage=70,
            recommendations=("Fix syntax errors to ensure code compiles correctly",),
        )
        assert [i.type for i in verdict.issues] == ["literal-undefined", "todo-comment"]
        assert len(verdict.critical_issues) == 1
        assert verdict.score == 59
        assert verdict.result_for(ResultType.BEST_PRACTICES) is practices
        assert verdict.result_for(ResultType.LOGIC) is None

    def test_to_dict(self):
        """Serialization includes the policy and no failure."""
        verdict = ComprehensiveValidationResult(
            is_valid=True,
            overall_score=QualityScore(100, 100, 100, 100, 100, 100),
            validation_results=(),
            completeness_percentage=100,
            recommendations=(),
        )
        data = verdict.to_dict()
        assert data["policy"] == "lenient"
        assert data["failure"] is None
        assert data["overall_score"]["level"] == "excellent"


class TestErrors:
    """Tests for the error taxonomy."""

    def test_generation_failure_categories(self):
        """Timeouts get their own category."""
        assert GenerationFailure("boom", attempt=1).category == ErrorCategory.GENERATION
        timeout = GenerationFailure("slow", attempt=2, timed_out=True)
        assert timeout.category == ErrorCategory.GENERATION_TIMEOUT
        assert timeout.details == {"attempt": 2, "timed_out": True}

    def test_configuration_error_not_recoverable(self):
        """Configuration errors are fatal and name the field."""
        error = ConfigurationError("bad", field_name="max_retries")
        assert error.recoverable is False
        assert error.field_name == "max_retries"
        assert error.category == ErrorCategory.CONFIG_INVALID

    def test_str_includes_hint(self):
        """String form carries the correlation ID and recovery hint."""
        error = QAError("failed", recovery_hint="try again", correlation_id="abc12345")
        assert str(error) == "[abc12345] failed\nRecovery hint: try again"

    def test_to_dict(self):
        """Errors serialize with their type name."""
        data = ValidationSystemFailure("detector crashed", stage="syntax").to_dict()
        assert data["type"] == "ValidationSystemFailure"
        assert data["category"] == "validation_system"
        assert data["details"]["stage"] == "syntax"

    def test_subclasses_share_base(self):
        """Every pipeline error is a QAError."""
        for error in (
            GenerationFailure("x"),
            ValidationSystemFailure("x"),
            CorrectionFailure("x"),
            ConfigurationError("x"),
        ):
            assert isinstance(error, QAError)


class TestOutcome:
    """Tests for Outcome."""

    def test_ok_unwrap(self):
        """A successful outcome unwraps to its value."""
        assert Outcome.ok("code", elapsed=0.5).unwrap() == "code"

    def test_fail_unwrap_raises_error(self):
        """A failed outcome raises the carried error."""
        error = GenerationFailure("no code")
        outcome = Outcome.fail(error)
        assert outcome.success is False
        with pytest.raises(GenerationFailure):
            outcome.unwrap()
