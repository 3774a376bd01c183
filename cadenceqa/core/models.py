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

"""Value types shared by every stage of the quality pipeline.

Issues, locations, corrections and results are frozen once created. A
correction never edits an issue in place; it produces new text which is then
scanned again, so line offsets recorded in earlier issues stay meaningful for
the text they were computed against.

Example:
    from cadenceqa.core.models import CodeLocation, Severity, ValidationIssue

    issue = ValidationIssue(
        severity=Severity.CRITICAL,
        type="literal-undefined",
        location=CodeLocation(line=3, column=20, length=9),
        message="Undefined value found",
        auto_fixable=True,
        suggested_value="0",
    )
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Tuple


# =============================================================================
# Enumerations
# =============================================================================


class Severity(str, Enum):
    """Severity of a detected defect."""

    CRITICAL = "critical"
    WARNING = "warning"
    INFO = "info"


class ResultType(str, Enum):
    """Which check family produced a validation result."""

    SYNTAX = "syntax"
    LOGIC = "logic"
    COMPLETENESS = "completeness"
    BEST_PRACTICES = "best-practices"
    CONTRACT_SPECIFIC = "contract-specific"
    FUNCTIONAL_COMPLETENESS = "functional-completeness"
    SYSTEM = "system"


class ContractCategory(str, Enum):
    """Broad kind of contract being generated."""

    NFT = "nft"
    FUNGIBLE_TOKEN = "fungible-token"
    UTILITY = "utility"
    DAO = "dao"
    MARKETPLACE = "marketplace"
    DEFI = "defi"
    GENERIC = "generic"


class Complexity(str, Enum):
    SIMPLE = "simple"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"


class UserExperience(str, Enum):
    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    EXPERT = "expert"


class CorrectionType(str, Enum):
    """Kind of textual repair applied by the correction engine."""

    UNDEFINED_FIX = "undefined-fix"
    SYNTAX_FIX = "syntax-fix"
    STRUCTURE_FIX = "structure-fix"
    LOGIC_ENHANCEMENT = "logic-enhancement"


class ValidationPolicy(str, Enum):
    """Validity predicate applied by the composite validator."""

    STRICT = "strict"
    LENIENT = "lenient"


class QualityLevel(str, Enum):
    EXCELLENT = "excellent"
    GOOD = "good"
    FAIR = "fair"
    POOR = "poor"


# Score bands used for quality levels and production readiness
QUALITY_THRESHOLDS: Dict[str, int] = {
    "minimum": 60,
    "good": 75,
    "excellent": 90,
    "production_ready": 85,
}

# Patterns that are never acceptable in delivered code
BASE_PROHIBITED_PATTERNS: Tuple[str, ...] = ("undefined", "null", "// TODO", "// FIXME")


def clamp_score(value: float) -> int:
    """Round a raw score and clamp it to [0, 100]."""
    return max(0, min(100, int(round(value))))


# =============================================================================
# Locations and issues
# =============================================================================


@dataclass(frozen=True)
class CodeLocation:
    """Position of a defect in source text.

    Lines and columns are 1-based. ``context`` is the stripped source line and
    is only used for diagnostics.
    """

    line: int
    column: int = 1
    length: int = 0
    context: str = ""

    def __post_init__(self) -> None:
        if self.line < 1:
            raise ValueError(f"line must be >= 1, got {self.line}")
        if self.column < 1:
            raise ValueError(f"column must be >= 1, got {self.column}")
        if self.length < 0:
            raise ValueError(f"length must be >= 0, got {self.length}")

    @classmethod
    def on_line(cls, source_line: str, line: int, column: int = 1, length: int = 0) -> "CodeLocation":
        """Build a location whose context is taken from the given source line."""
        return cls(line=line, column=column, length=length, context=source_line.strip())

    def to_dict(self) -> Dict[str, Any]:
        return {
            "line": self.line,
            "column": self.column,
            "length": self.length,
            "context": self.context,
        }


@dataclass(frozen=True)
class ValidationIssue:
    """A single typed defect produced by a detector.

    ``auto_fixable`` is only set when the producing detector could synthesize
    a concrete replacement (``suggested_value``) deterministically.
    """

    severity: Severity
    type: str
    location: CodeLocation
    message: str
    suggested_fix: Optional[str] = None
    auto_fixable: bool = False
    suggested_value: Optional[str] = None
    category: Optional[str] = None

    @property
    def is_critical(self) -> bool:
        return self.severity == Severity.CRITICAL

    def to_dict(self) -> Dict[str, Any]:
        return {
            "severity": self.severity.value,
            "type": self.type,
            "location": self.location.to_dict(),
            "message": self.message,
            "suggested_fix": self.suggested_fix,
            "auto_fixable": self.auto_fixable,
            "suggested_value": self.suggested_value,
            "category": self.category,
        }

    def __str__(self) -> str:
        return f"[{self.severity.value.upper()}] line {self.location.line}: {self.type}: {self.message}"


def count_by_severity(issues: Iterable[ValidationIssue]) -> Dict[Severity, int]:
    """Count issues per severity, including zero counts."""
    counts = {severity: 0 for severity in Severity}
    for issue in issues:
        counts[issue.severity] += 1
    return counts


@dataclass(frozen=True)
class ValidationResult:
    """Outcome of one check family.

    ``passed`` means no critical issue, except for result types that document
    a threshold of their own (functional completeness passes on its score).
    """

    type: ResultType
    passed: bool
    issues: Tuple[ValidationIssue, ...] = ()
    score: int = 100
    message: Optional[str] = None

    @classmethod
    def from_issues(
        cls,
        result_type: ResultType,
        issues: Iterable[ValidationIssue],
        score: float,
        message: Optional[str] = None,
        passed: Optional[bool] = None,
    ) -> "ValidationResult":
        """Create a result, deriving ``passed`` from the issues unless given."""
        issues = tuple(issues)
        if passed is None:
            passed = not any(issue.is_critical for issue in issues)
        return cls(
            type=result_type,
            passed=passed,
            issues=issues,
            score=clamp_score(score),
            message=message,
        )

    @property
    def critical_issues(self) -> List[ValidationIssue]:
        return [i for i in self.issues if i.is_critical]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type.value,
            "passed": self.passed,
            "score": self.score,
            "message": self.message,
            "issues": [issue.to_dict() for issue in self.issues],
        }


@dataclass(frozen=True)
class QualityScore:
    """Weighted quality breakdown; every field is in [0, 100]."""

    overall: int
    syntax: int
    logic: int
    completeness: int
    best_practices: int
    production_readiness: int

    @property
    def level(self) -> QualityLevel:
        if self.overall >= QUALITY_THRESHOLDS["excellent"]:
            return QualityLevel.EXCELLENT
        if self.overall >= QUALITY_THRESHOLDS["good"]:
            return QualityLevel.GOOD
        if self.overall >= QUALITY_THRESHOLDS["minimum"]:
            return QualityLevel.FAIR
        return QualityLevel.POOR

    @classmethod
    def zero(cls) -> "QualityScore":
        return cls(0, 0, 0, 0, 0, 0)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "overall": self.overall,
            "syntax": self.syntax,
            "logic": self.logic,
            "completeness": self.completeness,
            "best_practices": self.best_practices,
            "production_readiness": self.production_readiness,
            "level": self.level.value,
        }


@dataclass(frozen=True)
class ComprehensiveValidationResult:
    """Aggregate verdict returned by the composite validator."""

    is_valid: bool
    overall_score: QualityScore
    validation_results: Tuple[ValidationResult, ...]
    completeness_percentage: int
    recommendations: Tuple[str, ...]
    policy: ValidationPolicy = ValidationPolicy.LENIENT
    failure: Optional[Any] = None

    @property
    def score(self) -> int:
        return self.overall_score.overall

    @property
    def issues(self) -> List[ValidationIssue]:
        """All issues from every result, in result order."""
        return [issue for result in self.validation_results for issue in result.issues]

    @property
    def critical_issues(self) -> List[ValidationIssue]:
        return [issue for issue in self.issues if issue.is_critical]

    def result_for(self, result_type: ResultType) -> Optional[ValidationResult]:
        for result in self.validation_results:
            if result.type == result_type:
                return result
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "is_valid": self.is_valid,
            "overall_score": self.overall_score.to_dict(),
            "completeness_percentage": self.completeness_percentage,
            "recommendations": list(self.recommendations),
            "policy": self.policy.value,
            "validation_results": [r.to_dict() for r in self.validation_results],
            "failure": self.failure.to_dict() if self.failure is not None else None,
        }


# =============================================================================
# Corrections
# =============================================================================


@dataclass(frozen=True)
class Correction:
    """One repair applied by the correction engine."""

    type: CorrectionType
    location: CodeLocation
    original_value: str
    corrected_value: str
    reasoning: str
    confidence: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type.value,
            "location": self.location.to_dict(),
            "original_value": self.original_value,
            "corrected_value": self.corrected_value,
            "reasoning": self.reasoning,
            "confidence": self.confidence,
        }


@dataclass(frozen=True)
class CorrectionAttempt:
    """Corrections applied during one orchestration attempt."""

    attempt_number: int
    corrections: Tuple[Correction, ...]
    success: bool
    quality_improvement: float
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


# =============================================================================
# Generation context and results
# =============================================================================


@dataclass(frozen=True)
class ContractType:
    category: ContractCategory = ContractCategory.GENERIC
    complexity: Complexity = Complexity.SIMPLE
    features: Tuple[str, ...] = ()


@dataclass(frozen=True)
class PerformanceRequirements:
    """Time budgets in seconds."""

    max_generation_time: float = 30.0
    max_validation_time: float = 5.0
    max_retry_attempts: int = 3


@dataclass(frozen=True)
class QualityRequirements:
    minimum_quality_score: int = 80
    required_features: Tuple[str, ...] = ()
    prohibited_patterns: Tuple[str, ...] = BASE_PROHIBITED_PATTERNS
    performance: PerformanceRequirements = field(default_factory=PerformanceRequirements)


@dataclass
class GenerationContext:
    """Per-run context. Owned by exactly one orchestration run."""

    user_intent: str = ""
    contract_type: ContractType = field(default_factory=ContractType)
    quality_requirements: QualityRequirements = field(default_factory=QualityRequirements)
    previous_attempts: List[CorrectionAttempt] = field(default_factory=list)
    user_experience: UserExperience = UserExperience.INTERMEDIATE


@dataclass(frozen=True)
class GenerationRequest:
    """What the caller asks the orchestrator to produce."""

    prompt: str
    temperature: Optional[float] = None
    max_retries: Optional[int] = None
    strict_mode: Optional[bool] = None
    context: Optional[str] = None
    # When set, requirements are tightened per experience level
    user_experience: Optional[UserExperience] = None
    category: Optional[ContractCategory] = None


@dataclass(frozen=True)
class GenerationMetrics:
    attempt_count: int
    total_generation_time: float
    validation_time: float
    correction_time: float
    final_quality_score: int
    issues_detected: int
    issues_fixed: int
    start_time: datetime
    end_time: datetime
    budget_exceeded: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "attempt_count": self.attempt_count,
            "total_generation_time": self.total_generation_time,
            "validation_time": self.validation_time,
            "correction_time": self.correction_time,
            "final_quality_score": self.final_quality_score,
            "issues_detected": self.issues_detected,
            "issues_fixed": self.issues_fixed,
            "start_time": self.start_time.isoformat(),
            "end_time": self.end_time.isoformat(),
            "budget_exceeded": self.budget_exceeded,
        }


@dataclass(frozen=True)
class QualityAssuredResult:
    """Terminal artifact of one orchestration run."""

    code: str
    quality_score: int
    validation_results: Tuple[ValidationResult, ...]
    correction_history: Tuple[CorrectionAttempt, ...]
    fallback_used: bool
    generation_metrics: GenerationMetrics
    final_state: str = "accepted"
    quality: Optional[QualityScore] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code,
            "quality_score": self.quality_score,
            "fallback_used": self.fallback_used,
            "final_state": self.final_state,
            "validation_results": [r.to_dict() for r in self.validation_results],
            "correction_history": [
                {
                    "attempt_number": a.attempt_number,
                    "timestamp": a.timestamp.isoformat(),
                    "success": a.success,
                    "quality_improvement": a.quality_improvement,
                    "corrections": [c.to_dict() for c in a.corrections],
                }
                for a in self.correction_history
            ],
            "generation_metrics": self.generation_metrics.to_dict(),
        }
