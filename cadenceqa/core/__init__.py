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

"""Core value types, errors and results."""

from cadenceqa.core.errors import (
    ConfigurationError,
    CorrectionFailure,
    ErrorCategory,
    ErrorSeverity,
    GenerationFailure,
    QAError,
    ValidationSystemFailure,
)
from cadenceqa.core.models import (
    CodeLocation,
    ComprehensiveValidationResult,
    ContractCategory,
    ContractType,
    Complexity,
    Correction,
    CorrectionAttempt,
    CorrectionType,
    GenerationContext,
    GenerationMetrics,
    GenerationRequest,
    PerformanceRequirements,
    QualityAssuredResult,
    QualityLevel,
    QualityRequirements,
    QualityScore,
    ResultType,
    Severity,
    UserExperience,
    ValidationIssue,
    ValidationPolicy,
    ValidationResult,
)
from cadenceqa.core.outcome import Outcome

__all__ = [
    "CodeLocation",
    "ComprehensiveValidationResult",
    "Complexity",
    "ConfigurationError",
    "ContractCategory",
    "ContractType",
    "Correction",
    "CorrectionAttempt",
    "CorrectionFailure",
    "CorrectionType",
    "ErrorCategory",
    "ErrorSeverity",
    "GenerationContext",
    "GenerationFailure",
    "GenerationMetrics",
    "GenerationRequest",
    "Outcome",
    "PerformanceRequirements",
    "QAError",
    "QualityAssuredResult",
    "QualityLevel",
    "QualityRequirements",
    "QualityScore",
    "ResultType",
    "Severity",
    "UserExperience",
    "ValidationIssue",
    "ValidationPolicy",
    "ValidationResult",
    "ValidationSystemFailure",
]
