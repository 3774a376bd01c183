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

"""Error taxonomy for the quality pipeline.

Detected defects are data (``ValidationIssue``) and never raised. The
exceptions here describe failures of the pipeline itself:

- GenerationFailure: the external generation call raised or timed out
- ValidationSystemFailure: a detector or validator raised internally
- CorrectionFailure: a correction pass could not run
- ConfigurationError: invalid configuration, raised at construction time

Only ConfigurationError reaches callers. The others are caught at their stage
boundary and carried inside result objects.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional


class ErrorCategory(Enum):
    """Categories of pipeline failures."""

    GENERATION = "generation"
    GENERATION_TIMEOUT = "generation_timeout"
    VALIDATION_SYSTEM = "validation_system"
    CORRECTION = "correction"
    FALLBACK = "fallback"
    CONFIG_INVALID = "config_invalid"
    INTERNAL_ERROR = "internal_error"
    UNKNOWN = "unknown"


class ErrorSeverity(Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class QAError(Exception):
    """Base exception for all pipeline errors.

    Carries a category, severity, correlation ID, recovery hint and the
    original exception, and can be serialized with ``to_dict``.
    """

    def __init__(
        self,
        message: str,
        category: ErrorCategory = ErrorCategory.UNKNOWN,
        severity: ErrorSeverity = ErrorSeverity.MEDIUM,
        recoverable: bool = True,
        details: Optional[Dict[str, Any]] = None,
        recovery_hint: Optional[str] = None,
        correlation_id: Optional[str] = None,
        cause: Optional[BaseException] = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category
        self.severity = severity
        self.recoverable = recoverable
        self.details = details or {}
        self.recovery_hint = recovery_hint
        self.correlation_id = correlation_id or str(uuid.uuid4())[:8]
        self.cause = cause
        self.timestamp = datetime.now(timezone.utc)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "error": self.message,
            "type": type(self).__name__,
            "category": self.category.value,
            "severity": self.severity.value,
            "recoverable": self.recoverable,
            "correlation_id": self.correlation_id,
            "recovery_hint": self.recovery_hint,
            "details": self.details,
            "timestamp": self.timestamp.isoformat(),
        }

    def __str__(self) -> str:
        result = f"[{self.correlation_id}] {self.message}"
        if self.recovery_hint:
            result += f"\nRecovery hint: {self.recovery_hint}"
        return result


class GenerationFailure(QAError):
    """The external generation function raised, timed out or returned junk."""

    def __init__(
        self,
        message: str,
        attempt: Optional[int] = None,
        timed_out: bool = False,
        **kwargs: Any,
    ):
        kwargs.setdefault(
            "category",
            ErrorCategory.GENERATION_TIMEOUT if timed_out else ErrorCategory.GENERATION,
        )
        kwargs.setdefault("severity", ErrorSeverity.HIGH)
        kwargs.setdefault(
            "recovery_hint",
            "The attempt is retried with a lower temperature; a fallback template is used once retries run out.",
        )
        super().__init__(message, **kwargs)
        self.attempt = attempt
        self.timed_out = timed_out
        self.details["attempt"] = attempt
        self.details["timed_out"] = timed_out


class ValidationSystemFailure(QAError):
    """A detector or validator raised while checking text."""

    def __init__(self, message: str, stage: Optional[str] = None, **kwargs: Any):
        kwargs.setdefault("category", ErrorCategory.VALIDATION_SYSTEM)
        kwargs.setdefault("severity", ErrorSeverity.CRITICAL)
        kwargs.setdefault("recovery_hint", "Manual review of the generated code is required.")
        super().__init__(message, **kwargs)
        self.stage = stage
        self.details["stage"] = stage


class CorrectionFailure(QAError):
    """A correction pass could not be applied; the text is left unchanged."""

    def __init__(self, message: str, pass_name: Optional[str] = None, **kwargs: Any):
        kwargs.setdefault("category", ErrorCategory.CORRECTION)
        kwargs.setdefault("severity", ErrorSeverity.MEDIUM)
        kwargs.setdefault("recovery_hint", "Regenerate the code instead of patching it.")
        super().__init__(message, **kwargs)
        self.pass_name = pass_name
        self.details["pass_name"] = pass_name


class ConfigurationError(QAError):
    """Invalid pipeline configuration."""

    def __init__(self, message: str, field_name: Optional[str] = None, **kwargs: Any):
        kwargs.setdefault("category", ErrorCategory.CONFIG_INVALID)
        kwargs.setdefault("severity", ErrorSeverity.HIGH)
        kwargs.setdefault("recoverable", False)
        super().__init__(message, **kwargs)
        self.field_name = field_name
        self.details["field"] = field_name
