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

"""Statements that stop short: bodiless functions and trailing commas."""

from __future__ import annotations

import re
from typing import List

from cadenceqa.core.models import Severity, ValidationIssue
from cadenceqa.detection.scanner import default_for_type, iter_functions, location_at, mask_non_code

CATEGORY = "syntax"

TRAILING_COMMA_PATTERN = re.compile(r",(\s*)\)")


class IncompleteStatementDetector:
    """Flags function signatures without a body and commas before ``)``.

    Requirements declared inside an interface have no body by design and are
    not reported.
    """

    def detect(self, text: str) -> List[ValidationIssue]:
        masked = mask_non_code(text)
        issues: List[ValidationIssue] = []

        for func in iter_functions(text, masked):
            if func.has_body or func.in_interface:
                continue
            completion = "{ }"
            if func.returns_value:
                completion = f"{{ return {default_for_type(func.return_type)} }}"
            issues.append(
                ValidationIssue(
                    severity=Severity.CRITICAL,
                    type="incomplete-function-signature",
                    location=location_at(text, func.start, length=func.signature_end - func.start),
                    message=f"Function '{func.name}' has no body",
                    suggested_fix=f"Complete the function with a body: {completion}",
                    auto_fixable=True,
                    suggested_value=completion,
                    category=CATEGORY,
                )
            )

        for match in TRAILING_COMMA_PATTERN.finditer(masked):
            issues.append(
                ValidationIssue(
                    severity=Severity.WARNING,
                    type="trailing-comma",
                    location=location_at(text, match.start(), length=len(match.group(0))),
                    message="Trailing comma before ')'",
                    suggested_fix="Remove the trailing comma",
                    auto_fixable=True,
                    suggested_value=")",
                    category=CATEGORY,
                )
            )
        return issues
