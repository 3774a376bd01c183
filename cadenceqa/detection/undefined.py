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

"""Detection of undefined placeholders and values that were never supplied.

Issue types:
- literal-undefined: the ``undefined`` token in code (critical, fixable)
- incomplete-declaration: ``var x: T =`` with nothing after it (critical, fixable)
- incomplete-assignment: ``x =`` with nothing after it (critical, not fixable)
- missing-return: non-Void function body without ``return`` (critical, fixable)
- missing-default: optional parameter in a function signature (warning)
"""

from __future__ import annotations

import logging
import re
from typing import List

from cadenceqa.core.models import CodeLocation, Severity, ValidationIssue
from cadenceqa.detection.scanner import (
    default_for_type,
    infer_default_from_line,
    iter_functions,
    location_at,
    mask_non_code,
)

logger = logging.getLogger(__name__)

CATEGORY = "undefined"

UNDEFINED_PATTERN = re.compile(r"\bundefined\b")
INCOMPLETE_DECLARATION_PATTERN = re.compile(
    r"^\s*(?:access\s*\([^)]*\)\s+)?(?:var|let)\s+(\w+)\s*:\s*([^=]+?)\s*=\s*$"
)
INCOMPLETE_ASSIGNMENT_PATTERN = re.compile(
    r"^\s*(?:(?:var|let)\s+)?([A-Za-z_][\w.]*(?:\[[^\]]*\])?)\s*=\s*$"
)
RETURN_PATTERN = re.compile(r"\breturn\b")
OPTIONAL_PARAM_PATTERN = re.compile(r"(\w+)\s*:\s*([^,]+\?)\s*$")


class UndefinedValueDetector:
    """Finds undefined sentinels, dangling initializers and missing returns."""

    def detect(self, text: str) -> List[ValidationIssue]:
        masked = mask_non_code(text)
        issues: List[ValidationIssue] = []
        issues.extend(self.detect_literal_undefined(text, masked))
        issues.extend(self.detect_incomplete_declarations(text, masked))
        issues.extend(self.detect_missing_returns(text, masked))
        issues.extend(self.detect_missing_defaults(text, masked))
        if issues:
            logger.debug("Undefined value scan found %d issue(s)", len(issues))
        return issues

    def detect_literal_undefined(self, text: str, masked: str) -> List[ValidationIssue]:
        issues = []
        source_lines = text.split("\n")
        for line_no, masked_line in enumerate(masked.split("\n"), start=1):
            for match in UNDEFINED_PATTERN.finditer(masked_line):
                source_line = source_lines[line_no - 1]
                value = infer_default_from_line(source_line[: match.start()])
                issues.append(
                    ValidationIssue(
                        severity=Severity.CRITICAL,
                        type="literal-undefined",
                        location=CodeLocation.on_line(
                            source_line, line_no, column=match.start() + 1, length=len("undefined")
                        ),
                        message="Undefined value found; Cadence has no 'undefined'",
                        suggested_fix=f"Replace 'undefined' with {value}",
                        auto_fixable=True,
                        suggested_value=value,
                        category=CATEGORY,
                    )
                )
        return issues

    def detect_incomplete_declarations(self, text: str, masked: str) -> List[ValidationIssue]:
        issues = []
        source_lines = text.split("\n")
        for line_no, masked_line in enumerate(masked.split("\n"), start=1):
            source_line = source_lines[line_no - 1]
            declaration = INCOMPLETE_DECLARATION_PATTERN.match(masked_line)
            if declaration:
                name, type_name = declaration.group(1), declaration.group(2)
                value = default_for_type(type_name)
                issues.append(
                    ValidationIssue(
                        severity=Severity.CRITICAL,
                        type="incomplete-declaration",
                        location=CodeLocation.on_line(
                            source_line, line_no, column=len(masked_line.rstrip()), length=1
                        ),
                        message=f"Declaration of '{name}' has no initial value",
                        suggested_fix=f"Initialize '{name}' with {value}",
                        auto_fixable=True,
                        suggested_value=value,
                        category=CATEGORY,
                    )
                )
                continue
            assignment = INCOMPLETE_ASSIGNMENT_PATTERN.match(masked_line)
            if assignment:
                issues.append(
                    ValidationIssue(
                        severity=Severity.CRITICAL,
                        type="incomplete-assignment",
                        location=CodeLocation.on_line(
                            source_line, line_no, column=len(masked_line.rstrip()), length=1
                        ),
                        message=f"Assignment to '{assignment.group(1)}' has no value",
                        suggested_fix="Complete the assignment with a concrete value",
                        auto_fixable=False,
                        category=CATEGORY,
                    )
                )
        return issues

    def detect_missing_returns(self, text: str, masked: str) -> List[ValidationIssue]:
        issues = []
        for func in iter_functions(text, masked):
            if not func.returns_value or func.body is None or not func.body.closed:
                continue
            body = masked[func.body.open_offset + 1 : func.body.close_offset]
            if RETURN_PATTERN.search(body):
                continue
            value = default_for_type(func.return_type)
            issues.append(
                ValidationIssue(
                    severity=Severity.CRITICAL,
                    type="missing-return",
                    location=location_at(text, func.start, length=func.signature_end - func.start),
                    message=(
                        f"Function '{func.name}' declares return type "
                        f"'{func.return_type}' but never returns"
                    ),
                    suggested_fix=f"return {value}",
                    auto_fixable=True,
                    suggested_value=value,
                    category=CATEGORY,
                )
            )
        return issues

    def detect_missing_defaults(self, text: str, masked: str) -> List[ValidationIssue]:
        issues = []
        for func in iter_functions(text, masked):
            for param in func.param_list():
                match = OPTIONAL_PARAM_PATTERN.search(param)
                if not match:
                    continue
                issues.append(
                    ValidationIssue(
                        severity=Severity.WARNING,
                        type="missing-default",
                        location=location_at(text, func.start),
                        message=(
                            f"Optional parameter '{match.group(1)}' of '{func.name}' "
                            "has no default; callers must pass nil explicitly"
                        ),
                        suggested_fix="Document the nil case or make the parameter non-optional",
                        auto_fixable=False,
                        category=CATEGORY,
                    )
                )
        return issues
