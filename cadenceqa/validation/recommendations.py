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

"""Human-readable recommendations derived from a validation run."""

from __future__ import annotations

from typing import List, Sequence

from cadenceqa.core.models import ResultType, ValidationResult
from cadenceqa.detection.structure import StructureReport
from cadenceqa.validation.completeness import (
    EMPTY_BODY,
    MISSING_RETURN,
    NO_BODY,
    FunctionalReport,
)

DEFAULT_RECOMMENDATION = "Code quality looks good - consider reviewing best practices"
SYSTEM_FAILURE_RECOMMENDATION = "Validation system failed - manual review required"

_UNIMPLEMENTED = frozenset({NO_BODY, EMPTY_BODY, MISSING_RETURN})


def build_recommendations(
    results: Sequence[ValidationResult],
    structure: StructureReport,
    functional: FunctionalReport,
) -> List[str]:
    """Evaluate the fixed rule list in order; each rule adds at most one line."""
    issue_types = {issue.type for result in results for issue in result.issues}
    syntax = next((r for r in results if r.type == ResultType.SYNTAX), None)
    lines: List[str] = []

    if syntax is not None and syntax.critical_issues:
        lines.append("Fix syntax errors to ensure code compiles correctly")
    if not structure.has_declaration:
        lines.append("Add proper contract declaration with access modifier")
    if not structure.has_init:
        lines.append("Add init() function for contract initialization")
    if structure.missing_imports:
        lines.append(f"Add missing imports: {', '.join(structure.missing_imports)}")

    unimplemented = [
        name
        for name, reasons in functional.incomplete_functions.items()
        if _UNIMPLEMENTED.intersection(reasons)
    ]
    if unimplemented:
        lines.append(f"Complete function implementations: {', '.join(unimplemented)}")

    bad_events = [event.name for event in structure.events if not event.params_valid]
    if bad_events:
        lines.append(f"Fix event parameter definitions: {', '.join(bad_events)}")
    if "literal-undefined" in issue_types:
        lines.append("Remove undefined values and replace with appropriate defaults")
    if functional.missing_required_functions:
        lines.append("Implement all required functions for the contract type")
    if "todo-comment" in issue_types:
        lines.append("Remove TODO comments and complete all implementations")
    if "missing-access-modifier" in issue_types:
        lines.append("Add explicit access modifiers to all functions and resources")

    return lines or [DEFAULT_RECOMMENDATION]
