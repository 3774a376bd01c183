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

"""Functional completeness: are the declared pieces actually implemented?

The score combines four percentages:

    40% complete functions
    30% resources with init, destroy handling and an access modifier
    15% declared events that are emitted
    15% functions and resources carrying an access modifier

A contract with neither functions nor resources scores 0.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Dict, FrozenSet, List, Optional, Tuple

from cadenceqa.core.models import (
    ContractCategory,
    ResultType,
    Severity,
    ValidationIssue,
    ValidationResult,
)
from cadenceqa.detection.scanner import FunctionSignature, location_at, mask_non_code
from cadenceqa.detection.structure import StructuralDetector, StructureReport

logger = logging.getLogger(__name__)

COMPLETE_THRESHOLD = 80

CRITICAL_FUNCTIONS = (
    "withdraw",
    "deposit",
    "mint",
    "burn",
    "transfer",
    "vote",
    "execute",
    "purchase",
    "createlisting",
)

# Resources that hold state and need an initializer
INIT_REQUIRED_RESOURCES = ("Collection", "Vault", "Minter", "Administrator")

ERROR_HANDLING_PATTERN = re.compile(r"\b(?:pre|post)\s*\{")
RETURN_PATTERN = re.compile(r"\breturn\b")

# Reasons a function counts as incomplete
NO_BODY = "no-body"
EMPTY_BODY = "empty-body"
MISSING_RETURN = "missing-return"
NO_ERROR_HANDLING = "no-error-handling"
NO_ACCESS = "no-access"

_CRITICAL_REASONS = frozenset({NO_BODY, MISSING_RETURN, NO_ACCESS})

_REASON_TEXT = {
    NO_BODY: "no implementation body",
    EMPTY_BODY: "empty body",
    MISSING_RETURN: "declares a return type but never returns",
    NO_ERROR_HANDLING: "critical function without pre/post conditions",
    NO_ACCESS: "missing access modifier",
}


@dataclass(frozen=True)
class RequiredFunction:
    name: str
    pattern: "re.Pattern[str]"
    categories: FrozenSet[ContractCategory]

    def applies_to(self, category: ContractCategory) -> bool:
        return not self.categories or category in self.categories


def _required(name: str, pattern: str, *categories: ContractCategory) -> RequiredFunction:
    return RequiredFunction(name, re.compile(pattern), frozenset(categories))


# An empty category set means "every category"
REQUIRED_FUNCTIONS: Tuple[RequiredFunction, ...] = (
    _required("init", r"\binit\s*\("),
    _required("mint", r"\bfun\s+mint\w*\s*\(", ContractCategory.NFT, ContractCategory.FUNGIBLE_TOKEN),
    _required("withdraw", r"\bfun\s+withdraw\s*\(", ContractCategory.FUNGIBLE_TOKEN),
    _required("deposit", r"\bfun\s+deposit\s*\(", ContractCategory.NFT, ContractCategory.FUNGIBLE_TOKEN),
    _required("vote", r"\bfun\s+(?:vote|castVote)\s*\(", ContractCategory.DAO),
    _required("createProposal", r"\bfun\s+(?:createProposal|propose)\s*\(", ContractCategory.DAO),
    _required("purchase", r"\bfun\s+(?:purchase|buy)\s*\(", ContractCategory.MARKETPLACE),
    _required("createListing", r"\bfun\s+(?:createListing|list)\s*\(", ContractCategory.MARKETPLACE),
)

# Activity words mapped to event names, at least one of which should exist
EXPECTED_EVENTS: Tuple[Tuple[Tuple[str, ...], Tuple[str, ...]], ...] = (
    (("mint", "Mint"), ("Minted", "TokenMinted", "NFTMinted", "TokensMinted")),
    (("withdraw", "deposit"), ("Withdraw", "Deposit", "Transfer", "TokensWithdrawn", "TokensDeposited")),
    (("vote", "Vote"), ("VoteCast", "ProposalCreated", "Voted")),
    (("purchase", "buy"), ("Purchase", "Sale", "ListingCompleted", "ListingPurchased", "Purchased")),
)


def is_critical_function(name: str) -> bool:
    lowered = name.lower()
    return any(word in lowered for word in CRITICAL_FUNCTIONS)


def _percentage(part: int, total: int, empty: int = 100) -> int:
    return round(part / total * 100) if total else empty


@dataclass
class FunctionalReport:
    """Breakdown of the functional completeness score."""

    score: int
    function_percentage: int
    lifecycle_score: int
    emission_score: int
    access_score: int
    incomplete_functions: Dict[str, List[str]] = field(default_factory=dict)
    missing_required_functions: List[str] = field(default_factory=list)
    missing_events: List[str] = field(default_factory=list)
    issues: List[ValidationIssue] = field(default_factory=list)

    @property
    def is_complete(self) -> bool:
        return self.score >= COMPLETE_THRESHOLD

    def to_result(self) -> ValidationResult:
        return ValidationResult.from_issues(
            ResultType.FUNCTIONAL_COMPLETENESS,
            self.issues,
            self.score,
            message=f"Functional completeness {self.score}%",
            passed=self.is_complete,
        )

    def recommendations(self) -> List[str]:
        lines = []
        if self.incomplete_functions:
            lines.append(
                f"Complete {len(self.incomplete_functions)} incomplete function(s): "
                + ", ".join(self.incomplete_functions)
            )
        if self.missing_required_functions:
            lines.append("Implement required functions: " + ", ".join(self.missing_required_functions))
        if self.lifecycle_score < 100:
            lines.append("Give every resource an init() and destroy handling")
        if self.emission_score < 100 or self.missing_events:
            lines.append("Emit events for every significant state change")
        return lines


class FunctionalCompletenessValidator:
    """Scores how completely a contract implements what it declares."""

    def __init__(self, structural_detector: Optional[StructuralDetector] = None):
        self._structural = structural_detector or StructuralDetector()

    def validate(
        self,
        text: str,
        category: ContractCategory,
        structure: Optional[StructureReport] = None,
    ) -> FunctionalReport:
        """Analyze ``text``; pass a precomputed ``structure`` to avoid rescanning."""
        masked = mask_non_code(text)
        if structure is None:
            structure = self._structural.analyze(text, category)
        issues: List[ValidationIssue] = []

        incomplete: Dict[str, List[str]] = {}
        incomplete_count = 0
        for func in structure.functions:
            reasons = self._function_reasons(masked, func)
            if not reasons:
                continue
            incomplete_count += 1
            known = incomplete.setdefault(func.name, [])
            for reason in reasons:
                if reason not in known:
                    known.append(reason)
            critical = any(reason in _CRITICAL_REASONS for reason in reasons)
            issues.append(
                ValidationIssue(
                    severity=Severity.CRITICAL if critical else Severity.WARNING,
                    type="incomplete-function",
                    location=location_at(text, func.start),
                    message=(
                        f"Function '{func.name}' is incomplete: "
                        + ", ".join(_REASON_TEXT[r] for r in reasons)
                    ),
                    suggested_fix=self._function_fix(reasons),
                    auto_fixable=False,
                    category="functional",
                )
            )

        missing_required = [
            required.name
            for required in REQUIRED_FUNCTIONS
            if required.applies_to(category) and not required.pattern.search(masked)
        ]
        for name in missing_required:
            issues.append(
                ValidationIssue(
                    severity=Severity.CRITICAL,
                    type="missing-required-function",
                    location=location_at(text, 0),
                    message=f"Contract is missing required function: {name}",
                    suggested_fix=f"Implement {name}",
                    auto_fixable=False,
                    category="functional",
                )
            )

        complete_resources = 0
        for resource in structure.resources:
            if resource.has_init and resource.has_destroy and resource.has_access:
                complete_resources += 1
            if not resource.has_init and resource.name.startswith(INIT_REQUIRED_RESOURCES):
                issues.append(
                    ValidationIssue(
                        severity=Severity.CRITICAL,
                        type="missing-resource-init",
                        location=location_at(text, resource.offset),
                        message=f"Resource '{resource.name}' has no init()",
                        suggested_fix="Add init() to the resource",
                        auto_fixable=False,
                        category="functional",
                    )
                )
            if not resource.has_access:
                issues.append(
                    ValidationIssue(
                        severity=Severity.CRITICAL,
                        type="missing-resource-access",
                        location=location_at(text, resource.offset),
                        message=f"Resource '{resource.name}' has no access modifier",
                        suggested_fix="Add access(all) or a narrower access modifier",
                        auto_fixable=False,
                        category="functional",
                    )
                )

        missing_events = self._missing_events(masked, structure)
        for name in missing_events:
            issues.append(
                ValidationIssue(
                    severity=Severity.WARNING,
                    type="missing-event-emission",
                    location=location_at(text, 0),
                    message=f"Expected an event such as '{name}' to be defined and emitted",
                    suggested_fix=f"Define and emit {name}",
                    auto_fixable=False,
                    category="functional",
                )
            )

        functions = structure.functions
        resources = structure.resources
        function_percentage = _percentage(len(functions) - incomplete_count, len(functions), empty=0)
        lifecycle = _percentage(complete_resources, len(resources))
        emission = _percentage(sum(1 for e in structure.events if e.emitted), len(structure.events))
        with_access = sum(1 for f in functions if f.access) + sum(1 for r in resources if r.has_access)
        access = _percentage(with_access, len(functions) + len(resources))

        if not functions and not resources:
            score = 0
        else:
            score = round(function_percentage * 0.4 + lifecycle * 0.3 + emission * 0.15 + access * 0.15)

        report = FunctionalReport(
            score=score,
            function_percentage=function_percentage,
            lifecycle_score=lifecycle,
            emission_score=emission,
            access_score=access,
            incomplete_functions=incomplete,
            missing_required_functions=missing_required,
            missing_events=missing_events,
            issues=issues,
        )
        logger.debug(
            "Functional completeness: %d (functions %d, lifecycle %d, events %d, access %d)",
            score,
            function_percentage,
            lifecycle,
            emission,
            access,
        )
        return report

    @staticmethod
    def _function_reasons(masked: str, func: FunctionSignature) -> List[str]:
        reasons = []
        body = func.body_text(masked)
        if not func.has_body:
            if not func.in_interface:
                reasons.append(NO_BODY)
        elif body is not None and not body.strip():
            reasons.append(EMPTY_BODY)
        if func.returns_value and body is not None and not RETURN_PATTERN.search(body):
            reasons.append(MISSING_RETURN)
        if (
            is_critical_function(func.name)
            and func.has_body
            and not ERROR_HANDLING_PATTERN.search(body or "")
        ):
            reasons.append(NO_ERROR_HANDLING)
        if not func.access:
            reasons.append(NO_ACCESS)
        return reasons

    @staticmethod
    def _missing_events(masked: str, structure: StructureReport) -> List[str]:
        known = {event.name for event in structure.events}
        known.update(re.findall(r"\bemit\s+(\w+)", masked))
        missing = []
        for triggers, names in EXPECTED_EVENTS:
            if not any(trigger in masked for trigger in triggers):
                continue
            if not known.intersection(names):
                missing.append(names[0])
        return missing

    @staticmethod
    def _function_fix(reasons: List[str]) -> str:
        fixes = {
            NO_BODY: "Add a function body with braces { }",
            EMPTY_BODY: "Add function logic inside the body",
            MISSING_RETURN: "Add a return statement matching the declared type",
            NO_ERROR_HANDLING: "Add pre/post conditions for validation",
            NO_ACCESS: "Add access(all) or a narrower access modifier",
        }
        return "; ".join(fixes[reason] for reason in reasons)
