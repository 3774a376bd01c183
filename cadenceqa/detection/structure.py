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

"""Structural checks on a whole contract.

Covers the contract declaration, the initializer, imports required by the
contract category, event and function signatures, resource lifecycle hooks,
access modifiers and leftover TODO markers. ``analyze`` returns both the
issues and the raw facts, which the composite validator reuses for its
completeness percentage.

Issue categories: structural, functional, completeness, best-practices.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Set, Tuple

from cadenceqa.core.models import ContractCategory, Severity, ValidationIssue
from cadenceqa.detection.scanner import (
    FunctionSignature,
    iter_functions,
    location_at,
    mask_non_code,
    match_brace,
)

logger = logging.getLogger(__name__)

CONTRACT_PATTERN = re.compile(
    r"(?P<access>access\s*\(\s*\w+\s*\)\s+)?\bcontract\s+(?!interface\b)(?P<name>\w+)"
)
INIT_PATTERN = re.compile(r"\binit\s*\([^)]*\)\s*\{")
IMPORT_PATTERN = re.compile(r"^\s*import\s+\"?(\w+)\"?", re.MULTILINE)
EVENT_PATTERN = re.compile(
    r"(?P<access>access\s*\([^)]*\)\s+)?\bevent\s+(?P<name>\w+)\s*\((?P<params>[^)]*)\)"
)
EMIT_PATTERN = re.compile(r"\bemit\s+(\w+)\s*\(")
RESOURCE_PATTERN = re.compile(
    r"(?P<access>access\s*\([^)]*\)\s+)?\bresource\s+(?!interface\b)(?P<name>\w+)\s*[:{]"
)
UNQUALIFIED_DECLARATION_PATTERN = re.compile(
    r"^\s*(?P<kind>fun|resource|struct|event)\s+(?P<name>\w+)", re.MULTILINE
)
TODO_PATTERN = re.compile(r"\b(TODO|FIXME)\b")
DESTROY_PATTERN = re.compile(r"\bdestroy\b|\bevent\s+ResourceDestroyed\b")

# Emitted implicitly by the runtime when a resource is destroyed
IMPLICIT_EVENTS = frozenset({"ResourceDestroyed"})

REQUIRED_IMPORTS: Dict[ContractCategory, Tuple[str, ...]] = {
    ContractCategory.NFT: ("NonFungibleToken", "MetadataViews"),
    ContractCategory.FUNGIBLE_TOKEN: ("FungibleToken",),
    ContractCategory.MARKETPLACE: ("NonFungibleToken", "FungibleToken"),
}


def infer_contract_category(text: str) -> ContractCategory:
    """Guess the contract category from its source text.

    Marketplaces import both token standards, so they are checked first.
    """
    lowered = text.lower()
    if "marketplace" in lowered or "listing" in lowered:
        return ContractCategory.MARKETPLACE
    if "NonFungibleToken" in text or re.search(r"\bNFT\b", text):
        return ContractCategory.NFT
    if "FungibleToken" in text or re.search(r"\bVault\b", text):
        return ContractCategory.FUNGIBLE_TOKEN
    if "vote" in lowered or "proposal" in lowered:
        return ContractCategory.DAO
    return ContractCategory.GENERIC


@dataclass(frozen=True)
class EventInfo:
    name: str
    has_access: bool
    params: Tuple[str, ...]
    invalid_params: Tuple[str, ...]
    emitted: bool
    offset: int

    @property
    def params_valid(self) -> bool:
        return not self.invalid_params


@dataclass(frozen=True)
class ResourceInfo:
    name: str
    has_access: bool
    has_init: bool
    has_destroy: bool
    offset: int


@dataclass
class StructureReport:
    """Facts about a contract's structure plus the issues they imply."""

    category: ContractCategory
    contract_name: Optional[str] = None
    has_declaration: bool = False
    declaration_has_access: bool = False
    has_init: bool = False
    imports: Set[str] = field(default_factory=set)
    missing_imports: List[str] = field(default_factory=list)
    events: List[EventInfo] = field(default_factory=list)
    resources: List[ResourceInfo] = field(default_factory=list)
    functions: List[FunctionSignature] = field(default_factory=list)
    invalid_function_params: Dict[str, List[str]] = field(default_factory=dict)
    empty_functions: List[str] = field(default_factory=list)
    issues: List[ValidationIssue] = field(default_factory=list)

    def issues_in(self, *categories: str) -> List[ValidationIssue]:
        return [issue for issue in self.issues if issue.category in categories]


def _brace_depth(masked: str, offset: int) -> int:
    return masked.count("{", 0, offset) - masked.count("}", 0, offset)


class StructuralDetector:
    """Checks contract-level structure and signatures."""

    def detect(
        self, text: str, category: Optional[ContractCategory] = None
    ) -> List[ValidationIssue]:
        return self.analyze(text, category).issues

    def analyze(
        self, text: str, category: Optional[ContractCategory] = None
    ) -> StructureReport:
        masked = mask_non_code(text)
        if category is None or category == ContractCategory.GENERIC:
            category = infer_contract_category(text)
        report = StructureReport(category=category)

        self._check_declaration(text, masked, report)
        self._check_imports(text, masked, report)
        self._check_events(text, masked, report)
        self._check_functions(text, masked, report)
        self._check_resources(text, masked, report)
        self._check_access_modifiers(text, masked, report)
        self._check_todos(text, report)

        logger.debug(
            "Structure scan (%s): %d issue(s)", category.value, len(report.issues)
        )
        return report

    def _add(
        self,
        report: StructureReport,
        text: str,
        offset: int,
        severity: Severity,
        issue_type: str,
        message: str,
        suggested_fix: str,
        category: str,
    ) -> None:
        report.issues.append(
            ValidationIssue(
                severity=severity,
                type=issue_type,
                location=location_at(text, offset),
                message=message,
                suggested_fix=suggested_fix,
                auto_fixable=False,
                category=category,
            )
        )

    def _check_declaration(self, text: str, masked: str, report: StructureReport) -> None:
        declaration = CONTRACT_PATTERN.search(masked)
        if declaration and declaration.group("access"):
            report.has_declaration = True
            report.declaration_has_access = True
            report.contract_name = declaration.group("name")
        else:
            if declaration:
                report.contract_name = declaration.group("name")
            self._add(
                report,
                text,
                declaration.start() if declaration else 0,
                Severity.CRITICAL,
                "missing-contract-declaration",
                "No contract declaration with an access modifier found",
                "Declare the contract as 'access(all) contract Name { ... }'",
                "structural",
            )

        inits = list(INIT_PATTERN.finditer(masked))
        if report.contract_name:
            # Only an initializer directly inside the contract body counts
            inits = [m for m in inits if _brace_depth(masked, m.start()) == 1]
        report.has_init = bool(inits)
        if not report.has_init:
            self._add(
                report,
                text,
                declaration.start() if declaration else 0,
                Severity.CRITICAL,
                "missing-init",
                "Contract has no init() function",
                "Add an init() function that initializes all contract fields",
                "structural",
            )

    def _check_imports(self, text: str, masked: str, report: StructureReport) -> None:
        report.imports = set(IMPORT_PATTERN.findall(mask_non_code(text, mask_strings=False)))
        for required in REQUIRED_IMPORTS.get(report.category, ()):
            if required in report.imports:
                continue
            report.missing_imports.append(required)
            self._add(
                report,
                text,
                0,
                Severity.WARNING,
                "missing-import",
                f"{report.category.value} contracts should import {required}",
                f'Add: import "{required}"',
                "completeness",
            )

    def _check_events(self, text: str, masked: str, report: StructureReport) -> None:
        emitted = set(EMIT_PATTERN.findall(masked))
        for match in EVENT_PATTERN.finditer(masked):
            name = match.group("name")
            params = tuple(p.strip() for p in match.group("params").split(",") if p.strip())
            invalid = tuple(p for p in params if ":" not in p)
            info = EventInfo(
                name=name,
                has_access=bool(match.group("access")),
                params=params,
                invalid_params=invalid,
                emitted=name in emitted or name in IMPLICIT_EVENTS,
                offset=match.start(),
            )
            report.events.append(info)
            if invalid:
                self._add(
                    report,
                    text,
                    match.start(),
                    Severity.CRITICAL,
                    "invalid-event-parameter",
                    f"Event '{name}' has parameters without types: {', '.join(invalid)}",
                    "Give every event parameter a type annotation, e.g. id: UInt64",
                    "functional",
                )
            if not info.emitted:
                self._add(
                    report,
                    text,
                    match.start(),
                    Severity.INFO,
                    "unused-event",
                    f"Event '{name}' is declared but never emitted",
                    f"Emit {name} where the corresponding state change happens, or remove it",
                    "best-practices",
                )

    def _check_functions(self, text: str, masked: str, report: StructureReport) -> None:
        report.functions = iter_functions(text, masked)
        for func in report.functions:
            invalid = [p for p in func.param_list() if ":" not in p]
            if invalid:
                report.invalid_function_params[func.name] = invalid
                self._add(
                    report,
                    text,
                    func.start,
                    Severity.CRITICAL,
                    "invalid-function-parameter",
                    f"Function '{func.name}' has parameters without types: {', '.join(invalid)}",
                    "Give every parameter a type annotation",
                    "functional",
                )
            body = func.body_text(masked)
            if body is not None and not body.strip():
                report.empty_functions.append(func.name)
                self._add(
                    report,
                    text,
                    func.start,
                    Severity.CRITICAL,
                    "empty-function",
                    f"Function '{func.name}' has an empty body",
                    "Implement the function body",
                    "completeness",
                )

    def _check_resources(self, text: str, masked: str, report: StructureReport) -> None:
        for match in RESOURCE_PATTERN.finditer(masked):
            name = match.group("name")
            open_offset = masked.find("{", match.start())
            close_offset = match_brace(masked, open_offset) if open_offset != -1 else None
            body = masked[open_offset:close_offset] if close_offset is not None else masked[open_offset:]
            info = ResourceInfo(
                name=name,
                has_access=bool(match.group("access")),
                has_init=bool(re.search(r"\binit\s*\(", body)),
                has_destroy=bool(DESTROY_PATTERN.search(body)),
                offset=match.start(),
            )
            report.resources.append(info)
            if not info.has_destroy:
                self._add(
                    report,
                    text,
                    match.start(),
                    Severity.WARNING,
                    "missing-destroy",
                    f"Resource '{name}' has no destroy handling",
                    "Declare a ResourceDestroyed event or destroy nested resources explicitly",
                    "best-practices",
                )

    def _check_access_modifiers(self, text: str, masked: str, report: StructureReport) -> None:
        for match in UNQUALIFIED_DECLARATION_PATTERN.finditer(masked):
            kind, name = match.group("kind"), match.group("name")
            self._add(
                report,
                text,
                match.start("kind"),
                Severity.WARNING,
                "missing-access-modifier",
                f"{kind} '{name}' has no access modifier",
                "Prefix the declaration with access(all) or a narrower access level",
                "best-practices",
            )

    def _check_todos(self, text: str, report: StructureReport) -> None:
        for match in TODO_PATTERN.finditer(text):
            self._add(
                report,
                text,
                match.start(),
                Severity.WARNING,
                "todo-comment",
                f"Unfinished work marker '{match.group(1)}'",
                "Complete the implementation and remove the marker",
                "best-practices",
            )
