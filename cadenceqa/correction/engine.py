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

"""Auto-correction engine.

Applies deterministic textual repairs for the auto-fixable issue types and
measures its own confidence. Four passes run in a fixed order:

    1. undefined values    literal-undefined, incomplete-declaration, missing-return
    2. brackets            missing-close (closers appended at end of file)
    3. statements          incomplete-function-signature (a body is added)
    4. normalization       trailing-comma

Each pass re-detects on the current text, builds a list of edits and applies
them from the highest offset down, so earlier offsets stay valid. The passes
repeat in rounds until a round applies nothing (at most ``max_rounds``),
which makes the engine idempotent on its own output.

A repair whose issue is still reported at the same place after its pass is
stalled: it is withdrawn, never attempted again for that call, and the issue
is reported as unresolved with regeneration requested. The same happens to
auto-fixable issues still present when the rounds run out.

Confidence starts at 100 and drops to the lowest confidence reached by any
pass that made a repair. Each pass starts at its own ceiling and loses a
fixed step per repair, never going below its floor.
"""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Sequence, Set, Tuple

from cadenceqa.core.errors import CorrectionFailure
from cadenceqa.core.models import (
    CodeLocation,
    Correction,
    CorrectionType,
    GenerationContext,
    ValidationIssue,
)
from cadenceqa.detection.brackets import PAIRS, BracketMatcher
from cadenceqa.detection.scanner import (
    code_part,
    default_for_type,
    indentation,
    iter_functions,
    line_bounds,
    location_at,
    mask_non_code,
    offset_of,
    unterminated_comment_start,
)
from cadenceqa.detection.statements import TRAILING_COMMA_PATTERN, IncompleteStatementDetector
from cadenceqa.detection.undefined import UndefinedValueDetector

DEFAULT_MAX_ROUNDS = 3
DEFAULT_REGENERATION_THRESHOLD = 70

INDENT = "    "

_SIGNATURE_JUNK = frozenset(" \t,;:")


@dataclass(frozen=True)
class PassPolicy:
    """Confidence schedule of one correction pass."""

    name: str
    correction_type: CorrectionType
    start: int
    step: int
    floor: int

    def confidence(self, repairs: int) -> int:
        """Confidence after the ``repairs``-th repair of this pass (1-based)."""
        return max(self.floor, self.start - self.step * (repairs - 1))


UNDEFINED_PASS = PassPolicy("undefined-values", CorrectionType.UNDEFINED_FIX, 90, 5, 60)
BRACKET_PASS = PassPolicy("brackets", CorrectionType.SYNTAX_FIX, 85, 3, 50)
STATEMENT_PASS = PassPolicy("statements", CorrectionType.STRUCTURE_FIX, 80, 5, 40)
NORMALIZATION_PASS = PassPolicy("normalization", CorrectionType.SYNTAX_FIX, 90, 2, 70)


@dataclass(frozen=True)
class _Edit:
    start: int
    end: int
    replacement: str
    location: CodeLocation
    original: str
    reasoning: str
    # Issue being repaired and the offset its location points at
    issue_type: str = ""
    anchor: int = 0

    @property
    def key(self) -> Tuple[str, int]:
        return self.issue_type, self.anchor


def _shift(offset: int, edits: Sequence[_Edit]) -> int:
    """Where ``offset`` ends up once ``edits`` are applied."""
    delta = 0
    for edit in edits:
        if edit.start < offset or edit.start == edit.end == offset:
            delta += len(edit.replacement) - (edit.end - edit.start)
    return offset + delta


@dataclass
class CorrectionResult:
    """What the engine did to a text and how far it trusts the result."""

    corrected_code: str
    corrections_applied: List[Correction] = field(default_factory=list)
    confidence: int = 100
    requires_regeneration: bool = False
    success: bool = True
    original_issue_count: int = 0
    remaining_issue_count: int = 0
    unresolved_issues: List[ValidationIssue] = field(default_factory=list)
    failure: Optional[CorrectionFailure] = None


@dataclass(frozen=True)
class CorrectionValidation:
    """Before/after comparison of a corrected text."""

    issues_fixed: int
    issues_introduced: int
    quality_improvement: int
    risk: str

    @property
    def is_valid(self) -> bool:
        return self.issues_introduced == 0 and self.quality_improvement >= 0


class AutoCorrectionEngine:
    """Repairs auto-fixable issues and reports its confidence."""

    def __init__(
        self,
        undefined_detector: Optional[UndefinedValueDetector] = None,
        bracket_matcher: Optional[BracketMatcher] = None,
        statement_detector: Optional[IncompleteStatementDetector] = None,
        max_rounds: int = DEFAULT_MAX_ROUNDS,
        regeneration_threshold: int = DEFAULT_REGENERATION_THRESHOLD,
        logger: Optional[logging.Logger] = None,
    ):
        self.undefined_detector = undefined_detector or UndefinedValueDetector()
        self.bracket_matcher = bracket_matcher or BracketMatcher()
        self.statement_detector = statement_detector or IncompleteStatementDetector()
        self.max_rounds = max_rounds
        self.regeneration_threshold = regeneration_threshold
        self.logger = logger or logging.getLogger(__name__)

        # Each pass is checked against the detector that reports its issues
        self._passes: Tuple[
            Tuple[PassPolicy, Callable[[str], List[_Edit]], Callable[[str], List[ValidationIssue]]],
            ...,
        ] = (
            (UNDEFINED_PASS, self._undefined_edits, self.undefined_detector.detect),
            (BRACKET_PASS, self._bracket_edits, self.bracket_matcher.detect),
            (STATEMENT_PASS, self._statement_edits, self.statement_detector.detect),
            (NORMALIZATION_PASS, self._normalization_edits, self.statement_detector.detect),
        )

    def detect(self, text: str) -> List[ValidationIssue]:
        """All issues visible to the engine's own detectors."""
        issues = []
        issues.extend(self.bracket_matcher.detect(text))
        issues.extend(self.undefined_detector.detect(text))
        issues.extend(self.statement_detector.detect(text))
        return issues

    def correct(self, text: str, context: Optional[GenerationContext] = None) -> CorrectionResult:
        """Repair ``text``.

        ``context`` is accepted for symmetry with the validator; the repairs
        themselves do not depend on the contract category.
        """
        original_issues = self.detect(text)
        if not original_issues:
            return CorrectionResult(corrected_code=text)

        current = text
        applied: List[Correction] = []
        pass_confidences: List[int] = []
        # (issue type, offset in current) of repairs that did not take
        stalled: Set[Tuple[str, int]] = set()
        converged = False

        for round_number in range(1, self.max_rounds + 1):
            round_applied = 0
            for policy, build_edits, check in self._passes:
                try:
                    edits = [e for e in build_edits(current) if e.key not in stalled]
                    candidate, corrections = self._apply(current, edits, policy)
                    stuck = self._stuck_edits(candidate, edits, check) if edits else []
                    if stuck:
                        for edit in stuck:
                            self.logger.warning(
                                "Repair of %s at line %d did not take; giving up on it",
                                edit.issue_type,
                                edit.location.line,
                            )
                        stalled.update(edit.key for edit in stuck)
                        edits = [e for e in edits if e not in stuck]
                        candidate, corrections = self._apply(current, edits, policy)
                    stalled = {(kind, _shift(anchor, edits)) for kind, anchor in stalled}
                    current = candidate
                except Exception as exc:
                    failure = (
                        exc
                        if isinstance(exc, CorrectionFailure)
                        else CorrectionFailure(
                            f"Correction pass '{policy.name}' failed: {exc}",
                            pass_name=policy.name,
                            cause=exc,
                        )
                    )
                    self.logger.warning(f"Correction aborted: {failure.message}")
                    return self._failed(text, original_issues, failure)
                if corrections:
                    applied.extend(corrections)
                    pass_confidences.append(corrections[-1].confidence)
                    round_applied += len(corrections)
            self.logger.debug(
                "Correction round %d applied %d repair(s)", round_number, round_applied
            )
            if round_applied == 0:
                converged = True
                break

        remaining = self.detect(current)
        # Anything still auto-fixable here was stalled or cut off by the round limit
        stalled_issues = [issue for issue in remaining if issue.auto_fixable]
        if stalled_issues:
            self.logger.warning(
                "%d auto-fixable issue(s) could not be repaired (%s)",
                len(stalled_issues),
                "stalled" if converged else f"round limit {self.max_rounds} reached",
            )
        unresolved = [issue for issue in remaining if not issue.auto_fixable] + stalled_issues
        confidence = min(pass_confidences, default=100)
        requires_regeneration = (
            confidence < self.regeneration_threshold
            or bool(stalled_issues)
            or any(i.type == "literal-undefined" and i.is_critical for i in remaining)
            or any(i.is_critical for i in unresolved)
        )
        result = CorrectionResult(
            corrected_code=current,
            corrections_applied=applied,
            confidence=confidence,
            requires_regeneration=requires_regeneration,
            success=bool(applied),
            original_issue_count=len(original_issues),
            remaining_issue_count=len(remaining),
            unresolved_issues=unresolved,
        )
        self.logger.info(
            "Applied %d correction(s), confidence %d, %d issue(s) remain",
            len(applied),
            confidence,
            len(remaining),
        )
        return result

    def validate_corrections(self, original: str, corrected: str) -> CorrectionValidation:
        """Compare issue counts before and after correction, per issue type."""
        before = Counter(issue.type for issue in self.detect(original))
        after = Counter(issue.type for issue in self.detect(corrected))
        fixed = sum((before - after).values())
        introduced = sum((after - before).values())
        if introduced == 0:
            risk = "low"
        elif introduced < fixed:
            risk = "medium"
        else:
            risk = "high"
        return CorrectionValidation(
            issues_fixed=fixed,
            issues_introduced=introduced,
            quality_improvement=sum(before.values()) - sum(after.values()),
            risk=risk,
        )

    # =========================================================================
    # Passes
    # =========================================================================

    def _undefined_edits(self, text: str) -> List[_Edit]:
        masked = mask_non_code(text)
        edits: List[_Edit] = []
        functions = None
        for issue in self.undefined_detector.detect(text):
            if issue.type == "literal-undefined":
                offset = offset_of(text, issue.location)
                if text[offset : offset + len("undefined")] != "undefined":
                    raise CorrectionFailure(
                        f"Expected 'undefined' at line {issue.location.line}",
                        pass_name=UNDEFINED_PASS.name,
                    )
                edits.append(
                    _Edit(
                        offset,
                        offset + len("undefined"),
                        issue.suggested_value or "nil",
                        issue.location,
                        "undefined",
                        f"Replaced undefined with the type default {issue.suggested_value}",
                        issue.type,
                        offset,
                    )
                )
            elif issue.type == "incomplete-declaration":
                offset = offset_of(text, issue.location) + 1
                edits.append(
                    _Edit(
                        offset,
                        offset,
                        f" {issue.suggested_value}",
                        issue.location,
                        "",
                        f"Initialized declaration with {issue.suggested_value}",
                        issue.type,
                        offset - 1,
                    )
                )
            elif issue.type == "missing-return":
                if functions is None:
                    functions = {f.start: f for f in iter_functions(text, masked)}
                func = functions.get(offset_of(text, issue.location))
                if func is None or func.body is None or func.body.close_offset is None:
                    continue
                close = func.body.close_offset
                line_start, _ = line_bounds(text, close)
                value = issue.suggested_value or "nil"
                if not text[line_start:close].strip():
                    # Closing brace on its own line
                    indent = indentation(text[line_start:close])
                    insertion = f"{indent}{INDENT}return {value}\n"
                    position = line_start
                else:
                    sig_start, sig_end = line_bounds(text, func.start)
                    indent = indentation(text[sig_start:sig_end])
                    insertion = f"\n{indent}{INDENT}return {value}\n{indent}"
                    position = close
                edits.append(
                    _Edit(
                        position,
                        position,
                        insertion,
                        issue.location,
                        "",
                        f"Added 'return {value}' to '{func.name}'",
                        issue.type,
                        func.start,
                    )
                )
        return edits

    def _bracket_edits(self, text: str) -> List[_Edit]:
        _, unclosed = self.bracket_matcher.scan(text)
        if not unclosed:
            return []
        prefix = "" if text.endswith("\n") else "\n"
        edits = []
        end = len(text)
        comment_start = unterminated_comment_start(text)
        if comment_start is not None:
            # Closers appended inside an open comment would be invisible
            edits.append(
                _Edit(
                    end,
                    end,
                    "*/" if text.endswith("\n") else " */",
                    location_at(text, comment_start, length=2),
                    "",
                    f"Closed comment opened at line {location_at(text, comment_start).line}",
                    "unterminated-comment",
                    comment_start,
                )
            )
            prefix = "\n"
        # One edit per closer, all at end of file, innermost first
        for index, (opener, offset) in enumerate(unclosed):
            edits.append(
                _Edit(
                    end,
                    end,
                    (prefix if index == 0 else "\n") + PAIRS[opener],
                    location_at(text, offset, length=1),
                    "",
                    f"Closed '{opener}' opened at line {location_at(text, offset).line}",
                    "missing-close",
                    offset,
                )
            )
        return edits

    def _statement_edits(self, text: str) -> List[_Edit]:
        masked = mask_non_code(text)
        functions = {f.start: f for f in iter_functions(text, masked)}
        edits = []
        for issue in self.statement_detector.detect(text):
            if issue.type != "incomplete-function-signature":
                continue
            func = functions.get(offset_of(text, issue.location))
            if func is None:
                continue
            line_start, line_end = line_bounds(text, func.signature_end)
            line = text[line_start:line_end]
            end = line_start + len(code_part(line).rstrip())
            # Dangling separators would turn the new brace into a type brace
            position = end
            floor = max(func.signature_end, line_start)
            while position > floor and text[position - 1] in _SIGNATURE_JUNK:
                position -= 1
            sig_start, sig_end = line_bounds(text, func.start)
            indent = indentation(text[sig_start:sig_end])
            if func.returns_value:
                value = default_for_type(func.return_type)
                body = f" {{\n{indent}{INDENT}return {value}\n{indent}}}"
            else:
                body = f" {{\n{indent}}}"
            edits.append(
                _Edit(
                    position,
                    end,
                    body,
                    issue.location,
                    text[position:end],
                    f"Completed '{func.name}' with a body",
                    issue.type,
                    func.start,
                )
            )
        return edits

    def _normalization_edits(self, text: str) -> List[_Edit]:
        masked = mask_non_code(text)
        return [
            _Edit(
                match.start(),
                match.end(),
                ")",
                location_at(text, match.start(), length=len(match.group(0))),
                text[match.start() : match.end()],
                "Removed trailing comma before ')'",
                "trailing-comma",
                match.start(),
            )
            for match in TRAILING_COMMA_PATTERN.finditer(masked)
        ]

    # =========================================================================
    # Helpers
    # =========================================================================

    @staticmethod
    def _stuck_edits(
        candidate: str, edits: Sequence[_Edit], check: Callable[[str], List[ValidationIssue]]
    ) -> List[_Edit]:
        """Edits whose issue is still reported at the same place in ``candidate``."""
        survivors = {(issue.type, offset_of(candidate, issue.location)) for issue in check(candidate)}
        return [edit for edit in edits if (edit.issue_type, _shift(edit.anchor, edits)) in survivors]

    @staticmethod
    def _apply(
        text: str, edits: Sequence[_Edit], policy: PassPolicy
    ) -> Tuple[str, List[Correction]]:
        """Apply edits from the highest offset down and record corrections in text order."""
        if not edits:
            return text, []
        # Edits sharing an offset are applied last-first so they end up in list order
        indexed = sorted(enumerate(edits), key=lambda item: (item[1].start, item[0]), reverse=True)
        for _, edit in indexed:
            text = text[: edit.start] + edit.replacement + text[edit.end :]
        corrections = [
            Correction(
                type=policy.correction_type,
                location=edit.location,
                original_value=edit.original,
                corrected_value=edit.replacement.strip() or edit.replacement,
                reasoning=edit.reasoning,
                confidence=policy.confidence(number),
            )
            for number, edit in enumerate(edits, start=1)
        ]
        return text, corrections

    def _failed(
        self, text: str, original_issues: List[ValidationIssue], failure: CorrectionFailure
    ) -> CorrectionResult:
        return CorrectionResult(
            corrected_code=text,
            corrections_applied=[],
            confidence=0,
            requires_regeneration=True,
            success=False,
            original_issue_count=len(original_issues),
            remaining_issue_count=len(original_issues),
            unresolved_issues=[i for i in original_issues if not i.auto_fixable],
            failure=failure,
        )
