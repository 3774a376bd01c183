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

"""Bracket, parenthesis and brace matching.

Three independent stacks are kept, one per pair, over text with strings and
comments masked out. An unmatched closer cannot be repaired safely (where
the opener belongs is ambiguous). An opener still open at end of file is
repaired by appending its closer, which is a last resort rather than a
precise fix.
"""

from __future__ import annotations

from typing import Dict, List, Tuple

from cadenceqa.core.models import Severity, ValidationIssue
from cadenceqa.detection.scanner import location_at, mask_non_code

CATEGORY = "syntax"

PAIRS: Dict[str, str] = {"{": "}", "(": ")", "[": "]"}
CLOSERS: Dict[str, str] = {v: k for k, v in PAIRS.items()}

NAMES = {"{": "brace", "(": "parenthesis", "[": "square bracket"}


class BracketMatcher:
    """Stack-based bracket mismatch detector."""

    def scan(self, text: str) -> Tuple[List[Tuple[str, int]], List[Tuple[str, int]]]:
        """Return (unmatched closers, unclosed openers) as (char, offset) pairs.

        Unclosed openers are ordered innermost first, which is the order in
        which their closers must be appended.
        """
        masked = mask_non_code(text)
        stacks: Dict[str, List[int]] = {opener: [] for opener in PAIRS}
        unmatched_closers: List[Tuple[str, int]] = []
        for offset, ch in enumerate(masked):
            if ch in PAIRS:
                stacks[ch].append(offset)
            elif ch in CLOSERS:
                stack = stacks[CLOSERS[ch]]
                if stack:
                    stack.pop()
                else:
                    unmatched_closers.append((ch, offset))
        unclosed = [(opener, offset) for opener, offsets in stacks.items() for offset in offsets]
        unclosed.sort(key=lambda item: item[1], reverse=True)
        return unmatched_closers, unclosed

    def detect(self, text: str) -> List[ValidationIssue]:
        unmatched_closers, unclosed = self.scan(text)
        issues: List[ValidationIssue] = []
        for closer, offset in unmatched_closers:
            opener = CLOSERS[closer]
            issues.append(
                ValidationIssue(
                    severity=Severity.CRITICAL,
                    type="missing-open",
                    location=location_at(text, offset, length=1),
                    message=f"Unmatched closing {NAMES[opener]} '{closer}'",
                    suggested_fix=f"Add the matching '{opener}' or remove this '{closer}'",
                    auto_fixable=False,
                    category=CATEGORY,
                )
            )
        for opener, offset in unclosed:
            closer = PAIRS[opener]
            issues.append(
                ValidationIssue(
                    severity=Severity.CRITICAL,
                    type="missing-close",
                    location=location_at(text, offset, length=1),
                    message=f"Unclosed {NAMES[opener]} '{opener}'",
                    suggested_fix=f"Add '{closer}' to close this {NAMES[opener]}",
                    auto_fixable=True,
                    suggested_value=closer,
                    category=CATEGORY,
                )
            )
        return issues
