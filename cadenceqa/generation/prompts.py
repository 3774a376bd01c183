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

"""Progressive prompt enhancement for retried generation attempts.

Each retry tightens the instructions sent to the generation function:
basic on the first attempt, then moderate, strict and maximum. Failure
types seen on earlier attempts are folded into the user prompt so the
model is told what went wrong.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterable, List, Optional, Sequence

from cadenceqa.core.models import (
    Complexity,
    ContractCategory,
    GenerationContext,
    ResultType,
    ValidationResult,
)

logger = logging.getLogger(__name__)


class EnhancementLevel(str, Enum):
    BASIC = "basic"
    MODERATE = "moderate"
    STRICT = "strict"
    MAXIMUM = "maximum"


LEVEL_TEMPERATURES: Dict[EnhancementLevel, float] = {
    EnhancementLevel.BASIC: 0.7,
    EnhancementLevel.MODERATE: 0.5,
    EnhancementLevel.STRICT: 0.3,
    EnhancementLevel.MAXIMUM: 0.1,
}

LEVEL_RULES: Dict[EnhancementLevel, Sequence[str]] = {
    EnhancementLevel.BASIC: (
        "Focus on complete, working implementations",
        "Ensure all variables have concrete values",
        "Use modern Cadence 1.0 syntax throughout",
    ),
    EnhancementLevel.MODERATE: (
        "Double-check all variable initializations for concrete values",
        "Verify all function signatures are complete with proper implementations",
        "Ensure error handling in all public functions",
        "Confirm all brackets and parentheses are properly matched",
    ),
    EnhancementLevel.STRICT: (
        "No undefined values anywhere in the code",
        "All brackets, parentheses and braces must match",
        "All functions must have complete implementations",
        "All resources must have proper lifecycle management",
        "All access control patterns must be explicit",
    ),
    EnhancementLevel.MAXIMUM: (
        "Every line must be syntactically valid Cadence 1.0",
        "Any undefined value causes immediate rejection",
        "No partial, incomplete or placeholder code",
        "Code must be deployable without modification",
        "Every variable must have a concrete, meaningful value",
    ),
}

SYSTEM_PROMPT = """
You are an expert Flow blockchain developer writing Cadence 1.0 smart contracts.

FORBIDDEN:
- the "pub" keyword; use access(all), access(self), access(contract) or access(account)
- AuthAccount and the legacy account.save / account.link storage API
- the literal "undefined"; use concrete defaults ("", 0, 0.0, false, [], {})
- TODO or FIXME placeholders and empty function bodies

REQUIRED:
- a single access(all) contract declaration with an init() that sets every field
- account.storage.save() and account.capabilities.storage.issue() for storage
- pre conditions on functions that move value (mint, withdraw, deposit, transfer)
- events declared with typed parameters and emitted on every state change
- a return statement in every function that declares a return type
""".strip()

FAILURE_INSTRUCTIONS: Dict[str, str] = {
    "undefined-values": "Previous attempts had undefined values. Use concrete defaults only.",
    "syntax-errors": "Previous attempts had syntax errors. Verify that all brackets match.",
    "incomplete-logic": "Previous attempts had incomplete logic. Implement every function fully.",
    "legacy-syntax": "Previous attempts used legacy syntax. Use only Cadence 1.0 patterns.",
    "validation-failures": "Previous attempts failed validation. Follow every requirement strictly.",
    "generation-error": "The previous attempt produced no usable code. Return one complete contract.",
}

CATEGORY_REQUIREMENTS: Dict[ContractCategory, str] = {
    ContractCategory.NFT: (
        "Import NonFungibleToken and MetadataViews, define NFT and Collection resources, "
        "a minting function and resolveView for metadata."
    ),
    ContractCategory.FUNGIBLE_TOKEN: (
        "Import FungibleToken, define a Vault resource with withdraw and deposit, "
        "an Administrator resource for minting and totalSupply tracking."
    ),
    ContractCategory.DAO: (
        "Define a Proposal resource with yesVotes, noVotes and a status, "
        "createProposal, vote with double-vote prevention, and executeProposal."
    ),
    ContractCategory.MARKETPLACE: (
        "Import NonFungibleToken and FungibleToken, define a Listing resource with a seller, "
        "createListing, purchase with price validation and payment distribution."
    ),
}

COMPLEXITY_NOTES: Dict[Complexity, str] = {
    Complexity.SIMPLE: "Keep the implementation straightforward but complete.",
    Complexity.ADVANCED: "Handle edge cases explicitly and keep access control tight.",
}

# Issue categories mapped to the failure type reported to the next attempt
_ISSUE_FAILURE_TYPES: Dict[str, str] = {
    "undefined": "undefined-values",
    "syntax": "syntax-errors",
    "structural": "incomplete-logic",
    "completeness": "incomplete-logic",
    "functional": "incomplete-logic",
}


@dataclass(frozen=True)
class EnhancedPrompt:
    system_prompt: str
    user_prompt: str
    temperature: float
    enhancement_level: EnhancementLevel

    def as_text(self) -> str:
        """Single prompt string for generation functions without a system slot."""
        return f"{self.system_prompt}\n\n{self.user_prompt}"


def determine_level(attempt_number: int, strict_mode: bool = False) -> EnhancementLevel:
    if strict_mode:
        return EnhancementLevel.MAXIMUM if attempt_number >= 3 else EnhancementLevel.STRICT
    if attempt_number <= 1:
        return EnhancementLevel.BASIC
    if attempt_number == 2:
        return EnhancementLevel.MODERATE
    if attempt_number == 3:
        return EnhancementLevel.STRICT
    return EnhancementLevel.MAXIMUM


def failure_types_from(results: Iterable[ValidationResult]) -> List[str]:
    """Summarize the critical issues of a rejected attempt as failure types."""
    failures: List[str] = []
    for result in results:
        for issue in result.critical_issues:
            if issue.category in _ISSUE_FAILURE_TYPES:
                failure = _ISSUE_FAILURE_TYPES[issue.category]
            elif result.type == ResultType.SYNTAX:
                failure = "syntax-errors"
            else:
                failure = "validation-failures"
            if failure not in failures:
                failures.append(failure)
    return failures


class PromptEnhancer:
    """Builds the prompt pair sent to the generation function for one attempt."""

    def enhance(
        self,
        prompt: str,
        context: Optional[GenerationContext] = None,
        attempt_number: int = 1,
        previous_failures: Sequence[str] = (),
        strict_mode: bool = False,
    ) -> EnhancedPrompt:
        level = determine_level(attempt_number, strict_mode)
        logger.debug(
            "Enhancing prompt: attempt=%d level=%s failures=%d",
            attempt_number,
            level.value,
            len(previous_failures),
        )
        return EnhancedPrompt(
            system_prompt=self._system_prompt(level, attempt_number, previous_failures),
            user_prompt=self._user_prompt(prompt, context, attempt_number, previous_failures, strict_mode),
            temperature=LEVEL_TEMPERATURES[level],
            enhancement_level=level,
        )

    @staticmethod
    def _system_prompt(
        level: EnhancementLevel, attempt_number: int, previous_failures: Sequence[str]
    ) -> str:
        parts = [SYSTEM_PROMPT, f"ENHANCEMENT LEVEL: {level.value.upper()} (attempt {attempt_number})"]
        parts.append("\n".join(f"- {rule}" for rule in LEVEL_RULES[level]))
        if previous_failures:
            parts.append(f"Previous attempts failed due to: {', '.join(previous_failures)}")
        return "\n\n".join(parts)

    @staticmethod
    def _user_prompt(
        prompt: str,
        context: Optional[GenerationContext],
        attempt_number: int,
        previous_failures: Sequence[str],
        strict_mode: bool,
    ) -> str:
        parts = [f"Create a Cadence 1.0 smart contract for: {prompt.strip()}"]

        if context is not None:
            requirements = CATEGORY_REQUIREMENTS.get(context.contract_type.category)
            if requirements:
                parts.append(requirements)
            note = COMPLEXITY_NOTES.get(context.contract_type.complexity)
            if note:
                parts.append(note)
            if context.quality_requirements.required_features:
                features = ", ".join(context.quality_requirements.required_features)
                parts.append(f"The contract must include: {features}.")

        corrections = [
            FAILURE_INSTRUCTIONS.get(failure, f"Previous attempts failed due to {failure}.")
            for failure in previous_failures
        ]
        if corrections:
            parts.append("Corrections:\n" + "\n".join(f"- {line}" for line in corrections))

        if attempt_number > 1:
            parts.append(f"This is retry attempt {attempt_number}; the previous output was rejected.")
        if strict_mode:
            parts.append("Strict mode: any critical issue rejects the output.")
        if context is not None:
            minimum = context.quality_requirements.minimum_quality_score
            parts.append(f"The code must reach a quality score of {minimum} or more.")
        return "\n\n".join(parts)
