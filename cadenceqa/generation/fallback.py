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

"""Fallback contract generation.

Classifies a natural-language prompt into a contract category with keyword
patterns, then renders the matching deterministic template. Used by the
orchestrator once generation retries are exhausted.

Example:
    generator = FallbackGenerator()
    detection = generator.detect_contract_type("Create a basic NFT collection")
    # detection.contract_type.category == ContractCategory.NFT
    result = generator.generate_fallback("Create a MyArt NFT collection")
    # result.code is a complete MyArt contract
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Pattern, Tuple

from cadenceqa.core.errors import ErrorCategory, QAError
from cadenceqa.core.models import Complexity, ContractCategory, ContractType
from cadenceqa.core.outcome import Outcome
from cadenceqa.generation.templates import (
    DEFAULT_CONTRACT_NAME,
    emergency_template,
    render_template,
    template_for,
)

logger = logging.getLogger(__name__)

TemplateProvider = Callable[[ContractCategory], str]


# =============================================================================
# Detection tables
# =============================================================================

CONTRACT_TYPE_PATTERNS: Dict[ContractCategory, Tuple[Pattern[str], ...]] = {
    ContractCategory.NFT: (
        re.compile(r"\b(nft|non.?fungible|collectible|art|digital.?asset|collection)\b"),
        re.compile(r"\b(mint|metadata|unique|token)\b"),
        re.compile(r"\b(erc.?721)\b"),
    ),
    ContractCategory.FUNGIBLE_TOKEN: (
        re.compile(r"\b(fungible|coin|currency|token)\b"),
        re.compile(r"\b(transfer|balance|supply|mint|burn|vault)\b"),
        re.compile(r"\b(erc.?20)\b"),
    ),
    ContractCategory.MARKETPLACE: (
        re.compile(r"\b(marketplace|market|trading|buy|sell|auction)\b"),
        re.compile(r"\b(listing|purchase|bid|offer|trade)\b"),
        re.compile(r"\b(commission|fee|royalty)\b"),
    ),
    ContractCategory.DAO: (
        re.compile(r"\b(dao|governance|voting|proposal)\b"),
        re.compile(r"\b(vote|ballot|decision|consensus)\b"),
        re.compile(r"\b(member|stakeholder|community)\b"),
    ),
    ContractCategory.DEFI: (
        re.compile(r"\b(defi|staking|yield|farming|liquidity)\b"),
        re.compile(r"\b(pool|swap|exchange|lending|borrowing)\b"),
        re.compile(r"\b(reward|interest|apy|apr)\b"),
    ),
    ContractCategory.UTILITY: (
        re.compile(r"\b(utility|tool|helper|service)\b"),
        re.compile(r"\b(multi.?sig|wallet|escrow)\b"),
        re.compile(r"\b(oracle|bridge|proxy)\b"),
    ),
}

# Checked in order; the first level with a matching word wins
COMPLEXITY_INDICATORS: Tuple[Tuple[Complexity, Tuple[str, ...]], ...] = (
    (Complexity.ADVANCED, ("advanced", "complex", "sophisticated", "enterprise", "custom", "multi")),
    (Complexity.INTERMEDIATE, ("standard", "complete", "full", "comprehensive")),
    (Complexity.SIMPLE, ("basic", "simple", "minimal", "easy", "starter")),
)

FEATURE_PATTERNS: Dict[ContractCategory, Tuple[Pattern[str], ...]] = {
    ContractCategory.NFT: (
        re.compile(r"\b(royalt(?:y|ies))\b", re.IGNORECASE),
        re.compile(r"\b(metadata|attributes)\b", re.IGNORECASE),
        re.compile(r"\b(batch.?mint|bulk.?mint)\b", re.IGNORECASE),
        re.compile(r"\b(reveal|hidden)\b", re.IGNORECASE),
    ),
    ContractCategory.FUNGIBLE_TOKEN: (
        re.compile(r"\b(burn|burning)\b", re.IGNORECASE),
        re.compile(r"\b(pause|pausable)\b", re.IGNORECASE),
        re.compile(r"\b(cap|capped|limit)\b", re.IGNORECASE),
        re.compile(r"\b(admin|owner)\b", re.IGNORECASE),
    ),
    ContractCategory.MARKETPLACE: (
        re.compile(r"\b(auction|bidding)\b", re.IGNORECASE),
        re.compile(r"\b(royalt(?:y|ies))\b", re.IGNORECASE),
        re.compile(r"\b(escrow)\b", re.IGNORECASE),
        re.compile(r"\b(bundle|batch)\b", re.IGNORECASE),
    ),
    ContractCategory.DAO: (
        re.compile(r"\b(timelock|delay)\b", re.IGNORECASE),
        re.compile(r"\b(quorum)\b", re.IGNORECASE),
        re.compile(r"\b(delegation|delegate)\b", re.IGNORECASE),
        re.compile(r"\b(treasury)\b", re.IGNORECASE),
    ),
}

NAME_PATTERNS: Tuple[Pattern[str], ...] = (
    re.compile(r"create\s+(?:a\s+)?(\w+)\s+contract", re.IGNORECASE),
    re.compile(r"(\w+)\s+contract", re.IGNORECASE),
    re.compile(r"contract\s+(?:called\s+)?(\w+)", re.IGNORECASE),
    re.compile(r"(\w+)\s+(?:nft|token|collection)", re.IGNORECASE),
)

MATCHES_FOR_FULL_CONFIDENCE = 3


# =============================================================================
# Results
# =============================================================================


@dataclass(frozen=True)
class ContractTypeDetection:
    contract_type: ContractType
    confidence: float
    keywords: Tuple[str, ...] = ()
    reasoning: str = ""


@dataclass(frozen=True)
class FallbackGenerationResult:
    """Outcome of a fallback request."""

    code: str
    template_used: str
    confidence: float
    contract_type: ContractType
    reasoning: str
    success: bool


@dataclass
class FallbackQualityReport:
    """Which of the minimal sanity checks a fallback contract passed."""

    checks: Dict[str, bool] = field(default_factory=dict)

    @property
    def passed(self) -> bool:
        return all(self.checks.values())

    @property
    def failed_checks(self) -> List[str]:
        return [name for name, ok in self.checks.items() if not ok]


def brackets_balanced(code: str) -> bool:
    """Raw character count of all three bracket kinds, never going negative."""
    depth = {"{": 0, "(": 0, "[": 0}
    closers = {"}": "{", ")": "(", "]": "["}
    for char in code:
        if char in depth:
            depth[char] += 1
        elif char in closers:
            depth[closers[char]] -= 1
            if depth[closers[char]] < 0:
                return False
    return not any(depth.values())


# =============================================================================
# Generator
# =============================================================================


class FallbackGenerator:
    """Detects the contract type of a prompt and renders a safe template.

    Args:
        template_provider: ``(category) -> str`` returning template source.
            Defaults to the built-in templates rendered with the contract
            name extracted from the prompt.
    """

    def __init__(self, template_provider: Optional[TemplateProvider] = None):
        self.template_provider = template_provider

    def detect_contract_type(self, prompt: str) -> ContractTypeDetection:
        normalized = prompt.lower()
        best_category = ContractCategory.GENERIC
        best_keywords: List[str] = []

        for category, patterns in CONTRACT_TYPE_PATTERNS.items():
            keywords = [m.group(0) for pattern in patterns for m in pattern.finditer(normalized)]
            # Ties keep the earlier category
            if len(keywords) > len(best_keywords):
                best_category, best_keywords = category, keywords

        contract_type = ContractType(
            category=best_category,
            complexity=self.determine_complexity(prompt, best_keywords),
            features=tuple(self.extract_features(prompt, best_category)),
        )
        return ContractTypeDetection(
            contract_type=contract_type,
            confidence=min(len(best_keywords) / MATCHES_FOR_FULL_CONFIDENCE, 1.0),
            keywords=tuple(best_keywords),
            reasoning=f"Detected {best_category.value} contract with {len(best_keywords)} keyword matches",
        )

    @staticmethod
    def determine_complexity(prompt: str, keywords: List[str]) -> Complexity:
        lowered = prompt.lower()
        for level, indicators in COMPLEXITY_INDICATORS:
            if any(word in lowered for word in indicators):
                return level
        if len(prompt) > 300 or len(keywords) > 8:
            return Complexity.ADVANCED
        if len(prompt) > 100 or len(keywords) > 4:
            return Complexity.INTERMEDIATE
        return Complexity.SIMPLE

    @staticmethod
    def extract_features(prompt: str, category: ContractCategory) -> List[str]:
        features: List[str] = []
        for pattern in FEATURE_PATTERNS.get(category, ()):
            for match in pattern.finditer(prompt):
                feature = re.sub(r"ies$", "y", match.group(0).lower())
                if feature not in features:
                    features.append(feature)
        return features

    @staticmethod
    def extract_contract_name(prompt: str) -> Optional[str]:
        """Pull a contract name such as ``MyToken`` out of the prompt."""
        for pattern in NAME_PATTERNS:
            match = pattern.search(prompt)
            if not match:
                continue
            candidate = match.group(1)
            if len(candidate) > 2 and candidate.isidentifier():
                return candidate[0].upper() + candidate[1:]
        return None

    def template_source(self, category: ContractCategory, contract_name: str) -> Outcome[str]:
        """Fetch template text, converting provider errors into a failed outcome."""
        try:
            if self.template_provider is not None:
                code = self.template_provider(category)
            else:
                code = render_template(category, contract_name)
        except Exception as e:
            logger.warning(f"Fallback template provider failed for {category.value}: {e}")
            return Outcome.fail(
                QAError(
                    f"Fallback template provider failed: {e}",
                    category=ErrorCategory.FALLBACK,
                    recovery_hint="The emergency template is used instead.",
                    cause=e,
                )
            )
        if not code or not code.strip():
            return Outcome.fail(
                QAError("Fallback template provider returned no code", category=ErrorCategory.FALLBACK)
            )
        return Outcome.ok(code)

    def generate_fallback(
        self,
        prompt: str,
        category: Optional[ContractCategory] = None,
    ) -> FallbackGenerationResult:
        """Render the fallback contract for ``prompt``.

        ``category`` overrides detection when the caller already knows it.
        Never raises: provider failures yield the emergency template.
        """
        if not prompt or not prompt.strip():
            return self._emergency("Emergency fallback due to empty prompt")

        detection = self.detect_contract_type(prompt)
        contract_type = detection.contract_type
        if category is not None and category != contract_type.category:
            contract_type = ContractType(category, contract_type.complexity, contract_type.features)

        name = self.extract_contract_name(prompt) or DEFAULT_CONTRACT_NAME
        outcome = self.template_source(contract_type.category, name)
        if not outcome.success:
            return self._emergency(f"Emergency fallback due to error: {outcome.error}")

        template = template_for(contract_type.category)
        logger.info(f"Generated fallback contract from template {template.id}")
        return FallbackGenerationResult(
            code=outcome.unwrap(),
            template_used=template.id,
            confidence=detection.confidence,
            contract_type=contract_type,
            reasoning=f"Selected {template.name} based on detected type: {contract_type.category.value}",
            success=True,
        )

    @staticmethod
    def _emergency(reasoning: str) -> FallbackGenerationResult:
        return FallbackGenerationResult(
            code=emergency_template(),
            template_used="emergency-fallback",
            confidence=0.1,
            contract_type=ContractType(),
            reasoning=reasoning,
            success=False,
        )

    @staticmethod
    def validate_fallback_quality(code: str) -> FallbackQualityReport:
        """Minimal sanity checks applied to fallback output."""
        report = FallbackQualityReport(
            checks={
                "balanced-brackets": brackets_balanced(code),
                "contract-declaration": bool(re.search(r"access\(all\)\s+contract\s+\w+", code)),
                "init-function": bool(re.search(r"\binit\s*\([^)]*\)", code)),
                "no-undefined": not re.search(r"\bundefined\b", code),
                "access-modifiers": "access(" in code,
            }
        )
        if report.passed:
            logger.debug("Fallback contract passed quality checks")
        else:
            logger.warning(f"Fallback contract failed quality checks: {report.failed_checks}")
        return report
