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

"""Per-category contract rules.

Three kinds of rule live here:

1. Feature tables: named regexes a contract of the category is expected to
   match, either ``required`` (missing one is critical) or ``recommended``
   (missing one is a warning).
2. Advisory pattern checks: heuristics such as "a fungible token should
   validate balances", reported as warnings or info.
3. Logic checks: heuristics whose failure indicates broken business logic,
   such as minting without supply tracking. These are always critical and
   are reported in the logic result instead of the contract-specific one.

Feature tables see code with comments masked out so that string imports
such as ``import "FungibleToken"`` count. Every other check also masks
string contents.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Pattern, Tuple

from cadenceqa.core.models import (
    ContractCategory,
    ResultType,
    Severity,
    ValidationIssue,
    ValidationResult,
    count_by_severity,
)
from cadenceqa.detection.scanner import location_at, mask_non_code
from cadenceqa.detection.structure import DESTROY_PATTERN

logger = logging.getLogger(__name__)

REQUIRED = "required"
RECOMMENDED = "recommended"


@dataclass(frozen=True)
class FeatureRule:
    """A named feature detected by regex."""

    name: str
    pattern: Pattern[str]
    level: str = REQUIRED
    description: str = ""

    @property
    def issue_type(self) -> str:
        return "missing-" + re.sub(r"[^a-z0-9]+", "-", self.name.lower()).strip("-")


@dataclass(frozen=True)
class PatternCheck:
    """A heuristic that reports ``issue_type`` when ``violated(code)`` is true."""

    issue_type: str
    severity: Severity
    message: str
    suggested_fix: str
    violated: Callable[[str], bool]


def _feature(name: str, pattern: str, level: str = REQUIRED, description: str = "") -> FeatureRule:
    return FeatureRule(name=name, pattern=re.compile(pattern), level=level, description=description)


_GENERIC_FEATURES: Tuple[FeatureRule, ...] = (
    _feature("Contract Declaration", r"access\(all\)\s+contract\s+\w+"),
    _feature("Init Function", r"\binit\s*\(\s*\)\s*\{"),
)

FEATURE_TABLES: Dict[ContractCategory, Tuple[FeatureRule, ...]] = {
    ContractCategory.NFT: (
        _feature("NonFungibleToken Interface", r"import\s+\"?NonFungibleToken\b|NonFungibleToken\."),
        _feature("MetadataViews Support", r"import\s+\"?MetadataViews\b|MetadataViews\.", RECOMMENDED),
        _feature("Collection Resource", r"resource\s+Collection\s*[:{]"),
        _feature("NFT Resource", r"resource\s+NFT\s*[:{]"),
        _feature("Minting Function", r"fun\s+mint\w*\s*\("),
        _feature("Metadata Fields", r"metadata\s*:|name\s*:|description\s*:|image\s*:", RECOMMENDED),
        _feature("View Resolver", r"resolveView\s*\(|getViews\s*\(", RECOMMENDED),
        _feature("Collection Public Interface", r"CollectionPublic|deposit\s*\("),
    ),
    ContractCategory.FUNGIBLE_TOKEN: (
        _feature("FungibleToken Interface", r"import\s+\"?FungibleToken\b|FungibleToken\."),
        _feature("Vault Resource", r"resource\s+Vault\s*[:{]"),
        _feature("Minter Resource", r"resource\s+(?:Minter|Administrator)\s*[:{]"),
        _feature("Supply Management", r"totalSupply\s*:|supply\s*:"),
        _feature("Transfer Functions", r"fun\s+withdraw\s*\(|fun\s+deposit\s*\("),
        _feature("Balance Tracking", r"balance\s*:|getBalance\s*\("),
        _feature("Vault Public Interface", r"VaultPublic|Balance\s*\{"),
        _feature("Admin Resource", r"resource\s+(?:Administrator|Admin)\s*[:{]", RECOMMENDED),
    ),
    ContractCategory.DAO: (
        _feature("Proposal Resource", r"resource\s+Proposal\s*[:{]"),
        _feature("Voting Mechanism", r"fun\s+(?:vote|castVote)\s*\("),
        _feature("Governance Token", r"governanceToken|votingPower|tokenBalance", RECOMMENDED),
        _feature("Proposal Creation", r"fun\s+(?:createProposal|propose)\s*\("),
        _feature("Voting Period", r"votingPeriod|endTime|deadline|duration"),
        _feature("Execution Logic", r"fun\s+(?:execute|executeProposal)\s*\("),
        _feature("Quorum Requirement", r"quorum|minimumVotes|threshold", RECOMMENDED),
        _feature("Membership Management", r"member|Member|membership|isMember", RECOMMENDED),
    ),
    ContractCategory.MARKETPLACE: (
        _feature("Listing Resource", r"resource\s+(?:Listing|SaleListing)\s*[:{]"),
        _feature("Purchase Function", r"fun\s+(?:purchase|buy)\s*\("),
        _feature("Payment Handling", r"payment|Payment|price|cost|amount"),
        _feature("Commission Logic", r"commission|fee|royalty|cut", RECOMMENDED),
        _feature("Listing Management", r"fun\s+(?:createListing|removeListing)\s*\("),
        _feature("Escrow Mechanism", r"escrow|Escrow|custody|hold", RECOMMENDED),
        _feature("Event Emission", r"event\s+\w*(?:List|Purchase|Sale)", RECOMMENDED),
        _feature("Access Control", r"access\(contract\)|access\(account\)|onlyOwner|admin"),
    ),
}


def features_for(category: ContractCategory) -> Tuple[FeatureRule, ...]:
    return FEATURE_TABLES.get(category, _GENERIC_FEATURES)


ADVISORY_CHECKS: Dict[ContractCategory, Tuple[PatternCheck, ...]] = {
    ContractCategory.NFT: (
        PatternCheck(
            "missing-nft-id",
            Severity.WARNING,
            "NFT resource should have a unique identifier (id or uuid)",
            "Add an id: UInt64 field to the NFT resource",
            lambda code: "id:" not in code and "uuid" not in code,
        ),
        PatternCheck(
            "missing-destroy-function",
            Severity.WARNING,
            "NFT resources should declare destroy handling",
            "Declare a ResourceDestroyed event on the NFT resource",
            lambda code: not DESTROY_PATTERN.search(code),
        ),
        PatternCheck(
            "missing-collection-size",
            Severity.INFO,
            "Collection should track owned NFTs for size queries",
            "Add an ownedNFTs dictionary or length tracking",
            lambda code: "ownedNFTs" not in code and "length" not in code,
        ),
    ),
    ContractCategory.FUNGIBLE_TOKEN: (
        PatternCheck(
            "missing-balance-validation",
            Severity.WARNING,
            "Withdraw should validate sufficient balance",
            "Add balance validation: pre { self.balance >= amount }",
            lambda code: "balance >" not in code,
        ),
        PatternCheck(
            "missing-amount-validation",
            Severity.WARNING,
            "Functions should validate positive amounts",
            "Add amount validation: pre { amount > 0.0 }",
            lambda code: "amount > 0" not in code and "amount >= 0" not in code,
        ),
    ),
    ContractCategory.DAO: (
        PatternCheck(
            "missing-proposal-state",
            Severity.WARNING,
            "Proposals should track their state (pending, active, executed)",
            "Add a proposal state enum or status field",
            lambda code: "ProposalState" not in code and "status" not in code,
        ),
    ),
    ContractCategory.MARKETPLACE: (
        PatternCheck(
            "missing-price-validation",
            Severity.WARNING,
            "Listings should validate positive prices",
            "Add price validation: pre { price > 0.0 }",
            lambda code: "price" in code and "price >" not in code,
        ),
    ),
}

LOGIC_CHECKS: Dict[ContractCategory, Tuple[PatternCheck, ...]] = {
    ContractCategory.FUNGIBLE_TOKEN: (
        PatternCheck(
            "missing-supply-tracking",
            Severity.CRITICAL,
            "Minting should update the total supply",
            "Update totalSupply when minting tokens",
            lambda code: "mint" in code and "totalSupply" not in code,
        ),
    ),
    ContractCategory.DAO: (
        PatternCheck(
            "missing-vote-counting",
            Severity.CRITICAL,
            "Voting should count yes and no votes",
            "Add yesVotes and noVotes fields to the Proposal resource",
            lambda code: "vote" in code and "yesVotes" not in code and "noVotes" not in code,
        ),
        PatternCheck(
            "missing-double-vote-prevention",
            Severity.CRITICAL,
            "Voting should prevent the same address from voting twice",
            "Track voters and reject repeat votes",
            lambda code: "vote" in code and "hasVoted" not in code and "voters" not in code,
        ),
    ),
    ContractCategory.MARKETPLACE: (
        PatternCheck(
            "missing-ownership-verification",
            Severity.CRITICAL,
            "Listing creation should verify item ownership",
            "Check ownership before creating the listing",
            lambda code: "createListing" in code and "owner" not in code and "seller" not in code,
        ),
        PatternCheck(
            "missing-payment-distribution",
            Severity.CRITICAL,
            "Purchase should pay the seller",
            "Deposit the payment into the seller's receiver",
            lambda code: "purchase" in code and "seller" not in code and "recipient" not in code,
        ),
    ),
}

_RECOMMENDATION_RULES: Dict[ContractCategory, Tuple[Tuple[str, str], ...]] = {
    ContractCategory.NFT: (
        ("missing-nonfungibletoken-interface", "Import and implement NonFungibleToken interface for standard compliance"),
        ("missing-metadataviews-support", "Add MetadataViews support for better marketplace compatibility"),
        ("missing-collection-resource", "Implement Collection resource for NFT storage and management"),
        ("missing-nft-id", "Add unique identifier (id or uuid) to NFT resource"),
        ("missing-destroy-function", "Declare destroy handling for proper resource cleanup"),
    ),
    ContractCategory.FUNGIBLE_TOKEN: (
        ("missing-fungibletoken-interface", "Import and implement FungibleToken interface for standard compliance"),
        ("missing-supply-management", "Add total supply tracking for token economics"),
        ("missing-balance-validation", "Add balance validation to prevent overdrafts"),
        ("missing-amount-validation", "Validate positive amounts in transfer functions"),
    ),
    ContractCategory.DAO: (
        ("missing-voting-mechanism", "Implement voting functions for governance participation"),
        ("missing-quorum-requirement", "Add quorum requirements for proposal validity"),
    ),
    ContractCategory.MARKETPLACE: (
        ("missing-purchase-function", "Implement purchase/buy function for marketplace transactions"),
        ("missing-commission-logic", "Add commission/fee handling for marketplace sustainability"),
    ),
}

_GENERIC_RECOMMENDATIONS: Tuple[Tuple[str, str], ...] = (
    ("missing-contract-declaration", "Add proper contract declaration with access modifier"),
    ("missing-init-function", "Add init() function for contract initialization"),
)


@dataclass
class ContractSpecificReport:
    """Feature coverage and findings for one contract category."""

    category: ContractCategory
    result: ValidationResult
    compliance_score: int
    present_features: List[FeatureRule] = field(default_factory=list)
    missing_features: List[FeatureRule] = field(default_factory=list)
    recommendations: List[str] = field(default_factory=list)


def _run_checks(
    text: str, masked: str, checks: Tuple[PatternCheck, ...]
) -> List[ValidationIssue]:
    location = location_at(text, 0)
    return [
        ValidationIssue(
            severity=check.severity,
            type=check.issue_type,
            location=location,
            message=check.message,
            suggested_fix=check.suggested_fix,
            auto_fixable=False,
            category="contract-specific",
        )
        for check in checks
        if check.violated(masked)
    ]


def compliance_score(
    present: List[FeatureRule], missing: List[FeatureRule], issues: List[ValidationIssue]
) -> int:
    """70% required coverage, 20% recommended coverage, 10% minus an issue penalty."""

    def coverage(level: str) -> float:
        total = [f for f in present + missing if f.level == level]
        if not total:
            return 1.0
        return sum(1 for f in present if f.level == level) / len(total)

    counts = count_by_severity(issues)
    penalty = min(10, counts[Severity.CRITICAL] * 5 + counts[Severity.WARNING] * 2)
    return max(0, round(coverage(REQUIRED) * 70 + coverage(RECOMMENDED) * 20 + (10 - penalty)))


class ContractSpecificValidator:
    """Checks a contract against the conventions of its category."""

    def validate(self, text: str, category: ContractCategory) -> ContractSpecificReport:
        masked = mask_non_code(text)
        code = mask_non_code(text, mask_strings=False)
        present: List[FeatureRule] = []
        missing: List[FeatureRule] = []
        issues: List[ValidationIssue] = []
        location = location_at(text, 0)

        for feature in features_for(category):
            if feature.pattern.search(code):
                present.append(feature)
                continue
            missing.append(feature)
            required = feature.level == REQUIRED
            issues.append(
                ValidationIssue(
                    severity=Severity.CRITICAL if required else Severity.WARNING,
                    type=feature.issue_type,
                    location=location,
                    message=(
                        f"{category.value} contract is missing "
                        f"{'required' if required else 'recommended'} feature: {feature.name}"
                    ),
                    suggested_fix=f"Implement {feature.name}",
                    auto_fixable=False,
                    category="contract-specific",
                )
            )

        issues.extend(_run_checks(text, masked, ADVISORY_CHECKS.get(category, ())))

        counts = count_by_severity(issues)
        score = (
            100
            - counts[Severity.CRITICAL] * 25
            - counts[Severity.WARNING] * 10
            - counts[Severity.INFO] * 5
        )
        result = ValidationResult.from_issues(
            ResultType.CONTRACT_SPECIFIC,
            issues,
            score,
            message=f"{category.value} contract compliance validation",
        )
        report = ContractSpecificReport(
            category=category,
            result=result,
            compliance_score=compliance_score(present, missing, issues),
            present_features=present,
            missing_features=missing,
            recommendations=self._recommendations(category, issues),
        )
        logger.debug(
            "Contract rules (%s): %d/%d features present, compliance %d",
            category.value,
            len(present),
            len(present) + len(missing),
            report.compliance_score,
        )
        return report

    def check_logic(self, text: str, category: ContractCategory) -> ValidationResult:
        """Run the category's business-logic heuristics."""
        masked = mask_non_code(text)
        issues = _run_checks(text, masked, LOGIC_CHECKS.get(category, ()))
        counts = count_by_severity(issues)
        score = 100 - counts[Severity.CRITICAL] * 20 - counts[Severity.WARNING] * 8
        return ValidationResult.from_issues(
            ResultType.LOGIC,
            issues,
            score,
            message=f"{category.value} logic validation",
        )

    @staticmethod
    def _recommendations(category: ContractCategory, issues: List[ValidationIssue]) -> List[str]:
        found = {issue.type for issue in issues}
        rules = _RECOMMENDATION_RULES.get(category, _GENERIC_RECOMMENDATIONS)
        return [message for issue_type, message in rules if issue_type in found]
