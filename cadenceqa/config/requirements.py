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

"""Quality requirements derived from the user's experience level."""

from __future__ import annotations

import re
from typing import Dict, Pattern, Tuple

from cadenceqa.config.settings import QAConfig
from cadenceqa.core.models import (
    BASE_PROHIBITED_PATTERNS,
    PerformanceRequirements,
    QualityRequirements,
    UserExperience,
)

# (score floor, required features) per experience level
_EXPERIENCE_PROFILES: Dict[UserExperience, Tuple[int, Tuple[str, ...]]] = {
    UserExperience.BEGINNER: (
        90,
        ("complete-documentation", "error-handling", "input-validation"),
    ),
    UserExperience.INTERMEDIATE: (85, ("error-handling", "input-validation")),
    UserExperience.EXPERT: (75, ("performance-optimized",)),
}

# How each named feature shows up in Cadence source
FEATURE_PATTERNS: Dict[str, Pattern[str]] = {
    "complete-documentation": re.compile(r"^\s*(///|/\*\*)", re.MULTILINE),
    "error-handling": re.compile(r"\bpre\s*\{|\bpost\s*\{|\bpanic\s*\("),
    "input-validation": re.compile(r"\bpre\s*\{"),
    "performance-optimized": re.compile(r"\bview\s+fun\b"),
}


def requirements_for_experience(
    experience: UserExperience,
    config: QAConfig,
) -> QualityRequirements:
    """Build the quality requirements for one generation run."""
    floor, features = _EXPERIENCE_PROFILES[experience]
    return QualityRequirements(
        minimum_quality_score=max(floor, config.quality_threshold),
        required_features=features,
        prohibited_patterns=BASE_PROHIBITED_PATTERNS,
        performance=PerformanceRequirements(
            max_generation_time=config.max_generation_time,
            max_validation_time=config.max_validation_time,
            max_retry_attempts=config.max_retries,
        ),
    )


def feature_present(feature: str, text: str) -> bool:
    """Check whether a named feature appears in the text.

    Unknown feature names are matched as plain substrings.
    """
    pattern = FEATURE_PATTERNS.get(feature)
    if pattern is None:
        return feature in text
    return pattern.search(text) is not None
