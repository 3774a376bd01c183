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

"""Composite validation, scoring and recommendations."""

from cadenceqa.validation.completeness import FunctionalCompletenessValidator, FunctionalReport
from cadenceqa.validation.contract_rules import ContractSpecificReport, ContractSpecificValidator
from cadenceqa.validation.optimized import OptimizedValidator
from cadenceqa.validation.recommendations import build_recommendations
from cadenceqa.validation.scoring import QualityScoreCalculator
from cadenceqa.validation.validator import (
    BLOCKING_ISSUE_TYPES,
    CompositeValidator,
    is_valid_under,
)

__all__ = [
    "BLOCKING_ISSUE_TYPES",
    "CompositeValidator",
    "ContractSpecificReport",
    "ContractSpecificValidator",
    "FunctionalCompletenessValidator",
    "FunctionalReport",
    "OptimizedValidator",
    "QualityScoreCalculator",
    "build_recommendations",
    "is_valid_under",
]
