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

"""Lexical defect detectors for Cadence source text.

Each detector exposes ``detect(text) -> List[ValidationIssue]`` and keeps no
state between calls.
"""

from cadenceqa.detection.brackets import BracketMatcher
from cadenceqa.detection.statements import IncompleteStatementDetector
from cadenceqa.detection.structure import (
    StructuralDetector,
    StructureReport,
    infer_contract_category,
)
from cadenceqa.detection.undefined import UndefinedValueDetector

__all__ = [
    "BracketMatcher",
    "IncompleteStatementDetector",
    "StructuralDetector",
    "StructureReport",
    "UndefinedValueDetector",
    "infer_contract_category",
]
