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

"""
cadenceqa - Quality assurance for machine-generated Cadence smart contracts.

Detects defects in generated Cadence 1.0 source, scores it, repairs what can
be repaired deterministically, and wraps an unreliable generation function
in a retry/fallback loop that always returns a usable contract.

Simple API:
    from cadenceqa import QualityPipeline

    pipeline = QualityPipeline()
    verdict = pipeline.validate(code)
    print(verdict.score, verdict.recommendations)

Generation:
    from cadenceqa import GenerationRequest, QualityPipeline

    result = await QualityPipeline().generate_with_quality_assurance(
        GenerationRequest(prompt="Create a basic NFT collection"),
        model_call,
    )
"""

__version__ = "0.1.0"
__author__ = "Vijaykumar Singh"
__email__ = "singhvjd@gmail.com"
__license__ = "Apache-2.0"

from cadenceqa.config.settings import QAConfig, QASettings, load_settings
from cadenceqa.core.errors import ConfigurationError, QAError
from cadenceqa.core.models import (
    ComprehensiveValidationResult,
    ContractCategory,
    GenerationContext,
    GenerationRequest,
    QualityAssuredResult,
    ValidationPolicy,
)
from cadenceqa.correction.engine import CorrectionResult
from cadenceqa.generation.orchestrator import GenerationOptions
from cadenceqa.pipeline import QualityPipeline

__all__ = [
    "ComprehensiveValidationResult",
    "ConfigurationError",
    "ContractCategory",
    "CorrectionResult",
    "GenerationContext",
    "GenerationOptions",
    "GenerationRequest",
    "QAConfig",
    "QAError",
    "QASettings",
    "QualityAssuredResult",
    "QualityPipeline",
    "ValidationPolicy",
    "load_settings",
]
