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

"""Generation orchestration, fallback templates and prompt enhancement."""

from cadenceqa.generation.fallback import (
    ContractTypeDetection,
    FallbackGenerationResult,
    FallbackGenerator,
)
from cadenceqa.generation.orchestrator import (
    GenerationOptions,
    GenerationOrchestrator,
    GenerationState,
)
from cadenceqa.generation.prompts import EnhancedPrompt, EnhancementLevel, PromptEnhancer
from cadenceqa.generation.templates import TEMPLATES, emergency_template, render_template

__all__ = [
    "ContractTypeDetection",
    "EnhancedPrompt",
    "EnhancementLevel",
    "FallbackGenerationResult",
    "FallbackGenerator",
    "GenerationOptions",
    "GenerationOrchestrator",
    "GenerationState",
    "PromptEnhancer",
    "TEMPLATES",
    "emergency_template",
    "render_template",
]
