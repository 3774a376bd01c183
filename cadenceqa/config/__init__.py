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

"""Configuration for the quality pipeline."""

from cadenceqa.config.log_config import configure_logging
from cadenceqa.config.requirements import feature_present, requirements_for_experience
from cadenceqa.config.settings import QAConfig, QASettings, load_settings

__all__ = [
    "QAConfig",
    "QASettings",
    "configure_logging",
    "feature_present",
    "load_settings",
    "requirements_for_experience",
]
