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

"""Caching and bounded-concurrency execution for validation."""

from cadenceqa.performance.cache import CacheStats, ValidationCache, make_cache_key
from cadenceqa.performance.optimizer import PerformanceOptimizer, PerformanceStats
from cadenceqa.performance.parallel import ParallelValidationRunner, TaskOutcome

__all__ = [
    "CacheStats",
    "ParallelValidationRunner",
    "PerformanceOptimizer",
    "PerformanceStats",
    "TaskOutcome",
    "ValidationCache",
    "make_cache_key",
]
