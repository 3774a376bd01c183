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

"""Performance optimizer.

Combines the validation cache with the parallel runner and tracks response
times. Between requests it tunes itself:

- average response time above target, or a generation run over its time
  budget since the last tuning: raise concurrency by one, up to
  ``max_concurrency_ceiling``
- cache full while the hit rate is below 10%: halve the cache, down to
  ``min_cache_size``

Budget overruns are recorded, never enforced in place.
"""

from __future__ import annotations

import logging
import threading
import time
from collections import deque
from dataclasses import dataclass
from typing import Any, Deque, Dict, List, Optional, Sequence

from cadenceqa.config.settings import QAConfig
from cadenceqa.performance.cache import ComputeFn, ValidationCache
from cadenceqa.performance.parallel import ParallelValidationRunner, TaskOutcome, ValidationTask

logger = logging.getLogger(__name__)

LOW_HIT_RATE = 0.10
RESPONSE_WINDOW = 100


@dataclass(frozen=True)
class PerformanceStats:
    cache_hits: int
    cache_misses: int
    cache_hit_rate: float
    cache_size: int
    cache_max_size: int
    average_response_time: float
    requests: int
    budget_overruns: int
    max_concurrency: int
    generations: int = 0
    generation_overruns: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "cache_hits": self.cache_hits,
            "cache_misses": self.cache_misses,
            "cache_hit_rate": self.cache_hit_rate,
            "cache_size": self.cache_size,
            "cache_max_size": self.cache_max_size,
            "average_response_time": self.average_response_time,
            "requests": self.requests,
            "budget_overruns": self.budget_overruns,
            "max_concurrency": self.max_concurrency,
            "generations": self.generations,
            "generation_overruns": self.generation_overruns,
        }


class PerformanceOptimizer:
    """Cache plus parallel runner with response-time tracking and self-tuning."""

    def __init__(
        self,
        config: Optional[QAConfig] = None,
        cache: Optional[ValidationCache] = None,
        runner: Optional[ParallelValidationRunner] = None,
    ):
        self.config = config or QAConfig()
        self.cache = cache or ValidationCache(max_size=self.config.cache_max_size, ttl=self.config.cache_ttl)
        self.runner = runner or ParallelValidationRunner(
            max_concurrency=self.config.max_concurrency,
            task_timeout=self.config.max_validation_time,
        )
        self._lock = threading.Lock()
        self._response_times: Deque[float] = deque(maxlen=RESPONSE_WINDOW)
        self._requests = 0
        self._budget_overruns = 0
        self._generations = 0
        self._generation_overruns = 0
        self._pending_overruns = 0

    async def optimized_validation(self, key: str, compute_fn: ComputeFn) -> Any:
        start = time.monotonic()
        try:
            return await self.cache.optimized_validation(key, compute_fn)
        finally:
            self.record_response(time.monotonic() - start)

    async def execute_parallel_validations(self, tasks: Sequence[ValidationTask]) -> List[TaskOutcome]:
        start = time.monotonic()
        try:
            return await self.runner.execute_parallel_validations(tasks)
        finally:
            self.record_response(time.monotonic() - start)

    def record_response(self, elapsed: float) -> None:
        with self._lock:
            self._requests += 1
            self._response_times.append(elapsed)
            if elapsed > self.config.max_validation_time:
                self._budget_overruns += 1
                logger.warning(
                    f"Validation took {elapsed:.3f}s, over the {self.config.max_validation_time}s budget"
                )

    def record_generation(self, elapsed: float, budget_exceeded: bool) -> None:
        """Record one finished generation run; overruns feed the next ``tune``."""
        with self._lock:
            self._generations += 1
            if budget_exceeded:
                self._generation_overruns += 1
                self._pending_overruns += 1
        logger.debug("Generation run finished in %.3fs (over budget: %s)", elapsed, budget_exceeded)

    @property
    def average_response_time(self) -> float:
        with self._lock:
            if not self._response_times:
                return 0.0
            return sum(self._response_times) / len(self._response_times)

    def stats(self) -> PerformanceStats:
        cache_stats = self.cache.stats()
        with self._lock:
            requests, overruns = self._requests, self._budget_overruns
            generations, generation_overruns = self._generations, self._generation_overruns
        return PerformanceStats(
            cache_hits=cache_stats.hits,
            cache_misses=cache_stats.misses,
            cache_hit_rate=cache_stats.hit_rate,
            cache_size=cache_stats.size,
            cache_max_size=cache_stats.max_size,
            average_response_time=self.average_response_time,
            requests=requests,
            budget_overruns=overruns,
            max_concurrency=self.runner.max_concurrency,
            generations=generations,
            generation_overruns=generation_overruns,
        )

    def tune(self) -> List[str]:
        """Apply the self-tuning rules once. Call between requests.

        Returns:
            Human-readable descriptions of the adjustments made
        """
        adjustments: List[str] = []
        ceiling = self.config.max_concurrency_ceiling
        with self._lock:
            overran, self._pending_overruns = self._pending_overruns > 0, 0
        slow = self.average_response_time > self.config.target_response_time
        if (slow or overran) and self.runner.max_concurrency < ceiling:
            self.runner.max_concurrency += 1
            adjustments.append(f"max_concurrency raised to {self.runner.max_concurrency}")

        cache_stats = self.cache.stats()
        if cache_stats.is_full and cache_stats.hit_rate < LOW_HIT_RATE:
            new_size = max(self.config.min_cache_size, cache_stats.max_size // 2)
            if new_size < cache_stats.max_size:
                self.cache.resize(new_size)
                adjustments.append(f"cache size reduced to {new_size}")

        for adjustment in adjustments:
            logger.info(f"Performance tuning: {adjustment}")
        return adjustments

    def clear(self) -> None:
        self.cache.clear()
        with self._lock:
            self._response_times.clear()
            self._requests = 0
            self._budget_overruns = 0
            self._generations = 0
            self._generation_overruns = 0
            self._pending_overruns = 0
