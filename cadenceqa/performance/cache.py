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

"""Content-addressed validation cache.

A bounded ``cachetools.TTLCache`` guarded by a ``threading.RLock``:
- LRU eviction once ``max_size`` entries are stored
- entries expire ``ttl`` seconds after insertion and are purged lazily
- concurrent async callers of the same key share one in-flight future, so
  the compute function runs at most once per key and nobody sees a
  partially written entry
- a failing compute is never cached; its exception reaches every waiter
"""

from __future__ import annotations

import asyncio
import hashlib
import inspect
import json
import logging
import threading
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Optional, Union

from cachetools import TTLCache  # type: ignore[import-untyped]

from cadenceqa.core.models import GenerationContext, ValidationPolicy

logger = logging.getLogger(__name__)

ComputeFn = Callable[[], Union[Any, Awaitable[Any]]]

_MISSING = object()


def _digest(data: str) -> str:
    return hashlib.sha256(data.encode("utf-8")).hexdigest()


def make_cache_key(
    text: str,
    context: Optional[GenerationContext] = None,
    policy: ValidationPolicy = ValidationPolicy.LENIENT,
) -> str:
    """Hash of the text plus a hash of the context fields that affect validation."""
    relevant: Dict[str, Any] = {"policy": policy.value}
    if context is not None:
        requirements = context.quality_requirements
        relevant.update(
            category=context.contract_type.category.value,
            complexity=context.contract_type.complexity.value,
            minimum_quality_score=requirements.minimum_quality_score,
            required_features=list(requirements.required_features),
            prohibited_patterns=list(requirements.prohibited_patterns),
        )
    return f"{_digest(text)[:32]}:{_digest(json.dumps(relevant, sort_keys=True))[:16]}"


@dataclass(frozen=True)
class CacheStats:
    hits: int
    misses: int
    coalesced: int
    size: int
    max_size: int

    @property
    def hit_rate(self) -> float:
        total = self.hits + self.misses
        return self.hits / total if total else 0.0

    @property
    def is_full(self) -> bool:
        return self.size >= self.max_size

    def to_dict(self) -> Dict[str, Any]:
        return {
            "hits": self.hits,
            "misses": self.misses,
            "coalesced": self.coalesced,
            "size": self.size,
            "max_size": self.max_size,
            "hit_rate": self.hit_rate,
        }


class ValidationCache:
    """Thread-safe TTL/LRU cache with single-flight async computation.

    Args:
        max_size: Maximum number of entries before LRU eviction
        ttl: Entry lifetime in seconds
        timer: Clock used for expiry (``time.monotonic`` by default)
    """

    def __init__(
        self,
        max_size: int = 1000,
        ttl: float = 300.0,
        timer: Callable[[], float] = time.monotonic,
    ):
        self.ttl = ttl
        self._timer = timer
        self._lock = threading.RLock()
        self._cache: TTLCache = TTLCache(maxsize=max_size, ttl=ttl, timer=timer)
        self._inflight: Dict[str, asyncio.Future] = {}
        self._hits = 0
        self._misses = 0
        self._coalesced = 0

    @property
    def max_size(self) -> int:
        return int(self._cache.maxsize)

    def __len__(self) -> int:
        with self._lock:
            self._cache.expire()
            return len(self._cache)

    def get(self, key: str) -> Optional[Any]:
        """Cached value or None. Counts as a hit or miss."""
        with self._lock:
            value = self._cache.get(key, _MISSING)
            if value is _MISSING:
                self._misses += 1
                return None
            self._hits += 1
            return value

    def put(self, key: str, value: Any) -> None:
        with self._lock:
            self._cache[key] = value

    def invalidate(self, key: str) -> bool:
        with self._lock:
            return self._cache.pop(key, _MISSING) is not _MISSING

    def clear(self) -> int:
        with self._lock:
            count = len(self._cache)
            self._cache.clear()
        logger.info("Cleared %d validation cache entries", count)
        return count

    def resize(self, max_size: int) -> None:
        """Rebuild the cache with a new capacity, keeping the most recent entries."""
        with self._lock:
            if max_size == self._cache.maxsize:
                return
            old = self._cache
            old.expire()
            # TTLCache iterates oldest first
            items = list(old.items())[-max_size:]
            self._cache = TTLCache(maxsize=max_size, ttl=self.ttl, timer=self._timer)
            for key, value in items:
                self._cache[key] = value
        logger.debug("Resized validation cache to %d entries", max_size)

    def stats(self) -> CacheStats:
        with self._lock:
            self._cache.expire()
            return CacheStats(
                hits=self._hits,
                misses=self._misses,
                coalesced=self._coalesced,
                size=len(self._cache),
                max_size=self.max_size,
            )

    async def optimized_validation(self, key: str, compute_fn: ComputeFn) -> Any:
        """Return the cached value for ``key``, computing it at most once.

        A hit returns immediately. On a miss the first caller runs
        ``compute_fn`` (sync or async) while later callers for the same key
        await the same future.

        Raises:
            Exception: Whatever ``compute_fn`` raised; nothing is cached then.
        """
        with self._lock:
            value = self._cache.get(key, _MISSING)
            if value is not _MISSING:
                self._hits += 1
                return value
            future = self._inflight.get(key)
            owner = future is None
            if owner:
                self._misses += 1
                future = asyncio.get_running_loop().create_future()
                self._inflight[key] = future
            else:
                self._coalesced += 1

        if not owner:
            return await asyncio.shield(future)

        try:
            value = compute_fn()
            if inspect.isawaitable(value):
                value = await value
        except asyncio.CancelledError:
            with self._lock:
                self._inflight.pop(key, None)
            future.cancel()
            raise
        except Exception as e:
            with self._lock:
                self._inflight.pop(key, None)
            future.set_exception(e)
            # Mark retrieved so an unshared failure does not warn at GC
            future.exception()
            logger.debug("Cache compute for %s failed: %s", key, e)
            raise

        with self._lock:
            self._cache[key] = value
            self._inflight.pop(key, None)
        future.set_result(value)
        return value
