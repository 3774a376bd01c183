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

"""Bounded-concurrency execution of independent validation passes."""

from __future__ import annotations

import asyncio
import inspect
import logging
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, List, Optional, Sequence, Union

from cadenceqa.core.errors import ValidationSystemFailure
from cadenceqa.core.outcome import Outcome

logger = logging.getLogger(__name__)

ValidationTask = Union[Callable[[], Any], Awaitable[Any]]


@dataclass(frozen=True)
class TaskOutcome(Outcome[Any]):
    """Outcome of one submitted task, tagged with its submission index."""

    index: int = 0


class ParallelValidationRunner:
    """Runs tasks concurrently and returns their outcomes in submission order.

    Sync callables run in worker threads via ``asyncio.to_thread``; coroutine
    functions and awaitables run on the event loop. A failing or timed-out
    task yields a failed ``TaskOutcome`` instead of aborting the batch.
    """

    def __init__(self, max_concurrency: int = 4, task_timeout: Optional[float] = 5.0):
        self.max_concurrency = max_concurrency
        self.task_timeout = task_timeout

    async def execute_parallel_validations(self, tasks: Sequence[ValidationTask]) -> List[TaskOutcome]:
        if not tasks:
            return []
        semaphore = asyncio.Semaphore(max(1, self.max_concurrency))

        async def run_with_limit(index: int, task: ValidationTask) -> TaskOutcome:
            async with semaphore:
                return await self._run_one(index, task)

        # gather keeps submission order regardless of completion order
        outcomes = await asyncio.gather(*(run_with_limit(i, task) for i, task in enumerate(tasks)))
        failed = sum(1 for outcome in outcomes if not outcome.success)
        if failed:
            logger.warning(f"{failed} of {len(tasks)} parallel validation tasks failed")
        return list(outcomes)

    async def _run_one(self, index: int, task: ValidationTask) -> TaskOutcome:
        start = time.monotonic()
        try:
            value = await asyncio.wait_for(_as_awaitable(task), timeout=self.task_timeout)
        except asyncio.TimeoutError:
            error = ValidationSystemFailure(
                f"Validation task {index} timed out after {self.task_timeout}s", stage="parallel"
            )
        except Exception as e:
            error = ValidationSystemFailure(f"Validation task {index} failed: {e}", stage="parallel", cause=e)
        else:
            return TaskOutcome(success=True, value=value, elapsed=time.monotonic() - start, index=index)

        logger.debug("Task %d failed: %s", index, error.message)
        return TaskOutcome(success=False, error=error, elapsed=time.monotonic() - start, index=index)


async def _as_awaitable(task: ValidationTask) -> Any:
    if inspect.isawaitable(task):
        return await task
    if inspect.iscoroutinefunction(task):
        return await task()
    result = await asyncio.to_thread(task)
    if inspect.isawaitable(result):
        result = await result
    return result
