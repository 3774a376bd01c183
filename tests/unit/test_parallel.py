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

"""Tests for the parallel validation runner."""

import asyncio

import pytest

from cadenceqa.core.errors import ErrorCategory, ValidationSystemFailure
from cadenceqa.performance.parallel import ParallelValidationRunner


class TestParallelValidationRunner:
    """Tests for ParallelValidationRunner."""

    @pytest.mark.asyncio
    async def test_empty_batch(self):
        """No tasks gives no outcomes."""
        assert await ParallelValidationRunner().execute_parallel_validations([]) == []

    @pytest.mark.asyncio
    async def test_submission_order_preserved(self):
        """Outcomes follow submission order, not completion order."""

        async def delayed(value, delay):
            await asyncio.sleep(delay)
            return value

        runner = ParallelValidationRunner(max_concurrency=3)
        outcomes = await runner.execute_parallel_validations(
            [delayed("slow", 0.05), delayed("fast", 0), delayed("medium", 0.01)]
        )

        assert [outcome.value for outcome in outcomes] == ["slow", "fast", "medium"]
        assert [outcome.index for outcome in outcomes] == [0, 1, 2]

    @pytest.mark.asyncio
    async def test_mixed_task_kinds(self):
        """Sync callables, coroutine functions and awaitables all run."""

        async def coroutine_fn():
            return "async"

        async def awaitable():
            return "awaitable"

        outcomes = await ParallelValidationRunner().execute_parallel_validations(
            [lambda: "sync", coroutine_fn, awaitable()]
        )
        assert [outcome.unwrap() for outcome in outcomes] == ["sync", "async", "awaitable"]

    @pytest.mark.asyncio
    async def test_failure_isolated(self):
        """A failing task does not affect its siblings."""

        def broken():
            raise ValueError("pass crashed")

        outcomes = await ParallelValidationRunner().execute_parallel_validations(
            [lambda: 1, broken, lambda: 3]
        )

        assert [outcome.success for outcome in outcomes] == [True, False, True]
        error = outcomes[1].error
        assert isinstance(error, ValidationSystemFailure)
        assert error.category == ErrorCategory.VALIDATION_SYSTEM
        assert isinstance(error.cause, ValueError)

    @pytest.mark.asyncio
    async def test_timeout_isolated(self):
        """A task over the timeout fails on its own."""

        async def hang():
            await asyncio.sleep(1)

        runner = ParallelValidationRunner(task_timeout=0.01)
        outcomes = await runner.execute_parallel_validations([hang, lambda: "done"])

        assert not outcomes[0].success
        assert "timed out" in outcomes[0].error.message
        assert outcomes[1].value == "done"

    @pytest.mark.asyncio
    async def test_concurrency_bound(self):
        """No more than max_concurrency tasks run at once."""
        running = 0
        peak = 0

        async def task():
            nonlocal running, peak
            running += 1
            peak = max(peak, running)
            await asyncio.sleep(0.01)
            running -= 1

        runner = ParallelValidationRunner(max_concurrency=2)
        await runner.execute_parallel_validations([task for _ in range(6)])

        assert peak == 2
