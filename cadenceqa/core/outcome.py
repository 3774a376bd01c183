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

"""Explicit success/failure result used at stage boundaries."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, Optional, TypeVar

from cadenceqa.core.errors import QAError

T = TypeVar("T")


@dataclass(frozen=True)
class Outcome(Generic[T]):
    """Result of a step that may fail without raising.

    Exactly one of ``value`` or ``error`` is meaningful, selected by
    ``success``.
    """

    success: bool
    value: Optional[T] = None
    error: Optional[QAError] = None
    elapsed: float = 0.0

    @classmethod
    def ok(cls, value: T, elapsed: float = 0.0) -> "Outcome[T]":
        return cls(success=True, value=value, elapsed=elapsed)

    @classmethod
    def fail(cls, error: QAError, elapsed: float = 0.0) -> "Outcome[T]":
        return cls(success=False, error=error, elapsed=elapsed)

    def unwrap(self) -> T:
        """Return the value, raising the carried error on failure."""
        if not self.success:
            assert self.error is not None
            raise self.error
        return self.value  # type: ignore[return-value]
