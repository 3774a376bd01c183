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

"""Shared pytest fixtures and configuration."""

import os

# Must be set before cadenceqa.config.settings is imported
os.environ.setdefault("CADENCEQA_SKIP_ENV_FILE", "1")

import pytest  # noqa: E402

from cadenceqa.config.settings import QAConfig  # noqa: E402
from cadenceqa.core.models import ContractCategory  # noqa: E402
from cadenceqa.generation.templates import render_template  # noqa: E402
from cadenceqa.validation.validator import CompositeValidator  # noqa: E402


COUNTER_CONTRACT = """access(all) contract Counter {
    access(all) var count: Int

    access(all) fun increment() {
        self.count = self.count + 1
    }

    access(all) view fun current(): Int {
        return self.count
    }

    init() {
        self.count = 0
    }
}
"""


@pytest.fixture(autouse=True)
def isolate_environment_variables(monkeypatch):
    """Isolate tests from CADENCEQA_* environment variables and .env files."""
    monkeypatch.setenv("CADENCEQA_SKIP_ENV_FILE", "1")
    for var in list(os.environ):
        if var.startswith("CADENCEQA_") and var != "CADENCEQA_SKIP_ENV_FILE":
            monkeypatch.delenv(var, raising=False)


@pytest.fixture
def config():
    """Default pipeline configuration."""
    return QAConfig()


@pytest.fixture
def validator():
    """Lenient composite validator."""
    return CompositeValidator()


@pytest.fixture
def counter_contract():
    """Small generic contract with no defects."""
    return COUNTER_CONTRACT


@pytest.fixture
def nft_contract():
    """Rendered NFT fallback template."""
    return render_template(ContractCategory.NFT, "MyArt")
