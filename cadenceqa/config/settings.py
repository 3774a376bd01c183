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

"""Pipeline configuration.

Two layers:

- ``QAConfig``: plain dataclass consumed by the core. Never reads the
  environment; callers construct it and pass it in.
- ``QASettings``: pydantic-settings model for the edge. Reads ``CADENCEQA_*``
  environment variables, an optional ``.env`` file and an optional YAML file,
  then converts to ``QAConfig`` with ``to_config()``.

Usage:
    from cadenceqa.config.settings import load_settings

    config = load_settings("cadenceqa.yaml").to_config()
    pipeline = QualityPipeline(config)
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Dict, Optional, Set, Union

import yaml
from dotenv import dotenv_values
from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from cadenceqa.core.errors import ConfigurationError

logger = logging.getLogger(__name__)

ENV_PREFIX = "CADENCEQA_"

MAX_RETRY_LIMIT = 10


@dataclass
class QAConfig:
    """Configuration for the quality pipeline. All times are in seconds."""

    # Orchestration
    max_retries: int = 3
    quality_threshold: int = 80
    enable_auto_correction: bool = True
    enable_fallback_generation: bool = True
    strict_mode: bool = False

    # Generation temperature schedule
    base_temperature: float = 0.7
    temperature_step: float = 0.1
    min_temperature: float = 0.1

    # Budgets
    max_generation_time: float = 30.0
    max_validation_time: float = 5.0
    total_time_budget: float = 60.0

    # Correction
    max_correction_rounds: int = 3
    regeneration_confidence_threshold: int = 70

    # Performance layer
    cache_max_size: int = 1000
    cache_ttl: float = 300.0
    max_concurrency: int = 4
    target_response_time: float = 0.1
    max_concurrency_ceiling: int = 16
    min_cache_size: int = 50

    def validate(self) -> "QAConfig":
        """Check ranges, raising ConfigurationError on the first bad value."""
        if not 0 <= self.max_retries <= MAX_RETRY_LIMIT:
            raise ConfigurationError(
                f"max_retries must be between 0 and {MAX_RETRY_LIMIT}, got {self.max_retries}",
                field_name="max_retries",
            )
        if not 0 <= self.quality_threshold <= 100:
            raise ConfigurationError(
                f"quality_threshold must be between 0 and 100, got {self.quality_threshold}",
                field_name="quality_threshold",
            )
        if self.cache_max_size < 1:
            raise ConfigurationError("cache_max_size must be at least 1", field_name="cache_max_size")
        if self.cache_ttl <= 0:
            raise ConfigurationError("cache_ttl must be positive", field_name="cache_ttl")
        if self.max_concurrency < 1:
            raise ConfigurationError("max_concurrency must be at least 1", field_name="max_concurrency")
        if self.max_correction_rounds < 1:
            raise ConfigurationError(
                "max_correction_rounds must be at least 1", field_name="max_correction_rounds"
            )
        if not 0 < self.min_temperature <= self.base_temperature:
            raise ConfigurationError(
                "min_temperature must be positive and not above base_temperature",
                field_name="min_temperature",
            )
        return self


class QASettings(BaseSettings):
    """Environment-facing settings, converted to ``QAConfig`` at the edge."""

    model_config = SettingsConfigDict(
        env_prefix=ENV_PREFIX,
        env_file=".env" if not os.getenv("CADENCEQA_SKIP_ENV_FILE") else None,
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    max_retries: int = Field(default=3, ge=0, le=MAX_RETRY_LIMIT)
    quality_threshold: int = Field(default=80, ge=0, le=100)
    enable_auto_correction: bool = True
    enable_fallback_generation: bool = True
    strict_mode: bool = False

    base_temperature: float = Field(default=0.7, gt=0.0, le=2.0)
    temperature_step: float = Field(default=0.1, ge=0.0)
    min_temperature: float = Field(default=0.1, gt=0.0)

    max_generation_time: float = Field(default=30.0, gt=0.0)
    max_validation_time: float = Field(default=5.0, gt=0.0)
    total_time_budget: float = Field(default=60.0, gt=0.0)

    max_correction_rounds: int = Field(default=3, ge=1)
    regeneration_confidence_threshold: int = Field(default=70, ge=0, le=100)

    cache_max_size: int = Field(default=1000, ge=1)
    cache_ttl: float = Field(default=300.0, gt=0.0)
    max_concurrency: int = Field(default=4, ge=1)
    target_response_time: float = Field(default=0.1, gt=0.0)
    max_concurrency_ceiling: int = Field(default=16, ge=1)
    min_cache_size: int = Field(default=50, ge=1)

    # Logging
    log_level: str = "INFO"

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Normalize the log level name.

        Raises:
            ValueError: If the level is not a standard logging level
        """
        level = v.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level: {v}")
        return level

    def to_config(self) -> QAConfig:
        """Build the core configuration from these settings."""
        values = {f.name: getattr(self, f.name) for f in fields(QAConfig)}
        return QAConfig(**values).validate()


def _read_yaml(path: Path) -> Dict[str, Any]:
    if not path.exists():
        raise ConfigurationError(f"Config file not found: {path}", field_name="config_path")
    with open(path, encoding="utf-8") as fh:
        data = yaml.safe_load(fh) or {}
    if not isinstance(data, dict):
        raise ConfigurationError(f"Config file must contain a mapping: {path}", field_name="config_path")
    # Allow either a bare mapping or one nested under a top-level "cadenceqa" key
    nested = data.get("cadenceqa")
    return nested if isinstance(nested, dict) else data


def _environment_keys() -> Set[str]:
    """Setting names given by the environment or the ``.env`` file."""
    names = set(os.environ)
    env_file = QASettings.model_config.get("env_file")
    if env_file and Path(env_file).is_file():
        names.update(dotenv_values(env_file, encoding="utf-8"))
    return {name[len(ENV_PREFIX) :].lower() for name in names if name.upper().startswith(ENV_PREFIX)}


def load_settings(config_path: Optional[Union[str, Path]] = None) -> QASettings:
    """Load settings from environment, ``.env`` and an optional YAML file.

    Environment variables and ``.env`` entries win over the YAML file, which
    wins over defaults.

    Raises:
        ConfigurationError: If the file is missing or a value is out of range
    """
    overrides: Dict[str, Any] = {}
    if config_path is not None:
        overrides = _read_yaml(Path(config_path))
        env_keys = _environment_keys()
        overrides = {k: v for k, v in overrides.items() if k.lower() not in env_keys}
        logger.debug("Loaded %d setting(s) from %s", len(overrides), config_path)

    try:
        return QASettings(**overrides)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid settings: {e}", cause=e) from e
