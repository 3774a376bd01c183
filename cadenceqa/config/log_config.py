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

"""Logging setup for applications embedding the pipeline.

The library itself only creates module loggers; handlers are the caller's
business. ``configure_logging`` is a convenience for scripts and services.
"""

from __future__ import annotations

import logging
from typing import Optional

PACKAGE_LOGGER = "cadenceqa"

# Third-party loggers that are noisy at DEBUG level
NOISY_LOGGERS = [
    "asyncio",
    "urllib3",
    "httpx",
]

DEFAULT_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"


def configure_logging(
    log_level: str = "INFO",
    handler: Optional[logging.Handler] = None,
    fmt: str = DEFAULT_FORMAT,
) -> logging.Logger:
    """Configure the package logger level and silence noisy third-party loggers.

    Args:
        log_level: Level name for cadenceqa loggers
        handler: Optional handler to attach; a stderr StreamHandler is added
            if the package logger has none
        fmt: Format string for the attached handler

    Returns:
        The package logger
    """
    level = getattr(logging, log_level.upper(), logging.INFO)
    package_logger = logging.getLogger(PACKAGE_LOGGER)
    package_logger.setLevel(level)

    if handler is not None or not package_logger.handlers:
        handler = handler or logging.StreamHandler()
        handler.setFormatter(logging.Formatter(fmt))
        package_logger.addHandler(handler)

    for logger_name in NOISY_LOGGERS:
        logging.getLogger(logger_name).setLevel(logging.WARNING)

    return package_logger
