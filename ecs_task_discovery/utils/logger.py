# Copyright 2026 Firefly Software Solutions Inc
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

"""Logging configuration for ECS task discovery."""

import logging
import sys
from typing import Optional, Union

LOGGER_NAME = "ecs_task_discovery"


def setup_logger(
    name: str = LOGGER_NAME,
    level: Union[int, str] = logging.INFO,
    format_string: Optional[str] = None,
) -> logging.Logger:
    """
    Setup and configure a logger for ECS task discovery.

    Args:
        name: Logger name
        level: Logging level, either a number or a name such as "debug"
        format_string: Custom format string for log messages

    Returns:
        Configured logger instance
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())

    logger = logging.getLogger(name)
    logger.setLevel(level)

    # Remove existing handlers
    logger.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)

    if format_string is None:
        format_string = (
            "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
        )
    handler.setFormatter(logging.Formatter(format_string))

    logger.addHandler(handler)

    return logger


def get_logger(injected: Optional[logging.Logger] = None) -> logging.Logger:
    """Return the injected logger, or the package logger when none is given."""
    return injected if injected is not None else logger


# Default logger instance
logger = setup_logger()
