# Copyright 2026 Firefly Software Solutions Inc
# SPDX-License-Identifier: Apache-2.0

"""Unit tests for logging helpers."""

import logging
from unittest.mock import MagicMock

from ecs_task_discovery.utils.logger import get_logger, logger, setup_logger


class TestLogger:
    """Tests for setup_logger and get_logger."""

    def test_string_level(self):
        """Test level names are accepted."""
        log = setup_logger("ecs_task_discovery.test", level="debug")

        assert log.level == logging.DEBUG
        assert len(log.handlers) == 1

    def test_setup_replaces_handlers(self):
        """Test repeated setup does not stack handlers."""
        setup_logger("ecs_task_discovery.test")
        log = setup_logger("ecs_task_discovery.test")

        assert len(log.handlers) == 1

    def test_get_logger(self):
        """Test an injected logger wins over the package logger."""
        injected = MagicMock()

        assert get_logger(injected) is injected
        assert get_logger() is logger
