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

"""
Discovery agent configuration.

Every value comes from an environment variable with a default, and the
resolved value is logged next to its default at startup.
"""

from __future__ import annotations

import os
import re
from dataclasses import dataclass
from typing import List, Tuple

from ecs_task_discovery.exceptions import ConfigError
from ecs_task_discovery.utils.logger import logger

_DURATION_PART = re.compile(r"(\d+(?:\.\d+)?)(ms|s|m|h)")
_DURATION_UNITS = {"ms": 0.001, "s": 1.0, "m": 60.0, "h": 3600.0}

_TRUE = ("true", "1", "yes", "on")
_FALSE = ("false", "0", "no", "off")


def parse_duration(value: str) -> float:
    """Parse "20", "20s", "1m30s" or "500ms" into seconds."""
    text = value.strip()
    try:
        return float(text)
    except ValueError:
        pass

    pos = 0
    total = 0.0
    for match in _DURATION_PART.finditer(text):
        if match.start() != pos:
            break
        total += float(match.group(1)) * _DURATION_UNITS[match.group(2)]
        pos = match.end()

    if pos == 0 or pos != len(text):
        raise ConfigError(f"invalid duration: {value!r}")
    return total


def parse_bool(value: str) -> bool:
    text = value.strip().lower()
    if text in _TRUE:
        return True
    if text in _FALSE:
        return False
    raise ConfigError(f"invalid boolean: {value!r}")


def _log_env(name: str, raw: str, using: object, default: object) -> None:
    logger.info(f"{name}=[{raw}] using {name}={using} default={default}")


def env_string(name: str, default: str) -> str:
    raw = os.environ.get(name, "")
    value = raw or default
    _log_env(name, raw, value, default)
    return value


def env_bool(name: str, default: bool) -> bool:
    raw = os.environ.get(name, "")
    value = parse_bool(raw) if raw else default
    _log_env(name, raw, value, default)
    return value


def env_int(name: str, default: int) -> int:
    raw = os.environ.get(name, "")
    try:
        value = int(raw) if raw else default
    except ValueError as e:
        raise ConfigError(f"{name}: invalid integer: {raw!r}") from e
    _log_env(name, raw, value, default)
    return value


def env_duration(name: str, default: float) -> float:
    raw = os.environ.get(name, "")
    value = parse_duration(raw) if raw else default
    _log_env(name, raw, value, default)
    return value


def split_listen_addr(addr: str) -> Tuple[str, int]:
    """Split ":8080" or "127.0.0.1:8080" into host and port."""
    host, sep, port = addr.rpartition(":")
    if not sep:
        raise ConfigError(f"invalid listen address: {addr!r}")
    try:
        return host or "0.0.0.0", int(port)
    except ValueError as e:
        raise ConfigError(f"invalid listen address: {addr!r}") from e


@dataclass
class AgentConfig:
    """Configuration for the task discovery agent.

    Attributes:
        cluster_name: ECS cluster short name; resolved from task metadata when empty
        listen_addr: HTTP listen address, e.g. ":8080"
        cache_enable: Serve task lists from the TTL cache
        cache_ttl: Seconds a cached task list stays valid
        cache_max_size: Maximum number of cached services
        metrics_path: Route for Prometheus metrics
        health_path: Route for the health check
        region_name: AWS region for the ECS client; boto3 default when empty
    """

    cluster_name: str = ""
    listen_addr: str = ":8080"
    cache_enable: bool = True
    cache_ttl: float = 20.0
    cache_max_size: int = 1000
    metrics_path: str = "/metrics"
    health_path: str = "/health"
    region_name: str = ""

    @property
    def host(self) -> str:
        return split_listen_addr(self.listen_addr)[0]

    @property
    def port(self) -> int:
        return split_listen_addr(self.listen_addr)[1]

    @classmethod
    def from_env(cls) -> "AgentConfig":
        """Create AgentConfig from environment variables.

        Environment variables:
            CLUSTER: ECS cluster short name (optional)
            LISTEN_ADDR: HTTP listen address
            CACHE_ENABLE: Enable the task list cache
            CACHE_TTL: Cache TTL, seconds or a duration such as "20s"
            CACHE_MAX_SIZE: Maximum cached services
            METRICS_PATH: Metrics route
            HEALTH_PATH: Health route
            AWS_REGION: AWS region

        Raises:
            ConfigError: If a value cannot be parsed
        """
        config = cls(
            cluster_name=env_string("CLUSTER", ""),
            listen_addr=env_string("LISTEN_ADDR", ":8080"),
            cache_enable=env_bool("CACHE_ENABLE", True),
            cache_ttl=env_duration("CACHE_TTL", 20.0),
            cache_max_size=env_int("CACHE_MAX_SIZE", 1000),
            metrics_path=env_string("METRICS_PATH", "/metrics"),
            health_path=env_string("HEALTH_PATH", "/health"),
            region_name=env_string("AWS_REGION", ""),
        )
        errors = config.validate()
        if errors:
            raise ConfigError("; ".join(errors))
        return config

    def validate(self) -> List[str]:
        """Validate configuration and return list of errors."""
        errors = []

        try:
            split_listen_addr(self.listen_addr)
        except ConfigError as e:
            errors.append(e.message)

        if self.cache_ttl <= 0:
            errors.append("cache_ttl must be positive")

        if self.cache_max_size < 1:
            errors.append("cache_max_size must be at least 1")

        if not self.metrics_path.startswith("/"):
            errors.append("metrics_path must start with /")

        if not self.health_path.startswith("/"):
            errors.append("health_path must start with /")

        return errors
