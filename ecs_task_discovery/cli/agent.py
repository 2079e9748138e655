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


"""ECS task discovery agent CLI.

Starts the HTTP agent that lists running ECS tasks for other processes.

Usage:
    ecs-task-discovery-agent [--host HOST] [--port PORT] [--log-level LEVEL]

    Or with Python:
    python -m ecs_task_discovery.cli.agent

Environment Variables:
    CLUSTER=demo            # skip the task metadata lookup
    LISTEN_ADDR=:8080
    CACHE_ENABLE=true
    CACHE_TTL=20s
    METRICS_PATH=/metrics
    HEALTH_PATH=/health
"""

from __future__ import annotations

import argparse
import os
import sys
from typing import List, Optional

from ecs_task_discovery import __version__
from ecs_task_discovery.exceptions import ConfigError
from ecs_task_discovery.service.config import AgentConfig
from ecs_task_discovery.utils.logger import LOGGER_NAME, logger, setup_logger


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ecs-task-discovery-agent",
        description="Start the ECS task discovery agent",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  ecs-task-discovery-agent                  # Listen on LISTEN_ADDR (default :8080)
  ecs-task-discovery-agent --port 9090      # Custom port
  CLUSTER=demo ecs-task-discovery-agent     # Outside ECS, name the cluster
        """,
    )
    parser.add_argument(
        "--host",
        default=None,
        help="Host to bind to (default: from LISTEN_ADDR)",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=None,
        help="Port to bind to (default: from LISTEN_ADDR)",
    )
    parser.add_argument(
        "--log-level",
        default=os.environ.get("LOG_LEVEL", "info"),
        choices=["debug", "info", "warning", "error", "critical"],
        help="Log level (default: info)",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s version={__version__}",
    )
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the agent command."""
    args = build_parser().parse_args(argv)

    setup_logger(LOGGER_NAME, level=args.log_level)

    try:
        config = AgentConfig.from_env()
    except ConfigError as e:
        logger.error(f"FATAL: configuration error: {e}")
        return 1

    host = args.host or config.host
    port = args.port or config.port

    import uvicorn

    from ecs_task_discovery.service.app import create_app

    app = create_app(config)

    print()
    print(f"  ECS task discovery agent {__version__}")
    print()
    print(f"  Host:      {host}")
    print(f"  Port:      {port}")
    print(f"  Cluster:   {config.cluster_name or '(from task metadata)'}")
    print(f"  Cache:     {config.cache_enable} (ttl={config.cache_ttl}s)")
    print(f"  Log Level: {args.log_level}")
    print()
    print(f"  Tasks:     http://{host}:{port}/tasks/{{service}}")
    print(f"  Health:    http://{host}:{port}{config.health_path}")
    print(f"  Metrics:   http://{host}:{port}{config.metrics_path}")
    print()

    uvicorn.run(app, host=host, port=port, log_level=args.log_level)
    return 0


if __name__ == "__main__":
    sys.exit(main())
