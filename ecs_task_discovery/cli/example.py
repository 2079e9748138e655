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


"""ECS task discovery example CLI.

Polls ECS for the tasks of a service and logs every changed snapshot.

Usage:
    ecs-task-discovery-example [--cluster CLUSTER] [--service SERVICE]

Environment Variables:
    CLUSTER=demo
    SERVICE=demo
"""

from __future__ import annotations

import argparse
import asyncio
import os
import sys
from typing import List, Optional

from ecs_task_discovery import __version__
from ecs_task_discovery.discovery.engine import Discovery, DiscoveryOptions
from ecs_task_discovery.discovery.inventory import EcsInventoryClient, InventoryClient
from ecs_task_discovery.discovery.task import Task
from ecs_task_discovery.exceptions import TaskDiscoveryError
from ecs_task_discovery.utils.logger import LOGGER_NAME, logger, setup_logger

EXAMPLE_INTERVAL = 10.0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ecs-task-discovery-example",
        description="Log the running tasks of an ECS service as they change",
    )
    parser.add_argument(
        "--cluster",
        default=os.environ.get("CLUSTER") or "demo",
        help="ECS cluster name (default: $CLUSTER or demo)",
    )
    parser.add_argument(
        "--service",
        default=os.environ.get("SERVICE") or "demo",
        help="ECS service name (default: $SERVICE or demo)",
    )
    parser.add_argument(
        "--interval",
        type=float,
        default=EXAMPLE_INTERVAL,
        help="Polling interval in seconds (default: 10)",
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


def log_tasks(tasks: List[Task]) -> None:
    """Discovery callback: one log line per task."""
    for i, t in enumerate(tasks, start=1):
        logger.info(
            f"task {i}/{len(tasks)}: addr={t.address} "
            f"health_status={t.health_status} last_status={t.last_status}"
        )


async def run_example(
    cluster: str,
    service: str,
    interval: float = EXAMPLE_INTERVAL,
    inventory: Optional[InventoryClient] = None,
) -> Discovery:
    """Run discovery for a service until it is stopped."""
    discovery = Discovery(
        DiscoveryOptions(
            service_name=service,
            callback=log_tasks,
            inventory=inventory if inventory is not None else EcsInventoryClient(),
            cluster=cluster,
            interval=interval,
        )
    )
    await discovery.start()
    await discovery.wait()
    return discovery


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the example command."""
    args = build_parser().parse_args(argv)

    setup_logger(LOGGER_NAME, level=args.log_level)
    logger.info(f"ecs-task-discovery-example version={__version__}")
    logger.info(f"CLUSTER={args.cluster}")
    logger.info(f"SERVICE={args.service}")

    try:
        asyncio.run(run_example(args.cluster, args.service, args.interval))
    except TaskDiscoveryError as e:
        logger.error(f"FATAL: {e}")
        return 1
    except KeyboardInterrupt:
        logger.info("interrupted")
    return 0


if __name__ == "__main__":
    sys.exit(main())
