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
Discovery engine for ECS tasks.

The engine polls for the running tasks of one service at a fixed interval
and calls back only when the sorted task list changes. Each cycle picks its
source in this order:

1. Discovery agent: ask a shared agent process over HTTP (unless disabled)
2. Forced single task: synthesize one task with a fixed address
3. ECS inventory: list and describe the tasks directly

Failures of any source are logged and count as zero tasks found. A cycle
that finds zero tasks never replaces the last delivered snapshot, so a
transient error cannot blank out a known-good peer set.

Example:
    >>> options = DiscoveryOptions(
    ...     service_name="miniapi",
    ...     callback=lambda tasks: print(tasks),
    ...     inventory=EcsInventoryClient(),
    ... )
    >>> discovery = await Discovery(options).start()
    >>> ...
    >>> discovery.stop()
    >>> await discovery.wait()
"""

from __future__ import annotations

import asyncio
import inspect
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Callable, List, Optional

from ecs_task_discovery.discovery.agent_client import AgentQueryClient
from ecs_task_discovery.discovery.cluster import find_cluster_name
from ecs_task_discovery.discovery.inventory import InventoryClient
from ecs_task_discovery.discovery.task import Task, make_snapshot
from ecs_task_discovery.exceptions import ConfigError, TransientQueryError
from ecs_task_discovery.utils.logger import get_logger

DEFAULT_INTERVAL = 20.0

MOCKED_SINGLE_TASK_ARN = "mockedSingleTaskARN"


@dataclass
class DiscoveryOptions:
    """Settings for creating a Discovery.

    Attributes:
        service_name: ECS service whose tasks are discovered
        callback: Called with each changed, non-empty snapshot; may be a
            coroutine function
        inventory: Inventory client used for direct ECS queries
        cluster: Cluster short name, resolved from task metadata if empty
        interval: Polling interval in seconds, 20s when zero
        force_single_task: If set, report one task with this address instead
            of querying ECS. Only useful when running locally.
        disable_agent_query: Skip the discovery agent. The agent itself sets
            this so it never queries itself.
        agent_url: Explicit agent base URL
        agent_client: Prebuilt agent client, built from cluster and agent_url
            if omitted
    """
    service_name: str = ""
    callback: Optional[Callable[[List[Task]], Any]] = field(default=None, repr=False)
    inventory: Optional[InventoryClient] = field(default=None, repr=False)
    cluster: str = ""
    interval: float = DEFAULT_INTERVAL
    force_single_task: str = ""
    disable_agent_query: bool = False
    agent_url: str = ""
    agent_client: Optional[AgentQueryClient] = field(default=None, repr=False)


class Discovery:
    """Polls for the tasks of a service and delivers changed snapshots.

    Cycles run strictly one after another inside a single asyncio task,
    and the callback is awaited before the next cycle is scheduled.
    """

    def __init__(
        self,
        options: DiscoveryOptions,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        """Validate options.

        Raises:
            ConfigError: If service_name, callback or inventory is missing
        """
        if not options.service_name:
            raise ConfigError("option service_name is required")
        if options.callback is None:
            raise ConfigError("option callback is required")
        if options.inventory is None:
            raise ConfigError("option inventory is required")

        self.options = options
        self._interval = options.interval if options.interval and options.interval > 0 else DEFAULT_INTERVAL
        self._cluster = options.cluster
        self._logger = get_logger(logger)
        self._last_delivered: List[Task] = []
        self._stop_event: Optional[asyncio.Event] = None
        self._stop_requested = False
        self._task: Optional[asyncio.Task] = None
        self._agent: Optional[AgentQueryClient] = options.agent_client

    @property
    def cluster(self) -> str:
        """Cluster short name."""
        return self._cluster

    @property
    def interval(self) -> float:
        """Polling interval in seconds."""
        return self._interval

    @property
    def last_delivered(self) -> List[Task]:
        """Most recently delivered snapshot, empty before the first delivery."""
        return list(self._last_delivered)

    @property
    def stopped(self) -> bool:
        """Whether stop() has been called."""
        return self._stop_requested

    async def start(self) -> "Discovery":
        """Resolve the cluster if needed and schedule the polling loop.

        Returns:
            This Discovery, as the handle used to stop it

        Raises:
            ClusterIdentityError: If the cluster name is not configured and
                cannot be found from task metadata
        """
        if self._task is not None:
            self._logger.warning("Discovery already started")
            return self

        if not self._cluster:
            self._cluster = await find_cluster_name()

        if self._agent is None and not self.options.disable_agent_query:
            self._agent = AgentQueryClient(
                cluster=self._cluster,
                agent_url=self.options.agent_url or None,
                logger=self._logger,
            )

        self._stop_event = asyncio.Event()
        if self._stop_requested:
            self._stop_event.set()
        self._task = asyncio.create_task(self.run())
        return self

    def stop(self) -> None:
        """Signal the loop to end before its next cycle.

        A cycle already in progress runs to completion.
        """
        if self._stop_requested:
            self._logger.warning("Discovery.stop called more than once")
            return
        self._stop_requested = True
        if self._stop_event is not None:
            self._stop_event.set()

    async def wait(self) -> None:
        """Wait for the loop to end and release the agent session."""
        if self._task is not None:
            await self._task
        if self._agent is not None and self.options.agent_client is None:
            await self._agent.close()

    async def run(self) -> None:
        """Run poll cycles until stopped."""
        if self._stop_event is None:
            self._stop_event = asyncio.Event()
            if self._stop_requested:
                self._stop_event.set()

        while not self._stop_event.is_set():
            try:
                await self.poll_once()
            except Exception as e:
                self._logger.error(f"Error in discovery loop: {e}")

            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=self._interval)
            except asyncio.TimeoutError:
                pass

    async def poll_once(self) -> bool:
        """Run a single poll cycle.

        Returns:
            True if a new snapshot was delivered
        """
        begin = time.monotonic()

        tasks = await self.list_tasks()

        changed = False
        if tasks:
            snapshot = make_snapshot(tasks, logger=self._logger)
            changed = snapshot != self._last_delivered
            if changed:
                self._last_delivered = snapshot
                await self._deliver(list(snapshot))

        elapsed = time.monotonic() - begin
        self._logger.info(
            f"Discovery.run: cluster={self._cluster} service={self.options.service_name} "
            f"forceSingleTask=[{self.options.force_single_task}] "
            f"disableAgentQuery={self.options.disable_agent_query} tasksFound={len(tasks)} "
            f"changed={changed} elapsed={elapsed:.3f}s sleeping:{self._interval}s"
        )
        return changed

    async def list_tasks(self) -> List[Task]:
        """Obtain this cycle's candidate task list, never raising on query errors."""
        service = self.options.service_name
        cluster = self._cluster

        if not self.options.disable_agent_query and self._agent is not None:
            try:
                tasks = await self._agent.query(service)
                self._logger.info(
                    f"query agent: cluster={cluster} service={service} tasks={len(tasks)}"
                )
                return self._drop_addressless(tasks)
            except TransientQueryError as e:
                self._logger.error(
                    f"query agent error: cluster={cluster} service={service}: {e}"
                )

        if self.options.force_single_task:
            return [
                Task(
                    arn=MOCKED_SINGLE_TASK_ARN,
                    address=self.options.force_single_task,
                    health_status="UNKNOWN",
                    last_status="RUNNING",
                )
            ]

        try:
            return await self.options.inventory.list_running_tasks(cluster, service)
        except TransientQueryError as e:
            self._logger.error(f"Tasks error: cluster={cluster} service={service}: {e}")
            return []

    def _drop_addressless(self, tasks: List[Task]) -> List[Task]:
        kept = []
        for task in tasks:
            if task.address:
                kept.append(task)
            else:
                self._logger.warning(f"agent reported task without address: arn={task.arn}")
        return kept

    async def _deliver(self, snapshot: List[Task]) -> None:
        try:
            result = self.options.callback(snapshot)
            if inspect.isawaitable(result):
                await result
        except Exception as e:
            self._logger.error(f"discovery callback error: service={self.options.service_name}: {e}")

    async def __aenter__(self) -> "Discovery":
        """Async context manager entry."""
        return await self.start()

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Async context manager exit."""
        if not self._stop_requested:
            self.stop()
        await self.wait()
