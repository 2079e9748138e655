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
ECS inventory client.

Lists the running tasks of a service page by page and describes each page
in a single batch. boto3 is synchronous, so every call runs in the default
executor and only the awaiting coroutine is suspended.

Example:
    >>> inventory = EcsInventoryClient(region_name="us-east-1")
    >>> tasks = await inventory.list_running_tasks("demo", "miniapi")
"""

from __future__ import annotations

import asyncio
import functools
import logging
from typing import Any, List, Optional, Protocol, Sequence

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from ecs_task_discovery.discovery.task import Task, extract_tasks
from ecs_task_discovery.exceptions import InventoryQueryError
from ecs_task_discovery.utils.logger import get_logger

DESIRED_STATUS = "RUNNING"
MAX_PAGE_SIZE = 100


class InventoryClient(Protocol):
    """Source of task descriptions for a cluster."""

    async def list_running_tasks(self, cluster: str, service: str) -> List[Task]:
        ...

    async def describe_tasks(self, cluster: str, task_arns: Sequence[str]) -> List[Task]:
        ...


class EcsInventoryClient:
    """Inventory client backed by the ECS ListTasks and DescribeTasks APIs."""

    def __init__(
        self,
        client: Optional[Any] = None,
        region_name: Optional[str] = None,
        page_size: int = MAX_PAGE_SIZE,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        """Initialize the inventory client.

        Args:
            client: boto3 ECS client, created from the default session if omitted
            region_name: AWS region used when creating the client
            page_size: ListTasks page size, 1..100
            logger: Optional logger, defaults to the package logger
        """
        if not 1 <= page_size <= MAX_PAGE_SIZE:
            page_size = MAX_PAGE_SIZE
        self.client = client if client is not None else boto3.client("ecs", region_name=region_name)
        self.page_size = page_size
        self._logger = get_logger(logger)

    async def _call(self, method: str, **kwargs: Any) -> Any:
        loop = asyncio.get_event_loop()
        func = functools.partial(getattr(self.client, method), **kwargs)
        return await loop.run_in_executor(None, func)

    async def list_running_tasks(self, cluster: str, service: str) -> List[Task]:
        """Discover all running tasks of a service.

        Args:
            cluster: ECS cluster name
            service: ECS service name

        Returns:
            Tasks with a private address, across all pages

        Raises:
            InventoryQueryError: If any ListTasks or DescribeTasks call fails
        """
        request = {
            "cluster": cluster,
            "serviceName": service,
            "maxResults": self.page_size,
            "desiredStatus": DESIRED_STATUS,
        }
        tasks: List[Task] = []

        while True:
            try:
                out = await self._call("list_tasks", **request)
            except (ClientError, BotoCoreError) as e:
                raise InventoryQueryError(
                    f"ListTasks failed: {e}", cluster=cluster, service=service
                ) from e

            arns = out.get("taskArns") or []
            self._logger.info(
                f"ListTasks: cluster={cluster} service={service} "
                f"found {len(arns)} of maxResults={self.page_size} tasks"
            )

            tasks.extend(await self.describe_tasks(cluster, arns))

            next_token = out.get("nextToken")
            if not next_token:
                break
            request["nextToken"] = next_token

        return tasks

    async def describe_tasks(self, cluster: str, task_arns: Sequence[str]) -> List[Task]:
        """Describe a batch of tasks.

        Raises:
            InventoryQueryError: If the DescribeTasks call fails
        """
        if not task_arns:
            return []

        try:
            out = await self._call("describe_tasks", cluster=cluster, tasks=list(task_arns))
        except (ClientError, BotoCoreError) as e:
            raise InventoryQueryError(f"DescribeTasks failed: {e}", cluster=cluster) from e

        for failure in out.get("failures") or []:
            self._logger.warning(
                f"DescribeTasks failure: cluster={cluster} arn={failure.get('arn')} "
                f"reason={failure.get('reason')}"
            )

        return extract_tasks(out.get("tasks") or [], logger=self._logger)
