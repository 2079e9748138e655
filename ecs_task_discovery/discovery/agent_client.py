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
Client for the ECS task discovery agent.

The agent is a shared process that performs the paginated ECS calls on
behalf of many consumers and serves the result at
GET {agent_url}/{service} as a JSON array of tasks.

Agent URL resolution order:
    1. Explicit agent_url argument
    2. ECS_TASK_DISCOVERY_AGENT_URL environment variable
    3. http://ecs-task-discovery-agent.{cluster}:8080/tasks
"""

from __future__ import annotations

import asyncio
import logging
import os
from typing import List, Optional
from urllib.parse import quote

import aiohttp

from ecs_task_discovery.discovery.task import Task
from ecs_task_discovery.exceptions import AgentQueryError
from ecs_task_discovery.utils.logger import get_logger

DEFAULT_AGENT_URL = "http://ecs-task-discovery-agent.{cluster}:8080/tasks"
ENV_AGENT_URL = "ECS_TASK_DISCOVERY_AGENT_URL"


def resolve_agent_url(cluster: str, agent_url: Optional[str] = None) -> str:
    """Pick the agent base URL: explicit value, then env var, then default."""
    if agent_url:
        return agent_url
    env_url = os.environ.get(ENV_AGENT_URL, "")
    if env_url:
        return env_url
    return DEFAULT_AGENT_URL.format(cluster=cluster)


def join_url(base: str, service: str) -> str:
    """Append the service name as a path segment to the agent base URL."""
    return f"{base.rstrip('/')}/{quote(service, safe='')}"


class AgentQueryClient:
    """Asks a discovery agent for the task list of a service.

    Example:
        >>> client = AgentQueryClient(cluster="demo")
        >>> tasks = await client.query("miniapi")
        >>> await client.close()
    """

    def __init__(
        self,
        cluster: str,
        agent_url: Optional[str] = None,
        timeout: float = 10.0,
        session: Optional[aiohttp.ClientSession] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        """Initialize the agent client.

        Args:
            cluster: Cluster short name, used for the default agent URL
            agent_url: Explicit agent base URL
            timeout: Total request timeout in seconds
            session: Optional aiohttp session, created lazily if omitted
            logger: Optional logger, defaults to the package logger
        """
        self.cluster = cluster
        self.agent_url = agent_url
        self.timeout = timeout
        self._session = session
        self._own_session = session is None
        self._logger = get_logger(logger)

    @property
    def base_url(self) -> str:
        """Agent base URL after applying the resolution order."""
        url = resolve_agent_url(self.cluster, self.agent_url)
        self._logger.debug(
            f"agentURL: (1)agent_url='{self.agent_url or ''}' "
            f"(2){ENV_AGENT_URL}='{os.environ.get(ENV_AGENT_URL, '')}' "
            f"(3)default={DEFAULT_AGENT_URL.format(cluster=self.cluster)} using value: '{url}'"
        )
        return url

    async def query(self, service: str) -> List[Task]:
        """Fetch the task list of a service from the agent.

        Raises:
            AgentQueryError: On connection failure, non-200 status or a body
                that is not a JSON array of tasks
        """
        url = join_url(self.base_url, service)

        if self._session is None:
            self._session = aiohttp.ClientSession()

        try:
            async with self._session.get(
                url, timeout=aiohttp.ClientTimeout(total=self.timeout)
            ) as response:
                try:
                    body = await response.text()
                except UnicodeDecodeError as e:
                    raise AgentQueryError(
                        f"body read error: {e}", url=url, status=response.status
                    ) from e
                if response.status != 200:
                    raise AgentQueryError(
                        f"bad status: {body.strip()}", url=url, status=response.status
                    )
                try:
                    data = await response.json(content_type=None)
                except ValueError as e:
                    raise AgentQueryError(
                        f"json error: {e}", url=url, status=response.status
                    ) from e
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise AgentQueryError(f"request failed: {e!r}", url=url) from e

        if not isinstance(data, list):
            raise AgentQueryError("json error: expected an array of tasks", url=url, status=200)

        try:
            return [Task.from_dict(item) for item in data]
        except TypeError as e:
            raise AgentQueryError(f"json error: bad task entry: {e}", url=url, status=200) from e

    async def close(self) -> None:
        """Close the HTTP session if this client created it."""
        if self._session is not None and self._own_session:
            await self._session.close()
        self._session = None
