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
FastAPI application for the ECS task discovery agent.

The agent answers "which tasks of service X are running?" for every process
in the cluster, so that each of them does not have to call the ECS API on
its own. Lookups go through the ECS inventory client and are kept in a
short-lived per-service cache.

Endpoints:
- GET /tasks/{service}: running tasks of a service as a JSON array
- GET /health: liveness check, returns "ok"
- GET /metrics: Prometheus metrics

Example Usage:
    Start the agent:
    ```bash
    CLUSTER=demo ecs-task-discovery-agent --port 8080
    ```

    Query it:
    ```bash
    curl http://localhost:8080/tasks/miniapi
    ```
"""

from __future__ import annotations

import time
from contextlib import asynccontextmanager
from typing import List, Optional

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.responses import PlainTextResponse, Response
from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Histogram,
    generate_latest,
)

from ecs_task_discovery import __version__
from ecs_task_discovery.discovery.cluster import find_cluster_name
from ecs_task_discovery.discovery.inventory import EcsInventoryClient, InventoryClient
from ecs_task_discovery.discovery.task import Task, sort_tasks
from ecs_task_discovery.service.cache import TaskListCache
from ecs_task_discovery.service.config import AgentConfig
from ecs_task_discovery.service.models import ErrorResponse, TaskModel
from ecs_task_discovery.utils.logger import logger

METRICS_NAMESPACE = "ecs_task_discovery_agent"


class AgentMetrics:
    """Lookup counters and latency for the agent."""

    def __init__(self, registry: CollectorRegistry) -> None:
        self.lookups = Counter(
            "lookups",
            "Number of task lookups served.",
            ["outcome"],
            namespace=METRICS_NAMESPACE,
            registry=registry,
        )
        self.latency = Histogram(
            "lookup_duration_seconds",
            "Time spent answering task lookups.",
            namespace=METRICS_NAMESPACE,
            registry=registry,
        )


class AgentState:
    """Runtime state shared by the agent routes."""

    def __init__(
        self,
        config: AgentConfig,
        inventory: InventoryClient,
        registry: CollectorRegistry,
    ) -> None:
        self.config = config
        self.inventory = inventory
        self.cluster = config.cluster_name
        self.registry = registry
        self.metrics = AgentMetrics(registry)
        self.cache: Optional[TaskListCache] = None
        if config.cache_enable:
            self.cache = TaskListCache(
                ttl_seconds=config.cache_ttl, max_size=config.cache_max_size
            )
        self.start_time = time.time()

    async def load_tasks(self, service: str) -> List[Task]:
        return await self.inventory.list_running_tasks(self.cluster, service)

    async def lookup(self, service: str) -> List[Task]:
        """Running tasks of a service, served from the cache when enabled."""
        if self.cache is not None:
            tasks = await self.cache.get_or_load(service, self.load_tasks)
        else:
            tasks = await self.load_tasks(service)
        return sort_tasks(tasks)


def create_app(
    config: Optional[AgentConfig] = None,
    inventory: Optional[InventoryClient] = None,
    registry: Optional[CollectorRegistry] = None,
) -> FastAPI:
    """
    Build the agent application.

    Args:
        config: Agent configuration, read from the environment if omitted
        inventory: Inventory client, an EcsInventoryClient if omitted
        registry: Prometheus registry for the agent metrics, a fresh one if omitted

    Returns:
        FastAPI application
    """
    if config is None:
        config = AgentConfig.from_env()
    if inventory is None:
        inventory = EcsInventoryClient(region_name=config.region_name or None)
    if registry is None:
        registry = CollectorRegistry()

    state = AgentState(config, inventory, registry)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Resolve the cluster name once before serving lookups."""
        logger.info("Starting ECS task discovery agent...")
        if not state.cluster:
            state.cluster = await find_cluster_name()
        logger.info(
            f"ECS task discovery agent started: cluster={state.cluster} "
            f"cache_enable={config.cache_enable} cache_ttl={config.cache_ttl}"
        )

        yield

        logger.info("ECS task discovery agent shut down")

    app = FastAPI(
        title="ECS Task Discovery Agent",
        description="Lists the running tasks of ECS services on behalf of their peers.",
        version=__version__,
        lifespan=lifespan,
        openapi_tags=[
            {"name": "Tasks", "description": "Task lookups"},
            {"name": "Health", "description": "Health check and metrics"},
        ],
    )
    app.state.agent = state

    @app.get(
        "/tasks/{service}",
        response_model=List[TaskModel],
        tags=["Tasks"],
        summary="List running tasks",
        responses={500: {"model": ErrorResponse, "description": "Lookup failed"}},
    )
    async def list_tasks(service: str, request: Request):
        """
        List the running tasks of an ECS service.

        Tasks without a private address are not included.
        """
        agent: AgentState = request.app.state.agent
        begin = time.time()
        try:
            tasks = await agent.lookup(service)
        except Exception as e:
            elapsed = time.time() - begin
            agent.metrics.lookups.labels(outcome="error").inc()
            logger.error(
                f"lookup: cluster={agent.cluster} service={service} "
                f"elapsed={elapsed:.3f}s error: {e}"
            )
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=str(e),
            )

        elapsed = time.time() - begin
        agent.metrics.lookups.labels(outcome="ok").inc()
        agent.metrics.latency.observe(elapsed)
        logger.info(
            f"lookup: cluster={agent.cluster} service={service} "
            f"tasks={len(tasks)} elapsed={elapsed:.3f}s"
        )
        return [TaskModel.from_task(t) for t in tasks]

    async def health() -> PlainTextResponse:
        return PlainTextResponse("ok")

    async def metrics(request: Request) -> Response:
        agent: AgentState = request.app.state.agent
        return Response(
            content=generate_latest(agent.registry),
            media_type=CONTENT_TYPE_LATEST,
        )

    app.add_api_route(config.health_path, health, methods=["GET"], tags=["Health"])
    app.add_api_route(config.metrics_path, metrics, methods=["GET"], tags=["Health"])

    return app
