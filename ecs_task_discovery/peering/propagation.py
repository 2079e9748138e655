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
Peer propagation from discovered tasks to a distributed cache.

Each snapshot delivered by the discovery engine is republished as the
cache cluster's peer membership, in one of two shapes:

1. List shape: a pool whose ``set(*urls)`` replaces the whole membership
   with peer URLs such as ``http://10.0.0.1:5000``
2. Structured shape: a peer set whose ``set_peers(peers)`` receives
   ``PeerInfo(address="10.0.0.1:5000", is_self=...)`` records and may fail

Exactly one of them is configured. The shape is fixed when the adapter is
built and the process's own address is resolved once at that time.

Example:
    >>> adapter = PeerPropagationAdapter(PeeringOptions(
    ...     service_name="miniapi",
    ...     port=5000,
    ...     inventory=EcsInventoryClient(),
    ...     pool=pool,
    ... ))
    >>> discovery = await adapter.start()
"""

from __future__ import annotations

import inspect
import logging
from dataclasses import dataclass, field
from typing import Any, List, Optional, Protocol, Union

from prometheus_client import CollectorRegistry

from ecs_task_discovery.discovery.engine import DEFAULT_INTERVAL, Discovery, DiscoveryOptions
from ecs_task_discovery.discovery.inventory import InventoryClient
from ecs_task_discovery.discovery.task import Task
from ecs_task_discovery.exceptions import ConfigError, PeerPropagationError
from ecs_task_discovery.peering.address import build_url, find_my_addr, port_number
from ecs_task_discovery.peering.metrics import PeerMetrics
from ecs_task_discovery.utils.logger import get_logger


class PeerGroup(Protocol):
    """Target that replaces its membership with a list of peer URLs."""

    def set(self, *peers: str) -> None:
        ...


class PeerSet(Protocol):
    """Target that accepts structured peer records and may reject them."""

    def set_peers(self, peers: List["PeerInfo"]) -> Any:
        ...


@dataclass(frozen=True)
class PeerInfo:
    """One cache peer: its host:port and whether it is this process."""
    address: str
    is_self: bool = False


@dataclass(frozen=True)
class ListShape:
    """Peer URLs delivered through PeerGroup.set."""
    pool: PeerGroup


@dataclass(frozen=True)
class StructuredShape:
    """PeerInfo records delivered through PeerSet.set_peers."""
    peer_set: PeerSet


PeerGroupProtocol = Union[ListShape, StructuredShape]


@dataclass
class PeeringOptions:
    """Settings for a PeerPropagationAdapter.

    Attributes:
        service_name: ECS service whose tasks are the cache peers (usually self)
        port: Port of the cache peering server, e.g. 5000 or ":5000"
        inventory: Inventory client passed to the discovery engine
        pool: List-shape target
        peer_set: Structured-shape target
        cluster: Cluster short name, resolved from task metadata if empty
        interval: Polling interval in seconds
        force_single_task: Forced single-task address, see DiscoveryOptions
        disable_agent_query: Skip the discovery agent
        agent_url: Explicit agent base URL
        self_address: Own address, resolved from the hostname if empty
        scheme: URL scheme for list-shape peer URLs
        metrics_namespace: Prometheus namespace for peer metrics
        metrics_registry: Registry for peer metrics; no metrics if omitted
    """
    service_name: str = ""
    port: Union[int, str] = 5000
    inventory: Optional[InventoryClient] = field(default=None, repr=False)
    pool: Optional[PeerGroup] = field(default=None, repr=False)
    peer_set: Optional[PeerSet] = field(default=None, repr=False)
    cluster: str = ""
    interval: float = DEFAULT_INTERVAL
    force_single_task: str = ""
    disable_agent_query: bool = False
    agent_url: str = ""
    self_address: str = ""
    scheme: str = "http"
    metrics_namespace: str = ""
    metrics_registry: Optional[CollectorRegistry] = field(default=None, repr=False)


def select_protocol(
    pool: Optional[PeerGroup], peer_set: Optional[PeerSet]
) -> PeerGroupProtocol:
    """Pick the peer-set shape from the configured targets.

    Raises:
        ConfigError: If neither or both targets are given
    """
    if pool is not None and peer_set is not None:
        raise ConfigError("options pool and peer_set are mutually exclusive")
    if peer_set is not None:
        return StructuredShape(peer_set)
    if pool is not None:
        return ListShape(pool)
    raise ConfigError("one of options pool or peer_set is required")


class PeerPropagationAdapter:
    """Turns discovery snapshots into cache peer-set updates."""

    def __init__(
        self,
        options: PeeringOptions,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        """Select the peer-set shape and resolve the own address.

        Raises:
            ConfigError: If the targets or the port are invalid
            SelfAddressError: If the own address is missing or ambiguous
        """
        self.options = options
        self.protocol = select_protocol(options.pool, options.peer_set)
        try:
            self.port = port_number(options.port)
        except ValueError as e:
            raise ConfigError(f"invalid cache peering port: {options.port!r}") from e

        self.self_address = options.self_address or find_my_addr()
        self.metrics = PeerMetrics(options.metrics_namespace, options.metrics_registry)
        self._logger = get_logger(logger)
        self._discovery: Optional[Discovery] = None
        self.last_error: Optional[PeerPropagationError] = None

    def host_port(self, task: Task) -> str:
        return f"{task.address}:{self.port}"

    def build_urls(self, tasks: List[Task]) -> List[str]:
        """Peer URLs for the list shape."""
        return [build_url(t.address, self.port, self.options.scheme) for t in tasks]

    def build_peers(self, tasks: List[Task]) -> List[PeerInfo]:
        """PeerInfo records for the structured shape."""
        return [
            PeerInfo(address=self.host_port(t), is_self=t.address == self.self_address)
            for t in tasks
        ]

    async def update(self, tasks: List[Task]) -> None:
        """Discovery callback: push the snapshot to the cache cluster."""
        me = "PeerPropagationAdapter.update"
        size = len(tasks)

        self._logger.info(f"{me}: {size} tasks")
        if size == 0:
            return

        self.metrics.update(size)

        for i, t in enumerate(tasks, start=1):
            self._logger.info(
                f"{me}: {i}/{size}: service={self.options.service_name} task={t.arn} "
                f"addr={t.address} health_status={t.health_status} "
                f"last_status={t.last_status} is_self={t.address == self.self_address}"
            )

        if isinstance(self.protocol, StructuredShape):
            peers = self.build_peers(tasks)
            try:
                result = self.protocol.peer_set.set_peers(peers)
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                self.last_error = PeerPropagationError(f"set peers: error: {e}", peers=len(peers))
                self._logger.error(self.last_error.message)
            else:
                self.last_error = None
        else:
            self.protocol.pool.set(*self.build_urls(tasks))

    def discovery(self) -> Discovery:
        """Build the discovery engine that feeds this adapter."""
        if self._discovery is None:
            opts = self.options
            self._discovery = Discovery(
                DiscoveryOptions(
                    service_name=opts.service_name,
                    callback=self.update,
                    inventory=opts.inventory,
                    cluster=opts.cluster,
                    interval=opts.interval,
                    force_single_task=opts.force_single_task,
                    disable_agent_query=opts.disable_agent_query,
                    agent_url=opts.agent_url,
                ),
                logger=self._logger,
            )
        return self._discovery

    async def start(self) -> Discovery:
        """Start discovery; stop it through the returned handle."""
        return await self.discovery().start()
