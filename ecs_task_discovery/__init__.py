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
ECS task discovery - find the running tasks of an ECS service and keep a
distributed cache's peer set in step with them.

This package polls ECS (directly or through a shared discovery agent) for
the tasks of a service, delivers each changed snapshot to a callback, and
can republish the snapshot as the peer membership of a cache cluster.
"""

__version__ = "0.1.0"
__author__ = "Firefly Software Solutions Inc"
__license__ = "Apache-2.0"

from ecs_task_discovery.discovery import (
    AgentQueryClient,
    Discovery,
    DiscoveryOptions,
    EcsInventoryClient,
    Task,
)
from ecs_task_discovery.exceptions import (
    AgentQueryError,
    AmbiguousAddressError,
    ClusterIdentityError,
    ConfigError,
    InventoryQueryError,
    TaskDiscoveryError,
)
from ecs_task_discovery.peering import (
    PeerInfo,
    PeeringOptions,
    PeerPropagationAdapter,
    find_my_addr,
    find_my_url,
)

__all__ = [
    # Discovery
    "AgentQueryClient",
    "Discovery",
    "DiscoveryOptions",
    "EcsInventoryClient",
    "Task",
    # Peering
    "PeerInfo",
    "PeerPropagationAdapter",
    "PeeringOptions",
    "find_my_addr",
    "find_my_url",
    # Errors
    "AgentQueryError",
    "AmbiguousAddressError",
    "ClusterIdentityError",
    "ConfigError",
    "InventoryQueryError",
    "TaskDiscoveryError",
]
