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
ECS task discovery.

Components:
- Task: normalized description of one running task
- EcsInventoryClient: paginated ListTasks/DescribeTasks through boto3
- AgentQueryClient: asks a shared discovery agent over HTTP
- Discovery: polling loop that delivers changed task snapshots
"""

from ecs_task_discovery.discovery.agent_client import AgentQueryClient, resolve_agent_url
from ecs_task_discovery.discovery.cluster import (
    cluster_short_name,
    find_cluster,
    find_cluster_name,
)
from ecs_task_discovery.discovery.engine import (
    DEFAULT_INTERVAL,
    MOCKED_SINGLE_TASK_ARN,
    Discovery,
    DiscoveryOptions,
)
from ecs_task_discovery.discovery.inventory import EcsInventoryClient, InventoryClient
from ecs_task_discovery.discovery.task import (
    Task,
    extract_tasks,
    find_address,
    make_snapshot,
    sort_tasks,
)

__all__ = [
    "AgentQueryClient",
    "DEFAULT_INTERVAL",
    "Discovery",
    "DiscoveryOptions",
    "EcsInventoryClient",
    "InventoryClient",
    "MOCKED_SINGLE_TASK_ARN",
    "Task",
    "cluster_short_name",
    "extract_tasks",
    "find_address",
    "find_cluster",
    "find_cluster_name",
    "make_snapshot",
    "resolve_agent_url",
    "sort_tasks",
]
