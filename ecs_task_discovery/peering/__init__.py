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

"""Distributed cache peering driven by ECS task discovery."""

from ecs_task_discovery.peering.address import build_url, find_my_addr, find_my_url
from ecs_task_discovery.peering.metrics import PeerMetrics
from ecs_task_discovery.peering.propagation import (
    ListShape,
    PeerGroup,
    PeerInfo,
    PeeringOptions,
    PeerPropagationAdapter,
    PeerSet,
    StructuredShape,
    select_protocol,
)

__all__ = [
    "ListShape",
    "PeerGroup",
    "PeerInfo",
    "PeerMetrics",
    "PeerPropagationAdapter",
    "PeerSet",
    "PeeringOptions",
    "StructuredShape",
    "build_url",
    "find_my_addr",
    "find_my_url",
    "select_protocol",
]
