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

"""Prometheus metrics for peer-set updates."""

from __future__ import annotations

from typing import Optional

from prometheus_client import CollectorRegistry, Counter, Gauge

SUBSYSTEM = "peerdiscovery"


class PeerMetrics:
    """Counts peer-set updates and tracks the current number of peers.

    Without a registry nothing is recorded, so several adapters can share a
    process without colliding on metric names.
    """

    def __init__(self, namespace: str = "", registry: Optional[CollectorRegistry] = None) -> None:
        self.peers: Optional[Gauge] = None
        self.events: Optional[Counter] = None

        if registry is None:
            return

        self.peers = Gauge(
            "peers",
            "Number of peers discovered.",
            namespace=namespace,
            subsystem=SUBSYSTEM,
            registry=registry,
        )
        self.events = Counter(
            "events",
            "Number of events received.",
            namespace=namespace,
            subsystem=SUBSYSTEM,
            registry=registry,
        )

    def update(self, peers: int) -> None:
        """Record one peer-set update with the given number of peers."""
        if self.events is not None:
            self.events.inc()
        if self.peers is not None:
            self.peers.set(peers)
