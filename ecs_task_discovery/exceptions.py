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

"""Custom exceptions for ECS task discovery.

Exception Hierarchy:
    TaskDiscoveryError (base)
    ├── ConfigError - Invalid construction arguments or settings
    ├── TransientQueryError - A poll cycle failed to fetch tasks
    │   ├── InventoryQueryError - ECS ListTasks/DescribeTasks failure
    │   └── AgentQueryError - Discovery agent HTTP query failure
    ├── AddressResolutionError - A task has no usable address
    ├── SelfAddressError - Own address could not be determined
    │   ├── AmbiguousAddressError - Hostname resolved to several addresses
    │   └── ResolutionError - Hostname resolved to no address
    ├── ClusterIdentityError - Cluster name could not be determined
    └── PeerPropagationError - Cache cluster rejected a peer-set update

Only ConfigError, SelfAddressError and ClusterIdentityError are meant to
reach the caller. Everything raised during a poll cycle is absorbed and
logged by the discovery loop.
"""

from __future__ import annotations

from typing import List, Optional


class TaskDiscoveryError(Exception):
    """Base exception for all task discovery errors."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ConfigError(TaskDiscoveryError):
    """Raised when construction arguments or settings are invalid.

    Fatal at construction time, never recovered.
    """


class TransientQueryError(TaskDiscoveryError):
    """Raised when a task query fails during a poll cycle.

    The discovery loop logs it and treats the cycle as having found
    zero tasks.
    """


class InventoryQueryError(TransientQueryError):
    """Raised when the ECS inventory API call fails."""

    def __init__(
        self,
        message: str,
        cluster: Optional[str] = None,
        service: Optional[str] = None,
    ) -> None:
        """Initialize the inventory error.

        Args:
            message: Error message
            cluster: Cluster that was queried
            service: Service that was queried
        """
        super().__init__(message)
        self.cluster = cluster
        self.service = service


class AgentQueryError(TransientQueryError):
    """Raised when the discovery agent cannot answer a query."""

    def __init__(
        self,
        message: str,
        url: Optional[str] = None,
        status: Optional[int] = None,
    ) -> None:
        """Initialize the agent query error.

        Args:
            message: Error message
            url: Agent URL that was queried
            status: HTTP status returned by the agent, if any
        """
        super().__init__(message)
        self.url = url
        self.status = status

    def __str__(self) -> str:
        if self.status is not None:
            return f"{self.message} (status={self.status} url={self.url})"
        if self.url:
            return f"{self.message} (url={self.url})"
        return self.message


class AddressResolutionError(TaskDiscoveryError):
    """Raised when a described task lacks a private IPv4 address."""

    def __init__(
        self,
        arn: str,
        health_status: str = "",
        last_status: str = "",
        attachments: int = 0,
    ) -> None:
        super().__init__(f"task missing privateIPv4Address: {arn}")
        self.arn = arn
        self.health_status = health_status
        self.last_status = last_status
        self.attachments = attachments


class SelfAddressError(TaskDiscoveryError):
    """Raised when the process cannot determine its own address."""

    def __init__(self, message: str, hostname: str = "") -> None:
        super().__init__(message)
        self.hostname = hostname


class AmbiguousAddressError(SelfAddressError):
    """Raised when the hostname resolves to more than one address.

    The first address is still offered as a best-effort answer.
    """

    def __init__(self, hostname: str, addresses: List[str]) -> None:
        super().__init__(
            f"hostname '{hostname}': found multiple addresses: {addresses}",
            hostname=hostname,
        )
        self.addresses = list(addresses)
        self.address = addresses[0]


class ResolutionError(SelfAddressError):
    """Raised when the hostname resolves to no address at all."""

    def __init__(self, hostname: str, reason: Optional[str] = None) -> None:
        message = f"hostname '{hostname}': no addr found"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message, hostname=hostname)


class ClusterIdentityError(TaskDiscoveryError):
    """Raised when the ECS cluster name cannot be determined."""

    def __init__(self, message: str, uri: Optional[str] = None) -> None:
        super().__init__(message)
        self.uri = uri


class PeerPropagationError(TaskDiscoveryError):
    """Raised when the cache cluster rejects a peer-set update."""

    def __init__(self, message: str, peers: int = 0) -> None:
        super().__init__(message)
        self.peers = peers
