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

"""Own-address resolution for self-identification among cache peers."""

from __future__ import annotations

import socket
from typing import List, Optional, Union

from ecs_task_discovery.exceptions import AmbiguousAddressError, ResolutionError


def lookup_host(hostname: str) -> List[str]:
    """Resolve a hostname to its distinct addresses, in resolver order."""
    try:
        infos = socket.getaddrinfo(hostname, None, proto=socket.IPPROTO_TCP)
    except socket.gaierror as e:
        raise ResolutionError(hostname, reason=str(e)) from e

    addresses: List[str] = []
    for _family, _type, _proto, _canonname, sockaddr in infos:
        if sockaddr[0] not in addresses:
            addresses.append(sockaddr[0])
    return addresses


def find_my_addr(hostname: Optional[str] = None) -> str:
    """Find the address of this process by resolving its hostname.

    Args:
        hostname: Hostname to resolve, defaults to socket.gethostname()

    Returns:
        The single address the hostname resolves to

    Raises:
        ResolutionError: If no address is found
        AmbiguousAddressError: If several addresses are found; the first one
            is available as the exception's ``address``
    """
    host = hostname or socket.gethostname()
    addresses = lookup_host(host)
    if not addresses:
        raise ResolutionError(host)
    if len(addresses) > 1:
        raise AmbiguousAddressError(host, addresses)
    return addresses[0]


def port_number(port: Union[int, str]) -> int:
    """Normalize a port given as 5000, "5000" or ":5000"."""
    if isinstance(port, int):
        return port
    return int(port.lstrip(":"))


def build_url(address: str, port: Union[int, str], scheme: str = "http") -> str:
    """Build the peer URL for an address, e.g. http://10.0.0.1:5000."""
    return f"{scheme}://{address}:{port_number(port)}"


def find_my_url(port: Union[int, str], scheme: str = "http", hostname: Optional[str] = None) -> str:
    """Build this process's own peer URL from its resolved address."""
    return build_url(find_my_addr(hostname), port, scheme)
