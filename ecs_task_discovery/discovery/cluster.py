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
Cluster identity from the ECS task metadata endpoint.

EC2: https://docs.aws.amazon.com/AmazonECS/latest/developerguide/task-metadata-endpoint-v4-response.html
Fargate: https://docs.aws.amazon.com/AmazonECS/latest/developerguide/task-metadata-endpoint-v4-fargate-response.html

The endpoint is ${ECS_CONTAINER_METADATA_URI_V4}/task and the cluster ARN
is in its "Cluster" field.
"""

from __future__ import annotations

import asyncio
import os
from typing import Optional

import aiohttp

from ecs_task_discovery.exceptions import ClusterIdentityError

ENV_METADATA_URI = "ECS_CONTAINER_METADATA_URI_V4"


def cluster_short_name(cluster_arn: str) -> str:
    """Extract the short cluster name from a cluster ARN.

    Example:
        >>> cluster_short_name("arn:aws:ecs:us-east-1:111122223333:cluster/demo")
        'demo'
    """
    return cluster_arn.rsplit("/", 1)[-1]


async def find_cluster(
    metadata_uri: Optional[str] = None,
    session: Optional[aiohttp.ClientSession] = None,
    timeout: float = 10.0,
) -> str:
    """Find the ECS cluster ARN by querying the task metadata endpoint.

    Args:
        metadata_uri: Metadata base URI, defaults to ECS_CONTAINER_METADATA_URI_V4
        session: Optional aiohttp session to reuse
        timeout: Request timeout in seconds

    Returns:
        The cluster ARN

    Raises:
        ClusterIdentityError: If the endpoint is unknown, unreachable or
            does not report a cluster
    """
    base = metadata_uri or os.environ.get(ENV_METADATA_URI, "")
    if not base:
        raise ClusterIdentityError(f"env var '{ENV_METADATA_URI}' is empty")

    uri = base.rstrip("/") + "/task"
    own_session = session is None
    if own_session:
        session = aiohttp.ClientSession()

    try:
        async with session.get(uri, timeout=aiohttp.ClientTimeout(total=timeout)) as response:
            body = await response.text()
            if response.status != 200:
                raise ClusterIdentityError(
                    f"bad_status:{response.status} uri:{uri} body:{body}", uri=uri
                )
            try:
                metadata = await response.json(content_type=None)
            except ValueError as e:
                raise ClusterIdentityError(
                    f"status:{response.status} uri:{uri} json_error:{e}", uri=uri
                ) from e
    except (aiohttp.ClientError, asyncio.TimeoutError, UnicodeDecodeError) as e:
        raise ClusterIdentityError(f"uri:{uri} error:{e}", uri=uri) from e
    finally:
        if own_session:
            await session.close()

    cluster = metadata.get("Cluster") if isinstance(metadata, dict) else None
    if not isinstance(cluster, str) or not cluster:
        raise ClusterIdentityError(f"uri:{uri} missing Cluster field", uri=uri)
    return cluster


async def find_cluster_name(metadata_uri: Optional[str] = None) -> str:
    """Return the short name of the cluster this process runs in."""
    return cluster_short_name(await find_cluster(metadata_uri))
