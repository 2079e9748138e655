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
Task model and address extraction.

A raw task, as returned by ECS DescribeTasks, carries its address buried in
the details of its network attachments:

    {
        "taskArn": "arn:aws:ecs:...:task/demo/1641...",
        "healthStatus": "HEALTHY",
        "lastStatus": "RUNNING",
        "attachments": [
            {"type": "ElasticNetworkInterface",
             "details": [{"name": "privateIPv4Address", "value": "10.0.0.1"}]}
        ]
    }

This module turns such descriptions into Task records and drops every task
whose address cannot be found.
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from typing import Any, Dict, Iterable, List, Optional, Sequence

from ecs_task_discovery.exceptions import AddressResolutionError
from ecs_task_discovery.utils.logger import get_logger

ADDRESS_DETAIL_NAME = "privateIPv4Address"


@dataclass(frozen=True)
class Task:
    """One discovered service instance."""
    arn: str
    address: str
    health_status: str = ""
    last_status: str = ""

    def to_dict(self) -> Dict[str, str]:
        """Convert to the JSON shape served by the discovery agent."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Task":
        """Create from the JSON shape served by the discovery agent.

        Missing or null fields become empty strings.

        Raises:
            TypeError: If data is not a mapping or a field is not a string
        """
        if not isinstance(data, dict):
            raise TypeError(f"task entry is not an object: {data!r}")

        fields = {}
        for name in ("arn", "address", "health_status", "last_status"):
            value = data.get(name)
            if value is None:
                value = ""
            if not isinstance(value, str):
                raise TypeError(f"task field {name} is not a string: {value!r}")
            fields[name] = value
        return cls(**fields)


def sort_tasks(tasks: Iterable[Task]) -> List[Task]:
    """Return tasks sorted by address, the order used to compare snapshots."""
    return sorted(tasks, key=lambda t: (t.address, t.arn))


def make_snapshot(
    tasks: Iterable[Task],
    logger: Optional[logging.Logger] = None,
) -> List[Task]:
    """Sort tasks by address and keep one task per address.

    When several tasks report the same address the one with the lowest ARN
    is kept and the others are logged.
    """
    snapshot: List[Task] = []
    for task in sort_tasks(tasks):
        if snapshot and snapshot[-1].address == task.address:
            get_logger(logger).warning(
                f"duplicate task address {task.address}: keeping arn={snapshot[-1].arn} "
                f"dropping arn={task.arn}"
            )
            continue
        snapshot.append(task)
    return snapshot


def find_address(attachments: Optional[Sequence[Dict[str, Any]]]) -> str:
    """Find the first privateIPv4Address across all attachment details.

    Returns:
        The address, or an empty string if no attachment carries one
    """
    for attachment in attachments or []:
        for detail in attachment.get("details") or []:
            if detail.get("name") == ADDRESS_DETAIL_NAME:
                return detail.get("value") or ""
    return ""


def extract_task(raw: Dict[str, Any]) -> Task:
    """Build a Task from one DescribeTasks entry.

    Raises:
        AddressResolutionError: If the task has no private IPv4 address
    """
    attachments = raw.get("attachments") or []
    arn = raw.get("taskArn") or ""
    health_status = raw.get("healthStatus") or ""
    last_status = raw.get("lastStatus") or ""

    address = find_address(attachments)
    if not address:
        raise AddressResolutionError(
            arn,
            health_status=health_status,
            last_status=last_status,
            attachments=len(attachments),
        )

    return Task(
        arn=arn,
        address=address,
        health_status=health_status,
        last_status=last_status,
    )


def extract_tasks(
    raw_tasks: Iterable[Dict[str, Any]],
    logger: Optional[logging.Logger] = None,
) -> List[Task]:
    """Build Tasks from a DescribeTasks batch, dropping addressless ones.

    Tasks with zero or several network attachments are logged as anomalies
    but still included when an address is found.

    Args:
        raw_tasks: Entries of a DescribeTasks response
        logger: Optional logger, defaults to the package logger

    Returns:
        Tasks that have an address, in input order
    """
    log = get_logger(logger)
    tasks: List[Task] = []

    for raw in raw_tasks:
        attachments = raw.get("attachments") or []
        if len(attachments) != 1:
            log.warning(
                f"task has {len(attachments)} network attachments: "
                f"arn={raw.get('taskArn')} healthStatus={raw.get('healthStatus')} "
                f"lastStatus={raw.get('lastStatus')}"
            )

        try:
            tasks.append(extract_task(raw))
        except AddressResolutionError as e:
            log.warning(
                f"task missing {ADDRESS_DETAIL_NAME}: arn={e.arn} "
                f"healthStatus={e.health_status} lastStatus={e.last_status} "
                f"networkAttachments={e.attachments}"
            )

    return tasks
