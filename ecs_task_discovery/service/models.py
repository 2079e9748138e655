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
Pydantic models for the task discovery agent API.

The JSON shape of a task matches what AgentQueryClient parses:

    [{"arn": "...", "address": "10.0.0.1",
      "health_status": "HEALTHY", "last_status": "RUNNING"}]
"""

from __future__ import annotations

from pydantic import BaseModel, Field

from ecs_task_discovery.discovery.task import Task


class TaskModel(BaseModel):
    """
    One running task of an ECS service.

    Attributes:
        arn: Task ARN
        address: Private IPv4 address of the task
        health_status: Container health status reported by ECS
        last_status: Last known task status
    """

    arn: str = Field(..., description="Task ARN")
    address: str = Field(..., description="Private IPv4 address")
    health_status: str = Field("", description="Health status, e.g. HEALTHY or UNKNOWN")
    last_status: str = Field("", description="Last status, e.g. RUNNING")

    @classmethod
    def from_task(cls, task: Task) -> "TaskModel":
        return cls(**task.to_dict())


class ErrorResponse(BaseModel):
    """Error body returned when a lookup fails."""

    detail: str = Field(..., description="Error message")
