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


"""Task discovery agent: an HTTP service answering task lookups for its peers."""

from ecs_task_discovery.service.app import create_app
from ecs_task_discovery.service.cache import TaskListCache
from ecs_task_discovery.service.config import AgentConfig

__all__ = ["AgentConfig", "TaskListCache", "create_app"]
