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
Task list cache for the discovery agent.

Many consumers poll the agent for the same service at roughly the same
interval. Caching each service's task list for a short TTL collapses those
polls into one ECS query per TTL window.

Features:
- LRU eviction when the cache is full
- TTL expiry per entry
- Concurrent misses for the same service share one load
- Hit/miss statistics
"""

from __future__ import annotations

import asyncio
import time
from collections import OrderedDict
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple

from ecs_task_discovery.discovery.task import Task
from ecs_task_discovery.utils.logger import logger


class _LoadSlot:
    """Per-service load lock and the number of callers holding or awaiting it."""

    def __init__(self) -> None:
        self.lock = asyncio.Lock()
        self.users = 0


class TaskListCache:
    """
    LRU cache of task lists keyed by service name, with TTL support.

    Example:
        >>> cache = TaskListCache(ttl_seconds=20, max_size=1000)
        >>> tasks = await cache.get_or_load("miniapi", load_tasks)
        >>> stats = cache.get_stats()
    """

    def __init__(self, ttl_seconds: float = 20.0, max_size: int = 1000) -> None:
        self.ttl_seconds = ttl_seconds
        self.max_size = max_size
        self.cache: OrderedDict[str, Tuple[float, List[Task]]] = OrderedDict()
        self._locks: Dict[str, _LoadSlot] = {}
        self._hits = 0
        self._misses = 0

    def get(self, service: str) -> Optional[List[Task]]:
        """Get a cached task list, or None if missing or expired."""
        entry = self.cache.get(service)
        if entry is not None:
            stored_at, tasks = entry
            if time.time() - stored_at < self.ttl_seconds:
                self.cache.move_to_end(service)
                self._hits += 1
                return list(tasks)
            del self.cache[service]
            logger.debug(f"Cache expired for service: {service}")

        self._misses += 1
        return None

    def set(self, service: str, tasks: List[Task]) -> None:
        """Cache a task list, evicting the least recently used entry if full."""
        self.cache[service] = (time.time(), list(tasks))
        self.cache.move_to_end(service)
        while len(self.cache) > self.max_size:
            evicted, _ = self.cache.popitem(last=False)
            logger.debug(f"Cache evicted service: {evicted}")

    async def get_or_load(
        self,
        service: str,
        loader: Callable[[str], Awaitable[List[Task]]],
    ) -> List[Task]:
        """Return the cached task list, loading it on a miss.

        Loader errors propagate and nothing is cached for that service.
        A service's lock lives only while some caller is loading or
        waiting for it.
        """
        cached = self.get(service)
        if cached is not None:
            return cached

        slot = self._locks.get(service)
        if slot is None:
            slot = self._locks[service] = _LoadSlot()
        slot.users += 1
        try:
            async with slot.lock:
                # Another waiter may have loaded it meanwhile
                entry = self.cache.get(service)
                if entry is not None and time.time() - entry[0] < self.ttl_seconds:
                    return list(entry[1])

                tasks = await loader(service)
                self.set(service, tasks)
                return list(tasks)
        finally:
            slot.users -= 1
            if slot.users == 0 and self._locks.get(service) is slot:
                del self._locks[service]

    def clear(self) -> None:
        self.cache.clear()
        self._locks.clear()

    def get_stats(self) -> Dict[str, Any]:
        """Get cache statistics."""
        total = self._hits + self._misses
        return {
            "size": len(self.cache),
            "max_size": self.max_size,
            "ttl_seconds": self.ttl_seconds,
            "hits": self._hits,
            "misses": self._misses,
            "hit_rate": self._hits / total if total else 0.0,
        }
