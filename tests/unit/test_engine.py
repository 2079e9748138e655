# Copyright 2026 Firefly Software Solutions Inc
# SPDX-License-Identifier: Apache-2.0

"""Unit tests for the discovery engine."""

import asyncio
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from aiohttp import test_utils, web

from ecs_task_discovery.discovery.agent_client import AgentQueryClient
from ecs_task_discovery.discovery.engine import (
    DEFAULT_INTERVAL,
    MOCKED_SINGLE_TASK_ARN,
    Discovery,
    DiscoveryOptions,
)
from ecs_task_discovery.discovery.task import Task
from ecs_task_discovery.exceptions import AgentQueryError, ConfigError, InventoryQueryError

T1 = Task(arn="arn-1", address="10.0.0.1", health_status="HEALTHY", last_status="RUNNING")
T2 = Task(arn="arn-2", address="10.0.0.2", health_status="HEALTHY", last_status="RUNNING")


@pytest.fixture
def inventory():
    """Create a mock inventory client."""
    client = MagicMock()
    client.list_running_tasks = AsyncMock(return_value=[])
    return client


@pytest.fixture
def agent():
    """Create a mock agent query client."""
    client = MagicMock(spec=AgentQueryClient)
    client.query = AsyncMock(return_value=[])
    client.close = AsyncMock()
    return client


def make_discovery(inventory, callback=None, logger=None, **kwargs):
    """Build a Discovery with agent querying disabled unless overridden."""
    kwargs.setdefault("disable_agent_query", True)
    kwargs.setdefault("cluster", "demo")
    options = DiscoveryOptions(
        service_name="miniapi",
        callback=callback if callback is not None else MagicMock(),
        inventory=inventory,
        **kwargs,
    )
    return Discovery(options, logger=logger or MagicMock())


class TestConstruction:
    """Tests for Discovery construction."""

    def test_missing_service_name(self, inventory):
        """Test empty service name is rejected."""
        with pytest.raises(ConfigError):
            Discovery(DiscoveryOptions(callback=MagicMock(), inventory=inventory))

    def test_missing_callback(self, inventory):
        """Test missing callback is rejected."""
        with pytest.raises(ConfigError):
            Discovery(DiscoveryOptions(service_name="miniapi", inventory=inventory))

    def test_missing_inventory(self):
        """Test missing inventory client is rejected."""
        with pytest.raises(ConfigError):
            Discovery(DiscoveryOptions(service_name="miniapi", callback=MagicMock()))

    def test_default_interval(self, inventory):
        """Test zero interval falls back to the default."""
        discovery = make_discovery(inventory, interval=0)

        assert discovery.interval == DEFAULT_INTERVAL == 20.0
        assert discovery.options.interval == 0


class TestDelivery:
    """Tests for change detection and delivery."""

    @pytest.mark.asyncio
    async def test_scenario(self, inventory):
        """Test deliver, skip identical, suppress empty, deliver shrink."""
        inventory.list_running_tasks.side_effect = [
            [T2, T1],
            [T1, T2],
            InventoryQueryError("throttled", cluster="demo", service="miniapi"),
            [T1],
        ]
        callback = MagicMock()
        discovery = make_discovery(inventory, callback)

        assert await discovery.poll_once() is True
        callback.assert_called_once_with([T1, T2])

        assert await discovery.poll_once() is False
        assert callback.call_count == 1

        assert await discovery.poll_once() is False
        assert callback.call_count == 1
        assert discovery.last_delivered == [T1, T2]

        assert await discovery.poll_once() is True
        callback.assert_called_with([T1])
        assert discovery.last_delivered == [T1]

    @pytest.mark.asyncio
    async def test_identical_results_deliver_once(self, inventory):
        """Test repeated identical results fire the callback once."""
        inventory.list_running_tasks.return_value = [T1, T2]
        callback = MagicMock()
        discovery = make_discovery(inventory, callback)

        for _ in range(5):
            await discovery.poll_once()

        callback.assert_called_once()

    @pytest.mark.asyncio
    async def test_empty_result_never_delivered(self, inventory):
        """Test an empty first result does not call back."""
        callback = MagicMock()
        discovery = make_discovery(inventory, callback)

        assert await discovery.poll_once() is False
        callback.assert_not_called()
        assert discovery.last_delivered == []

    @pytest.mark.asyncio
    async def test_health_change_is_delivered(self, inventory):
        """Test a health change on the same address counts as a change."""
        unhealthy = Task(arn="arn-1", address="10.0.0.1", health_status="UNHEALTHY", last_status="RUNNING")
        inventory.list_running_tasks.side_effect = [[T1], [unhealthy]]
        callback = MagicMock()
        discovery = make_discovery(inventory, callback)

        await discovery.poll_once()
        await discovery.poll_once()

        assert callback.call_count == 2

    @pytest.mark.asyncio
    async def test_async_callback_is_awaited(self, inventory):
        """Test coroutine callbacks are awaited."""
        inventory.list_running_tasks.return_value = [T1]
        callback = AsyncMock()
        discovery = make_discovery(inventory, callback)

        await discovery.poll_once()

        callback.assert_awaited_once_with([T1])

    @pytest.mark.asyncio
    async def test_callback_error_is_logged(self, inventory):
        """Test a failing callback is logged and does not raise."""
        inventory.list_running_tasks.return_value = [T1]
        logger = MagicMock()
        discovery = make_discovery(inventory, MagicMock(side_effect=RuntimeError("boom")), logger=logger)

        assert await discovery.poll_once() is True
        assert any("boom" in c.args[0] for c in logger.error.call_args_list)

    @pytest.mark.asyncio
    async def test_last_delivered_is_a_copy(self, inventory):
        """Test callers cannot mutate the delivered state."""
        inventory.list_running_tasks.return_value = [T1]
        discovery = make_discovery(inventory)
        await discovery.poll_once()

        discovery.last_delivered.append(T2)

        assert discovery.last_delivered == [T1]


class TestSourceSelection:
    """Tests for agent, forced single task and inventory selection."""

    @pytest.mark.asyncio
    async def test_agent_result_skips_inventory(self, inventory, agent):
        """Test a successful agent query is used as-is."""
        agent.query.return_value = [T2, T1]
        callback = MagicMock()
        discovery = make_discovery(inventory, callback, disable_agent_query=False, agent_client=agent)

        await discovery.poll_once()

        agent.query.assert_awaited_once_with("miniapi")
        inventory.list_running_tasks.assert_not_called()
        callback.assert_called_once_with([T1, T2])

    @pytest.mark.asyncio
    async def test_agent_failure_falls_back_same_cycle(self, inventory, agent):
        """Test agent failure falls back to the inventory within one cycle."""
        agent.query.side_effect = AgentQueryError("connection refused", url="http://agent/tasks/miniapi")
        inventory.list_running_tasks.return_value = [T1]
        callback = MagicMock()
        logger = MagicMock()
        discovery = make_discovery(
            inventory, callback, logger=logger, disable_agent_query=False, agent_client=agent
        )

        assert await discovery.poll_once() is True

        inventory.list_running_tasks.assert_awaited_once_with("demo", "miniapi")
        callback.assert_called_once_with([T1])
        assert any("query agent error" in c.args[0] for c in logger.error.call_args_list)

    @pytest.mark.asyncio
    async def test_undecodable_agent_body_falls_back(self, inventory):
        """Test an agent body that is not UTF-8 falls back to the inventory."""
        async def handler(request):
            return web.Response(status=200, body=b"[\xff\xfe]", content_type="application/json")

        app = web.Application()
        app.router.add_get("/tasks/{service}", handler)
        inventory.list_running_tasks.return_value = [T1]
        callback = MagicMock()

        async with test_utils.TestServer(app) as server:
            client = AgentQueryClient("demo", agent_url=str(server.make_url("/tasks")), logger=MagicMock())
            discovery = make_discovery(inventory, callback, disable_agent_query=False, agent_client=client)
            try:
                assert await discovery.poll_once() is True
            finally:
                await client.close()

        inventory.list_running_tasks.assert_awaited_once_with("demo", "miniapi")
        callback.assert_called_once_with([T1])

    @pytest.mark.asyncio
    async def test_malformed_agent_entry_falls_back(self, inventory):
        """Test an agent entry with a non-string address falls back to the inventory."""
        async def handler(request):
            return web.json_response([{"address": "10.0.0.9"}, {"address": 5}])

        app = web.Application()
        app.router.add_get("/tasks/{service}", handler)
        inventory.list_running_tasks.return_value = [T1]
        callback = MagicMock()

        async with test_utils.TestServer(app) as server:
            client = AgentQueryClient("demo", agent_url=str(server.make_url("/tasks")), logger=MagicMock())
            discovery = make_discovery(inventory, callback, disable_agent_query=False, agent_client=client)
            try:
                assert await discovery.poll_once() is True
            finally:
                await client.close()

        inventory.list_running_tasks.assert_awaited_once_with("demo", "miniapi")
        callback.assert_called_once_with([T1])

    @pytest.mark.asyncio
    async def test_agent_empty_result_does_not_fall_back(self, inventory, agent):
        """Test an empty agent answer is a valid answer."""
        inventory.list_running_tasks.return_value = [T1]
        callback = MagicMock()
        discovery = make_discovery(inventory, callback, disable_agent_query=False, agent_client=agent)

        assert await discovery.poll_once() is False
        inventory.list_running_tasks.assert_not_called()
        callback.assert_not_called()

    @pytest.mark.asyncio
    async def test_agent_addressless_tasks_dropped(self, inventory, agent):
        """Test agent tasks without address are not delivered."""
        agent.query.return_value = [T1, Task(arn="arn-x", address="")]
        callback = MagicMock()
        discovery = make_discovery(inventory, callback, disable_agent_query=False, agent_client=agent)

        await discovery.poll_once()

        callback.assert_called_once_with([T1])

    @pytest.mark.asyncio
    async def test_disabled_agent_not_queried(self, inventory, agent):
        """Test a disabled agent is never queried."""
        discovery = make_discovery(inventory, disable_agent_query=True, agent_client=agent)

        await discovery.poll_once()

        agent.query.assert_not_called()
        inventory.list_running_tasks.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_forced_single_task(self, inventory):
        """Test forced single task bypasses the inventory."""
        callback = MagicMock()
        discovery = make_discovery(inventory, callback, force_single_task="127.0.0.1")

        await discovery.poll_once()

        inventory.list_running_tasks.assert_not_called()
        callback.assert_called_once_with(
            [Task(arn=MOCKED_SINGLE_TASK_ARN, address="127.0.0.1", health_status="UNKNOWN", last_status="RUNNING")]
        )

    @pytest.mark.asyncio
    async def test_forced_single_task_after_agent_failure(self, inventory, agent):
        """Test forced single task is the fallback when the agent fails."""
        agent.query.side_effect = AgentQueryError("bad status: oops", status=500)
        callback = MagicMock()
        discovery = make_discovery(
            inventory, callback, force_single_task="127.0.0.1",
            disable_agent_query=False, agent_client=agent,
        )

        await discovery.poll_once()

        inventory.list_running_tasks.assert_not_called()
        assert callback.call_args.args[0][0].address == "127.0.0.1"

    @pytest.mark.asyncio
    async def test_inventory_error_is_logged(self, inventory):
        """Test inventory errors count as zero tasks."""
        inventory.list_running_tasks.side_effect = InventoryQueryError("denied")
        logger = MagicMock()
        discovery = make_discovery(inventory, logger=logger)

        assert await discovery.list_tasks() == []
        logger.error.assert_called_once()


class TestLifecycle:
    """Tests for start, stop and wait."""

    @pytest.mark.asyncio
    async def test_run_until_stopped(self, inventory):
        """Test the loop delivers and ends after stop."""
        inventory.list_running_tasks.return_value = [T1]
        delivered = asyncio.Event()
        discovery = make_discovery(inventory, lambda tasks: delivered.set(), interval=0.01)

        await discovery.start()
        await asyncio.wait_for(delivered.wait(), timeout=2)
        discovery.stop()
        await asyncio.wait_for(discovery.wait(), timeout=2)

        assert discovery.stopped
        assert discovery.last_delivered == [T1]

    @pytest.mark.asyncio
    async def test_loop_survives_errors(self, inventory):
        """Test the loop keeps polling after failures."""
        polled = asyncio.Event()
        calls = []

        async def list_running_tasks(cluster, service):
            calls.append(service)
            if len(calls) >= 3:
                polled.set()
            raise InventoryQueryError("throttled")

        inventory.list_running_tasks = list_running_tasks
        discovery = make_discovery(inventory, interval=0.01)

        await discovery.start()
        await asyncio.wait_for(polled.wait(), timeout=2)
        discovery.stop()
        await discovery.wait()

        assert len(calls) >= 3

    @pytest.mark.asyncio
    async def test_stop_wakes_sleep(self, inventory):
        """Test stop ends the loop without waiting for the interval."""
        polled = asyncio.Event()
        inventory.list_running_tasks.side_effect = lambda c, s: polled.set() or []
        discovery = make_discovery(inventory, interval=3600)

        await discovery.start()
        await asyncio.wait_for(polled.wait(), timeout=2)
        discovery.stop()

        await asyncio.wait_for(discovery.wait(), timeout=2)

    @pytest.mark.asyncio
    async def test_stop_twice_is_harmless(self, inventory):
        """Test a second stop only logs a warning."""
        logger = MagicMock()
        discovery = make_discovery(inventory, logger=logger, interval=0.01)
        await discovery.start()

        discovery.stop()
        discovery.stop()
        await discovery.wait()

        assert discovery.stopped
        logger.warning.assert_called_once()

    @pytest.mark.asyncio
    async def test_stop_before_start(self, inventory):
        """Test a Discovery stopped before start never polls."""
        discovery = make_discovery(inventory)
        discovery.stop()

        await discovery.start()
        await discovery.wait()

        inventory.list_running_tasks.assert_not_called()

    @pytest.mark.asyncio
    async def test_start_resolves_cluster(self, inventory):
        """Test an empty cluster is resolved from task metadata."""
        discovery = make_discovery(inventory, cluster="")
        discovery.stop()

        with patch(
            "ecs_task_discovery.discovery.engine.find_cluster_name",
            AsyncMock(return_value="prod"),
        ) as find:
            await discovery.start()
            await discovery.wait()

        find.assert_awaited_once()
        assert discovery.cluster == "prod"

    @pytest.mark.asyncio
    async def test_shared_options_left_unchanged(self, inventory):
        """Test starting leaves the caller's options untouched."""
        options = DiscoveryOptions(
            service_name="miniapi",
            callback=MagicMock(),
            inventory=inventory,
            interval=-1,
            disable_agent_query=True,
        )
        discovery = Discovery(options, logger=MagicMock())
        discovery.stop()

        with patch(
            "ecs_task_discovery.discovery.engine.find_cluster_name",
            AsyncMock(return_value="prod"),
        ):
            await discovery.start()
            await discovery.wait()

        assert discovery.cluster == "prod"
        assert options.cluster == ""
        assert options.interval == -1

    @pytest.mark.asyncio
    async def test_start_builds_and_closes_agent_client(self, inventory):
        """Test the agent client is built for the cluster and closed on wait."""
        client = MagicMock()
        client.query = AsyncMock(return_value=[T1])
        client.close = AsyncMock()
        discovery = make_discovery(inventory, disable_agent_query=False, agent_url="http://agent:8080/tasks")
        discovery.stop()

        with patch(
            "ecs_task_discovery.discovery.engine.AgentQueryClient", return_value=client
        ) as factory:
            await discovery.start()
            await discovery.wait()

        assert factory.call_args.kwargs["cluster"] == "demo"
        assert factory.call_args.kwargs["agent_url"] == "http://agent:8080/tasks"
        client.close.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_injected_agent_not_closed(self, inventory, agent):
        """Test a caller-supplied agent client is left open."""
        discovery = make_discovery(inventory, disable_agent_query=False, agent_client=agent)
        discovery.stop()

        await discovery.start()
        await discovery.wait()

        agent.close.assert_not_called()

    @pytest.mark.asyncio
    async def test_context_manager(self, inventory):
        """Test async with starts and stops the loop."""
        inventory.list_running_tasks.return_value = [T1]
        delivered = asyncio.Event()

        async with make_discovery(inventory, lambda tasks: delivered.set(), interval=0.01) as discovery:
            await asyncio.wait_for(delivered.wait(), timeout=2)

        assert discovery.stopped
