# Copyright 2026 Firefly Software Solutions Inc
# SPDX-License-Identifier: Apache-2.0

"""Unit tests for peer metrics."""

from prometheus_client import CollectorRegistry

from ecs_task_discovery.peering.metrics import PeerMetrics


class TestPeerMetrics:
    """Tests for PeerMetrics."""

    def test_no_registry_records_nothing(self):
        """Test metrics are disabled without a registry."""
        metrics = PeerMetrics("miniapi")

        metrics.update(3)

        assert metrics.peers is None
        assert metrics.events is None

    def test_update(self):
        """Test events count up and peers track the latest size."""
        registry = CollectorRegistry()
        metrics = PeerMetrics("miniapi", registry)

        metrics.update(3)
        metrics.update(2)

        assert registry.get_sample_value("miniapi_peerdiscovery_events_total") == 2
        assert registry.get_sample_value("miniapi_peerdiscovery_peers") == 2

    def test_empty_namespace(self):
        """Test metric names without a namespace."""
        registry = CollectorRegistry()
        PeerMetrics(registry=registry).update(1)

        assert registry.get_sample_value("peerdiscovery_peers") == 1

    def test_separate_registries(self):
        """Test two adapters do not collide when given separate registries."""
        first = CollectorRegistry()
        second = CollectorRegistry()

        PeerMetrics("miniapi", first).update(1)
        PeerMetrics("miniapi", second).update(4)

        assert first.get_sample_value("miniapi_peerdiscovery_peers") == 1
        assert second.get_sample_value("miniapi_peerdiscovery_peers") == 4
