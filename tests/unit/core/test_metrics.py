"""
Tests for dashboard Prometheus metrics.
"""

import pytest
from prometheus_client import CollectorRegistry

from secretdash.core.metrics import DashboardMetrics


class TestDashboardMetrics:
    """Test suite for DashboardMetrics."""

    def test_fetch_counter(self, metrics):
        """Test fetch attempts are counted by strategy and outcome."""
        metrics.track_fetch("csi", "success")
        metrics.track_fetch("csi", "success")
        metrics.track_fetch("azure-api", "error")

        registry = metrics.registry
        assert registry.get_sample_value(
            "secretdash_secret_fetch_total", {"strategy": "csi", "outcome": "success"}
        ) == 2.0
        assert registry.get_sample_value(
            "secretdash_secret_fetch_total", {"strategy": "azure-api", "outcome": "error"}
        ) == 1.0

    def test_cache_hits(self, metrics):
        """Test cache hits are counted."""
        metrics.track_cache_hit()

        assert metrics.registry.get_sample_value("secretdash_cache_hits_total") == 1.0

    def test_rotations(self, metrics):
        """Test rotations are counted by secret and trigger."""
        metrics.track_rotation("api-key", "manual")

        assert metrics.registry.get_sample_value(
            "secretdash_rotations_total", {"secret": "api-key", "trigger": "manual"}
        ) == 1.0

    def test_time_fetch_observes_on_error(self, metrics):
        """Test the duration is observed even if the block raises."""
        with pytest.raises(RuntimeError):
            with metrics.time_fetch("environment"):
                raise RuntimeError("boom")

        assert metrics.registry.get_sample_value(
            "secretdash_secret_fetch_seconds_count", {"strategy": "environment"}
        ) == 1.0

    def test_generate_metrics(self, metrics):
        """Test Prometheus text output."""
        metrics.track_fetch("csi", "success")

        output = metrics.generate_metrics().decode("utf-8")

        assert "secretdash_secret_fetch_total" in output
        assert metrics.get_content_type().startswith("text/plain")

    def test_separate_registries(self):
        """Test two collectors do not share state."""
        first = DashboardMetrics()
        second = DashboardMetrics(registry=CollectorRegistry())
        first.track_cache_hit()

        assert second.registry.get_sample_value("secretdash_cache_hits_total") == 0.0
