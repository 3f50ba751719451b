"""
Dashboard Metrics Collection

Prometheus metrics for secret retrieval, cache behaviour and rotations.

Author: SecretDash Team
Date: 2026-09-04
"""

import time
from contextlib import contextmanager
from typing import Iterator, Optional

from prometheus_client import (
    Counter,
    Histogram,
    CollectorRegistry,
    generate_latest,
    CONTENT_TYPE_LATEST,
)


class DashboardMetrics:
    """
    Prometheus metrics collector for dashboard secret access.

    Each instance owns a registry so that several dashboards (or test runs)
    can coexist in one process.
    """

    def __init__(self, registry: Optional[CollectorRegistry] = None):
        """
        Initialize metrics collectors.

        Args:
            registry: Prometheus registry (a fresh one if None)
        """
        self.registry = registry if registry is not None else CollectorRegistry()

        self.secret_fetch_total = Counter(
            'secretdash_secret_fetch_total',
            'Secret fetch attempts by strategy and outcome',
            ['strategy', 'outcome'],
            registry=self.registry
        )

        self.cache_hits_total = Counter(
            'secretdash_cache_hits_total',
            'Secret requests served from the in-memory cache',
            registry=self.registry
        )

        self.secret_fetch_seconds = Histogram(
            'secretdash_secret_fetch_seconds',
            'Time to fetch the monitored secrets',
            ['strategy'],
            buckets=(0.001, 0.005, 0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0),
            registry=self.registry
        )

        self.rotations_total = Counter(
            'secretdash_rotations_total',
            'Secret rotations observed or performed',
            ['secret', 'trigger'],
            registry=self.registry
        )

    def track_fetch(self, strategy: str, outcome: str) -> None:
        """Count one secret fetch ("success" or "error")."""
        self.secret_fetch_total.labels(strategy=strategy, outcome=outcome).inc()

    def track_cache_hit(self) -> None:
        self.cache_hits_total.inc()

    def track_rotation(self, secret: str, trigger: str) -> None:
        """Count a rotation ("detected" or "manual")."""
        self.rotations_total.labels(secret=secret, trigger=trigger).inc()

    @contextmanager
    def time_fetch(self, strategy: str) -> Iterator[None]:
        """Observe the duration of the enclosed block."""
        start = time.perf_counter()
        try:
            yield
        finally:
            self.secret_fetch_seconds.labels(strategy=strategy).observe(time.perf_counter() - start)

    def generate_metrics(self) -> bytes:
        """
        Generate Prometheus metrics output.

        Returns:
            Metrics in Prometheus text format
        """
        return generate_latest(self.registry)

    def get_content_type(self) -> str:
        return CONTENT_TYPE_LATEST

