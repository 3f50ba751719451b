"""
Tests for the secret access audit dashboard.
"""

from datetime import datetime, timedelta, timezone

import pytest

from secretdash.dashboards import AuditDashboard
from secretdash.dashboards.audit import MAX_LOG_ENTRIES
from secretdash.exceptions import SecretNotFoundError

NOW = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def audit(config, keyvault, metrics):
    return AuditDashboard(config, keyvault=keyvault, metrics=metrics, environ={})


class TestAccessLog:
    """Test recording secret reads."""

    def test_record_access(self, audit):
        """Test entries are newest first without internal fields."""
        audit.record_access("api-key", NOW - timedelta(minutes=2))
        audit.record_access("database-password", NOW)

        log = audit.access_log

        assert [e["secretName"] for e in log] == ["database-password", "api-key"]
        assert log[0] == {
            "timestamp": "2024-06-01T12:00:00.000Z",
            "secretName": "database-password",
            "action": "READ",
            "source": "webapp",
        }

    def test_log_is_bounded(self, audit):
        """Test the oldest entries are dropped beyond the limit."""
        for i in range(MAX_LOG_ENTRIES + 5):
            audit.record_access(f"secret-{i}", NOW)

        assert len(audit.access_log) == MAX_LOG_ENTRIES
        assert audit.access_log[0]["secretName"] == f"secret-{MAX_LOG_ENTRIES + 4}"

    def test_stats_follow_the_log(self, audit):
        """Test statistics are dropped with a secret's last log entry."""
        audit.record_access("api-key", NOW)
        audit.record_access("database-password", NOW)
        for i in range(MAX_LOG_ENTRIES - 1):
            audit.record_access(f"unknown-{i}", NOW)

        summary = audit.access_summary(NOW)

        assert summary["totalAccesses"] == MAX_LOG_ENTRIES
        assert summary["uniqueSecrets"] == MAX_LOG_ENTRIES
        assert "api-key" not in {s["name"] for s in audit.top_secrets(limit=MAX_LOG_ENTRIES)}
        assert "database-password" in {s["name"] for s in audit.top_secrets(limit=MAX_LOG_ENTRIES)}

    def test_stats_kept_while_logged(self, audit):
        """Test a secret read again keeps its cumulative count."""
        audit.record_access("api-key", NOW)
        for i in range(MAX_LOG_ENTRIES - 1):
            audit.record_access("api-key" if i % 2 else f"unknown-{i}", NOW)
        audit.record_access("database-password", NOW)

        counts = {s["name"]: s["accessCount"] for s in audit.top_secrets(limit=MAX_LOG_ENTRIES)}

        assert counts["api-key"] == MAX_LOG_ENTRIES // 2

    @pytest.mark.asyncio
    async def test_fetch_records_each_read_once(self, audit):
        """Test every secret read through the dashboard is logged once."""
        await audit.get_secrets()

        assert len(audit.access_log) == 3
        assert {e["secretName"] for e in audit.access_log} == set(audit.secret_names)

    @pytest.mark.asyncio
    async def test_failed_read_is_still_logged(self, audit):
        """Test a failed read attempt is part of the trail."""
        with pytest.raises(SecretNotFoundError):
            await audit.fetch_secret("nope")

        assert audit.access_log[0]["secretName"] == "nope"


class TestStatistics:
    """Test access statistics."""

    def test_frequency_windows(self, audit):
        """Test counts per time window."""
        for delta in (timedelta(seconds=30), timedelta(minutes=3), timedelta(minutes=30), timedelta(hours=5)):
            audit.record_access("api-key", NOW - delta)

        assert audit.access_frequency(NOW) == {
            "last-minute": 1,
            "last-5-minutes": 2,
            "last-hour": 3,
            "last-day": 4,
        }

    def test_trends_need_two_entries(self, audit):
        """Test no trend is reported with a single access."""
        audit.record_access("api-key", NOW)

        assert audit.access_trends(NOW) is None

    def test_trend_increasing(self, audit):
        """Test the recent rate is compared with the older rate."""
        audit.record_access("api-key", NOW - timedelta(hours=2))
        audit.record_access("api-key", NOW - timedelta(minutes=10))

        trends = audit.access_trends(NOW)

        assert trends == {"currentRate": 0.02, "previousRate": 0.01, "trend": "increasing", "recentCount": 1}

    def test_trend_decreasing(self, audit):
        """Test a quiet last hour."""
        for minutes in (90, 80, 70):
            audit.record_access("api-key", NOW - timedelta(minutes=minutes))

        assert audit.access_trends(NOW)["trend"] == "decreasing"

    def test_top_secrets(self, audit):
        """Test secrets are ranked by access count."""
        for name in ("api-key", "database-password", "api-key"):
            audit.record_access(name, NOW)

        top = audit.top_secrets()

        assert [s["name"] for s in top] == ["api-key", "database-password"]
        assert top[0]["accessCount"] == 2

    def test_summary(self, audit):
        """Test the /api/audit body."""
        audit.record_access("api-key", NOW)

        summary = audit.access_summary(NOW)

        assert summary["totalAccesses"] == 1
        assert summary["uniqueSecrets"] == 1
        assert summary["uptime"] >= 0
        assert summary["accessTrends"] is None
        assert len(summary["recentAccesses"]) == 1

    def test_inactive_secrets(self, audit):
        """Test secrets not read for 90 days are inactive."""
        audit.record_access("old-secret", datetime.now(timezone.utc) - timedelta(days=100))
        audit.record_access("api-key")

        assert audit.inactive_secrets() == ["old-secret"]

    @pytest.mark.asyncio
    async def test_page_panels(self, audit):
        """Test the page includes the inactive secrets panel when needed."""
        audit.record_access("old-secret", datetime.now(timezone.utc) - timedelta(days=100))

        titles = [p.title for p in await audit.page_panels()]

        assert titles[:2] == ["Access Summary", "Inactive Secrets"]
        assert "Recent Access Log" in titles
