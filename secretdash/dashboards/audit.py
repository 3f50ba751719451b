"""
Secret Access Audit Dashboard.

Records every secret read performed by the dashboard and reports access
statistics, frequency windows and trends.

Author: SecretDash Team
Date: 2026-09-08
"""

import logging
import time
from collections import Counter, deque
from datetime import datetime, timedelta
from typing import Any, Deque, Dict, List, Optional

from fastapi import APIRouter, status
from fastapi.responses import JSONResponse

from ..core.config_manager import SecretStrategy
from ..exceptions import SecretAccessError
from .base import Dashboard, DashboardIdentity, Panel, iso_timestamp, utc_now

logger = logging.getLogger(__name__)

MAX_LOG_ENTRIES = 1000

FREQUENCY_WINDOWS = {
    "last-minute": timedelta(minutes=1),
    "last-5-minutes": timedelta(minutes=5),
    "last-hour": timedelta(hours=1),
    "last-day": timedelta(days=1),
}


class AuditDashboard(Dashboard):
    """Dashboard that keeps an in-memory audit trail of secret reads."""

    identity = DashboardIdentity(
        name="audit",
        app_name="Hello World - Secret Audit Dashboard",
        method="Secret Audit Dashboard",
        strategy=SecretStrategy.AZURE_API,
        description="Access log, per-secret statistics and access trends",
    )

    def __init__(self, *args: Any, **kwargs: Any):
        super().__init__(*args, **kwargs)
        self._log: Deque[Dict[str, Any]] = deque()
        self._stats: Dict[str, Dict[str, Any]] = {}
        self._logged: Counter = Counter()

    def record_access(self, secret_name: str, when: Optional[datetime] = None) -> Dict[str, Any]:
        """Add a READ entry to the audit log (newest first)."""
        when = when or utc_now()
        entry = {
            "timestamp": iso_timestamp(when),
            "secretName": secret_name,
            "action": "READ",
            "source": "webapp",
            "_at": when,
        }
        if len(self._log) >= MAX_LOG_ENTRIES:
            self._evict_oldest()
        self._log.appendleft(entry)
        self._logged[secret_name] += 1

        stats = self._stats.setdefault(
            secret_name,
            {"name": secret_name, "accessCount": 0, "firstAccess": when, "lastAccess": when},
        )
        stats["accessCount"] += 1
        stats["lastAccess"] = when
        return entry

    def _evict_oldest(self) -> None:
        # Stats live only as long as the secret has an entry in the log
        name = self._log.pop()["secretName"]
        self._logged[name] -= 1
        if not self._logged[name]:
            del self._logged[name]
            del self._stats[name]

    async def fetch_secret(self, name: str) -> str:
        self.record_access(name)
        return await super().fetch_secret(name)

    @property
    def access_log(self) -> List[Dict[str, Any]]:
        """Log entries without internal fields, newest first."""
        return [{k: v for k, v in entry.items() if not k.startswith("_")} for entry in self._log]

    def access_frequency(self, now: Optional[datetime] = None) -> Dict[str, int]:
        """Number of accesses within each window ending at ``now``."""
        now = now or utc_now()
        return {
            window: sum(1 for entry in self._log if entry["_at"] >= now - span)
            for window, span in FREQUENCY_WINDOWS.items()
        }

    def access_trends(self, now: Optional[datetime] = None) -> Optional[Dict[str, Any]]:
        """Compare the last hour's access rate with the rate before it.

        Returns:
            Trend dict, or None with fewer than two log entries
        """
        if len(self._log) < 2:
            return None

        now = now or utc_now()
        hour_ago = now - timedelta(hours=1)
        recent = [e for e in self._log if e["_at"] >= hour_ago]
        older = [e for e in self._log if e["_at"] < hour_ago]

        current_rate = len(recent) / 60
        if older:
            minutes = max((now - older[0]["_at"]).total_seconds() / 60, 1)
            previous_rate = len(older) / minutes
        else:
            previous_rate = 0.0

        if current_rate > previous_rate:
            trend = "increasing"
        elif current_rate < previous_rate:
            trend = "decreasing"
        else:
            trend = "stable"

        return {
            "currentRate": round(current_rate, 2),
            "previousRate": round(previous_rate, 2),
            "trend": trend,
            "recentCount": len(recent),
        }

    def top_secrets(self, limit: int = 10) -> List[Dict[str, Any]]:
        ranked = sorted(self._stats.values(), key=lambda s: s["accessCount"], reverse=True)
        return [
            {
                "name": s["name"],
                "accessCount": s["accessCount"],
                "firstAccess": iso_timestamp(s["firstAccess"]),
                "lastAccess": iso_timestamp(s["lastAccess"]),
            }
            for s in ranked[:limit]
        ]

    def access_summary(self, now: Optional[datetime] = None) -> Dict[str, Any]:
        now = now or utc_now()
        return {
            "totalAccesses": len(self._log),
            "uniqueSecrets": len(self._stats),
            "uptime": int(time.time() - self.started_at),
            "recentAccesses": self.access_log[:50],
            "topSecrets": self.top_secrets(),
            "accessFrequency": self.access_frequency(now),
            "accessTrends": self.access_trends(now),
        }

    def inactive_secrets(self, days: int = 90) -> List[str]:
        cutoff = utc_now() - timedelta(days=days)
        return [name for name, s in self._stats.items() if s["lastAccess"] < cutoff]

    def register_routes(self, router: APIRouter) -> None:

        @router.get("/api/audit")
        async def audit() -> Dict[str, Any]:
            return self.access_summary()

        @router.get("/api/logs")
        async def logs() -> List[Dict[str, Any]]:
            return self.access_log

        @router.get("/api/access/{secret_name}")
        async def access(secret_name: str):
            """Read a secret once to demonstrate audit logging."""
            try:
                await self.fetch_secret(secret_name)
            except SecretAccessError as e:
                logger.error(f"Audited access to '{secret_name}' failed: {e.message}")
                return JSONResponse(
                    status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                    content={"success": False, "error": e.message},
                )
            return {
                "success": True,
                "message": f"Accessed secret: {secret_name}",
                "timestamp": iso_timestamp(),
            }

    async def page_panels(self) -> List[Panel]:
        summary = self.access_summary()
        trends = summary["accessTrends"]
        rows = [
            ("Total Accesses", summary["totalAccesses"]),
            ("Unique Secrets", summary["uniqueSecrets"]),
            ("Uptime", _format_uptime(summary["uptime"])),
        ]
        if trends:
            rows.append(("Trend", f"{trends['trend']} ({trends['currentRate']}/min)"))

        panels = [
            Panel(title="Access Summary", rows=rows),
            Panel(
                title="Access Frequency",
                rows=[(window.replace("-", " ").title(), count)
                      for window, count in summary["accessFrequency"].items()],
            ),
            Panel(
                title="Top Secrets",
                columns=["Secret", "Accesses", "Last Access"],
                table=[[s["name"], s["accessCount"], s["lastAccess"]] for s in summary["topSecrets"]],
            ),
            Panel(
                title="Recent Access Log",
                columns=["Timestamp", "Secret", "Action", "Source"],
                table=[[e["timestamp"], e["secretName"], e["action"], e["source"]]
                       for e in summary["recentAccesses"][:20]],
            ),
        ]

        inactive = self.inactive_secrets()
        if inactive:
            panels.insert(1, Panel(
                title="Inactive Secrets",
                note="Not accessed in 90+ days; candidates for cleanup or review.",
                items=inactive[:10],
                level="warning",
            ))
        return panels


def _format_uptime(seconds: int) -> str:
    hours, remainder = divmod(seconds, 3600)
    minutes, secs = divmod(remainder, 60)
    return f"{hours}h {minutes}m {secs}s"
