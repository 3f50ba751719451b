"""
Secret Expiration Monitor.

Classifies every enabled vault secret by time to expiry and flags
never-expiring secrets that have not been updated for over a year.

Author: SecretDash Team
Date: 2026-09-10
"""

import logging
import time
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from fastapi import APIRouter

from ..core.config_manager import SecretStrategy
from ..keyvault.models import SecretProperties
from .base import Dashboard, DashboardIdentity, Panel, iso_timestamp, utc_now
from .policy import days_between

logger = logging.getLogger(__name__)

WARNING_THRESHOLDS = {"critical": 7, "warning": 30, "info": 90}
STALE_AFTER_DAYS = 365
CHECK_INTERVAL_SECONDS = 60


def classify_expiration(props: SecretProperties, now: Optional[datetime] = None) -> Dict[str, Any]:
    """
    Build the expiration record for one secret.

    Args:
        props: Secret metadata
        now: Reference time (default: current UTC time)

    Returns:
        Record with expiry, age and status fields
    """
    now = now or utc_now()
    days_left = days_between(now, props.expires_on) if props.expires_on else None
    age_days = days_between(props.created_on, now) if props.created_on else None
    last_updated_days = days_between(props.updated_on, now) if props.updated_on else None

    status = "valid"
    status_class = "success"
    needs_attention = False
    recommendation = ""

    if days_left is not None:
        if days_left < WARNING_THRESHOLDS["critical"]:
            status, status_class, needs_attention = "critical", "danger", True
            recommendation = "URGENT: Secret expires soon!"
        elif days_left < WARNING_THRESHOLDS["warning"]:
            status, status_class, needs_attention = "warning", "warning", True
            recommendation = "Secret expires within 30 days"
        elif days_left < WARNING_THRESHOLDS["info"]:
            status, status_class = "info", "info"
            recommendation = "Expires within 90 days"
    elif last_updated_days is not None and last_updated_days > STALE_AFTER_DAYS:
        needs_attention = True
        recommendation = "Consider setting expiration date"

    return {
        "name": props.name,
        "expiresOn": iso_timestamp(props.expires_on) if props.expires_on else "Never",
        "daysUntilExpiration": days_left,
        "status": status,
        "statusClass": status_class,
        "version": props.version,
        "enabled": props.enabled,
        "createdOn": iso_timestamp(props.created_on) if props.created_on else None,
        "updatedOn": iso_timestamp(props.updated_on) if props.updated_on else None,
        "ageDays": age_days,
        "lastUpdatedDays": last_updated_days,
        "needsAttention": needs_attention,
        "recommendation": recommendation,
    }


def _sort_key(record: Dict[str, Any]):
    days_left = record["daysUntilExpiration"]
    stale_days = record["lastUpdatedDays"]
    return (
        not record["needsAttention"],
        days_left is None,
        days_left if days_left is not None else 0,
        -stale_days if stale_days is not None else 1,
        record["name"],
    )


class ExpirationDashboard(Dashboard):
    """Dashboard listing vault secrets by expiration urgency."""

    identity = DashboardIdentity(
        name="expiration-monitor",
        app_name="Hello World - Secret Expiration Monitor",
        method="Secret Expiration Monitor",
        strategy=SecretStrategy.AZURE_API,
        description="Expiry dates, ages and stale never-expiring secrets",
    )

    requires_keyvault = True
    show_live_secrets = False

    def __init__(self, *args: Any, **kwargs: Any):
        super().__init__(*args, **kwargs)
        self._records: List[Dict[str, Any]] = []
        self._last_check: Optional[float] = None

    async def check_expiration(self) -> List[Dict[str, Any]]:
        """Return expiration records, refreshed at most once a minute."""
        if self._records and self._last_check and time.time() - self._last_check < CHECK_INTERVAL_SECONDS:
            return self._records

        client = self.require_keyvault()
        properties = await client.list_secret_properties()
        now = utc_now()
        records = [classify_expiration(p, now) for p in properties if p.enabled]
        records.sort(key=_sort_key)

        self._records = records
        self._last_check = time.time()
        logger.info(f"Checked expiration of {len(records)} secrets")
        return records

    def register_routes(self, router: APIRouter) -> None:

        @router.get("/api/expiration")
        async def expiration() -> Dict[str, Any]:
            records = await self.check_expiration()
            return {
                "secrets": records,
                "lastCheck": iso_timestamp(datetime.fromtimestamp(self._last_check, tz=timezone.utc)),
            }

    async def page_panels(self) -> List[Panel]:
        records = await self.check_expiration()
        counts = {level: sum(1 for r in records if r["status"] == level)
                  for level in ("critical", "warning", "info")}
        attention = [r for r in records if r["needsAttention"]]

        panels = [
            Panel(
                title="Expiration Summary",
                rows=[
                    ("Critical (<7 days)", counts["critical"]),
                    ("Warning (<30 days)", counts["warning"]),
                    ("Info (<90 days)", counts["info"]),
                    ("Never Expire", sum(1 for r in records if r["daysUntilExpiration"] is None)),
                    ("Needs Attention", len(attention)),
                ],
                level="danger" if counts["critical"] else "warning" if attention else "success",
            ),
            Panel(
                title="Secrets",
                columns=["Secret", "Status", "Expires", "Days Left", "Last Updated (days)", "Recommendation"],
                table=[
                    [r["name"], r["status"], r["expiresOn"],
                     r["daysUntilExpiration"] if r["daysUntilExpiration"] is not None else "-",
                     r["lastUpdatedDays"] if r["lastUpdatedDays"] is not None else "-",
                     r["recommendation"]]
                    for r in records
                ],
            ),
        ]
        return panels
