"""
Secret Validation Checker.

Reads every secret that has a format rule, validates its value and
summarises the overall health of the secret set.

Author: SecretDash Team
Date: 2026-09-14
"""

import logging
import time
from collections import Counter
from typing import Any, Dict, List, Optional

from fastapi import APIRouter

from ..core.config_manager import SecretStrategy
from ..exceptions import SecretAccessError
from .base import Dashboard, DashboardIdentity, Panel, iso_timestamp
from .policy import DEFAULT_RULES, SecretRule, recommend_fix, validate_format

logger = logging.getLogger(__name__)

VALIDATION_INTERVAL_SECONDS = 60
COMMON_ISSUES_LIMIT = 5


def health_summary(results: Dict[str, Dict[str, Any]]) -> Dict[str, Any]:
    """
    Aggregate per-secret validation results.

    Args:
        results: Mapping of secret name to health check result

    Returns:
        Counts, health percentage and the most common issues
    """
    values = list(results.values())
    total = len(values)
    healthy = sum(1 for r in values if r["accessible"] and r["formatValid"])

    issues: Counter = Counter()
    for r in values:
        if r["validationResult"]:
            issues.update(r["validationResult"]["issues"])

    return {
        "total": total,
        "accessible": sum(1 for r in values if r["accessible"]),
        "formatValid": sum(1 for r in values if r["formatValid"]),
        "healthy": healthy,
        "unhealthy": total - healthy,
        "healthPercentage": round(healthy / total * 100) if total else 0,
        "withIssues": sum(1 for r in values if r["validationResult"] and r["validationResult"]["issues"]),
        "withWarnings": sum(1 for r in values if r["validationResult"] and r["validationResult"]["warnings"]),
        "commonIssues": [
            {"text": text, "count": count}
            for text, count in issues.most_common(COMMON_ISSUES_LIMIT)
        ],
    }


def _describe_rule(rule: SecretRule) -> List[str]:
    lines = []
    if rule.min_length:
        lines.append(f"Min length: {rule.min_length} chars")
    if rule.max_length:
        lines.append(f"Max length: {rule.max_length} chars")
    if rule.require_uppercase:
        lines.append("Requires uppercase")
    if rule.require_lowercase:
        lines.append("Requires lowercase")
    if rule.require_numbers:
        lines.append("Requires numbers")
    if rule.require_special:
        lines.append("Requires special chars")
    if rule.pattern:
        lines.append(f"Pattern: {rule.pattern}")
    return lines


class ValidationDashboard(Dashboard):
    """Dashboard validating secret values against format rules."""

    identity = DashboardIdentity(
        name="validation-checker",
        app_name="Hello World - Secret Validation Checker",
        method="Secret Validation Checker",
        strategy=SecretStrategy.AZURE_API,
        description="Accessibility and format checks per secret",
    )

    show_live_secrets = False

    def __init__(self, *args: Any, rules: Optional[Dict[str, SecretRule]] = None, **kwargs: Any):
        super().__init__(*args, **kwargs)
        self.rules = rules if rules is not None else DEFAULT_RULES
        self._results: Dict[str, Dict[str, Any]] = {}
        self._validated_at = 0.0

    async def check_secret_health(self, secret_name: str) -> Dict[str, Any]:
        """Read one secret and validate its format; read errors are reported, not raised."""
        result: Dict[str, Any] = {
            "name": secret_name,
            "accessible": False,
            "secretExists": False,
            "formatValid": False,
            "validationResult": None,
            "error": None,
            "lastChecked": iso_timestamp(),
        }
        try:
            value = await self.fetch_secret(secret_name)
        except SecretAccessError as e:
            result["error"] = e.message
            return result

        result["accessible"] = True
        result["secretExists"] = bool(value)
        if value:
            validation = validate_format(secret_name, value, self.rules)
            result["validationResult"] = validation
            result["formatValid"] = validation["valid"]
        return result

    async def validate_all(self) -> Dict[str, Dict[str, Any]]:
        """Check every rule-bearing secret, reusing results for a minute."""
        if self._results and time.time() - self._validated_at < VALIDATION_INTERVAL_SECONDS:
            return self._results

        results = {name: await self.check_secret_health(name) for name in self.rules}
        self._results = results
        self._validated_at = time.time()

        unhealthy = [name for name, r in results.items() if not (r["accessible"] and r["formatValid"])]
        if unhealthy:
            logger.warning(f"Secrets failing validation: {', '.join(unhealthy)}")
        return results

    def register_routes(self, router: APIRouter) -> None:

        @router.get("/api/validate")
        async def validate_all() -> Dict[str, Dict[str, Any]]:
            return await self.validate_all()

        @router.get("/api/validation-summary")
        async def validation_summary() -> Dict[str, Any]:
            return health_summary(await self.validate_all())

        @router.get("/api/validate/{secret_name}")
        async def validate_one(secret_name: str) -> Dict[str, Any]:
            return await self.check_secret_health(secret_name)

    async def page_panels(self) -> List[Panel]:
        results = await self.validate_all()
        summary = health_summary(results)
        pct = summary["healthPercentage"]

        panels = [
            Panel(
                title=f"Overall Health: {pct}%",
                rows=[
                    ("Healthy", f"{summary['healthy']}/{summary['total']}"),
                    ("Accessible", f"{summary['accessible']}/{summary['total']}"),
                    ("Format Valid", f"{summary['formatValid']}/{summary['total']}"),
                    ("With Issues", summary["withIssues"]),
                    ("With Warnings", summary["withWarnings"]),
                ],
                level="success" if pct == 100 else "warning" if pct >= 70 else "danger",
            )
        ]

        inaccessible = [r for r in results.values() if not r["accessible"]]
        if inaccessible:
            panels.append(Panel(
                title=f"Inaccessible Secrets ({len(inaccessible)})",
                items=[f"{r['name']} - {r['error'] or 'Unknown error'}" for r in inaccessible],
                level="danger",
            ))

        if summary["commonIssues"]:
            panels.append(Panel(
                title="Common Validation Issues",
                items=[
                    f"{issue['text']} (found in {issue['count']} secret{'s' if issue['count'] > 1 else ''})"
                    for issue in summary["commonIssues"]
                ],
                level="warning",
            ))

        panels.append(Panel(
            title="Validation Rules",
            columns=["Secret", "Rules"],
            table=[[name, "; ".join(_describe_rule(rule)) or "-"] for name, rule in self.rules.items()],
        ))

        rows = []
        for name, r in results.items():
            validation = r["validationResult"]
            if not r["accessible"]:
                status, fix = "Inaccessible", r["error"] or "-"
            elif validation is None:
                status, fix = "Empty", "Set a value for this secret"
            else:
                status = "Valid" if validation["valid"] else "Invalid"
                fix = recommend_fix(name, validation, self.rules)
            rows.append([name, status, validation["length"] if validation else "-", fix])

        panels.append(Panel(
            title="Secret Validation Results",
            columns=["Secret", "Status", "Length", "Recommendation"],
            table=rows,
        ))
        return panels
