"""
Security & Compliance Dashboard.

Scans every enabled vault secret against the policy rules and reports
violations, compliance scores and prioritised recommendations.

Author: SecretDash Team
Date: 2026-09-13
"""

import logging
import time
from datetime import datetime
from typing import Any, Dict, List, Optional

from fastapi import APIRouter

from ..core.config_manager import SecretStrategy
from ..exceptions import SecretAccessError
from ..keyvault.models import SecretProperties
from .base import Dashboard, DashboardIdentity, Panel, iso_timestamp, utc_now
from .policy import (
    DEFAULT_RULES,
    SecretRule,
    days_between,
    is_password_policy_issue,
    password_strength,
    validate_format,
)

logger = logging.getLogger(__name__)

SCAN_INTERVAL_SECONDS = 300
STRENGTH_WARNING_SCORE = 70
WEAK_SCORE = 50


def analyze_secret(
    props: SecretProperties,
    value: Optional[str],
    now: Optional[datetime] = None,
    rules: Optional[Dict[str, SecretRule]] = None,
    read_error: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Evaluate one secret against its rule.

    Args:
        props: Secret metadata
        value: Secret value, None when it could not be read
        now: Reference time (default: current UTC time)
        rules: Rule set (``DEFAULT_RULES`` if None)
        read_error: Why the value could not be read

    Returns:
        Analysis with compliance flags, violations, warnings and strength
    """
    now = now or utc_now()
    rules = rules if rules is not None else DEFAULT_RULES
    rule = rules.get(props.name) or SecretRule()
    violations: List[str] = []
    warnings: List[str] = []

    if value is not None:
        if props.name in rules:
            violations.extend(validate_format(props.name, value, rules)["issues"])
    else:
        violations.append(f"Unable to read secret value: {read_error or 'unknown error'}")

    is_expired = bool(props.expires_on and now > props.expires_on)
    if is_expired:
        violations.append("Secret has expired")

    last_update = props.updated_on or props.created_on
    age = days_between(last_update, now) if last_update else None

    rotation_overdue = False
    if rule.rotation_required and rule.max_age_days and age is not None and age > rule.max_age_days:
        rotation_overdue = True
        violations.append(
            f"Secret rotation overdue: {age} days since last update (max: {rule.max_age_days} days)"
        )

    strength = password_strength(value)
    if strength["score"] < STRENGTH_WARNING_SCORE:
        warnings.append(f"Weak password strength: {strength['score']}/100")

    return {
        "name": props.name,
        "isCompliant": not violations,
        "isExpired": is_expired,
        "rotationOverdue": rotation_overdue,
        "accessible": value is not None,
        "violations": violations,
        "warnings": warnings,
        "strength": strength,
        "lastUpdated": iso_timestamp(last_update) if last_update else None,
        "expiresOn": iso_timestamp(props.expires_on) if props.expires_on else None,
        "age": age,
    }


def _percent(part: int, total: int) -> int:
    return round(part / total * 100)


def compliance_score(analyses: List[Dict[str, Any]]) -> Dict[str, Any]:
    """Overall and per-policy compliance percentages."""
    total = len(analyses)
    if total == 0:
        return {"overallScore": 100, "breakdown": {}}

    password_ok = sum(
        1 for a in analyses
        if not any(is_password_policy_issue(v) for v in a["violations"])
    )
    return {
        "overallScore": _percent(sum(1 for a in analyses if a["isCompliant"]), total),
        "breakdown": {
            "passwordPolicy": _percent(password_ok, total),
            "rotationPolicy": _percent(sum(1 for a in analyses if not a["rotationOverdue"]), total),
            "accessPolicy": _percent(sum(1 for a in analyses if a["accessible"]), total),
        },
    }


def security_recommendations(analyses: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    recommendations = []

    def add(priority, category, title, description, action, affected):
        if affected:
            recommendations.append({
                "priority": priority,
                "category": category,
                "title": title,
                "description": description.format(count=len(affected)),
                "action": action,
                "affectedSecrets": [a["name"] for a in affected],
            })

    add("high", "expired-secrets", "Expired Secrets Detected",
        "{count} secrets have expired and need immediate attention",
        "Rotate expired secrets immediately",
        [a for a in analyses if a["isExpired"]])
    add("medium", "rotation-overdue", "Secret Rotation Overdue",
        "{count} secrets are overdue for rotation",
        "Implement automated rotation for these secrets",
        [a for a in analyses if a["rotationOverdue"]])
    add("medium", "weak-passwords", "Weak Passwords Detected",
        "{count} secrets have weak password strength",
        "Strengthen passwords to meet security requirements",
        [a for a in analyses if a["strength"]["score"] < WEAK_SCORE])
    add("high", "compliance-violations", "Compliance Violations",
        "{count} secrets violate security policies",
        "Review and update secrets to meet compliance requirements",
        [a for a in analyses if not a["isCompliant"]])
    return recommendations


class SecurityDashboard(Dashboard):
    """Dashboard scoring vault secrets against security policies."""

    identity = DashboardIdentity(
        name="security-dashboard",
        app_name="Hello World - Security & Compliance Dashboard",
        method="Security & Compliance Dashboard",
        strategy=SecretStrategy.AZURE_API,
        description="Policy violations, compliance scores and recommendations",
    )

    requires_keyvault = True
    show_live_secrets = False

    def __init__(self, *args: Any, rules: Optional[Dict[str, SecretRule]] = None, **kwargs: Any):
        super().__init__(*args, **kwargs)
        self.rules = rules if rules is not None else DEFAULT_RULES
        self.security_metrics: Dict[str, Any] = {
            "totalSecrets": 0,
            "compliantSecrets": 0,
            "nonCompliantSecrets": 0,
            "expiredSecrets": 0,
            "rotationOverdue": 0,
            "accessViolations": 0,
            "lastScan": None,
            "complianceScore": None,
        }
        self._scan: Optional[Dict[str, Any]] = None
        self._scanned_at = 0.0

    async def _read_value(self, name: str):
        try:
            record = await self.require_keyvault().get_secret(name)
        except SecretAccessError as e:
            logger.warning(f"Could not read '{name}' for security analysis: {e.message}")
            return None, e.message
        return record.value, None

    async def perform_scan(self, force: bool = False) -> Dict[str, Any]:
        """
        Scan all enabled secrets; the result is reused for five minutes.

        Raises:
            SecretAccessError: If the secrets cannot be listed
        """
        if not force and self._scan is not None and time.time() - self._scanned_at < SCAN_INTERVAL_SECONDS:
            return self._scan

        client = self.require_keyvault()
        now = utc_now()
        analyses = []
        for props in await client.list_secret_properties():
            if not props.enabled:
                continue
            value, error = await self._read_value(props.name)
            analyses.append(analyze_secret(props, value, now, self.rules, read_error=error))

        compliance = compliance_score(analyses)
        violations = [v for a in analyses for v in a["violations"]]
        results = {
            "secrets": analyses,
            "compliance": compliance,
            "violations": violations,
            "recommendations": security_recommendations(analyses),
        }

        compliant = sum(1 for a in analyses if a["isCompliant"])
        self.security_metrics = {
            "totalSecrets": len(analyses),
            "compliantSecrets": compliant,
            "nonCompliantSecrets": len(analyses) - compliant,
            "expiredSecrets": sum(1 for a in analyses if a["isExpired"]),
            "rotationOverdue": sum(1 for a in analyses if a["rotationOverdue"]),
            "accessViolations": len(violations),
            "lastScan": iso_timestamp(now),
            "complianceScore": compliance["overallScore"],
        }

        self._scan = {"metrics": self.security_metrics, "results": results}
        self._scanned_at = time.time()
        logger.info(
            f"Security scan complete: {compliant}/{len(analyses)} compliant "
            f"(score {compliance['overallScore']}%)"
        )
        return self._scan

    def register_routes(self, router: APIRouter) -> None:

        @router.get("/api/security-scan")
        async def security_scan() -> Dict[str, Any]:
            return await self.perform_scan()

        @router.get("/api/security-metrics")
        async def security_metrics() -> Dict[str, Any]:
            return self.security_metrics

    async def page_panels(self) -> List[Panel]:
        scan = await self.perform_scan()
        metrics = scan["metrics"]
        results = scan["results"]
        score = metrics["complianceScore"] or 0
        risk = "low" if score >= 90 else "medium" if score >= 70 else "high"

        panels = [
            Panel(
                title=f"Compliance Score: {score}% ({risk.upper()} RISK)",
                rows=[
                    ("Total Secrets", metrics["totalSecrets"]),
                    ("Compliant", metrics["compliantSecrets"]),
                    ("Non-Compliant", metrics["nonCompliantSecrets"]),
                    ("Expired", metrics["expiredSecrets"]),
                    ("Rotation Overdue", metrics["rotationOverdue"]),
                    ("Access Violations", metrics["accessViolations"]),
                    ("Last Scan", metrics["lastScan"]),
                ],
                level={"low": "success", "medium": "warning"}.get(risk, "danger"),
            )
        ]

        breakdown = results["compliance"]["breakdown"]
        if breakdown:
            panels.append(Panel(
                title="Compliance Breakdown",
                rows=[
                    ("Password Policy", f"{breakdown['passwordPolicy']}%"),
                    ("Rotation Policy", f"{breakdown['rotationPolicy']}%"),
                    ("Access Policy", f"{breakdown['accessPolicy']}%"),
                ],
            ))

        for rec in results["recommendations"]:
            panels.append(Panel(
                title=f"[{rec['priority'].upper()}] {rec['title']}",
                note=f"{rec['description']}. Action: {rec['action']}",
                items=rec["affectedSecrets"],
                level="danger" if rec["priority"] == "high" else "warning",
            ))

        panels.append(Panel(
            title="Secret Security Analysis",
            columns=["Secret", "Compliant", "Strength", "Age (days)", "Violations"],
            table=[
                [a["name"], "yes" if a["isCompliant"] else "no",
                 f"{a['strength']['score']}/100", a["age"] if a["age"] is not None else "-",
                 "; ".join(a["violations"]) or "-"]
                for a in results["secrets"]
            ],
        ))
        return panels
