"""
Secret Rotation Handler.

Watches the newest version of each monitored secret, keeps a rotation
history and can rotate secrets on demand by writing a freshly generated
value to Key Vault.

Author: SecretDash Team
Date: 2026-09-12
"""

import asyncio
import logging
import secrets
import string
from collections import Counter, deque
from datetime import datetime
from typing import Any, Deque, Dict, List, Optional

from fastapi import APIRouter

from ..core.config_manager import SecretStrategy
from ..exceptions import SecretAccessError, SecretNotFoundError
from ..keyvault.models import SecretProperties
from .base import Dashboard, DashboardIdentity, Panel, iso_timestamp, utc_now
from .policy import days_between

logger = logging.getLogger(__name__)

MAX_HISTORY = 50
RECENT_ROTATIONS = 20
TIMELINE_LENGTH = 30
PREVIEW_LENGTH = 50

_RANDOM_ALPHABET = string.ascii_uppercase + string.digits


def _random_suffix(length: int = 8) -> str:
    return "".join(secrets.choice(_RANDOM_ALPHABET) for _ in range(length))


def generate_rotated_value(secret_name: str, now: Optional[datetime] = None) -> str:
    """
    Generate a new value for a secret, shaped by its name.

    Args:
        secret_name: Secret being rotated
        now: Rotation time (default: current UTC time)

    Returns:
        New secret value
    """
    now = now or utc_now()
    millis = int(now.timestamp() * 1000)
    suffix = _random_suffix()

    if "database" in secret_name or "db" in secret_name:
        return f"SecureDB_{millis}_{suffix}"
    if "api" in secret_name:
        return f"sk-{millis}-{suffix}"
    if "hello-world" in secret_name:
        return f"Hello from Azure Key Vault via Web Apps! (Rotated at {iso_timestamp(now)})"
    if "jwt" in secret_name:
        return f"jwt-secret-{millis}-{suffix}"
    return f"rotated-{secret_name}-{millis}-{suffix}"


def _version_summary(props: SecretProperties) -> Dict[str, Any]:
    return {
        "id": props.id,
        "name": props.name,
        "version": props.version,
        "enabled": props.enabled,
        "createdOn": iso_timestamp(props.created_on) if props.created_on else None,
        "updatedOn": iso_timestamp(props.updated_on) if props.updated_on else None,
        "contentType": props.content_type,
    }


class RotationDashboard(Dashboard):
    """Dashboard tracking and triggering secret rotations."""

    identity = DashboardIdentity(
        name="rotation-handler",
        app_name="Hello World - Rotation Handler",
        method="Secret Rotation Handler",
        strategy=SecretStrategy.AZURE_API,
        description="Detects new secret versions and rotates secrets on demand",
    )

    # Pause between secrets in /api/rotate-all
    rotate_all_delay_seconds = 0.5

    def __init__(self, *args: Any, **kwargs: Any):
        super().__init__(*args, **kwargs)
        self.check_interval_ms = self.env_int("ROTATION_CHECK_INTERVAL", 30000)
        self.history: Deque[Dict[str, Any]] = deque(maxlen=MAX_HISTORY)
        self.current_versions: Dict[str, SecretProperties] = {}
        self.last_check: Optional[datetime] = None

    # ========== Detection ==========

    async def get_secret_versions(self, secret_name: str) -> Optional[List[SecretProperties]]:
        """All versions of a secret (newest first), or None if unavailable."""
        if self.keyvault is None:
            return None
        try:
            return await self.keyvault.list_secret_versions(secret_name)
        except SecretAccessError as e:
            logger.error(f"Error fetching versions for {secret_name}: {e.message}")
            return None

    async def check_for_rotation(self, secret_name: str) -> Optional[Dict[str, Any]]:
        """
        Compare the newest version with the last one seen.

        Returns:
            The rotation event when the version changed (or was seen for the
            first time), otherwise None
        """
        versions = await self.get_secret_versions(secret_name)
        if not versions:
            return None

        latest = versions[0]
        previous = self.current_versions.get(secret_name)
        self.current_versions[secret_name] = latest

        if previous is not None and previous.version == latest.version:
            return None

        event = {
            "secretName": secret_name,
            "oldVersion": previous.version if previous else "unknown",
            "newVersion": latest.version,
            "timestamp": iso_timestamp(),
            "versionCount": len(versions),
        }
        self.history.appendleft(event)
        self.metrics.track_rotation(secret_name, "detected")
        logger.info(f"Rotation detected for {secret_name}: {event['oldVersion']} -> {event['newVersion']}")
        return event

    async def check_all_secrets(self) -> List[Dict[str, Any]]:
        """Check every monitored secret; clears the secret cache on any rotation."""
        if self.keyvault is None:
            return []

        rotations = []
        for secret_name in self.secret_names:
            event = await self.check_for_rotation(secret_name)
            if event:
                rotations.append(event)

        self.last_check = utc_now()
        if rotations:
            logger.info(f"Detected {len(rotations)} secret rotation(s)")
            self.cache.clear()
        return rotations

    # ========== Manual rotation ==========

    async def rotate_secret(self, secret_name: str) -> Dict[str, Any]:
        """Write a generated value as the new version of ``secret_name``."""
        if self.keyvault is None:
            return {"success": False, "secretName": secret_name, "error": "Key Vault client not initialized"}

        old_version = None
        try:
            current = await self.keyvault.get_secret(secret_name)
            old_version = current.version
        except SecretNotFoundError:
            logger.info(f"No previous version found for {secret_name}, will create new secret")
        except SecretAccessError as e:
            logger.warning(f"Could not read current version of {secret_name}: {e.message}")

        new_value = generate_rotated_value(secret_name)
        try:
            record = await self.keyvault.set_secret(secret_name, new_value)
        except SecretAccessError as e:
            logger.error(f"Error rotating secret '{secret_name}': {e.message}")
            return {"success": False, "secretName": secret_name, "error": e.message}

        timestamp = iso_timestamp()
        self.history.appendleft({
            "secretName": secret_name,
            "oldVersion": old_version or "N/A",
            "newVersion": record.version,
            "timestamp": timestamp,
            "rotatedBy": "manual",
        })
        self.current_versions[secret_name] = record
        self.cache.clear()
        self.metrics.track_rotation(secret_name, "manual")
        logger.info(f"Rotated secret '{secret_name}': {old_version or 'N/A'} -> {record.version}")

        return {
            "success": True,
            "secretName": secret_name,
            "newVersion": record.version,
            "oldVersion": old_version,
            "newValue": new_value[:PREVIEW_LENGTH] + "...",
            "timestamp": timestamp,
        }

    async def rotate_all(self) -> List[Dict[str, Any]]:
        results = []
        for index, secret_name in enumerate(self.secret_names):
            if index and self.rotate_all_delay_seconds:
                await asyncio.sleep(self.rotate_all_delay_seconds)
            results.append(await self.rotate_secret(secret_name))
        self.last_check = utc_now()
        return results

    # ========== Reporting ==========

    def rotation_info(self) -> Dict[str, Any]:
        history = list(self.history)

        stats: Dict[str, Dict[str, Any]] = {}
        for event in history:
            entry = stats.setdefault(event["secretName"], {"count": 0, "lastRotation": None})
            entry["count"] += 1
            if entry["lastRotation"] is None or event["timestamp"] > entry["lastRotation"]:
                entry["lastRotation"] = event["timestamp"]

        by_secret = Counter(event["secretName"] for event in history)

        return {
            "enabled": self.keyvault is not None,
            "lastCheck": iso_timestamp(self.last_check) if self.last_check else None,
            "checkInterval": self.check_interval_ms,
            "currentVersions": {
                name: {
                    "version": props.version,
                    "created": iso_timestamp(props.created_on) if props.created_on else None,
                    "enabled": props.enabled,
                }
                for name, props in self.current_versions.items()
            },
            "rotationCount": len(history),
            "recentRotations": history[:RECENT_ROTATIONS],
            "rotationStats": stats,
            "rotationsBySecret": dict(by_secret),
            "mostRotatedSecret": by_secret.most_common(1)[0][0] if by_secret else None,
            "rotationTimeline": history[:TIMELINE_LENGTH],
        }

    async def secrets_payload(self) -> Dict[str, Any]:
        payload = await super().secrets_payload()
        payload["rotationInfo"] = self.rotation_info()
        return payload

    def health_extras(self) -> Dict[str, Any]:
        return {"rotationMonitoring": True}

    async def startup(self) -> None:
        if self.keyvault is None:
            logger.warning("Key Vault client not initialized; rotation monitoring disabled")
            return
        self.start_periodic("rotation-check", self.check_interval_ms / 1000, self.check_all_secrets)

    def register_routes(self, router: APIRouter) -> None:

        @router.get("/api/rotation-info")
        @router.get("/api/rotation")
        async def rotation_info() -> Dict[str, Any]:
            return self.rotation_info()

        @router.get("/api/versions/{secret_name}")
        async def versions(secret_name: str) -> Dict[str, Any]:
            found = await self.get_secret_versions(secret_name)
            return {
                "secretName": secret_name,
                "versions": [_version_summary(v) for v in found] if found is not None else None,
            }

        @router.api_route("/api/check-rotation", methods=["GET", "POST"])
        @router.api_route("/api/check", methods=["GET", "POST"])
        async def check() -> Dict[str, Any]:
            rotations = await self.check_all_secrets()
            return {"checked": True, "rotations": rotations, "rotationInfo": self.rotation_info()}

        @router.api_route("/api/rotate/{secret_name}", methods=["GET", "POST"])
        async def rotate(secret_name: str) -> Dict[str, Any]:
            result = await self.rotate_secret(secret_name)
            self.last_check = utc_now()
            return {"rotation": result, "rotationInfo": self.rotation_info()}

        @router.api_route("/api/rotate-all", methods=["GET", "POST"])
        async def rotate_all() -> Dict[str, Any]:
            results = await self.rotate_all()
            return {"rotations": results, "rotationInfo": self.rotation_info()}

    async def page_panels(self) -> List[Panel]:
        info = self.rotation_info()
        now = utc_now()
        timeline = info["rotationTimeline"]

        summary_rows = [
            ("Total Rotations", info["rotationCount"]),
            ("Most Rotated", info["mostRotatedSecret"] or "-"),
            ("Monitoring", f"Enabled ({info['checkInterval'] / 1000:g}s interval)" if info["enabled"] else "Disabled"),
            ("Tracked Secrets", len(info["currentVersions"])),
            ("Last Check", info["lastCheck"] or "Never"),
        ]

        version_rows = []
        for name, props in self.current_versions.items():
            age = f"{days_between(props.created_on, now)} days" if props.created_on else "-"
            version_rows.append([name, props.version, age, "yes" if props.enabled else "no"])

        return [
            Panel(
                title="Secret Rotation",
                rows=summary_rows,
                level="success" if info["enabled"] else "danger",
            ),
            Panel(
                title="Current Secret Versions",
                columns=["Secret", "Version", "Age", "Enabled"],
                table=version_rows,
                note=None if version_rows else "No versions tracked yet",
            ),
            Panel(
                title="Rotation Timeline",
                columns=["Time", "Secret", "Old Version", "New Version", "Trigger"],
                table=[
                    [e["timestamp"], e["secretName"], e["oldVersion"], e["newVersion"], e.get("rotatedBy", "detected")]
                    for e in timeline
                ],
                note="POST /api/rotate/{name} rotates one secret, /api/rotate-all rotates every monitored secret.",
            ),
        ]
