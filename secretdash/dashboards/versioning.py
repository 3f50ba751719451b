"""
Secret Versioning Dashboard.

Lists every version of the monitored secrets together with their values,
and compares two versions of a secret.

Author: SecretDash Team
Date: 2026-09-15
"""

import logging
import time
from typing import Any, Dict, List, Optional, Tuple

from fastapi import APIRouter, Query, status
from fastapi.responses import JSONResponse

from ..core.config_manager import SecretStrategy
from ..exceptions import SecretAccessError
from ..keyvault.models import SecretProperties, SecretRecord
from .base import Dashboard, DashboardIdentity, Panel, iso_timestamp
from .policy import mask_secret

logger = logging.getLogger(__name__)

VERSION_CACHE_SECONDS = 60


def _iso_or_none(value) -> Optional[str]:
    return iso_timestamp(value) if value else None


def version_record(
    props: SecretProperties,
    value: Optional[str] = None,
    value_error: Optional[str] = None
) -> Dict[str, Any]:
    """JSON view of one secret version."""
    record: Dict[str, Any] = {
        "id": props.id,
        "name": props.name,
        "version": props.version,
        "value": value,
        "enabled": props.enabled,
        "createdOn": _iso_or_none(props.created_on),
        "updatedOn": _iso_or_none(props.updated_on),
        "expiresOn": _iso_or_none(props.expires_on),
        "contentType": props.content_type,
        "tags": props.tags,
    }
    if value_error is not None:
        record["valueError"] = value_error
    return record


def _bad_request(message: str) -> JSONResponse:
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"error": message})


class VersioningDashboard(Dashboard):
    """Dashboard showing the version history of each secret."""

    identity = DashboardIdentity(
        name="versioning-dashboard",
        app_name="Hello World - Secret Versioning Dashboard",
        method="Secret Versioning Dashboard",
        strategy=SecretStrategy.AZURE_API,
        description="Version history and version comparison per secret",
    )

    requires_keyvault = True

    def __init__(self, *args: Any, **kwargs: Any):
        super().__init__(*args, **kwargs)
        self._version_cache: Dict[str, Tuple[float, List[Dict[str, Any]]]] = {}

    async def get_all_versions(self, secret_name: str, use_cache: bool = True) -> List[Dict[str, Any]]:
        """
        Every version of a secret with its value, newest first.

        Versions whose value cannot be read keep their metadata and carry a
        ``valueError``.

        Raises:
            SecretAccessError: If the versions cannot be listed
        """
        if use_cache and secret_name in self._version_cache:
            cached_at, versions = self._version_cache[secret_name]
            if time.time() - cached_at < VERSION_CACHE_SECONDS:
                return versions

        client = self.require_keyvault()
        versions = []
        for props in await client.list_secret_versions(secret_name):
            try:
                secret = await client.get_secret(secret_name, version=props.version)
            except SecretAccessError as e:
                versions.append(version_record(props, value_error=e.message))
                continue
            versions.append(version_record(props, value=secret.value))

        self._version_cache[secret_name] = (time.time(), versions)
        return versions

    async def get_all_secrets_versions(self) -> Dict[str, List[Dict[str, Any]]]:
        """Versions of every monitored secret; a failing secret maps to an empty list."""
        self.require_keyvault()
        all_versions: Dict[str, List[Dict[str, Any]]] = {}
        for secret_name in self.secret_names:
            try:
                all_versions[secret_name] = await self.get_all_versions(secret_name)
            except SecretAccessError as e:
                logger.error(f"Error fetching versions for {secret_name}: {e.message}")
                all_versions[secret_name] = []
        return all_versions

    async def get_secret_version(self, secret_name: str, version: Optional[str] = None) -> Dict[str, Any]:
        """One version (latest when ``version`` is None) with its value."""
        secret: SecretRecord = await self.require_keyvault().get_secret(secret_name, version=version)
        return version_record(secret, value=secret.value)

    async def compare_versions(self, secret_name: str, version1: str, version2: str) -> Dict[str, Any]:
        v1 = await self.get_secret_version(secret_name, version1)
        v2 = await self.get_secret_version(secret_name, version2)

        def summary(v: Dict[str, Any]) -> Dict[str, Any]:
            return {"version": v["version"], "created": v["createdOn"], "value": v["value"], "enabled": v["enabled"]}

        return {
            "secretName": secret_name,
            "version1": summary(v1),
            "version2": summary(v2),
            "valuesMatch": v1["value"] == v2["value"],
            "bothEnabled": bool(v1["enabled"] and v2["enabled"]),
        }

    async def secrets_payload(self) -> Dict[str, Any]:
        return {
            "success": True,
            "method": self.method,
            "operator": self.operator,
            "versions": await self.get_all_secrets_versions(),
            "timestamp": iso_timestamp(),
        }

    def health_extras(self) -> Dict[str, Any]:
        return {"versioning": True}

    def register_routes(self, router: APIRouter) -> None:

        @router.get("/api/versions")
        async def versions(secret: Optional[str] = Query(default=None)):
            if not secret:
                return _bad_request("Secret name required")
            return await self.get_all_versions(secret)

        @router.get("/api/version/{secret_name}")
        async def latest_version(secret_name: str, version: Optional[str] = Query(default=None)):
            return await self.get_secret_version(secret_name, version)

        @router.get("/api/version/{secret_name}/{version}")
        async def specific_version(secret_name: str, version: str):
            return await self.get_secret_version(secret_name, version)

        @router.get("/api/compare")
        async def compare(
            secret: Optional[str] = Query(default=None),
            v1: Optional[str] = Query(default=None),
            v2: Optional[str] = Query(default=None),
        ):
            if not secret or not v1 or not v2:
                return _bad_request("Secret name, v1, and v2 parameters required")
            return await self.compare_versions(secret, v1, v2)

    async def page_panels(self) -> List[Panel]:
        all_versions = await self.get_all_secrets_versions()
        panels = []
        for secret_name, versions in all_versions.items():
            rows = []
            for index, v in enumerate(versions):
                label = v["version"] or "-"
                if index == 0:
                    label += " (current)"
                value = mask_secret(v["value"]) if v["value"] is not None else f"error: {v.get('valueError', '-')}"
                rows.append([label, v["createdOn"] or "-", "yes" if v["enabled"] else "no", value])
            panels.append(Panel(
                title=f"{secret_name} ({len(versions)} version{'s' if len(versions) != 1 else ''})",
                columns=["Version", "Created", "Enabled", "Value"],
                table=rows,
                note=None if rows else "No versions found",
                level="info" if rows else "warning",
            ))
        return panels
