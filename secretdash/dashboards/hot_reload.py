"""
Hot Reload Dashboard.

Polls the modification times of CSI-mounted secret files and reloads the
secrets as soon as the driver rotates them.

Author: SecretDash Team
Date: 2026-09-10
"""

import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

from fastapi import APIRouter

from ..core.config_manager import SecretStrategy
from ..exceptions import SecretAccessError
from .base import Dashboard, DashboardIdentity, Panel, iso_timestamp, utc_now

logger = logging.getLogger(__name__)

# Symlink the kubelet swaps atomically when a projected volume is updated
DATA_LINK = "..data"


class HotReloadDashboard(Dashboard):
    """CSI dashboard that reloads secrets when the mounted files change."""

    identity = DashboardIdentity(
        name="hot-reload",
        app_name="Hello World - Hot Reload",
        method="Hot Reload (CSI Driver)",
        strategy=SecretStrategy.CSI,
        description="Reloads secrets when mounted files change",
    )

    def __init__(self, *args: Any, **kwargs: Any):
        super().__init__(*args, **kwargs)
        self.reload_interval_ms = self.env_int("RELOAD_INTERVAL", 5000)
        self.last_reload_time: Optional[datetime] = None
        self.reload_count = 0
        self._mtimes: Dict[str, int] = {}

    def snapshot(self) -> Dict[str, int]:
        """Current mtimes (ns) of the monitored files and the data link."""
        mtimes: Dict[str, int] = {}
        for name in [*self.secret_names, DATA_LINK]:
            path = Path(self.mount_path) / name
            try:
                stat = path.lstat() if name == DATA_LINK else path.stat()
            except FileNotFoundError:
                continue
            mtimes[name] = stat.st_mtime_ns
        return mtimes

    async def check_for_changes(self) -> List[str]:
        """
        Compare mtimes with the previous observation and reload on change.

        A file seen for the first time only establishes its baseline.

        Returns:
            Names whose modification time changed
        """
        current = self.snapshot()
        changed = [
            name for name, mtime in current.items()
            if name in self._mtimes and self._mtimes[name] != mtime
        ]
        self._mtimes = current

        if changed:
            logger.info(f"Detected change in {', '.join(changed)} (mtime changed)")
            for name in changed:
                if name != DATA_LINK:
                    self.metrics.track_rotation(name, "detected")
            await self.reload_secrets()
        return changed

    async def reload_secrets(self) -> None:
        """Drop the cache and fetch the secrets again."""
        logger.info("Reloading secrets...")
        self.last_reload_time = utc_now()
        self.reload_count += 1
        self.cache.clear()

        try:
            await self.get_secrets()
        except SecretAccessError as e:
            logger.error(f"Failed to reload secrets: {e.message}")
            return
        logger.info(f"Secrets reloaded successfully (reload #{self.reload_count})")

    def reload_info(self) -> Dict[str, Any]:
        return {
            "enabled": True,
            "lastReloadTime": iso_timestamp(self.last_reload_time) if self.last_reload_time else None,
            "reloadCount": self.reload_count,
            "watchersActive": len(self._mtimes),
            "secretsMountPath": str(self.mount_path),
            "reloadInterval": self.reload_interval_ms,
        }

    async def startup(self) -> None:
        self.start_periodic("hot-reload", self.reload_interval_ms / 1000, self.check_for_changes)
        logger.info(f"Hot reload watching {self.mount_path} every {self.reload_interval_ms} ms")

    def health_extras(self) -> Dict[str, Any]:
        return {"hotReload": True}

    def register_routes(self, router: APIRouter) -> None:

        @router.get("/api/reload-info")
        @router.get("/api/reload")
        async def reload_info() -> Dict[str, Any]:
            secrets = await self.get_secrets()
            return {"reloadInfo": self.reload_info(), "secrets": list(secrets)}

        @router.api_route("/api/reload-now", methods=["GET", "POST"])
        @router.api_route("/api/force-reload", methods=["GET", "POST"])
        async def reload_now() -> Dict[str, Any]:
            await self.reload_secrets()
            return {"message": "Reload triggered", "reloadInfo": self.reload_info()}

    async def page_panels(self) -> List[Panel]:
        info = self.reload_info()
        return [
            Panel(
                title="Hot Reload",
                rows=[
                    ("Status", "Enabled"),
                    ("Reload Count", info["reloadCount"]),
                    ("Last Reload", info["lastReloadTime"] or "Never"),
                    ("Watched Files", info["watchersActive"]),
                    ("Check Interval", f"{info['reloadInterval']} ms"),
                ],
                note="Update a secret in Key Vault; the CSI driver rotates the mounted "
                     "file and this page picks up the new value automatically.",
                level="success",
            )
        ]
