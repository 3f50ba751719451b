"""
Selective Secret Sync Dashboard.

Syncs only the mounted secret files whose names pass the configured
include/exclude/prefix/suffix filters.

Author: SecretDash Team
Date: 2026-09-14
"""

import logging
import re
from typing import Any, Dict, List, Mapping

from fastapi import APIRouter
from pydantic import BaseModel, Field

from ..core.config_manager import SecretStrategy
from ..sources import CsiSecretSource
from .base import Dashboard, DashboardIdentity, Panel
from .policy import mask_secret

logger = logging.getLogger(__name__)


def matches_pattern(secret_name: str, pattern: str) -> bool:
    """
    Match a name against a filter pattern.

    A pattern containing ``*`` must match the whole name, with ``*`` standing
    for any run of characters. Any other pattern matches exactly or as a
    substring.
    """
    if "*" in pattern:
        regex = ".*".join(re.escape(part) for part in pattern.split("*"))
        return re.fullmatch(regex, secret_name) is not None
    return secret_name == pattern or pattern in secret_name


def _split(raw: str) -> List[str]:
    return [item.strip() for item in raw.split(",") if item.strip()]


class SecretFilters(BaseModel):
    """Name filters applied to mounted secrets."""

    include: List[str] = Field(default_factory=list)
    exclude: List[str] = Field(default_factory=list)
    prefix: str = ""
    suffix: str = ""

    @classmethod
    def from_environ(cls, environ: Mapping[str, str]) -> "SecretFilters":
        return cls(
            include=_split(environ.get("SECRET_FILTER_INCLUDE", "")),
            exclude=_split(environ.get("SECRET_FILTER_EXCLUDE", "")),
            prefix=environ.get("SECRET_FILTER_PREFIX", ""),
            suffix=environ.get("SECRET_FILTER_SUFFIX", ""),
        )

    def matches(self, secret_name: str) -> bool:
        """The include list decides alone when set; otherwise exclude, prefix and suffix all apply."""
        if self.include:
            return any(matches_pattern(secret_name, p) for p in self.include)
        if any(matches_pattern(secret_name, p) for p in self.exclude):
            return False
        if self.prefix and not secret_name.startswith(self.prefix):
            return False
        if self.suffix and not secret_name.endswith(self.suffix):
            return False
        return True


class SelectiveSyncDashboard(Dashboard):
    """CSI dashboard syncing a filtered subset of the mounted secrets."""

    identity = DashboardIdentity(
        name="selective-sync",
        app_name="Hello World - Selective Secret Sync",
        method="Selective Secret Sync",
        strategy=SecretStrategy.CSI,
        description="Include/exclude/prefix/suffix filters over mounted secrets",
    )

    show_live_secrets = False

    def __init__(self, *args: Any, **kwargs: Any):
        super().__init__(*args, **kwargs)
        self.filters = SecretFilters.from_environ(self.environ)
        self.mount = CsiSecretSource(self.mount_path)
        self.synced_secrets: Dict[str, str] = {}

    def sync(self) -> Dict[str, List[str]]:
        """
        Read every mounted file that passes the filters.

        Returns:
            ``all`` mounted names, the ``filtered`` names and every name
            ``synced`` so far
        """
        available = self.mount.list_files()
        filtered = [name for name in available if self.filters.matches(name)]

        for name in filtered:
            try:
                self.synced_secrets[name] = self.mount.read_file(name)
            except OSError as e:
                logger.error(f"Error reading {name}: {e}")

        return {"all": available, "filtered": filtered, "synced": list(self.synced_secrets)}

    async def secrets_payload(self) -> Dict[str, Any]:
        return self.sync()

    def register_routes(self, router: APIRouter) -> None:

        @router.get("/api/filters")
        async def filters() -> Dict[str, Any]:
            return self.filters.model_dump()

    async def page_panels(self) -> List[Panel]:
        info = self.sync()
        f = self.filters
        return [
            Panel(
                title="Active Filters",
                rows=[
                    ("Include", ", ".join(f.include) or "None (all included)"),
                    ("Exclude", ", ".join(f.exclude) or "None"),
                    ("Prefix", f.prefix or "None"),
                    ("Suffix", f.suffix or "None"),
                ],
            ),
            Panel(
                title="Sync Statistics",
                rows=[
                    ("Total Secrets Available", len(info["all"])),
                    ("Secrets Matching Filter", len(info["filtered"])),
                    ("Successfully Synced", len(info["synced"])),
                    ("Filtered Out", len(info["all"]) - len(info["filtered"])),
                ],
                level="success" if info["synced"] else "warning",
            ),
            Panel(
                title="Secrets",
                columns=["Secret", "Status", "Value"],
                table=[
                    [name, "Synced" if name in info["filtered"] else "Filtered out",
                     mask_secret(self.synced_secrets.get(name)) if name in info["filtered"] else "-"]
                    for name in info["all"]
                ],
            ),
        ]
