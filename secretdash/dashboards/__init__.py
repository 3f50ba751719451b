"""
Dashboards.

Registry of every dashboard that can be served by name.

Author: SecretDash Team
Date: 2026-09-15
"""

from typing import Any, Dict, List, NamedTuple, Optional, Type

from ..core.config_manager import SecretDashConfig, SecretStrategy
from .audit import AuditDashboard
from .base import Dashboard, DashboardIdentity, Panel
from .certificate import CertificateDashboard
from .cross_namespace import CrossNamespaceDashboard
from .expiration import ExpirationDashboard
from .hot_reload import HotReloadDashboard
from .multi_vault import MultiVaultDashboard
from .rotation import RotationDashboard
from .security import SecurityDashboard
from .selective_sync import SelectiveSyncDashboard
from .validation import ValidationDashboard
from .versioning import VersioningDashboard


class DashboardEntry(NamedTuple):
    """Dashboard class plus the identity it is served with."""

    cls: Type[Dashboard]
    identity: DashboardIdentity


PRESETS = [
    DashboardIdentity(
        name="csi-driver",
        app_name="Hello World - CSI Driver",
        method="Secrets Store CSI Driver",
        strategy=SecretStrategy.CSI,
        description="Secrets mounted as files by the Secrets Store CSI Driver",
    ),
    DashboardIdentity(
        name="direct-api",
        app_name="Hello World - Direct Azure API",
        method="Direct Azure Key Vault API",
        strategy=SecretStrategy.AZURE_API,
        description="Secrets read with the Azure Key Vault SDK",
    ),
    DashboardIdentity(
        name="secret-sync",
        app_name="Hello World - Kubernetes Secret Sync",
        method="Kubernetes Secret Sync",
        strategy=SecretStrategy.ENVIRONMENT,
        description="Secrets synced into a Kubernetes Secret and exposed as env vars",
    ),
    DashboardIdentity(
        name="external-secrets",
        app_name="Hello World - Red Hat External Secrets Operator",
        method="Red Hat External Secrets Operator",
        strategy=SecretStrategy.ENVIRONMENT,
        operator="RED HAT",
        description="Secrets synced by the External Secrets Operator",
    ),
]

SPECIALISED = [
    AuditDashboard,
    CertificateDashboard,
    CrossNamespaceDashboard,
    ExpirationDashboard,
    HotReloadDashboard,
    MultiVaultDashboard,
    RotationDashboard,
    SecurityDashboard,
    SelectiveSyncDashboard,
    ValidationDashboard,
    VersioningDashboard,
]

DASHBOARDS: Dict[str, DashboardEntry] = {
    **{identity.name: DashboardEntry(Dashboard, identity) for identity in PRESETS},
    **{cls.identity.name: DashboardEntry(cls, cls.identity) for cls in SPECIALISED},
}


def list_dashboards() -> List[DashboardIdentity]:
    """Identities of all registered dashboards, sorted by name."""
    return [DASHBOARDS[name].identity for name in sorted(DASHBOARDS)]


def create_dashboard(name: str, config: Optional[SecretDashConfig] = None, **kwargs: Any) -> Dashboard:
    """
    Instantiate a registered dashboard.

    Args:
        name: Dashboard name (see ``list_dashboards``)
        config: Dashboard configuration
        **kwargs: Passed to the dashboard constructor

    Raises:
        ValueError: If no dashboard has that name
    """
    entry = DASHBOARDS.get(name)
    if entry is None:
        raise ValueError(
            f"Unknown dashboard '{name}'. Available: {', '.join(sorted(DASHBOARDS))}"
        )
    kwargs.setdefault("identity", entry.identity)
    return entry.cls(config=config, **kwargs)


__all__ = [
    "Dashboard",
    "DashboardIdentity",
    "Panel",
    "DASHBOARDS",
    "PRESETS",
    "list_dashboards",
    "create_dashboard",
    "AuditDashboard",
    "CertificateDashboard",
    "CrossNamespaceDashboard",
    "ExpirationDashboard",
    "HotReloadDashboard",
    "MultiVaultDashboard",
    "RotationDashboard",
    "SecurityDashboard",
    "SelectiveSyncDashboard",
    "ValidationDashboard",
    "VersioningDashboard",
]
