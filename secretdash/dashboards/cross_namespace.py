"""
Cross-Namespace Secret Sharing Dashboard.

Shows the secrets mounted in the pod's own namespace next to secrets shared
from other namespaces, illustrating how Kubernetes RBAC limits access.

Author: SecretDash Team
Date: 2026-09-09
"""

import json
import logging
from typing import Any, Dict, List

from fastapi import APIRouter

from ..core.config_manager import SecretStrategy
from ..sources import CsiSecretSource
from .base import Dashboard, DashboardIdentity, Panel
from .policy import mask_secret

logger = logging.getLogger(__name__)

NOT_ACCESSIBLE = "Not accessible from this namespace"


class CrossNamespaceDashboard(Dashboard):
    """Dashboard contrasting local and cross-namespace secret access."""

    identity = DashboardIdentity(
        name="cross-namespace",
        app_name="Hello World - Cross-Namespace Secret Sharing",
        method="Cross-Namespace Secret Sharing",
        strategy=SecretStrategy.CSI,
        description="Local versus shared secrets under namespace RBAC",
    )

    show_live_secrets = False

    def __init__(self, *args: Any, **kwargs: Any):
        super().__init__(*args, **kwargs)
        self.shared_namespaces = self.env_list("SHARED_NAMESPACES")
        self.shared_secrets = self.load_shared_secrets()
        self.mount = CsiSecretSource(self.mount_path)

    def _fallback_shared_secrets(self) -> Dict[str, Dict[str, Any]]:
        descriptors = {
            "shared-db-password": ("SHARED_DB_PASSWORD", "database-credentials", "password"),
            "shared-api-key": ("SHARED_API_KEY", "api-credentials", "key"),
        }
        shared = {}
        for name, (env_name, secret_name, key) in descriptors.items():
            value = self.environ.get(env_name)
            shared[name] = {
                "namespace": "shared-services",
                "secretName": secret_name,
                "key": key,
                "accessible": bool(value),
                "value": value or NOT_ACCESSIBLE,
            }
        return shared

    def load_shared_secrets(self) -> Dict[str, Any]:
        """
        Read shared secret descriptors from ``SHARED_SECRETS_CONFIG``.

        Falls back to the ``SHARED_DB_PASSWORD`` / ``SHARED_API_KEY``
        descriptors when the variable is unset, not JSON, or not an object.
        """
        raw = self.environ.get("SHARED_SECRETS_CONFIG")
        if not raw:
            return self._fallback_shared_secrets()
        try:
            parsed = json.loads(raw)
        except json.JSONDecodeError as e:
            logger.warning(f"Invalid SHARED_SECRETS_CONFIG, using defaults: {e}")
            return self._fallback_shared_secrets()
        if not isinstance(parsed, dict):
            logger.warning("SHARED_SECRETS_CONFIG must be a JSON object, using defaults")
            return self._fallback_shared_secrets()
        return parsed

    def local_secrets(self) -> Dict[str, str]:
        """Every secret file mounted in the current namespace."""
        return self.mount.read_all()

    def register_routes(self, router: APIRouter) -> None:

        @router.get("/api/local-secrets")
        async def local_secrets() -> Dict[str, str]:
            return self.local_secrets()

        @router.get("/api/shared-secrets")
        async def shared_secrets() -> Dict[str, Any]:
            return {
                "currentNamespace": self.namespace,
                "sharedNamespaces": self.shared_namespaces,
                "sharedSecrets": self.shared_secrets,
            }

    async def page_panels(self) -> List[Panel]:
        local = self.local_secrets()
        shared_rows = []
        for name, descriptor in self.shared_secrets.items():
            if not isinstance(descriptor, dict):
                shared_rows.append([name, "", "", "unknown", ""])
                continue
            accessible = descriptor.get("accessible", False)
            shared_rows.append([
                name,
                descriptor.get("namespace", ""),
                f"{descriptor.get('secretName', '')}/{descriptor.get('key', '')}",
                "GRANTED" if accessible else "DENIED",
                mask_secret(descriptor.get("value")) if accessible else NOT_ACCESSIBLE,
            ])

        return [
            Panel(
                title="Namespaces",
                rows=[
                    ("Current Namespace", self.namespace),
                    ("Shared Namespaces", ", ".join(self.shared_namespaces) or "none"),
                ],
            ),
            Panel(
                title=f"Local Secrets ({len(local)})",
                note=f"Mounted from {self.mount_path}",
                columns=["Secret", "Value"],
                table=[[name, mask_secret(value)] for name, value in local.items()],
                level="success",
            ),
            Panel(
                title="Shared Secrets",
                columns=["Secret", "Namespace", "Source", "Access", "Value"],
                table=shared_rows,
            ),
        ]
