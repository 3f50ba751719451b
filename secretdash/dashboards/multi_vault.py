"""
Multi-Vault Dashboard.

Reads each monitored secret from an ordered list of Key Vaults, falling
back to the next vault when a secret is missing.

Author: SecretDash Team
Date: 2026-09-11
"""

import logging
from typing import Any, Callable, Dict, List, Optional, Tuple

from fastapi import APIRouter, Query

from ..core.config_manager import SecretStrategy
from ..exceptions import KeyVaultNotConfiguredError, SecretAccessError, VaultNotFoundError
from ..keyvault.client import KeyVaultClient, build_credential
from .base import Dashboard, DashboardIdentity, Panel

logger = logging.getLogger(__name__)

NOT_FOUND = "Not found"

VaultClientFactory = Callable[[str], KeyVaultClient]


def _is_url(value: str) -> bool:
    return value.startswith("http://") or value.startswith("https://")


def _split_named_entry(entry: str) -> Optional[Tuple[str, str]]:
    """Split ``name:https://...`` at the colon that precedes the scheme."""
    for index in range(1, len(entry)):
        if entry[index] == ":" and _is_url(entry[index + 1:]):
            return entry[:index].strip(), entry[index + 1:].strip()
    return None


def parse_vault_config(vault_config: Optional[str], keyvault_url: Optional[str] = None) -> List[Tuple[str, str]]:
    """
    Parse ``VAULT_CONFIG`` into an ordered list of ``(name, url)`` pairs.

    Accepted forms:
        ``name1:https://a.vault.azure.net/,name2:https://b.vault.azure.net/``,
        bare URLs (named ``vault-N``), or a single entry which is called
        ``primary`` unless it carries a non-URL ``name:`` prefix.

    ``keyvault_url`` is used when ``vault_config`` is empty, and is appended as
    ``default`` unless its URL is already listed.
    """
    raw = (vault_config or keyvault_url or "").strip()
    vaults: List[Tuple[str, str]] = []
    if not raw:
        return vaults

    if "," in raw:
        for entry in raw.split(","):
            entry = entry.strip()
            if not entry:
                continue
            named = _split_named_entry(entry)
            if named:
                name, url = named
                if name and url and all(name != existing for existing, _ in vaults):
                    vaults.append((name, url))
            elif all(url != entry for _, url in vaults):
                vaults.append((f"vault-{len(vaults) + 1}", entry))
    else:
        prefix, sep, rest = raw.partition(":")
        if sep and prefix and "http" not in prefix:
            vaults.append((prefix.strip(), rest.strip()))
        else:
            vaults.append(("primary", raw))

    if keyvault_url:
        default_url = keyvault_url.strip()
        if all(url != default_url for _, url in vaults):
            vaults.append(("default", default_url))

    return vaults


class MultiVaultDashboard(Dashboard):
    """Dashboard reading secrets from several vaults in priority order."""

    identity = DashboardIdentity(
        name="multi-vault",
        app_name="Hello World - Multi-Vault",
        method="Multi-Vault Access",
        strategy=SecretStrategy.AZURE_API,
        description="Priority-ordered lookup across several Key Vaults",
    )

    def __init__(self, *args: Any, client_factory: Optional[VaultClientFactory] = None, **kwargs: Any):
        super().__init__(*args, **kwargs)
        self.vaults = parse_vault_config(self.environ.get("VAULT_CONFIG"), self.keyvault_url)
        self.vault_clients: Dict[str, KeyVaultClient] = {}

        factory = client_factory or self._default_client_factory()
        if factory is not None:
            for name, url in self.vaults:
                self.vault_clients[name] = factory(url)

        logger.info(
            f"Initialized {len(self.vault_clients)} vault connection(s): "
            f"{', '.join(name for name, _ in self.vaults)}"
        )

    def _default_client_factory(self) -> Optional[VaultClientFactory]:
        kv = self.config.keyvault
        try:
            credential = build_credential(kv.tenant_id, kv.client_id, kv.client_secret)
        except KeyVaultNotConfiguredError as e:
            logger.error(f"Missing required Azure credentials for multi-vault access: {e.message}")
            return None
        return lambda url: KeyVaultClient(url, credential=credential)

    async def close_clients(self) -> None:
        await super().close_clients()
        for client in self.vault_clients.values():
            if client is not self.keyvault:
                await client.close()

    async def get_secret_from_vault(self, vault_name: str, secret_name: str) -> Dict[str, Any]:
        """
        Read a secret from one vault.

        Raises:
            VaultNotFoundError: If the vault is not configured
        """
        client = self.vault_clients.get(vault_name)
        if client is None:
            raise VaultNotFoundError(vault_name)

        try:
            record = await client.get_secret(secret_name)
        except SecretAccessError as e:
            return {"vault": vault_name, "secretName": secret_name, "error": e.message, "found": False}
        return {
            "vault": vault_name,
            "secretName": secret_name,
            "value": record.value,
            "version": record.version,
            "found": True,
        }

    async def get_secret_from_all_vaults(self, secret_name: str) -> Dict[str, Dict[str, Any]]:
        return {
            name: await self.get_secret_from_vault(name, secret_name)
            for name, _ in self.vaults
            if name in self.vault_clients
        }

    async def get_secret_with_fallback(self, secret_name: str) -> Optional[Dict[str, Any]]:
        """First successful read in vault order, or None."""
        for name, _ in self.vaults:
            if name not in self.vault_clients:
                continue
            result = await self.get_secret_from_vault(name, secret_name)
            if result["found"]:
                return result
        return None

    async def get_secrets(self) -> Dict[str, str]:
        """Monitored secrets with a ``_<name>_vault`` marker naming the source."""
        cached = self.cache.get()
        if cached is not None:
            self.metrics.track_cache_hit()
            return cached

        secrets: Dict[str, str] = {}
        with self.metrics.time_fetch(self.strategy.value):
            for secret_name in self.secret_names:
                result = await self.get_secret_with_fallback(secret_name)
                if result:
                    secrets[secret_name] = result["value"]
                    secrets[f"_{secret_name}_vault"] = result["vault"]
                else:
                    secrets[secret_name] = NOT_FOUND
        self.metrics.track_fetch(self.strategy.value, "success")

        self.cache.store(secrets)
        return secrets

    def vault_info(self) -> Dict[str, Any]:
        return {
            "vaultCount": len(self.vaults),
            "vaults": [
                {"name": name, "url": url, "initialized": name in self.vault_clients}
                for name, url in self.vaults
            ],
        }

    def health_extras(self) -> Dict[str, Any]:
        return {"multiVault": True, "vaultCount": len(self.vaults)}

    def register_routes(self, router: APIRouter) -> None:

        @router.get("/api/vaults")
        @router.get("/api/vault-info")
        async def vaults() -> Dict[str, Any]:
            return self.vault_info()

        @router.get("/api/secret/{secret_name}")
        async def secret(secret_name: str, vault: Optional[str] = Query(default=None)) -> Dict[str, Any]:
            if vault:
                return await self.get_secret_from_vault(vault, secret_name)
            return await self.get_secret_from_all_vaults(secret_name)

    async def page_panels(self) -> List[Panel]:
        secrets = await self.get_secrets()
        sources = [
            [name, secrets.get(f"_{name}_vault", "-") if secrets.get(name) != NOT_FOUND else "not found"]
            for name in self.secret_names
        ]
        return [
            Panel(
                title=f"Configured Vaults ({len(self.vaults)})",
                columns=["Vault", "URL", "Status"],
                table=[
                    [name, url, "Connected" if name in self.vault_clients else "Not initialized"]
                    for name, url in self.vaults
                ],
                level="success" if self.vault_clients else "danger",
            ),
            Panel(
                title="Secrets by Vault Source",
                note="Secrets are retrieved from vaults in priority order, falling back "
                     "to the next vault when a secret is not found.",
                columns=["Secret", "Loaded From"],
                table=sources,
            ),
        ]
