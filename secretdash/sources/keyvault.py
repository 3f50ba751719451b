"""
Direct Key Vault API secret source.

Author: SecretDash Team
Date: 2026-09-03
"""

import logging
from typing import Optional

from ..core.config_manager import SecretStrategy
from ..exceptions import KeyVaultNotConfiguredError, SecretAccessError
from ..keyvault.client import KeyVaultClient
from .base import SecretSource

logger = logging.getLogger(__name__)


class KeyVaultSecretSource(SecretSource):
    """Secret source that calls Azure Key Vault with a Service Principal."""

    strategy = SecretStrategy.AZURE_API

    def __init__(self, client: Optional[KeyVaultClient], vault_url: Optional[str]):
        self.client = client
        self.vault_url = vault_url

    async def fetch(self, name: str) -> str:
        if not self.vault_url:
            raise KeyVaultNotConfiguredError(
                "KEYVAULT_URL environment variable is required for Azure API authentication",
                missing=["KEYVAULT_URL"],
            )
        if self.client is None:
            raise KeyVaultNotConfiguredError(
                "Azure Key Vault client not initialized. Check AZURE_TENANT_ID, "
                "AZURE_CLIENT_ID, and AZURE_CLIENT_SECRET environment variables.",
                missing=["AZURE_TENANT_ID", "AZURE_CLIENT_ID", "AZURE_CLIENT_SECRET"],
            )

        try:
            record = await self.client.get_secret(name)
        except SecretAccessError as e:
            logger.error(f"Error fetching secret '{name}' from Azure Key Vault: {e.message}")
            raise
        return record.value or ""

    def describe(self) -> str:
        return f"azure-api ({self.vault_url or 'no vault url'})"
