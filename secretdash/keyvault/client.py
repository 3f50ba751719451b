"""
Azure Key Vault client.

Async facade over ``azure.keyvault.secrets.SecretClient``. The SDK client is
synchronous, so every call runs in a worker thread and Azure errors are
translated into the SecretDash exception hierarchy.

Author: SecretDash Team
Date: 2026-09-03
"""

import asyncio
import logging
from typing import Any, Callable, Dict, List, Optional, TypeVar

from azure.core.exceptions import (
    ClientAuthenticationError,
    HttpResponseError,
    ResourceNotFoundError,
)
from azure.identity import ClientSecretCredential
from azure.keyvault.secrets import SecretClient

from ..core.config_manager import KeyVaultConfig
from ..exceptions import (
    KeyVaultForbiddenError,
    KeyVaultNotConfiguredError,
    KeyVaultUnauthorizedError,
    SecretAccessError,
    SecretNotFoundError,
)
from .models import SecretProperties, SecretRecord

logger = logging.getLogger(__name__)

T = TypeVar("T")


def build_credential(
    tenant_id: Optional[str],
    client_id: Optional[str],
    client_secret: Optional[str],
) -> ClientSecretCredential:
    """Create a Service Principal credential.

    Raises:
        KeyVaultNotConfiguredError: If any of the three values is missing
    """
    missing = [
        env_name
        for env_name, value in (
            ("AZURE_TENANT_ID", tenant_id),
            ("AZURE_CLIENT_ID", client_id),
            ("AZURE_CLIENT_SECRET", client_secret),
        )
        if not value
    ]
    if missing:
        raise KeyVaultNotConfiguredError(
            f"Missing required environment variables: {', '.join(missing)}",
            missing=missing,
        )
    return ClientSecretCredential(tenant_id, client_id, client_secret)


class KeyVaultClient:
    """Async Key Vault secret operations.

    Args:
        vault_url: Vault URL, e.g. ``https://my-vault.vault.azure.net/``
        credential: Azure credential used to build the SDK client
        client: Pre-built SDK ``SecretClient`` (takes precedence over credential)
    """

    def __init__(self, vault_url: str, credential: Any = None, client: Any = None):
        if client is None:
            if credential is None:
                raise KeyVaultNotConfiguredError(
                    "A credential or SecretClient is required to reach Key Vault"
                )
            client = SecretClient(vault_url=vault_url, credential=credential)
        self.vault_url = vault_url
        self._client = client
        self._credential = credential

    @classmethod
    def from_config(cls, config: KeyVaultConfig) -> Optional["KeyVaultClient"]:
        """Create a client from configuration.

        Returns:
            KeyVaultClient, or None when the URL or credentials are missing
        """
        if not config.url:
            logger.error("Failed to initialize Azure Key Vault client: KEYVAULT_URL is not set")
            return None
        try:
            credential = build_credential(config.tenant_id, config.client_id, config.client_secret)
        except KeyVaultNotConfiguredError as e:
            logger.error(f"Failed to initialize Azure Key Vault client: {e.message}")
            return None
        return cls(config.url, credential=credential)

    async def close(self) -> None:
        """Close the SDK client and the credential it authenticates with."""
        await asyncio.to_thread(self._client.close)
        if self._credential is not None:
            await asyncio.to_thread(self._credential.close)

    async def _call(self, func: Callable[..., T], *args: Any, secret_name: Optional[str] = None, **kwargs: Any) -> T:
        try:
            return await asyncio.to_thread(func, *args, **kwargs)
        except ResourceNotFoundError:
            raise SecretNotFoundError(secret_name or "unknown", kwargs.get("version"))
        except ClientAuthenticationError as e:
            logger.error(f"Key Vault authentication failed: {e}")
            raise KeyVaultUnauthorizedError()
        except HttpResponseError as e:
            if e.status_code == 401:
                raise KeyVaultUnauthorizedError()
            if e.status_code == 403:
                raise KeyVaultForbiddenError()
            raise SecretAccessError(f"Azure Key Vault error: {e.message}", error_code="KeyVaultError")

    async def get_secret(self, name: str, version: Optional[str] = None) -> SecretRecord:
        """Fetch a secret value (latest version unless ``version`` is given)."""
        secret = await self._call(self._client.get_secret, name, version=version, secret_name=name)
        return SecretRecord.from_sdk_secret(secret)

    async def list_secret_properties(self) -> List[SecretProperties]:
        """List metadata of every secret in the vault."""

        def _list():
            return [SecretProperties.from_sdk(p) for p in self._client.list_properties_of_secrets()]

        return await self._call(_list)

    async def list_secret_versions(self, name: str) -> List[SecretProperties]:
        """List all versions of a secret, newest first."""

        def _list():
            return [
                SecretProperties.from_sdk(p)
                for p in self._client.list_properties_of_secret_versions(name)
            ]

        versions = await self._call(_list, secret_name=name)
        versions.sort(key=_created_sort_key, reverse=True)
        return versions

    async def set_secret(
        self,
        name: str,
        value: str,
        content_type: Optional[str] = None,
        tags: Optional[Dict[str, str]] = None,
    ) -> SecretRecord:
        """Create a new version of a secret."""
        secret = await self._call(
            self._client.set_secret, name, value,
            content_type=content_type, tags=tags, secret_name=name,
        )
        logger.info(f"Stored new version of secret '{name}'")
        return SecretRecord.from_sdk_secret(secret)

    async def delete_secret(self, name: str) -> None:
        """Delete a secret and wait for the deletion to finish."""

        def _delete():
            poller = self._client.begin_delete_secret(name)
            poller.wait()

        await self._call(_delete, secret_name=name)
        logger.info(f"Deleted secret '{name}'")

    async def purge_deleted_secret(self, name: str) -> None:
        """Permanently remove a soft-deleted secret."""
        await self._call(self._client.purge_deleted_secret, name, secret_name=name)
        logger.info(f"Purged secret '{name}'")


def _created_sort_key(props: SecretProperties) -> float:
    return props.created_on.timestamp() if props.created_on else 0.0
