"""
Demo Secret Provisioning.

Seeds, rotates and removes the demo secrets in a Key Vault through the
Python SDK. Used by the ``secretdash install`` commands.

Author: SecretDash Team
Date: 2026-09-16
"""

import logging
from typing import Dict, List, NamedTuple, Optional

from .core.env_file import InstallConfig
from .dashboards.rotation import PREVIEW_LENGTH, generate_rotated_value
from .exceptions import KeyVaultNotConfiguredError, SecretAccessError, SecretNotFoundError
from .keyvault.client import KeyVaultClient, build_credential

logger = logging.getLogger(__name__)


class DemoSecret(NamedTuple):
    name: str
    value: str
    description: str


DEMO_SECRETS: List[DemoSecret] = [
    DemoSecret("database-password", "SuperSecureDatabasePassword123!", "Database password for the application"),
    DemoSecret("api-key", "sk-1234567890abcdef1234567890abcdef", "API key for external services"),
    DemoSecret("jwt-secret", "jwt-super-secret-key-for-signing-tokens-2024", "JWT signing secret"),
    DemoSecret("redis-password", "RedisSecurePassword456!", "Redis cache password"),
    DemoSecret("hello-world-secret", "Hello World Secret from Azure Key Vault!", "Hello World secret for demo purposes"),
]

ROTATING_SECRETS = [
    "database-password",
    "api-key",
    "hello-world-secret",
    "rotating-database-password",
    "rotating-api-key",
    "rotating-jwt-secret",
]


def client_from_install_config(config: InstallConfig) -> KeyVaultClient:
    """
    Build a Key Vault client from ``config.env`` values.

    Raises:
        KeyVaultNotConfiguredError: If the vault name or credentials are missing
    """
    if not config.keyvault_url:
        raise KeyVaultNotConfiguredError("KEYVAULT_NAME is required in config.env", missing=["KEYVAULT_NAME"])
    credential = build_credential(config.azure_tenant_id, config.client_id, config.client_secret)
    return KeyVaultClient(config.keyvault_url, credential=credential)


async def check_connectivity(client: KeyVaultClient) -> int:
    """List the vault's secrets to prove access; returns how many there are."""
    return len(await client.list_secret_properties())


async def seed_demo_secrets(client: KeyVaultClient, secrets: Optional[List[DemoSecret]] = None) -> List[str]:
    """Create or update the demo secrets; returns their names."""
    created = []
    for secret in secrets or DEMO_SECRETS:
        await client.set_secret(
            secret.name,
            secret.value,
            content_type="text/plain",
            tags={"description": secret.description, "managed-by": "secretdash"},
        )
        created.append(secret.name)
    return created


async def cleanup_demo_secrets(
    client: KeyVaultClient,
    names: Optional[List[str]] = None,
    purge: bool = False
) -> Dict[str, str]:
    """
    Delete (and optionally purge) the demo secrets.

    Returns:
        Mapping of secret name to ``deleted``, ``purged``, ``missing`` or an
        error message
    """
    results: Dict[str, str] = {}
    for name in names or [s.name for s in DEMO_SECRETS]:
        try:
            await client.delete_secret(name)
            results[name] = "deleted"
            if purge:
                await client.purge_deleted_secret(name)
                results[name] = "purged"
        except SecretNotFoundError:
            results[name] = "missing"
        except SecretAccessError as e:
            logger.error(f"Failed to remove '{name}': {e.message}")
            results[name] = e.message
    return results


async def rotate_demo_secrets(client: KeyVaultClient, names: Optional[List[str]] = None) -> Dict[str, Optional[str]]:
    """
    Write new values for the secrets that exist; missing ones are skipped.

    Returns:
        Mapping of secret name to a preview of the new value, or None when
        the secret was skipped
    """
    results: Dict[str, Optional[str]] = {}
    for name in names or ROTATING_SECRETS:
        try:
            await client.get_secret(name)
        except SecretNotFoundError:
            logger.info(f"Secret '{name}' not found, skipping")
            results[name] = None
            continue
        value = generate_rotated_value(name)
        await client.set_secret(name, value)
        results[name] = value[:PREVIEW_LENGTH] + "..."
    return results
