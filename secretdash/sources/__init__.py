"""
Secret sources.

Author: SecretDash Team
Date: 2026-09-03
"""

import logging
from typing import Mapping, Optional, Union

from ..core.config_manager import SecretDashConfig, SecretStrategy
from ..keyvault.client import KeyVaultClient
from .base import SecretSource
from .cache import SecretCache
from .csi import CsiSecretSource
from .environment import EnvironmentSecretSource, NOT_FOUND, env_var_name
from .keyvault import KeyVaultSecretSource

logger = logging.getLogger(__name__)


def create_source(
    strategy: Union[SecretStrategy, str, None],
    config: SecretDashConfig,
    client: Optional[KeyVaultClient] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> SecretSource:
    """
    Create the secret source for a strategy.

    Args:
        strategy: ``csi``, ``azure-api`` or ``environment``; anything else
            falls back to ``environment``
        config: Dashboard configuration
        client: Key Vault client for the ``azure-api`` strategy
        environ: Environment mapping for the ``environment`` strategy

    Returns:
        SecretSource instance
    """
    try:
        resolved = SecretStrategy(strategy) if strategy else SecretStrategy.ENVIRONMENT
    except ValueError:
        logger.warning(f"Unknown secret strategy '{strategy}', using environment variables")
        resolved = SecretStrategy.ENVIRONMENT

    if resolved == SecretStrategy.CSI:
        return CsiSecretSource(config.secrets.mount_path)
    if resolved == SecretStrategy.AZURE_API:
        return KeyVaultSecretSource(client, config.keyvault.url)
    return EnvironmentSecretSource(environ)


__all__ = [
    "SecretSource",
    "SecretCache",
    "CsiSecretSource",
    "EnvironmentSecretSource",
    "KeyVaultSecretSource",
    "NOT_FOUND",
    "env_var_name",
    "create_source",
]
