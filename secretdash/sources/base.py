"""
Abstract Secret Source Interface.

A secret source knows one way of turning a secret name into its value:
a CSI-mounted file, a Key Vault API call, or an environment variable
populated from a synced Kubernetes Secret.

Author: SecretDash Team
Date: 2026-09-03
"""

from abc import ABC, abstractmethod

from ..core.config_manager import SecretStrategy


class SecretSource(ABC):
    """Base class for secret retrieval strategies."""

    strategy: SecretStrategy

    @abstractmethod
    async def fetch(self, name: str) -> str:
        """
        Fetch the current value of a secret.

        Args:
            name: Secret name as stored in Key Vault (e.g. ``database-password``)

        Returns:
            Secret value

        Raises:
            SecretAccessError: If the secret cannot be read
        """
        pass

    def describe(self) -> str:
        """Short human-readable description used in log messages."""
        return self.strategy.value
