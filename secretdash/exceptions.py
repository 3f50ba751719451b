"""
SecretDash Exceptions.

Error types raised while reading secrets from mounted files, the environment
or Azure Key Vault.

Author: SecretDash Team
Date: 2026-09-02
"""

from typing import Optional, Sequence


class SecretAccessError(Exception):
    """Base exception for secret access errors."""

    def __init__(self, message: str, error_code: str = "InternalError"):
        """Initialize secret access error.

        Args:
            message: Error message
            error_code: Short machine-readable error code
        """
        super().__init__(message)
        self.message = message
        self.error_code = error_code


class SecretNotFoundError(SecretAccessError):
    """Raised when a secret does not exist in Key Vault."""

    def __init__(self, secret_name: str, version: Optional[str] = None):
        if version:
            message = f"Secret '{secret_name}' version '{version}' not found in Key Vault"
        else:
            message = f"Secret '{secret_name}' not found in Key Vault"
        super().__init__(message, error_code="SecretNotFound")
        self.secret_name = secret_name
        self.version = version


class SecretFileNotFoundError(SecretAccessError):
    """Raised when a CSI-mounted secret file is missing."""

    def __init__(self, path: str):
        super().__init__(f"Secret file not found: {path}", error_code="SecretFileNotFound")
        self.path = path


class KeyVaultNotConfiguredError(SecretAccessError):
    """Raised when the Key Vault URL or Service Principal credentials are missing."""

    def __init__(self, message: str, missing: Sequence[str] = ()):
        super().__init__(message, error_code="KeyVaultNotConfigured")
        self.missing = list(missing)


class KeyVaultUnauthorizedError(SecretAccessError):
    """Raised when Key Vault rejects the credentials."""

    def __init__(self, message: str = "Unauthorized to access Key Vault. Check authentication credentials."):
        super().__init__(message, error_code="Unauthorized")


class KeyVaultForbiddenError(SecretAccessError):
    """Raised when the identity lacks permission on the vault."""

    def __init__(self, message: str = "Access forbidden to Key Vault. Check permissions."):
        super().__init__(message, error_code="Forbidden")


class VaultNotFoundError(SecretAccessError):
    """Raised when a named vault is not part of the dashboard's configuration."""

    def __init__(self, vault_name: str):
        super().__init__(f"Vault '{vault_name}' not configured", error_code="VaultNotFound")
        self.vault_name = vault_name


class CertificateLoadError(SecretAccessError):
    """Raised when a PEM certificate or key cannot be read or parsed."""

    def __init__(self, path: str, reason: str):
        super().__init__(f"Failed to load certificate from {path}: {reason}", error_code="CertificateLoadFailed")
        self.path = path
        self.reason = reason
