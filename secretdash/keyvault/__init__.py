"""
Azure Key Vault access for SecretDash.

Author: SecretDash Team
Date: 2026-09-03
"""

from .client import KeyVaultClient, build_credential
from .models import SecretProperties, SecretRecord

__all__ = [
    "KeyVaultClient",
    "build_credential",
    "SecretProperties",
    "SecretRecord",
]
