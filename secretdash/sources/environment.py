"""
Environment variable secret source.

Used when External Secrets Operator or CSI ``secretObjects`` sync vault
secrets into a Kubernetes Secret that is exposed to the pod as environment
variables.

Author: SecretDash Team
Date: 2026-09-03
"""

import os
from typing import Mapping, Optional

from ..core.config_manager import SecretStrategy
from .base import SecretSource

NOT_FOUND = "Secret not found"


def env_var_name(secret_name: str) -> str:
    """Map ``database-password`` to ``DATABASE_PASSWORD``."""
    return secret_name.replace("-", "_").upper()


class EnvironmentSecretSource(SecretSource):
    """Secret source backed by process environment variables."""

    strategy = SecretStrategy.ENVIRONMENT

    def __init__(self, environ: Optional[Mapping[str, str]] = None):
        self._environ = environ

    @property
    def environ(self) -> Mapping[str, str]:
        return self._environ if self._environ is not None else os.environ

    async def fetch(self, name: str) -> str:
        # An unsynced secret is reported in place of its value, not raised
        return self.environ.get(env_var_name(name)) or NOT_FOUND
