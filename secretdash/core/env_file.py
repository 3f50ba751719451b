"""
config.env support.

Parses the shell-sourced ``KEY=VALUE`` file written by the Azure setup step
and validates the keys the install commands need.

Author: SecretDash Team
Date: 2026-09-02
"""

import logging
import re
from pathlib import Path
from typing import ClassVar, Dict, List, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field

logger = logging.getLogger(__name__)

_LINE_PATTERN = re.compile(r"^(?:export\s+)?([A-Za-z_][A-Za-z0-9_]*)\s*=\s*(.*)$")

SENSITIVE_KEYS = ("SERVICE_PRINCIPAL_CLIENT_SECRET", "AZURE_CLIENT_SECRET")


def parse_env_lines(text: str) -> Dict[str, str]:
    """Parse ``config.env`` content into a dictionary.

    Supports blank lines, ``#`` comments, an optional ``export`` prefix and
    single- or double-quoted values. Unquoted values lose trailing comments.

    Args:
        text: File content

    Returns:
        Mapping of variable name to value (later assignments win)
    """
    values: Dict[str, str] = {}

    for raw_line in text.splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue

        match = _LINE_PATTERN.match(line)
        if not match:
            logger.debug(f"Skipping unparseable config.env line: {line!r}")
            continue

        key, value = match.group(1), match.group(2).strip()
        if len(value) >= 2 and value[0] == value[-1] and value[0] in ("'", '"'):
            value = value[1:-1]
        elif " #" in value:
            value = value.split(" #", 1)[0].rstrip()

        values[key] = value

    return values


def load_env_file(path: Union[str, Path]) -> Dict[str, str]:
    """Read and parse a ``config.env`` file.

    Raises:
        FileNotFoundError: If the file does not exist
    """
    env_path = Path(path)
    if not env_path.exists():
        raise FileNotFoundError(f"config.env not found: {env_path}")
    return parse_env_lines(env_path.read_text(encoding="utf-8"))


class InstallConfig(BaseModel):
    """Values from ``config.env`` used by the install commands."""

    azure_tenant_id: Optional[str] = Field(default=None, alias="AZURE_TENANT_ID")
    azure_subscription_id: Optional[str] = Field(default=None, alias="AZURE_SUBSCRIPTION_ID")
    resource_group: Optional[str] = Field(default=None, alias="RESOURCE_GROUP")
    location: Optional[str] = Field(default=None, alias="LOCATION")
    keyvault_name: Optional[str] = Field(default=None, alias="KEYVAULT_NAME")
    keyvault_url_override: Optional[str] = Field(default=None, alias="KEYVAULT_URL")
    client_id: Optional[str] = Field(default=None, alias="SERVICE_PRINCIPAL_CLIENT_ID")
    client_secret: Optional[str] = Field(default=None, alias="SERVICE_PRINCIPAL_CLIENT_SECRET")
    auth_method: str = Field(default="service-principal", alias="AUTH_METHOD")

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    REQUIRED: ClassVar[Tuple[str, ...]] = (
        "AZURE_TENANT_ID",
        "KEYVAULT_NAME",
        "SERVICE_PRINCIPAL_CLIENT_ID",
        "SERVICE_PRINCIPAL_CLIENT_SECRET",
    )

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> "InstallConfig":
        return cls.model_validate(load_env_file(path))

    @property
    def keyvault_url(self) -> Optional[str]:
        """Explicit KEYVAULT_URL, else derived from KEYVAULT_NAME."""
        if self.keyvault_url_override:
            return self.keyvault_url_override
        if self.keyvault_name:
            return f"https://{self.keyvault_name}.vault.azure.net/"
        return None

    def missing_required(self) -> List[str]:
        """List mandatory ``config.env`` keys that are absent or empty."""
        dumped = self.model_dump(by_alias=True)
        return [key for key in self.REQUIRED if not dumped.get(key)]

    def redacted(self) -> Dict[str, Optional[str]]:
        """Return the config keyed by variable name with secrets masked."""
        dumped = self.model_dump(by_alias=True)
        for key in SENSITIVE_KEYS:
            if dumped.get(key):
                dumped[key] = "***REDACTED***"
        dumped["KEYVAULT_URL"] = self.keyvault_url
        return dumped
