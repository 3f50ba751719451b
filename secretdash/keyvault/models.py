"""
Key Vault Models.

Pydantic models for secret metadata and values returned by Azure Key Vault,
built from the Azure SDK's ``SecretProperties`` / ``KeyVaultSecret`` objects.

Author: SecretDash Team
Date: 2026-09-02
"""

from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field


class SecretProperties(BaseModel):
    """Secret metadata without the value.

    Attributes:
        name: Secret name
        version: Version identifier
        enabled: Whether the version can be read
        created_on: Creation timestamp
        updated_on: Last update timestamp
        expires_on: Expiration timestamp (None when the secret never expires)
        content_type: MIME type hint
        tags: User-defined tags
        id: Full secret identifier URL
    """

    name: str
    version: Optional[str] = None
    enabled: bool = True
    created_on: Optional[datetime] = Field(default=None, alias="createdOn")
    updated_on: Optional[datetime] = Field(default=None, alias="updatedOn")
    expires_on: Optional[datetime] = Field(default=None, alias="expiresOn")
    content_type: Optional[str] = Field(default=None, alias="contentType")
    tags: Dict[str, str] = Field(default_factory=dict)
    id: Optional[str] = None

    model_config = ConfigDict(populate_by_name=True)

    @classmethod
    def from_sdk(cls, props: Any) -> "SecretProperties":
        """Build from an ``azure.keyvault.secrets.SecretProperties``."""
        return cls(
            name=props.name,
            version=props.version,
            enabled=props.enabled if props.enabled is not None else True,
            created_on=props.created_on,
            updated_on=props.updated_on,
            expires_on=props.expires_on,
            content_type=props.content_type,
            tags=dict(props.tags or {}),
            id=props.id,
        )


class SecretRecord(SecretProperties):
    """Secret metadata together with its value."""

    value: Optional[str] = None

    @classmethod
    def from_sdk_secret(cls, secret: Any) -> "SecretRecord":
        """Build from an ``azure.keyvault.secrets.KeyVaultSecret``."""
        props = SecretProperties.from_sdk(secret.properties)
        return cls(**props.model_dump(), value=secret.value)
