"""
Shared test fixtures.

Provides an in-memory stand-in for ``azure.keyvault.secrets.SecretClient``
exposing the same method names, so the real ``KeyVaultClient`` wrapper is
exercised without network access.
"""

import uuid
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace
from typing import Dict, List, Optional

import pytest
from azure.core.exceptions import ResourceNotFoundError

from secretdash.core.config_manager import SecretDashConfig
from secretdash.core.metrics import DashboardMetrics
from secretdash.keyvault.client import KeyVaultClient

VAULT_URL = "https://test-vault.vault.azure.net/"

DEMO_VALUES = {
    "hello-world-secret": "Hello World Secret from Azure Key Vault!",
    "database-password": "SuperSecureDatabasePassword123!",
    "api-key": "sk1234567890abcdef1234567890abcdef",
}


class _DeletePoller:
    def __init__(self, client: "FakeSecretClient", name: str):
        self._client = client
        self._name = name

    def wait(self) -> None:
        self._client.deleted[self._name] = self._client.versions.pop(self._name)


class FakeSecretClient:
    """In-memory SecretClient keeping every version of every secret."""

    def __init__(self, vault_url: str = VAULT_URL):
        self.vault_url = vault_url
        self.versions: Dict[str, List[SimpleNamespace]] = {}
        self.deleted: Dict[str, List[SimpleNamespace]] = {}
        self.purged: List[str] = []
        self.errors: Dict[str, Exception] = {}
        self._last_created: Optional[datetime] = None
        self.closed = False

    def _next_created(self) -> datetime:
        now = datetime.now(timezone.utc)
        if self._last_created and now <= self._last_created:
            now = self._last_created + timedelta(seconds=1)
        self._last_created = now
        return now

    def add(
        self,
        name: str,
        value: str,
        created_on: Optional[datetime] = None,
        updated_on: Optional[datetime] = None,
        expires_on: Optional[datetime] = None,
        enabled: bool = True,
        content_type: Optional[str] = None,
        tags: Optional[Dict[str, str]] = None,
    ) -> SimpleNamespace:
        """Store a new version and return it."""
        created = created_on or self._next_created()
        version = uuid.uuid4().hex
        properties = SimpleNamespace(
            name=name,
            version=version,
            enabled=enabled,
            created_on=created,
            updated_on=updated_on or created,
            expires_on=expires_on,
            content_type=content_type,
            tags=tags,
            id=f"{self.vault_url}secrets/{name}/{version}",
        )
        secret = SimpleNamespace(name=name, value=value, properties=properties, id=properties.id)
        self.versions.setdefault(name, []).append(secret)
        return secret

    def _check(self, name: str) -> None:
        if name in self.errors:
            raise self.errors[name]
        if name not in self.versions:
            raise ResourceNotFoundError(f"Secret not found: {name}")

    # ========== SecretClient API ==========

    def get_secret(self, name: str, version: Optional[str] = None, **kwargs):
        self._check(name)
        if version is None:
            return self.versions[name][-1]
        for secret in self.versions[name]:
            if secret.properties.version == version:
                return secret
        raise ResourceNotFoundError(f"Secret version not found: {name}/{version}")

    def set_secret(self, name: str, value: str, content_type=None, tags=None, **kwargs):
        if name in self.errors:
            raise self.errors[name]
        return self.add(name, value, content_type=content_type, tags=tags)

    def list_properties_of_secrets(self, **kwargs):
        return [secrets[-1].properties for secrets in self.versions.values()]

    def list_properties_of_secret_versions(self, name: str, **kwargs):
        self._check(name)
        return [secret.properties for secret in self.versions[name]]

    def begin_delete_secret(self, name: str, **kwargs):
        self._check(name)
        return _DeletePoller(self, name)

    def purge_deleted_secret(self, name: str, **kwargs):
        if name not in self.deleted:
            raise ResourceNotFoundError(f"Deleted secret not found: {name}")
        del self.deleted[name]
        self.purged.append(name)

    def close(self) -> None:
        self.closed = True


@pytest.fixture
def fake_secret_client():
    """Fake SecretClient seeded with the three demo secrets."""
    client = FakeSecretClient()
    for name, value in DEMO_VALUES.items():
        client.add(name, value)
    return client


@pytest.fixture
def make_secret_client():
    """Factory for additional empty fake SecretClients (one per vault URL)."""
    return FakeSecretClient


@pytest.fixture
def keyvault(fake_secret_client):
    """KeyVaultClient wrapper around the fake SecretClient."""
    return KeyVaultClient(VAULT_URL, client=fake_secret_client)


@pytest.fixture
def secrets_dir(tmp_path):
    """CSI-style mount directory holding the demo secrets as files."""
    mount = tmp_path / "secrets"
    mount.mkdir()
    for name, value in DEMO_VALUES.items():
        (mount / name).write_text(value + "\n")
    return mount


@pytest.fixture
def config(secrets_dir):
    """Configuration pointing at the test vault and mount directory."""
    return SecretDashConfig(
        keyvault={"url": VAULT_URL},
        secrets={"mount_path": str(secrets_dir)},
        namespace="test-ns",
    )


@pytest.fixture
def metrics():
    """Metrics with a private registry."""
    return DashboardMetrics()
