"""
Tests for the async Key Vault client wrapper.
"""

from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

import pytest
from azure.core.exceptions import ClientAuthenticationError, HttpResponseError

from secretdash.core.config_manager import KeyVaultConfig
from secretdash.exceptions import (
    KeyVaultForbiddenError,
    KeyVaultNotConfiguredError,
    KeyVaultUnauthorizedError,
    SecretAccessError,
    SecretNotFoundError,
)
from secretdash.keyvault.client import KeyVaultClient, build_credential
from secretdash.keyvault.models import SecretProperties, SecretRecord


def _http_error(status_code: int, message: str = "denied") -> HttpResponseError:
    error = HttpResponseError(message=message)
    error.status_code = status_code
    return error


class TestBuildCredential:
    """Test Service Principal credential creation."""

    def test_missing_values(self):
        """Test every missing value is reported."""
        with pytest.raises(KeyVaultNotConfiguredError) as exc_info:
            build_credential("tenant", None, "")

        assert exc_info.value.missing == ["AZURE_CLIENT_ID", "AZURE_CLIENT_SECRET"]
        assert "AZURE_CLIENT_ID" in exc_info.value.message

    def test_builds_credential(self):
        """Test a credential is created when all values are present."""
        credential = build_credential("tenant", "client", "secret")

        assert credential is not None

    def test_from_config_without_url(self, caplog):
        """Test no client is built without a vault URL."""
        assert KeyVaultClient.from_config(KeyVaultConfig()) is None
        assert "KEYVAULT_URL is not set" in caplog.text

    def test_from_config_without_credentials(self):
        """Test no client is built without credentials."""
        assert KeyVaultClient.from_config(KeyVaultConfig(url="https://kv.vault.azure.net/")) is None

    def test_requires_credential_or_client(self):
        """Test the constructor needs something to talk to the vault with."""
        with pytest.raises(KeyVaultNotConfiguredError):
            KeyVaultClient("https://kv.vault.azure.net/")


class TestKeyVaultClient:
    """Test KeyVaultClient operations against the in-memory SecretClient."""

    @pytest.mark.asyncio
    async def test_get_secret(self, keyvault):
        """Test reading the latest version."""
        record = await keyvault.get_secret("database-password")

        assert isinstance(record, SecretRecord)
        assert record.name == "database-password"
        assert record.value == "SuperSecureDatabasePassword123!"
        assert record.version
        assert record.enabled is True

    @pytest.mark.asyncio
    async def test_get_specific_version(self, keyvault, fake_secret_client):
        """Test reading an older version."""
        first = fake_secret_client.versions["api-key"][0]
        fake_secret_client.add("api-key", "rotatedkey")

        record = await keyvault.get_secret("api-key", version=first.properties.version)

        assert record.value == first.value

    @pytest.mark.asyncio
    async def test_get_missing_secret(self, keyvault):
        """Test ResourceNotFoundError becomes SecretNotFoundError."""
        with pytest.raises(SecretNotFoundError) as exc_info:
            await keyvault.get_secret("nope")

        assert exc_info.value.secret_name == "nope"
        assert exc_info.value.error_code == "SecretNotFound"

    @pytest.mark.asyncio
    async def test_get_missing_version(self, keyvault):
        """Test the version is named in the not-found message."""
        with pytest.raises(SecretNotFoundError, match="version 'abc'"):
            await keyvault.get_secret("api-key", version="abc")

    @pytest.mark.asyncio
    async def test_authentication_error(self, keyvault, fake_secret_client):
        """Test ClientAuthenticationError becomes KeyVaultUnauthorizedError."""
        fake_secret_client.errors["api-key"] = ClientAuthenticationError(message="bad secret")

        with pytest.raises(KeyVaultUnauthorizedError):
            await keyvault.get_secret("api-key")

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status_code,expected", [
        (401, KeyVaultUnauthorizedError),
        (403, KeyVaultForbiddenError),
    ])
    async def test_http_auth_errors(self, keyvault, fake_secret_client, status_code, expected):
        """Test 401/403 responses map to their own errors."""
        fake_secret_client.errors["api-key"] = _http_error(status_code)

        with pytest.raises(expected):
            await keyvault.get_secret("api-key")

    @pytest.mark.asyncio
    async def test_other_http_error(self, keyvault, fake_secret_client):
        """Test other Azure errors keep their message."""
        fake_secret_client.errors["api-key"] = _http_error(500, "Service unavailable")

        with pytest.raises(SecretAccessError) as exc_info:
            await keyvault.get_secret("api-key")

        assert exc_info.value.error_code == "KeyVaultError"
        assert "Azure Key Vault error" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_list_secret_properties(self, keyvault):
        """Test listing metadata of every secret."""
        properties = await keyvault.list_secret_properties()

        assert sorted(p.name for p in properties) == ["api-key", "database-password", "hello-world-secret"]
        assert all(isinstance(p, SecretProperties) for p in properties)

    @pytest.mark.asyncio
    async def test_list_versions_newest_first(self, keyvault, fake_secret_client):
        """Test versions are sorted by creation time, newest first."""
        base = datetime(2024, 1, 1, tzinfo=timezone.utc)
        fake_secret_client.add("jwt-secret", "v2", created_on=base + timedelta(days=2))
        fake_secret_client.add("jwt-secret", "v1", created_on=base)
        fake_secret_client.add("jwt-secret", "v3", created_on=base + timedelta(days=5))

        versions = await keyvault.list_secret_versions("jwt-secret")

        assert [v.created_on for v in versions] == [
            base + timedelta(days=5),
            base + timedelta(days=2),
            base,
        ]

    @pytest.mark.asyncio
    async def test_list_versions_missing_secret(self, keyvault):
        """Test listing versions of a missing secret."""
        with pytest.raises(SecretNotFoundError):
            await keyvault.list_secret_versions("nope")

    @pytest.mark.asyncio
    async def test_set_secret(self, keyvault, fake_secret_client):
        """Test storing a new version."""
        record = await keyvault.set_secret("api-key", "newkey", content_type="text/plain", tags={"a": "b"})

        assert record.value == "newkey"
        assert record.content_type == "text/plain"
        assert record.tags == {"a": "b"}
        assert len(fake_secret_client.versions["api-key"]) == 2

    @pytest.mark.asyncio
    async def test_delete_and_purge(self, keyvault, fake_secret_client):
        """Test deletion waits for the poller and purge removes the deleted secret."""
        await keyvault.delete_secret("api-key")
        assert "api-key" not in fake_secret_client.versions
        assert "api-key" in fake_secret_client.deleted

        await keyvault.purge_deleted_secret("api-key")
        assert fake_secret_client.purged == ["api-key"]

    @pytest.mark.asyncio
    async def test_delete_missing(self, keyvault):
        """Test deleting a missing secret."""
        with pytest.raises(SecretNotFoundError):
            await keyvault.delete_secret("nope")

    @pytest.mark.asyncio
    async def test_close(self, fake_secret_client):
        """Test closing releases the SDK client and its credential."""
        credential = SimpleNamespace(closed=False)
        credential.close = lambda: setattr(credential, "closed", True)
        client = KeyVaultClient(fake_secret_client.vault_url, credential=credential, client=fake_secret_client)

        await client.close()

        assert fake_secret_client.closed is True
        assert credential.closed is True

    @pytest.mark.asyncio
    async def test_close_without_credential(self, keyvault, fake_secret_client):
        """Test a client built around an SDK client only closes that client."""
        await keyvault.close()

        assert fake_secret_client.closed is True


class TestModels:
    """Test SDK object conversion."""

    def test_from_sdk_defaults(self):
        """Test None enabled and tags from the SDK are normalised."""
        props = SimpleNamespace(
            name="api-key", version="v1", enabled=None, created_on=None, updated_on=None,
            expires_on=None, content_type=None, tags=None, id=None,
        )

        model = SecretProperties.from_sdk(props)

        assert model.enabled is True
        assert model.tags == {}

    def test_aliases(self):
        """Test camelCase aliases are accepted and produced."""
        model = SecretProperties(name="api-key", createdOn="2024-01-01T00:00:00Z")

        assert model.created_on == datetime(2024, 1, 1, tzinfo=timezone.utc)
        assert "createdOn" in model.model_dump(by_alias=True)
