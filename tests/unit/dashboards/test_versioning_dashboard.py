"""
Tests for the secret versioning dashboard.
"""

from datetime import datetime, timezone

import pytest
from azure.core.exceptions import HttpResponseError, ResourceNotFoundError

from secretdash.dashboards import VersioningDashboard
from secretdash.dashboards.versioning import version_record
from secretdash.exceptions import SecretNotFoundError
from secretdash.keyvault.models import SecretProperties


@pytest.fixture
def versioning(config, keyvault, fake_secret_client):
    fake_secret_client.add("api-key", "sk-second-version")
    return VersioningDashboard(config, keyvault=keyvault, environ={})


class TestVersionRecord:
    """Test the JSON view of one version."""

    def test_fields(self):
        """Test timestamps are formatted and missing ones are None."""
        props = SecretProperties(
            name="api-key",
            version="abc",
            created_on=datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc),
            tags={"env": "dev"},
        )

        record = version_record(props, value="secret")

        assert record["createdOn"] == "2024-01-02T03:04:05.000Z"
        assert record["updatedOn"] is None
        assert record["value"] == "secret"
        assert record["tags"] == {"env": "dev"}
        assert "valueError" not in record

    def test_value_error(self):
        """Test an unreadable version keeps its error."""
        record = version_record(SecretProperties(name="api-key"), value_error="Forbidden")

        assert record["value"] is None
        assert record["valueError"] == "Forbidden"


class TestVersioningDashboard:
    """Test version listing and comparison."""

    @pytest.mark.asyncio
    async def test_get_all_versions(self, versioning):
        """Test versions are listed newest first with their values."""
        versions = await versioning.get_all_versions("api-key")

        assert [v["value"] for v in versions] == ["sk-second-version", "sk1234567890abcdef1234567890abcdef"]
        assert all(v["name"] == "api-key" for v in versions)

    @pytest.mark.asyncio
    async def test_versions_cached(self, versioning, fake_secret_client):
        """Test versions are reused until the cache is bypassed."""
        await versioning.get_all_versions("api-key")
        fake_secret_client.add("api-key", "sk-third-version")

        assert len(await versioning.get_all_versions("api-key")) == 2
        assert len(await versioning.get_all_versions("api-key", use_cache=False)) == 3

    @pytest.mark.asyncio
    async def test_unreadable_version(self, versioning, fake_secret_client, monkeypatch):
        """Test a version whose value cannot be read keeps its metadata."""
        old_version = fake_secret_client.versions["api-key"][0].properties.version
        original_get = fake_secret_client.get_secret

        def get_secret(name, version=None, **kwargs):
            if version == old_version:
                error = HttpResponseError(message="Operation get is not allowed on a disabled secret.")
                error.status_code = 403
                raise error
            return original_get(name, version=version, **kwargs)

        monkeypatch.setattr(fake_secret_client, "get_secret", get_secret)

        versions = await versioning.get_all_versions("api-key")

        assert versions[0]["value"] == "sk-second-version"
        assert versions[1]["value"] is None
        assert versions[1]["version"] == old_version
        assert "valueError" in versions[1]

    @pytest.mark.asyncio
    async def test_missing_secret_raises(self, versioning):
        """Test listing versions of a missing secret raises."""
        with pytest.raises(SecretNotFoundError):
            await versioning.get_all_versions("nope")

    @pytest.mark.asyncio
    async def test_all_secrets_versions(self, versioning, fake_secret_client):
        """Test every monitored secret is listed and failures map to an empty list."""
        fake_secret_client.errors["database-password"] = ResourceNotFoundError("gone")

        all_versions = await versioning.get_all_secrets_versions()

        assert set(all_versions) == {"hello-world-secret", "database-password", "api-key"}
        assert all_versions["database-password"] == []
        assert len(all_versions["api-key"]) == 2

    @pytest.mark.asyncio
    async def test_get_secret_version(self, versioning, fake_secret_client):
        """Test the latest and a specific version."""
        first = fake_secret_client.versions["api-key"][0].properties.version

        latest = await versioning.get_secret_version("api-key")
        specific = await versioning.get_secret_version("api-key", first)

        assert latest["value"] == "sk-second-version"
        assert specific["version"] == first
        assert specific["value"] == "sk1234567890abcdef1234567890abcdef"

    @pytest.mark.asyncio
    async def test_unknown_version(self, versioning):
        """Test an unknown version raises not found."""
        with pytest.raises(SecretNotFoundError):
            await versioning.get_secret_version("api-key", "0000")

    @pytest.mark.asyncio
    async def test_compare_versions(self, versioning, fake_secret_client):
        """Test comparing two versions."""
        v1, v2 = (s.properties.version for s in fake_secret_client.versions["api-key"])

        comparison = await versioning.compare_versions("api-key", v1, v2)

        assert comparison["secretName"] == "api-key"
        assert comparison["version1"]["version"] == v1
        assert comparison["version2"]["value"] == "sk-second-version"
        assert comparison["valuesMatch"] is False
        assert comparison["bothEnabled"] is True

    @pytest.mark.asyncio
    async def test_compare_same_version(self, versioning, fake_secret_client):
        """Test a version compared with itself matches."""
        v1 = fake_secret_client.versions["api-key"][0].properties.version

        comparison = await versioning.compare_versions("api-key", v1, v1)

        assert comparison["valuesMatch"] is True

    @pytest.mark.asyncio
    async def test_secrets_payload(self, versioning):
        """Test /api/secrets lists versions instead of values."""
        payload = await versioning.secrets_payload()

        assert payload["success"] is True
        assert payload["method"] == "Secret Versioning Dashboard"
        assert len(payload["versions"]["api-key"]) == 2

    @pytest.mark.asyncio
    async def test_page_panels(self, versioning, fake_secret_client):
        """Test one panel per secret with masked values."""
        fake_secret_client.errors["database-password"] = ResourceNotFoundError("gone")

        panels = {p.title: p for p in await versioning.page_panels()}

        api_key = panels["api-key (2 versions)"]
        assert api_key.table[0][0].endswith(" (current)")
        assert api_key.table[0][3] == "sk****on"
        assert panels["database-password (0 versions)"].note == "No versions found"
        assert "hello-world-secret (1 version)" in panels
