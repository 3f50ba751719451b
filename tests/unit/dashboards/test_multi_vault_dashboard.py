"""
Tests for the multi-vault dashboard.
"""

import pytest

from secretdash.dashboards import MultiVaultDashboard
from secretdash.dashboards.multi_vault import parse_vault_config
from secretdash.exceptions import VaultNotFoundError
from secretdash.keyvault.client import KeyVaultClient

PRIMARY = "https://primary.vault.azure.net/"
SECONDARY = "https://secondary.vault.azure.net/"
DEFAULT = "https://test-vault.vault.azure.net/"


class TestParseVaultConfig:
    """Test VAULT_CONFIG parsing."""

    def test_empty(self):
        """Test nothing configured."""
        assert parse_vault_config(None) == []
        assert parse_vault_config("  ") == []

    def test_named_list(self):
        """Test named entries keep their order."""
        assert parse_vault_config(f"primary:{PRIMARY}, secondary:{SECONDARY}") == [
            ("primary", PRIMARY),
            ("secondary", SECONDARY),
        ]

    def test_bare_urls(self):
        """Test bare URLs are numbered and duplicates skipped."""
        assert parse_vault_config(f"{PRIMARY},{SECONDARY},{PRIMARY}") == [
            ("vault-1", PRIMARY),
            ("vault-2", SECONDARY),
        ]

    def test_duplicate_names_skipped(self):
        """Test the first entry with a name wins."""
        assert parse_vault_config(f"main:{PRIMARY},main:{SECONDARY}") == [("main", PRIMARY)]

    def test_mixed_entries(self):
        """Test named and bare entries together."""
        assert parse_vault_config(f"main:{PRIMARY},{SECONDARY}") == [
            ("main", PRIMARY),
            ("vault-2", SECONDARY),
        ]

    def test_single_entry(self):
        """Test a single URL is the primary vault."""
        assert parse_vault_config(PRIMARY) == [("primary", PRIMARY)]
        assert parse_vault_config(f"prod:{PRIMARY}") == [("prod", PRIMARY)]

    def test_keyvault_url_fallback(self):
        """Test KEYVAULT_URL alone becomes the primary vault."""
        assert parse_vault_config(None, DEFAULT) == [("primary", DEFAULT)]

    def test_keyvault_url_appended(self):
        """Test KEYVAULT_URL is appended as the default vault unless listed."""
        assert parse_vault_config(f"prod:{PRIMARY}", DEFAULT) == [("prod", PRIMARY), ("default", DEFAULT)]
        assert parse_vault_config(f"prod:{DEFAULT}", DEFAULT) == [("prod", DEFAULT)]


@pytest.fixture
def vault_clients(fake_secret_client, make_secret_client):
    primary = make_secret_client(PRIMARY)
    primary.add("api-key", "primaryapikey")
    secondary = make_secret_client(SECONDARY)
    secondary.add("database-password", "SecondaryPassword1!")
    return {PRIMARY: primary, SECONDARY: secondary, DEFAULT: fake_secret_client}


@pytest.fixture
def multi_vault(config, metrics, vault_clients):
    return MultiVaultDashboard(
        config,
        metrics=metrics,
        environ={"VAULT_CONFIG": f"primary:{PRIMARY},secondary:{SECONDARY}"},
        client_factory=lambda url: KeyVaultClient(url, client=vault_clients[url]),
    )


class TestMultiVaultDashboard:
    """Test priority-ordered lookup."""

    def test_vault_info(self, multi_vault):
        """Test every configured vault is listed with its status."""
        info = multi_vault.vault_info()

        assert info["vaultCount"] == 3
        assert [v["name"] for v in info["vaults"]] == ["primary", "secondary", "default"]
        assert all(v["initialized"] for v in info["vaults"])
        assert multi_vault.health_extras() == {"multiVault": True, "vaultCount": 3}

    @pytest.mark.asyncio
    async def test_get_secret_from_vault(self, multi_vault):
        """Test a direct read from one vault."""
        result = await multi_vault.get_secret_from_vault("primary", "api-key")

        assert result["found"] is True
        assert result["value"] == "primaryapikey"
        assert result["version"]

    @pytest.mark.asyncio
    async def test_missing_secret_in_vault(self, multi_vault):
        """Test a missing secret is reported, not raised."""
        result = await multi_vault.get_secret_from_vault("secondary", "api-key")

        assert result["found"] is False
        assert "not found" in result["error"]

    @pytest.mark.asyncio
    async def test_unknown_vault(self, multi_vault):
        """Test an unknown vault raises VaultNotFoundError."""
        with pytest.raises(VaultNotFoundError):
            await multi_vault.get_secret_from_vault("nope", "api-key")

    @pytest.mark.asyncio
    async def test_all_vaults(self, multi_vault):
        """Test a secret is looked up in every vault."""
        results = await multi_vault.get_secret_from_all_vaults("database-password")

        assert list(results) == ["primary", "secondary", "default"]
        assert results["primary"]["found"] is False
        assert results["secondary"]["value"] == "SecondaryPassword1!"
        assert results["default"]["value"] == "SuperSecureDatabasePassword123!"

    @pytest.mark.asyncio
    async def test_fallback_order(self, multi_vault):
        """Test the first vault holding a secret wins."""
        result = await multi_vault.get_secret_with_fallback("database-password")

        assert result["vault"] == "secondary"
        assert await multi_vault.get_secret_with_fallback("jwt-secret") is None

    @pytest.mark.asyncio
    async def test_get_secrets_with_markers(self, multi_vault, metrics):
        """Test the monitored secrets carry their source vault and are cached."""
        multi_vault.secret_names.append("jwt-secret")

        secrets = await multi_vault.get_secrets()
        again = await multi_vault.get_secrets()

        assert secrets == again
        assert secrets["api-key"] == "primaryapikey"
        assert secrets["_api-key_vault"] == "primary"
        assert secrets["_database-password_vault"] == "secondary"
        assert secrets["_hello-world-secret_vault"] == "default"
        assert secrets["jwt-secret"] == "Not found"
        assert "_jwt-secret_vault" not in secrets
        assert metrics.registry.get_sample_value("secretdash_cache_hits_total") == 1.0

    @pytest.mark.asyncio
    async def test_shutdown_closes_vault_clients(self, multi_vault, vault_clients):
        """Test every vault connection is released on shutdown."""
        await multi_vault.shutdown()

        assert all(client.closed for client in vault_clients.values())

    def test_no_credentials(self, config):
        """Test vaults are listed but not initialized without credentials."""
        dashboard = MultiVaultDashboard(config, environ={"VAULT_CONFIG": PRIMARY})

        assert dashboard.vault_clients == {}
        assert [v["initialized"] for v in dashboard.vault_info()["vaults"]] == [False, False]
