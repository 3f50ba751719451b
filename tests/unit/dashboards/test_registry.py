"""
Tests for the dashboard registry.
"""

import pytest

from secretdash.core.config_manager import SecretDashConfig, SecretStrategy
from secretdash.dashboards import (
    DASHBOARDS,
    PRESETS,
    Dashboard,
    RotationDashboard,
    create_dashboard,
    list_dashboards,
)


class TestListDashboards:
    """Test listing registered dashboards."""

    def test_sorted_and_complete(self):
        """Test every preset and specialised dashboard is listed by name."""
        names = [identity.name for identity in list_dashboards()]

        assert names == sorted(names)
        assert len(names) == 15
        assert {"csi-driver", "direct-api", "secret-sync", "external-secrets"} <= set(names)
        assert {"rotation-handler", "multi-vault", "versioning-dashboard", "audit"} <= set(names)

    def test_presets(self):
        """Test the basic dashboards use the plain Dashboard class."""
        for identity in PRESETS:
            assert DASHBOARDS[identity.name].cls is Dashboard

        external = DASHBOARDS["external-secrets"].identity
        assert external.operator == "RED HAT"
        assert external.strategy == SecretStrategy.ENVIRONMENT


class TestCreateDashboard:
    """Test instantiating dashboards by name."""

    def test_preset(self, config):
        """Test a preset gets its identity."""
        dashboard = create_dashboard("csi-driver", config, environ={})

        assert type(dashboard) is Dashboard
        assert dashboard.name == "csi-driver"
        assert dashboard.strategy == SecretStrategy.CSI
        assert dashboard.method == "Secrets Store CSI Driver"

    def test_specialised(self, config, keyvault):
        """Test a specialised dashboard gets its own class."""
        dashboard = create_dashboard("rotation-handler", config, keyvault=keyvault, environ={})

        assert isinstance(dashboard, RotationDashboard)
        assert dashboard.keyvault is keyvault

    def test_config_overrides_identity(self, secrets_dir):
        """Test configured names win over the preset."""
        config = SecretDashConfig(
            secrets={"mount_path": str(secrets_dir)},
            dashboard={"app_name": "Custom App", "operator": "COMMUNITY"},
        )

        dashboard = create_dashboard("external-secrets", config, environ={})

        assert dashboard.app_name == "Custom App"
        assert dashboard.operator == "COMMUNITY"
        assert dashboard.method == "Red Hat External Secrets Operator"

    @pytest.mark.asyncio
    async def test_environment_preset(self):
        """Test the env-var dashboards read synced variables."""
        dashboard = create_dashboard("secret-sync", environ={"API_KEY": "from-env"})

        secrets = await dashboard.get_secrets()

        assert secrets["api-key"] == "from-env"
        assert secrets["database-password"] == "Secret not found"

    def test_direct_api_without_credentials(self):
        """Test the API dashboard starts without a client when unconfigured."""
        dashboard = create_dashboard("direct-api", environ={})

        assert dashboard.keyvault is None

    def test_unknown(self):
        """Test an unknown name lists the available dashboards."""
        with pytest.raises(ValueError) as exc_info:
            create_dashboard("nope")

        assert "Unknown dashboard 'nope'. Available: audit, " in str(exc_info.value)
