"""
SecretDash: Azure Key Vault secret-consumption dashboards

Demo dashboards showing how applications consume Key Vault secrets through
the Secrets Store CSI Driver, the Key Vault API or synced Kubernetes Secrets.
"""

__version__ = "1.0.0"

from .dashboards import Dashboard, create_dashboard, list_dashboards

__all__ = ["Dashboard", "create_dashboard", "list_dashboards", "__version__"]
