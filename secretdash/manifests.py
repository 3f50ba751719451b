"""
Kubernetes Manifests.

Renders the resources the dashboards rely on: the Service Principal secret
and SecretProviderClass used by the Secrets Store CSI Driver, and the
SecretStore/ExternalSecret pair used by the External Secrets Operator.

Author: SecretDash Team
Date: 2026-09-16
"""

import logging
import re
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Union

import yaml

from .core.config_manager import DEFAULT_SECRET_NAMES
from .core.env_file import InstallConfig
from .sources.environment import env_var_name

logger = logging.getLogger(__name__)

SP_SECRET_NAME = "secrets-store-csi-driver-sp"
SPC_NAME = "azure-keyvault-basic-secrets"
ESO_SP_SECRET_NAME = "azure-secret-sp"
SECRET_STORE_NAME = "azure-keyvault-store"
EXTERNAL_SECRET_NAME = "hello-world-external-secret"
EXTERNAL_SECRET_TARGET = "hello-world-external-secrets"

# Vault secret -> (Kubernetes Secret, key) created through CSI secretObjects
SYNCED_SECRET_OBJECTS = {
    "database-password": ("database-credentials", "password"),
    "api-key": ("api-credentials", "key"),
    "hello-world-secret": ("hello-world-synced-secrets", "hello-world-secret"),
}


class _LiteralDumper(yaml.SafeDumper):
    """Safe dumper writing multi-line strings as literal blocks."""


def _represent_str(dumper: yaml.SafeDumper, data: str):
    if "\n" in data:
        return dumper.represent_scalar("tag:yaml.org,2002:str", data, style="|")
    return dumper.represent_scalar("tag:yaml.org,2002:str", data)


_LiteralDumper.add_representer(str, _represent_str)


def _or_placeholder(value: Optional[str], name: str) -> str:
    return value or f"<{name}>"


def _metadata(name: str, namespace: str, labels: Optional[Dict[str, str]] = None) -> Dict[str, Any]:
    metadata: Dict[str, Any] = {"name": name, "namespace": namespace}
    if labels:
        metadata["labels"] = labels
    return metadata


# ========== Secrets Store CSI Driver ==========

def service_principal_secret(config: InstallConfig, namespace: str) -> Dict[str, Any]:
    """Credentials the Azure CSI provider reads via ``nodePublishSecretRef``."""
    return {
        "apiVersion": "v1",
        "kind": "Secret",
        "metadata": _metadata(SP_SECRET_NAME, namespace, {"secrets-store.csi.k8s.io/used": "true"}),
        "type": "Opaque",
        "stringData": {
            "clientid": _or_placeholder(config.client_id, "SERVICE_PRINCIPAL_CLIENT_ID"),
            "clientsecret": _or_placeholder(config.client_secret, "SERVICE_PRINCIPAL_CLIENT_SECRET"),
            "tenantid": _or_placeholder(config.azure_tenant_id, "AZURE_TENANT_ID"),
        },
    }


def _objects_parameter(secret_names: Iterable[str]) -> str:
    lines = ["array:"]
    for name in secret_names:
        lines.extend([
            "  - |",
            f"    objectName: {name}",
            "    objectType: secret",
            '    objectVersion: ""',
            f"    objectAlias: {name}",
        ])
    return "\n".join(lines) + "\n"


def secret_provider_class(
    config: InstallConfig,
    namespace: str,
    secret_names: Iterable[str] = DEFAULT_SECRET_NAMES,
) -> Dict[str, Any]:
    """
    SecretProviderClass mounting the secrets and syncing them to Kubernetes Secrets.

    Args:
        config: Values from ``config.env``
        namespace: Target namespace
        secret_names: Vault secrets to mount

    Returns:
        Manifest as a dict
    """
    names = list(secret_names)
    secret_objects = [
        {
            "secretName": SYNCED_SECRET_OBJECTS[name][0],
            "type": "Opaque",
            "data": [{"objectName": name, "key": SYNCED_SECRET_OBJECTS[name][1]}],
        }
        for name in names
        if name in SYNCED_SECRET_OBJECTS
    ]
    return {
        "apiVersion": "secrets-store.csi.x-k8s.io/v1",
        "kind": "SecretProviderClass",
        "metadata": _metadata(SPC_NAME, namespace, {"app": "hello-world", "component": "secretproviderclass"}),
        "spec": {
            "provider": "azure",
            "parameters": {
                "usePodIdentity": "false",
                "useVMManagedIdentity": "false",
                "useWorkloadIdentity": "false",
                "keyvaultName": _or_placeholder(config.keyvault_name, "KEYVAULT_NAME"),
                "tenantId": _or_placeholder(config.azure_tenant_id, "AZURE_TENANT_ID"),
                "clientId": _or_placeholder(config.client_id, "SERVICE_PRINCIPAL_CLIENT_ID"),
                "objects": _objects_parameter(names),
            },
            "secretObjects": secret_objects,
            "nodePublishSecretRef": {"name": SP_SECRET_NAME},
        },
    }


# ========== External Secrets Operator ==========

def eso_credentials_secret(config: InstallConfig, namespace: str) -> Dict[str, Any]:
    return {
        "apiVersion": "v1",
        "kind": "Secret",
        "metadata": _metadata(ESO_SP_SECRET_NAME, namespace),
        "type": "Opaque",
        "stringData": {
            "ClientID": _or_placeholder(config.client_id, "SERVICE_PRINCIPAL_CLIENT_ID"),
            "ClientSecret": _or_placeholder(config.client_secret, "SERVICE_PRINCIPAL_CLIENT_SECRET"),
        },
    }


def secret_store(config: InstallConfig, namespace: str) -> Dict[str, Any]:
    """SecretStore pointing the operator at the vault with Service Principal auth."""
    return {
        "apiVersion": "external-secrets.io/v1beta1",
        "kind": "SecretStore",
        "metadata": _metadata(SECRET_STORE_NAME, namespace),
        "spec": {
            "provider": {
                "azurekv": {
                    "authType": "ServicePrincipal",
                    "vaultUrl": _or_placeholder(config.keyvault_url, "KEYVAULT_URL"),
                    "tenantId": _or_placeholder(config.azure_tenant_id, "AZURE_TENANT_ID"),
                    "authSecretRef": {
                        "clientId": {"name": ESO_SP_SECRET_NAME, "key": "ClientID"},
                        "clientSecret": {"name": ESO_SP_SECRET_NAME, "key": "ClientSecret"},
                    },
                }
            }
        },
    }


def external_secret(namespace: str, secret_names: Iterable[str] = DEFAULT_SECRET_NAMES) -> Dict[str, Any]:
    """ExternalSecret syncing each vault secret under its environment variable name."""
    return {
        "apiVersion": "external-secrets.io/v1beta1",
        "kind": "ExternalSecret",
        "metadata": _metadata(EXTERNAL_SECRET_NAME, namespace),
        "spec": {
            "refreshInterval": "30s",
            "secretStoreRef": {"name": SECRET_STORE_NAME, "kind": "SecretStore"},
            "target": {"name": EXTERNAL_SECRET_TARGET, "creationPolicy": "Owner"},
            "data": [
                {"secretKey": env_var_name(name), "remoteRef": {"key": name}}
                for name in secret_names
            ],
        },
    }


# ========== Rendering ==========

def render_manifests(
    config: InstallConfig,
    namespace: str = "default",
    secret_names: Iterable[str] = DEFAULT_SECRET_NAMES,
) -> List[Dict[str, Any]]:
    """All manifests, CSI resources first."""
    names = list(secret_names)
    return [
        service_principal_secret(config, namespace),
        secret_provider_class(config, namespace, names),
        eso_credentials_secret(config, namespace),
        secret_store(config, namespace),
        external_secret(namespace, names),
    ]


def dump_manifests(documents: Iterable[Dict[str, Any]]) -> str:
    """Serialize manifests as a multi-document YAML stream."""
    return yaml.dump_all(
        list(documents),
        Dumper=_LiteralDumper,
        default_flow_style=False,
        sort_keys=False,
        explicit_start=True,
    )


def manifest_filename(index: int, document: Dict[str, Any]) -> str:
    kind = re.sub(r"(?<!^)(?=[A-Z])", "-", document["kind"]).lower()
    return f"{index:02d}-{kind}-{document['metadata']['name']}.yaml"


def write_manifests(documents: Iterable[Dict[str, Any]], output_dir: Union[str, Path]) -> List[Path]:
    """
    Write one YAML file per manifest.

    Returns:
        Paths of the written files in manifest order
    """
    output = Path(output_dir)
    output.mkdir(parents=True, exist_ok=True)

    written = []
    for index, document in enumerate(documents, start=1):
        path = output / manifest_filename(index, document)
        with open(path, "w", encoding="utf-8") as f:
            yaml.dump(document, f, Dumper=_LiteralDumper, default_flow_style=False, sort_keys=False)
        written.append(path)
        logger.info(f"Wrote {path}")
    return written
