"""
Configuration management for SecretDash.

Handles loading, validation, and access to dashboard configuration settings.
"""

import os
import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional
from enum import Enum

import yaml
from pydantic import BaseModel, Field, field_validator, ValidationError, ConfigDict

logger = logging.getLogger(__name__)


DEFAULT_SECRET_NAMES = ["hello-world-secret", "database-password", "api-key"]


class LogLevel(str, Enum):
    """Valid log levels."""
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class SecretStrategy(str, Enum):
    """How a dashboard obtains its secret values."""
    CSI = "csi"
    AZURE_API = "azure-api"
    ENVIRONMENT = "environment"


class LoggingConfig(BaseModel):
    """Logging configuration."""
    level: LogLevel = LogLevel.INFO
    format: str = "json"
    file: Optional[str] = None
    rotation_size: str = "10MB"
    rotation_count: int = 5
    module_levels: Optional[Dict[str, str]] = Field(
        default=None,
        description="Per-module log levels, e.g., {'secretdash.sources': 'DEBUG'}"
    )


class ServerConfig(BaseModel):
    """HTTP server configuration."""
    host: str = "0.0.0.0"
    port: int = 3000


class KeyVaultConfig(BaseModel):
    """Azure Key Vault connection settings (Service Principal auth)."""
    url: Optional[str] = None
    tenant_id: Optional[str] = None
    client_id: Optional[str] = None
    client_secret: Optional[str] = None

    def missing_credentials(self) -> List[str]:
        """Return the environment names of credential fields that are unset."""
        missing = []
        if not self.tenant_id:
            missing.append("AZURE_TENANT_ID")
        if not self.client_id:
            missing.append("AZURE_CLIENT_ID")
        if not self.client_secret:
            missing.append("AZURE_CLIENT_SECRET")
        return missing


class SecretsConfig(BaseModel):
    """Which secrets are monitored and how long values are cached."""
    mount_path: str = "/etc/secrets"
    names: List[str] = Field(default_factory=lambda: list(DEFAULT_SECRET_NAMES))
    cache_seconds: float = Field(default=30.0, ge=0.0)

    @field_validator("names")
    @classmethod
    def validate_names(cls, v: List[str]) -> List[str]:
        """Drop blank entries and reject an empty list."""
        names = [name.strip() for name in v if name and name.strip()]
        if not names:
            raise ValueError("At least one secret name must be configured")
        return names


class DashboardConfig(BaseModel):
    """Dashboard identity overrides.

    Unset fields fall back to the selected dashboard's own defaults.
    """
    name: Optional[str] = None
    app_name: Optional[str] = None
    method: Optional[str] = None
    operator: Optional[str] = None
    strategy: Optional[SecretStrategy] = None


class SecretDashConfig(BaseModel):
    """Main SecretDash configuration schema."""

    version: str = Field(default="1.0.0", description="Configuration version")

    server: ServerConfig = Field(default_factory=ServerConfig)

    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    keyvault: KeyVaultConfig = Field(default_factory=KeyVaultConfig)

    secrets: SecretsConfig = Field(default_factory=SecretsConfig)

    dashboard: DashboardConfig = Field(default_factory=DashboardConfig)

    namespace: str = "unknown"

    @field_validator("version")
    @classmethod
    def validate_version(cls, v: str) -> str:
        """Validate version format."""
        parts = v.split(".")
        if len(parts) != 3:
            raise ValueError("Version must be in format x.y.z")
        for part in parts:
            if not part.isdigit():
                raise ValueError("Version components must be numeric")
        return v


class ConfigManager:
    """
    Manages SecretDash configuration loading and validation.

    Configuration precedence (highest to lowest):
    1. CLI arguments
    2. Environment variables (PORT, KEYVAULT_URL, AZURE_*, SECRETDASH_*, ...)
    3. Configuration file (YAML/JSON)
    4. Defaults
    """

    def __init__(self, environ: Optional[Mapping[str, str]] = None):
        self._environ = environ
        self._config: Optional[SecretDashConfig] = None
        self._config_file: Optional[Path] = None

    @property
    def environ(self) -> Mapping[str, str]:
        return self._environ if self._environ is not None else os.environ

    def load(
        self,
        config_file: Optional[str] = None,
        cli_overrides: Optional[Dict[str, Any]] = None
    ) -> SecretDashConfig:
        """
        Load and validate configuration from multiple sources.

        Args:
            config_file: Path to configuration file (YAML or JSON)
            cli_overrides: Dictionary of CLI argument overrides

        Returns:
            Validated SecretDashConfig instance

        Raises:
            ValidationError: If configuration is invalid
            FileNotFoundError: If specified config file doesn't exist
        """
        logger.info("Loading SecretDash configuration")

        config_dict: Dict[str, Any] = {}

        if config_file:
            config_dict = self._load_from_file(config_file)
            self._config_file = Path(config_file)
            logger.info(f"Loaded configuration from file: {config_file}")

        env_config = self._load_from_env()
        config_dict = self._merge_configs(config_dict, env_config)
        if env_config:
            logger.info(f"Applied {len(env_config)} environment variable overrides")

        if cli_overrides:
            config_dict = self._merge_configs(config_dict, cli_overrides)
            logger.info(f"Applied {len(cli_overrides)} CLI argument overrides")

        try:
            self._config = SecretDashConfig(**config_dict)
            logger.info("Configuration validated successfully")
            self._log_configuration()
            return self._config
        except ValidationError as e:
            logger.error(f"Configuration validation failed: {e}")
            raise

    def _load_from_file(self, file_path: str) -> Dict[str, Any]:
        """Load configuration from YAML or JSON file."""
        path = Path(file_path)

        if not path.exists():
            raise FileNotFoundError(f"Configuration file not found: {file_path}")

        with open(path, 'r') as f:
            if path.suffix in ['.yaml', '.yml']:
                return yaml.safe_load(f) or {}
            elif path.suffix == '.json':
                return json.load(f)
            else:
                raise ValueError(f"Unsupported config file format: {path.suffix}")

    def _load_from_env(self) -> Dict[str, Any]:
        """Load configuration from environment variables."""
        env = self.environ
        config: Dict[str, Any] = {}

        # Server configuration
        if host := env.get("HOST"):
            config.setdefault("server", {})["host"] = host
        if port := env.get("PORT"):
            config.setdefault("server", {})["port"] = int(port)

        # Logging configuration
        if log_level := env.get("SECRETDASH_LOG_LEVEL"):
            config.setdefault("logging", {})["level"] = log_level.upper()
        if log_format := env.get("SECRETDASH_LOG_FORMAT"):
            config.setdefault("logging", {})["format"] = log_format.lower()
        if log_file := env.get("SECRETDASH_LOG_FILE"):
            config.setdefault("logging", {})["file"] = log_file

        # Key Vault / Service Principal
        keyvault_env = {
            "url": "KEYVAULT_URL",
            "tenant_id": "AZURE_TENANT_ID",
            "client_id": "AZURE_CLIENT_ID",
            "client_secret": "AZURE_CLIENT_SECRET",
        }
        for field_name, env_name in keyvault_env.items():
            if value := env.get(env_name):
                config.setdefault("keyvault", {})[field_name] = value

        # Secret selection
        if mount_path := env.get("SECRETS_MOUNT_PATH"):
            config.setdefault("secrets", {})["mount_path"] = mount_path
        if names := env.get("SECRET_NAMES"):
            config.setdefault("secrets", {})["names"] = names.split(",")
        if cache_seconds := env.get("SECRET_CACHE_SECONDS"):
            config.setdefault("secrets", {})["cache_seconds"] = float(cache_seconds)

        if strategy := env.get("SECRET_STRATEGY"):
            config.setdefault("dashboard", {})["strategy"] = strategy.lower()

        if namespace := env.get("NAMESPACE"):
            config["namespace"] = namespace

        return config

    def _merge_configs(self, base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
        """Deep merge two configuration dictionaries."""
        result = base.copy()

        for key, value in override.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = self._merge_configs(result[key], value)
            else:
                result[key] = value

        return result

    def _log_configuration(self) -> None:
        """Log the loaded configuration (with sensitive data redacted)."""
        if not self._config:
            return

        config_dict = self._config.model_dump(mode="json")

        if config_dict["keyvault"].get("client_secret"):
            config_dict["keyvault"]["client_secret"] = "***REDACTED***"

        logger.info(f"Active configuration: {json.dumps(config_dict, indent=2)}")

    def get_config(self) -> SecretDashConfig:
        """
        Get the loaded configuration.

        Returns:
            SecretDashConfig instance

        Raises:
            RuntimeError: If configuration hasn't been loaded
        """
        if self._config is None:
            raise RuntimeError("Configuration not loaded. Call load() first.")
        return self._config

    def reload(self) -> SecretDashConfig:
        """
        Reload configuration from the same sources.

        Returns:
            Reloaded SecretDashConfig instance
        """
        config_file = str(self._config_file) if self._config_file else None
        return self.load(config_file=config_file)
