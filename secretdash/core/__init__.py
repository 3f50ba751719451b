"""Core module initialization."""

from .config_manager import (
    ConfigManager,
    SecretDashConfig,
    SecretStrategy,
    DEFAULT_SECRET_NAMES,
)
from .env_file import InstallConfig, load_env_file, parse_env_lines
from .logging_config import setup_logging
from .metrics import DashboardMetrics

__all__ = [
    "ConfigManager",
    "SecretDashConfig",
    "SecretStrategy",
    "DEFAULT_SECRET_NAMES",
    "InstallConfig",
    "load_env_file",
    "parse_env_lines",
    "setup_logging",
    "DashboardMetrics",
]
