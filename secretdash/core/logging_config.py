"""
Logging setup for SecretDash dashboards.

Every record is stamped with the dashboard name and the request's
correlation ID, and credential material is scrubbed from the rendered
message before any handler writes it.

Author: SecretDash Team
Date: 2026-09-02
"""

import json
import logging
import logging.handlers
import re
import sys
from contextvars import ContextVar
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

from .config_manager import LoggingConfig

correlation_id: ContextVar[Optional[str]] = ContextVar("correlation_id", default=None)

REDACTED = "***REDACTED***"

_SIZE_PATTERN = re.compile(r"^\s*(\d+(?:\.\d+)?)\s*([KMG]?B)?\s*$", re.IGNORECASE)
_SIZE_UNITS = {None: 1, "B": 1, "KB": 1024, "MB": 1024 ** 2, "GB": 1024 ** 3}


class SecretRedactionFilter(logging.Filter):
    """
    Scrub Service Principal credentials and bearer tokens from log records.

    The message is rendered with its arguments first, so values passed as
    ``%s`` arguments are scrubbed as well.
    """

    PATTERNS = [
        re.compile(r"(Authorization:\s+(?:Bearer\s+)?)\S+", re.IGNORECASE),
        re.compile(r"((?:AZURE_|SERVICE_PRINCIPAL_)CLIENT_SECRET\s*[:=]\s*[\"']?)[^\s\"',]+"),
        re.compile(r"(client_?secret[\"']?\s*[:=]\s*[\"']?)[^\s\"',]+", re.IGNORECASE),
        re.compile(r"(password[\"']?\s*[:=]\s*[\"']?)[^\s\"',]+", re.IGNORECASE),
        re.compile(r"(AccountKey=)[^;]+", re.IGNORECASE),
    ]

    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        scrubbed = self.scrub(message)
        if scrubbed != message or record.args:
            record.msg = scrubbed
            record.args = None
        return True

    @classmethod
    def scrub(cls, text: str) -> str:
        for pattern in cls.PATTERNS:
            text = pattern.sub(rf"\1{REDACTED}", text)
        return text


class DashboardContextFilter(logging.Filter):
    """Attach the dashboard name and current correlation ID to each record."""

    def __init__(self, dashboard: Optional[str] = None):
        super().__init__()
        self.dashboard = dashboard

    def filter(self, record: logging.LogRecord) -> bool:
        record.dashboard = self.dashboard or "-"
        record.correlation_id = correlation_id.get() or "-"
        return True


class JSONFormatter(logging.Formatter):
    """One JSON document per record, timestamps in UTC with a ``Z`` suffix."""

    def format(self, record: logging.LogRecord) -> str:
        created = datetime.fromtimestamp(record.created, tz=timezone.utc)
        log_data: Dict[str, Any] = {
            "timestamp": created.isoformat(timespec="milliseconds").replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        dashboard = getattr(record, "dashboard", "-")
        if dashboard != "-":
            log_data["dashboard"] = dashboard

        corr_id = getattr(record, "correlation_id", None) or correlation_id.get()
        if corr_id and corr_id != "-":
            log_data["correlation_id"] = corr_id

        if context := getattr(record, "context", None):
            log_data["context"] = context

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)


class TextFormatter(logging.Formatter):
    """Human-readable lines for local runs."""

    def __init__(self):
        super().__init__(
            fmt="%(asctime)s [%(levelname)s] %(dashboard)s %(name)s (%(correlation_id)s): %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )


def parse_size(size: str) -> int:
    """
    Convert a rotation size such as ``10MB`` or ``512kb`` to bytes.

    Raises:
        ValueError: If the size is not a number with an optional B/KB/MB/GB unit
    """
    match = _SIZE_PATTERN.match(size)
    if not match:
        raise ValueError(f"Invalid log rotation size: {size!r}")
    number, unit = match.groups()
    return int(float(number) * _SIZE_UNITS[unit.upper() if unit else None])


def _build_handlers(settings: LoggingConfig) -> List[logging.Handler]:
    handlers: List[logging.Handler] = [logging.StreamHandler(sys.stdout)]

    if settings.file:
        Path(settings.file).parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.handlers.RotatingFileHandler(
            filename=settings.file,
            maxBytes=parse_size(settings.rotation_size),
            backupCount=settings.rotation_count,
            encoding="utf-8",
        ))

    return handlers


def setup_logging(settings: Optional[LoggingConfig] = None, dashboard: Optional[str] = None) -> None:
    """
    Configure the root logger for a dashboard process.

    Args:
        settings: Logging section of the loaded configuration; defaults apply when omitted
        dashboard: Registry name of the dashboard being served, stamped on every record
    """
    settings = settings or LoggingConfig()

    root_logger = logging.getLogger()
    root_logger.setLevel(settings.level.value)
    root_logger.handlers.clear()

    formatter = JSONFormatter() if settings.format == "json" else TextFormatter()
    for handler in _build_handlers(settings):
        handler.setFormatter(formatter)
        handler.addFilter(DashboardContextFilter(dashboard))
        handler.addFilter(SecretRedactionFilter())
        root_logger.addHandler(handler)

    # The Azure SDK logs every HTTP request at INFO
    logging.getLogger("azure").setLevel(logging.WARNING)

    for module_name, module_level in (settings.module_levels or {}).items():
        logging.getLogger(module_name).setLevel(module_level.upper())

    root_logger.info(
        f"Logging configured: level={settings.level.value}, format={settings.format}, "
        f"file={settings.file or 'none'}"
    )


def set_correlation_id(corr_id: str) -> None:
    correlation_id.set(corr_id)


def get_correlation_id() -> Optional[str]:
    return correlation_id.get()


def clear_correlation_id() -> None:
    correlation_id.set(None)
