"""
Dashboard Framework.

A dashboard reads the monitored secrets through one strategy (CSI mount,
Key Vault API or synced environment variables), caches them briefly and
serves an HTML page plus JSON endpoints. Specialised dashboards subclass
:class:`Dashboard` and add routes, page panels and background monitors.

Author: SecretDash Team
Date: 2026-09-05
"""

import asyncio
import logging
import os
import time
import uuid
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, ClassVar, Dict, List, Mapping, Optional, Tuple

from fastapi import APIRouter, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import HTMLResponse, Response
from jinja2 import Environment, PackageLoader, select_autoescape

from ..core.config_manager import SecretDashConfig, SecretStrategy
from ..core.logging_config import clear_correlation_id, set_correlation_id
from ..core.metrics import DashboardMetrics
from ..exceptions import KeyVaultNotConfiguredError
from ..keyvault.client import KeyVaultClient
from ..sources import SecretCache, SecretSource, create_source
from .error_handlers import register_exception_handlers

logger = logging.getLogger(__name__)

_templates = Environment(
    loader=PackageLoader("secretdash", "templates"),
    autoescape=select_autoescape(["html"]),
)


@dataclass(frozen=True)
class DashboardIdentity:
    """Name and labels a dashboard presents itself with."""

    name: str
    app_name: str
    method: str
    strategy: SecretStrategy
    operator: str = ""
    description: str = ""


@dataclass
class Panel:
    """A block of the HTML page contributed by a dashboard.

    Attributes:
        title: Panel heading
        rows: Label/value pairs
        columns: Table header (table rendered only when set)
        table: Table rows
        items: Bullet list entries
        note: Free text under the heading
        level: Visual level (info, success, warning, danger)
    """

    title: str
    rows: List[Tuple[str, Any]] = field(default_factory=list)
    columns: List[str] = field(default_factory=list)
    table: List[List[Any]] = field(default_factory=list)
    items: List[str] = field(default_factory=list)
    note: Optional[str] = None
    level: str = "info"


def iso_timestamp(value: Optional[datetime] = None) -> str:
    """Format a datetime (default now) as UTC ISO 8601 with milliseconds."""
    value = value or datetime.now(timezone.utc)
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class Dashboard:
    """
    Base secret-consumption dashboard.

    Identity labels come from the class ``identity`` unless overridden by the
    ``identity`` argument, and configured ``dashboard`` fields win over both.
    """

    identity: ClassVar[DashboardIdentity] = DashboardIdentity(
        name="secret-sync",
        app_name="Hello World - Kubernetes Secret Sync",
        method="Kubernetes Secret Sync",
        strategy=SecretStrategy.ENVIRONMENT,
    )

    # Dashboards that inspect vault metadata need a client whatever their strategy
    requires_keyvault: ClassVar[bool] = False

    # Whether the page shows the live ``/api/secrets`` list
    show_live_secrets: ClassVar[bool] = True

    def __init__(
        self,
        config: Optional[SecretDashConfig] = None,
        source: Optional[SecretSource] = None,
        keyvault: Optional[KeyVaultClient] = None,
        identity: Optional[DashboardIdentity] = None,
        metrics: Optional[DashboardMetrics] = None,
        environ: Optional[Mapping[str, str]] = None,
    ):
        self.config = config or SecretDashConfig()
        self.environ = environ if environ is not None else os.environ

        base = identity or type(self).identity
        overrides = self.config.dashboard
        self.name = overrides.name or base.name
        self.app_name = overrides.app_name or base.app_name
        self.method = overrides.method or base.method
        self.operator = overrides.operator if overrides.operator is not None else base.operator
        self.description = base.description
        self.strategy = SecretStrategy(overrides.strategy or base.strategy)

        self.secret_names: List[str] = list(self.config.secrets.names)
        self.namespace = self.config.namespace
        self.version = self.config.version
        self.keyvault_url = self.config.keyvault.url
        self.mount_path = self.config.secrets.mount_path

        if keyvault is None and (self.strategy == SecretStrategy.AZURE_API or self.requires_keyvault):
            keyvault = KeyVaultClient.from_config(self.config.keyvault)
        self.keyvault = keyvault

        self.source = source or create_source(self.strategy, self.config, keyvault, self.environ)
        self.cache = SecretCache(self.config.secrets.cache_seconds)
        self.metrics = metrics or DashboardMetrics()
        self.started_at = time.time()
        self._tasks: List[asyncio.Task] = []

    # ========== Secret retrieval ==========

    async def fetch_secret(self, name: str) -> str:
        """Fetch one secret through the configured source."""
        return await self.source.fetch(name)

    async def get_secrets(self) -> Dict[str, str]:
        """
        Return the monitored secrets, served from the cache while fresh.

        Raises:
            SecretAccessError: If any secret cannot be read; nothing is cached
        """
        cached = self.cache.get()
        if cached is not None:
            self.metrics.track_cache_hit()
            return cached

        strategy = self.strategy.value
        secrets: Dict[str, str] = {}
        with self.metrics.time_fetch(strategy):
            try:
                for name in self.secret_names:
                    secrets[name] = await self.fetch_secret(name)
            except Exception as e:
                self.metrics.track_fetch(strategy, "error")
                logger.error(f"Error fetching secrets via {self.source.describe()}: {e}")
                raise

        self.metrics.track_fetch(strategy, "success")
        self.cache.store(secrets)
        return secrets

    def require_keyvault(self) -> KeyVaultClient:
        """Return the Key Vault client or raise if it could not be built."""
        if self.keyvault is not None:
            return self.keyvault
        if not self.keyvault_url:
            raise KeyVaultNotConfiguredError(
                "KEYVAULT_URL environment variable is required for Azure API authentication",
                missing=["KEYVAULT_URL"],
            )
        raise KeyVaultNotConfiguredError(
            "Azure Key Vault client not initialized. Check AZURE_TENANT_ID, "
            "AZURE_CLIENT_ID, and AZURE_CLIENT_SECRET environment variables.",
            missing=self.config.keyvault.missing_credentials(),
        )

    # ========== Environment helpers ==========

    def env(self, name: str, default: str = "") -> str:
        return self.environ.get(name) or default

    def env_int(self, name: str, default: int) -> int:
        raw = self.environ.get(name)
        if not raw:
            return default
        try:
            return int(raw)
        except ValueError:
            logger.warning(f"Ignoring non-integer {name}={raw!r}, using {default}")
            return default

    def env_list(self, name: str) -> List[str]:
        """Comma-separated variable as a list without blank entries."""
        return [item.strip() for item in self.environ.get(name, "").split(",") if item.strip()]

    # ========== Descriptions ==========

    def method_details(self) -> List[Tuple[str, str]]:
        """Label/value rows describing how secrets reach this dashboard."""
        cache_duration = f"{self.cache.ttl_seconds:g} seconds"
        if self.strategy == SecretStrategy.CSI:
            return [
                ("Method", "Secrets Store CSI Driver"),
                ("Mount Path", self.mount_path),
                ("Authentication", "Service Principal via nodePublishSecretRef"),
                ("Cache Duration", cache_duration),
            ]
        if self.strategy == SecretStrategy.AZURE_API:
            return [
                ("Method", "Direct Azure Key Vault API"),
                ("Key Vault URL", self.keyvault_url or "not configured"),
                ("Authentication", "ClientSecretCredential (Service Principal)"),
                ("Cache Duration", cache_duration),
                ("SDK", "azure-keyvault-secrets"),
            ]
        return [
            ("Method", self.method),
            ("Operator", self.operator or "Kubernetes-native"),
            ("Authentication", "Service Principal via Kubernetes Secret"),
            ("Sync Interval", "30 seconds"),
            ("Consumption", "Environment variables from synced Kubernetes Secret"),
        ]

    def note(self) -> str:
        if self.strategy == SecretStrategy.CSI:
            return "Secrets are mounted as files via Secrets Store CSI Driver"
        if self.strategy == SecretStrategy.AZURE_API:
            return "Secrets are fetched directly from Azure Key Vault API"
        return "Secrets are synced from Azure Key Vault via External Secrets Operator"

    # ========== Payloads and hooks for subclasses ==========

    async def secrets_payload(self) -> Dict[str, Any]:
        """Body of ``GET /api/secrets``."""
        secrets = await self.get_secrets()
        return {
            "success": True,
            "method": self.method,
            "operator": self.operator,
            "secrets": secrets,
            "timestamp": iso_timestamp(),
            "cacheAge": self.cache.age_ms,
            "note": self.note(),
        }

    def health_extras(self) -> Dict[str, Any]:
        """Additional fields for ``GET /api/health``."""
        return {}

    def health_payload(self) -> Dict[str, Any]:
        payload = {
            "status": "healthy",
            "app": self.app_name,
            "namespace": self.namespace,
            "version": self.version,
            "timestamp": iso_timestamp(),
            "method": self.method,
            "operator": self.operator,
        }
        payload.update(self.health_extras())
        return payload

    def server_options(self) -> Dict[str, Any]:
        """Extra keyword arguments for ``uvicorn.run`` (e.g. TLS files)."""
        return {}

    def register_routes(self, router: APIRouter) -> None:
        """Add dashboard-specific routes."""

    async def page_panels(self) -> List[Panel]:
        """Panels shown on the HTML page below the method details."""
        return []

    async def startup(self) -> None:
        """Called when the app starts serving."""

    async def shutdown(self) -> None:
        """Called when the app stops; cancels background tasks and closes clients."""
        for task in self._tasks:
            task.cancel()
        await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks.clear()
        await self.close_clients()

    async def close_clients(self) -> None:
        """Release the Key Vault connection, if the dashboard has one."""
        if self.keyvault is not None:
            await self.keyvault.close()

    def start_periodic(self, name: str, interval_seconds: float, func: Callable[[], Awaitable[Any]]) -> asyncio.Task:
        """
        Run ``func`` now and then every ``interval_seconds`` until shutdown.

        Failures are logged and the loop continues.
        """

        async def runner():
            while True:
                try:
                    await func()
                except Exception:
                    logger.exception(f"{name} failed")
                await asyncio.sleep(interval_seconds)

        task = asyncio.create_task(runner(), name=f"{self.name}:{name}")
        self._tasks.append(task)
        return task

    # ========== HTML ==========

    async def render_page(self) -> str:
        try:
            panels = await self.page_panels()
        except Exception as e:
            logger.exception(f"Failed to build {self.name} page panels")
            panels = [Panel(title="Dashboard data unavailable", note=str(e), level="danger")]

        return _templates.get_template("dashboard.html").render(
            dashboard=self,
            method_details=self.method_details(),
            panels=panels,
            show_live_secrets=self.show_live_secrets,
        )

    # ========== App ==========

    def create_router(self) -> APIRouter:
        """Create the router with dashboard-specific and common routes."""
        router = APIRouter()
        self.register_routes(router)

        @router.get("/", response_class=HTMLResponse)
        async def index() -> HTMLResponse:
            return HTMLResponse(await self.render_page())

        @router.get("/api/secrets")
        async def get_secrets() -> Dict[str, Any]:
            return await self.secrets_payload()

        @router.get("/api/health")
        async def health() -> Dict[str, Any]:
            return self.health_payload()

        @router.get("/metrics")
        async def metrics() -> Response:
            return Response(
                content=self.metrics.generate_metrics(),
                media_type=self.metrics.get_content_type(),
            )

        return router

    def create_app(self) -> FastAPI:
        """Build the FastAPI application for this dashboard."""

        @asynccontextmanager
        async def lifespan(app: FastAPI):
            logger.info(f"{self.app_name} starting (method: {self.method}, strategy: {self.strategy.value})")
            await self.startup()
            try:
                yield
            finally:
                await self.shutdown()
                logger.info(f"{self.app_name} stopped")

        app = FastAPI(title=self.app_name, version=self.version, lifespan=lifespan)

        app.add_middleware(
            CORSMiddleware,
            allow_origins=["*"],
            allow_methods=["GET", "POST", "OPTIONS"],
            allow_headers=["Content-Type"],
        )

        @app.middleware("http")
        async def correlation_id_middleware(request: Request, call_next):
            corr_id = request.headers.get("x-correlation-id") or str(uuid.uuid4())
            set_correlation_id(corr_id)
            try:
                response = await call_next(request)
            finally:
                clear_correlation_id()
            response.headers["x-correlation-id"] = corr_id
            return response

        register_exception_handlers(app, self.method)
        app.include_router(self.create_router())
        return app
