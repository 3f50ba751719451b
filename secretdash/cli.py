"""
SecretDash Command-Line Interface

Serves the dashboards, renders the Kubernetes manifests, smoke-tests running
dashboards and manages the demo secrets in Key Vault.

Author: SecretDash Team
Date: 2026-09-17
"""

import sys
import asyncio
import logging
from pathlib import Path
from typing import Any, Dict, Optional

import click
import httpx
import uvicorn
from pydantic import ValidationError

from secretdash import __version__
from secretdash.core.config_manager import ConfigManager
from secretdash.core.env_file import InstallConfig
from secretdash.core.logging_config import setup_logging
from secretdash.dashboards import create_dashboard, list_dashboards
from secretdash.exceptions import SecretAccessError
from secretdash.install import (
    check_connectivity,
    cleanup_demo_secrets,
    client_from_install_config,
    rotate_demo_secrets,
    seed_demo_secrets,
)
from secretdash.manifests import dump_manifests, render_manifests, write_manifests


def _fail(message: str) -> None:
    click.echo(f"[ERROR] {message}", err=True)
    sys.exit(1)


@click.group()
@click.version_option(version=__version__, prog_name="secretdash")
@click.pass_context
def cli(ctx):
    """
    SecretDash - Azure Key Vault secret-consumption dashboards

    Serve demo dashboards that read secrets via the CSI driver, the Key Vault
    API or synced Kubernetes Secrets.
    """
    ctx.ensure_object(dict)


@cli.command()
@click.argument("dashboard")
@click.option("--host", help="Host to bind to (default: from config, 0.0.0.0)")
@click.option("--port", type=int, help="Port to bind to (default: from config, 3000)")
@click.option(
    "--config",
    "-c",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Path to configuration file",
)
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"], case_sensitive=False),
    help="Logging level",
)
@click.option(
    "--log-format",
    type=click.Choice(["json", "text"], case_sensitive=False),
    help="Log output format",
)
def serve(
    dashboard: str,
    host: Optional[str],
    port: Optional[int],
    config: Optional[Path],
    log_level: Optional[str],
    log_format: Optional[str],
):
    """
    Serve a dashboard.

    Examples:
        secretdash serve csi-driver
        secretdash serve rotation-handler --port 8080
        secretdash serve audit --config secretdash.yaml --log-level DEBUG
    """
    overrides: Dict[str, Any] = {}
    if host:
        overrides.setdefault("server", {})["host"] = host
    if port:
        overrides.setdefault("server", {})["port"] = port
    if log_level:
        overrides.setdefault("logging", {})["level"] = log_level.upper()
    if log_format:
        overrides.setdefault("logging", {})["format"] = log_format.lower()

    try:
        settings = ConfigManager().load(str(config) if config else None, overrides)
    except (ValidationError, ValueError) as e:
        _fail(f"Invalid configuration: {e}")

    setup_logging(settings.logging, dashboard=dashboard)
    logger = logging.getLogger("secretdash.cli")

    try:
        instance = create_dashboard(dashboard, settings)
    except ValueError as e:
        _fail(str(e))

    click.echo(f"Starting {instance.app_name} (SecretDash v{__version__})")
    click.echo(f"Method: {instance.method}")
    click.echo(f"Listening on {settings.server.host}:{settings.server.port}")
    click.echo()

    try:
        uvicorn.run(
            instance.create_app(),
            host=settings.server.host,
            port=settings.server.port,
            log_level=settings.logging.level.value.lower(),
            access_log=True,
            **instance.server_options(),
        )
    except KeyboardInterrupt:
        click.echo("\nShutting down...")
    except Exception as e:
        logger.exception("Server failed")
        _fail(f"Error starting {dashboard}: {e}")


@cli.command()
def dashboards():
    """List the dashboards that can be served."""
    for identity in list_dashboards():
        click.echo(f"{identity.name:<22} {identity.strategy.value:<12} {identity.method}")


# ========== Examples ==========

@cli.group()
def examples():
    """
    Work with the example deployments.

    List the examples, render their Kubernetes manifests, and smoke-test
    running dashboards.
    """
    pass


@examples.command("list")
def examples_list():
    """List example dashboards with their secret strategy."""
    click.echo("Example dashboards:")
    click.echo()
    for identity in list_dashboards():
        click.echo(f"  {identity.name}")
        click.echo(f"    {identity.app_name} [{identity.strategy.value}]")
        if identity.description:
            click.echo(f"    {identity.description}")


@examples.command("apply")
@click.option(
    "--env-file",
    default="config.env",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Path to config.env",
    show_default=True,
)
@click.option("--namespace", "-n", default="default", help="Target namespace", show_default=True)
@click.option(
    "--output",
    "-o",
    type=click.Path(file_okay=False, path_type=Path),
    help="Directory to write one file per manifest (default: stdout)",
)
def examples_apply(env_file: Path, namespace: str, output: Optional[Path]):
    """
    Render the Kubernetes manifests for the examples.

    Pipe the output to ``kubectl apply -f -`` or write it to a directory.

    Examples:
        secretdash examples apply | kubectl apply -f -
        secretdash examples apply --namespace demo --output manifests/
    """
    config = _load_install_config(env_file, required=False)
    documents = render_manifests(config, namespace)

    if output:
        for path in write_manifests(documents, output):
            click.echo(f"[OK] Wrote {path}")
    else:
        click.echo(dump_manifests(documents), nl=False)


@examples.command("test")
@click.argument("urls", nargs=-1, required=True)
@click.option("--timeout", default=10.0, type=float, help="Request timeout in seconds", show_default=True)
def examples_test(urls, timeout: float):
    """
    Smoke-test running dashboards.

    Checks /api/health and /api/secrets of every URL; exits non-zero if any
    check fails.

    Examples:
        secretdash examples test http://localhost:3000
    """
    failures = 0
    for base_url in urls:
        click.echo(f"Testing {base_url}")
        for path in ("/api/health", "/api/secrets"):
            url = base_url.rstrip("/") + path
            try:
                response = httpx.get(url, timeout=timeout)
                response.raise_for_status()
                response.json()
                click.echo(f"  [OK] {path} ({response.status_code})")
            except httpx.HTTPError as e:
                failures += 1
                click.echo(f"  [FAIL] {path}: {e}", err=True)
            except ValueError:
                failures += 1
                click.echo(f"  [FAIL] {path}: response is not JSON", err=True)

    if failures:
        _fail(f"{failures} check(s) failed")
    click.echo("[OK] All checks passed")


# ========== Install ==========

def _load_install_config(env_file: Path, required: bool = True) -> InstallConfig:
    if not env_file.is_file():
        if required:
            _fail(f"Config file not found: {env_file}")
        return InstallConfig()
    return InstallConfig.from_file(env_file)


def _vault_client(ctx):
    config = _load_install_config(ctx.obj["env_file"])
    try:
        return config, client_from_install_config(config)
    except SecretAccessError as e:
        _fail(e.message)


@cli.group()
@click.option(
    "--env-file",
    default="config.env",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Path to config.env",
    show_default=True,
)
@click.pass_context
def install(ctx, env_file: Path):
    """
    Manage the demo secrets in Azure Key Vault.

    Reads the vault and Service Principal settings from config.env.
    """
    ctx.ensure_object(dict)
    ctx.obj["env_file"] = env_file


@install.command("show")
@click.pass_context
def install_show(ctx):
    """Show config.env with secrets redacted."""
    config = _load_install_config(ctx.obj["env_file"])
    for key, value in config.redacted().items():
        click.echo(f"{key}={value if value is not None else ''}")


@install.command("validate")
@click.option("--offline", is_flag=True, help="Only check config.env, do not contact Key Vault")
@click.pass_context
def install_validate(ctx, offline: bool):
    """Check required settings and Key Vault access."""
    config = _load_install_config(ctx.obj["env_file"])
    missing = config.missing_required()
    if missing:
        _fail(f"Missing required settings: {', '.join(missing)}")
    click.echo("[OK] config.env has all required settings")

    if offline:
        return

    _, client = _vault_client(ctx)
    try:
        count = asyncio.run(check_connectivity(client))
    except SecretAccessError as e:
        _fail(f"Cannot access {config.keyvault_url}: {e.message}")
    click.echo(f"[OK] Key Vault reachable: {config.keyvault_url} ({count} secrets)")


@install.command("azure")
@click.pass_context
def install_azure(ctx):
    """Create or update the demo secrets."""
    config, client = _vault_client(ctx)
    click.echo(f"Populating demo secrets in {config.keyvault_url}")
    try:
        created = asyncio.run(seed_demo_secrets(client))
    except SecretAccessError as e:
        _fail(f"Failed to populate secrets: {e.message}")
    for name in created:
        click.echo(f"  [OK] {name}")
    click.echo(f"[OK] {len(created)} secrets created")


@install.command("cleanup")
@click.option("--purge", is_flag=True, help="Also purge the soft-deleted secrets")
@click.option("--yes", is_flag=True, help="Do not ask for confirmation")
@click.pass_context
def install_cleanup(ctx, purge: bool, yes: bool):
    """Delete the demo secrets."""
    config, client = _vault_client(ctx)
    if not yes:
        click.confirm(f"Delete the demo secrets from {config.keyvault_url}?", abort=True)

    results = asyncio.run(cleanup_demo_secrets(client, purge=purge))
    failed = 0
    for name, outcome in results.items():
        if outcome in ("deleted", "purged", "missing"):
            click.echo(f"  [OK] {name}: {outcome}")
        else:
            failed += 1
            click.echo(f"  [ERROR] {name}: {outcome}", err=True)

    if failed:
        _fail(f"{failed} secret(s) could not be removed")
    click.echo("[OK] Cleanup complete")


@install.command("rotate")
@click.argument("secret_names", nargs=-1)
@click.pass_context
def install_rotate(ctx, secret_names):
    """
    Rotate demo secrets (all rotating secrets unless names are given).

    Examples:
        secretdash install rotate
        secretdash install rotate api-key
    """
    _, client = _vault_client(ctx)
    try:
        results = asyncio.run(rotate_demo_secrets(client, list(secret_names) or None))
    except SecretAccessError as e:
        _fail(f"Rotation failed: {e.message}")

    rotated = 0
    for name, preview in results.items():
        if preview is None:
            click.echo(f"  [SKIP] {name}: not found")
        else:
            rotated += 1
            click.echo(f"  [OK] {name}: {preview}")
    click.echo(f"Rotation complete: {rotated} rotated")


def main():
    """Main entry point for the CLI."""
    cli(obj={})


if __name__ == "__main__":
    main()
