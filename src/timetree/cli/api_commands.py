"""CLI commands for API management.

This module provides commands for managing the Timetree REST API,
including starting the server, generating tokens, and checking status.
"""

import sys
from datetime import timedelta
from pathlib import Path
from typing import Optional

import click

from timetree.api.auth import create_token_for_user
from timetree.api.server import run_server
from timetree.core.config import ConfigManager


def _load_config(config_path: Optional[str]) -> ConfigManager:
    try:
        return ConfigManager(Path(config_path) if config_path else None)
    except ValueError as e:
        click.echo(click.style(f"❌ {e}", fg="red"), err=True)
        sys.exit(1)


@click.group()
def api() -> None:
    """API server management commands."""
    pass


@api.command()
@click.option("--host", default=None, help="Host address (default: from config)")
@click.option("--port", type=int, default=None, help="Port number (default: from config)")
@click.option("--reload", is_flag=True, help="Enable auto-reload for development")
@click.option("--config", "config_path", type=click.Path(exists=True), help="Path to config file")
def serve(
    host: Optional[str],
    port: Optional[int],
    reload: bool,
    config_path: Optional[str],
) -> None:
    """Start the API server.

    Examples:
        timetree api serve
        timetree api serve --host 0.0.0.0 --port 8080
        timetree api serve --reload  # Development mode
    """
    config = _load_config(config_path)

    if not config.get("api.enabled", False):
        click.echo(click.style("⚠️  API is not enabled in configuration", fg="yellow"), err=True)
        click.echo("\nTo enable the API, run:")
        click.echo("  timetree config set api.enabled true")
        sys.exit(1)

    config.ensure_api_secret_key()

    final_host = host or config.get("api.host", "localhost")
    final_port = port or config.get("api.port", 8000)

    click.echo("🚀 Starting Timetree API server...")
    click.echo(f"   URL: http://{final_host}:{final_port}")
    click.echo(f"   Docs: http://{final_host}:{final_port}/docs")
    click.echo(f"   Data: {config.data_dir}")
    if reload:
        click.echo("   Mode: Development (auto-reload enabled)")
    click.echo()

    try:
        run_server(config=config, host=final_host, port=final_port, reload=reload)
    except KeyboardInterrupt:
        click.echo("\n\n👋 Shutting down API server...")
    except Exception as e:
        click.echo(click.style(f"❌ Error starting server: {e}", fg="red"), err=True)
        sys.exit(1)


@api.group()
def token() -> None:
    """Manage API authentication tokens."""
    pass


@token.command("create")
@click.option("--user-id", default="cli-user", help="User ID for the token")
@click.option(
    "--expires",
    type=click.IntRange(min=1),
    help="Token expiry time in hours (default: from config)",
)
@click.option("--config", "config_path", type=click.Path(exists=True), help="Path to config file")
def create_token_cmd(user_id: str, expires: Optional[int], config_path: Optional[str]) -> None:
    """Create a new authentication token.

    Examples:
        timetree api token create
        timetree api token create --expires 48
    """
    config = _load_config(config_path)

    if expires is None:
        expires = config.get("api.authentication.token_expiry_hours", 24)

    token_data = create_token_for_user(
        config, user_id=user_id, expires_delta=timedelta(hours=expires)  # type: ignore[arg-type]
    )

    click.echo("✅ Token created successfully!")
    click.echo()
    click.echo(f"Token: {token_data['access_token']}")
    click.echo(f"Expires in: {expires} hours")
    click.echo()
    click.echo("Use this token in API requests:")
    click.echo(f"  Authorization: Bearer {token_data['access_token']}")
    click.echo()
    click.echo("Example curl command:")
    host = config.get("api.host", "localhost")
    port = config.get("api.port", 8000)
    click.echo(
        f'  curl -H "Authorization: Bearer {token_data["access_token"]}" '
        f"http://{host}:{port}/api/v1/trackables/"
    )


@api.command()
@click.option("--config", "config_path", type=click.Path(exists=True), help="Path to config file")
def status(config_path: Optional[str]) -> None:
    """Show API configuration status.

    Examples:
        timetree api status
    """
    config = _load_config(config_path)

    click.echo("📊 Timetree API Status")
    click.echo("=" * 50)

    enabled = config.get("api.enabled", False)
    status_icon = "✅" if enabled else "❌"
    click.echo(f"\n{status_icon} API Enabled: {enabled}")

    if not enabled:
        click.echo("\nTo enable the API:")
        click.echo("  timetree config set api.enabled true")
        return

    click.echo("\n🌐 Server Configuration:")
    host = config.get("api.host", "localhost")
    port = config.get("api.port", 8000)
    click.echo(f"  Host: {host}")
    click.echo(f"  Port: {port}")
    click.echo(f"  Data: {config.data_dir}")

    click.echo("\n🔐 Authentication:")
    auth_enabled = config.get("api.authentication.enabled", True)
    auth_icon = "✅" if auth_enabled else "❌"
    click.echo(f"  {auth_icon} Enabled: {auth_enabled}")
    if auth_enabled:
        expiry = config.get("api.authentication.token_expiry_hours", 24)
        has_secret = bool(config.get("api.authentication.secret_key"))
        click.echo(f"  Token Expiry: {expiry} hours")
        click.echo(f"  Secret Key: {'Set' if has_secret else 'Not set'}")
        if not has_secret:
            click.echo(click.style("  ⚠️  Run 'timetree api serve' to generate", fg="yellow"))

    click.echo("\n🌍 CORS:")
    cors_enabled = config.get("api.cors.enabled", True)
    cors_icon = "✅" if cors_enabled else "❌"
    click.echo(f"  {cors_icon} Enabled: {cors_enabled}")
    if cors_enabled:
        origins = config.get("api.cors.origins", [])
        click.echo(f"  Allowed Origins: {len(origins)}")
        for origin in origins:
            click.echo(f"    - {origin}")

    click.echo("\n🚀 Quick Start:")
    click.echo("  1. Start server: timetree api serve")
    click.echo("  2. Create token: timetree api token create")
    click.echo(f"  3. Open docs: http://{host}:{port}/docs")
