"""
pfSense MCP Server - Setup Command

Interactive setup for configuring pfSense web console credentials.
"""

import asyncio
import getpass
from typing import Optional

import typer
from pydantic import ValidationError

from ..core.client import connect
from ..core.config_loader import ConfigLoader
from ..core.exceptions import ConfigurationError, PfSenseError
from ..core.models import DEFAULT_USERNAME, PfSenseConfig
from ..shared.error_sanitizer import ErrorMessageSanitizer


def setup_command(
    profile: str = typer.Option("default", "--profile", "-p", help="Profile name (default, production, staging, etc.)"),
    url: Optional[str] = typer.Option(None, "--url", help="pfSense URL (e.g., https://192.168.1.1)"),
    username: Optional[str] = typer.Option(None, "--username", "-u", help="Web console username"),
    password: Optional[str] = typer.Option(None, "--password", help="Web console password"),
    verify_ssl: bool = typer.Option(True, "--verify-ssl/--no-verify-ssl", help="Verify SSL certificates"),
    serialize_all_writes: bool = typer.Option(
        True,
        "--serialize-all-writes/--parallel-writes",
        help="Run every write behind one global lock",
    ),
    interactive: bool = typer.Option(True, "--interactive/--non-interactive", help="Interactive mode with prompts"),
    skip_test: bool = typer.Option(False, "--skip-test", help="Save without logging in first"),
):
    """
    Configure pfSense web console credentials.

    Examples:
        # Interactive setup
        pfsense-mcp setup

        # Non-interactive setup
        pfsense-mcp setup --url https://192.168.1.1 --username admin --password SECRET --non-interactive

        # Setup production profile
        pfsense-mcp setup --profile production
    """
    typer.echo("\n🔧 pfSense MCP Server - Credential Setup\n")
    typer.echo(f"Profile: {typer.style(profile, fg=typer.colors.CYAN, bold=True)}\n")

    if interactive:
        if not url:
            url = typer.prompt("pfSense URL (e.g., https://192.168.1.1)")
        if not username:
            username = typer.prompt("Username", default=DEFAULT_USERNAME)
        if not password:
            password = getpass.getpass("Password (hidden): ")
        if not typer.confirm("Verify SSL certificates?", default=verify_ssl):
            verify_ssl = False

    elif not all([url, password]):
        typer.echo("❌ Error: In non-interactive mode, --url and --password are required", err=True)
        raise typer.Exit(1)

    try:
        config = PfSenseConfig(
            url=url,
            username=username or DEFAULT_USERNAME,
            password=password,
            verify_ssl=verify_ssl,
            serialize_all_writes=serialize_all_writes,
        )
    except ValidationError as e:
        typer.echo(f"❌ Invalid configuration: {e}", err=True)
        raise typer.Exit(1)

    if not skip_test:
        typer.echo("\n🔍 Testing login...")
        if not _test_login(config):
            typer.echo("\n⚠️  Login test failed. Save anyway?", err=True)
            if not (interactive and typer.confirm("Continue with save?", default=False)):
                typer.echo("Setup cancelled")
                raise typer.Exit(1)

    try:
        ConfigLoader.save_profile(profile, config)
    except (ConfigurationError, OSError) as e:
        typer.echo(f"\n❌ Error saving profile: {e}", err=True)
        raise typer.Exit(1)

    typer.echo(f"\n✅ Profile '{profile}' saved successfully!")
    typer.echo(f"\n📍 Config location: {ConfigLoader.DEFAULT_CONFIG_FILE}")
    typer.echo("🔒 File permissions: 0600 (owner read/write only)")

    typer.echo("\n📖 Usage:")
    typer.echo(f'   • In Claude Desktop, say: "Configure pfSense connection using profile {profile}"')
    typer.echo(f"   • Test connection: pfsense-mcp test-connection --profile {profile}")
    typer.echo("   • List profiles: pfsense-mcp list-profiles")


def _test_login(config: PfSenseConfig) -> bool:
    """Log in once with the given configuration, reporting the outcome."""

    async def attempt():
        client = await connect(config)
        await client.close()

    try:
        asyncio.run(attempt())
    except PfSenseError as e:
        typer.echo(f"⚠️  Login failed: {ErrorMessageSanitizer.sanitize_for_user(e, 'login')}")
        return False

    typer.echo("✅ Login successful!")
    return True
