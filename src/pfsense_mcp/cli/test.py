"""
pfSense MCP Server - Test Connection Command

Log in to the pfSense web console and report the installed version.
"""

import asyncio
import logging
from typing import Any, Dict

import typer

from ..core.client import connect
from ..core.config_loader import ConfigLoader
from ..core.exceptions import ConfigurationError, PfSenseError
from ..core.models import PfSenseConfig
from ..shared.error_sanitizer import log_error_safely

logger = logging.getLogger("pfsense-mcp")


def test_command(profile: str = typer.Option("default", "--profile", "-p", help="Profile name to test")):
    """
    Test connection to a pfSense web console.

    Examples:
        pfsense-mcp test-connection
        pfsense-mcp test-connection --profile production
    """
    typer.echo("\n🔍 Testing pfSense Connection\n")
    typer.echo(f"Profile: {typer.style(profile, fg=typer.colors.CYAN, bold=True)}\n")

    try:
        typer.echo("📡 Loading credentials...")
        config = ConfigLoader.load(profile)
    except ConfigurationError as e:
        typer.echo(f"❌ Configuration error: {e}", err=True)
        typer.echo("\n💡 Run 'pfsense-mcp setup' to configure credentials")
        raise typer.Exit(1)

    typer.echo(f"URL: {config.url}")
    typer.echo(f"Username: {config.username}")
    typer.echo(f"SSL Verification: {'Enabled' if config.verify_ssl else 'Disabled'}\n")

    typer.echo("🔌 Logging in to pfSense...")
    result = asyncio.run(_test_connection_async(config))

    if not result["success"]:
        typer.echo(f"\n❌ {typer.style('Connection failed', fg=typer.colors.RED, bold=True)}")
        typer.echo(f"\nError: {result['error']}")
        typer.echo("\n💡 Troubleshooting tips:")
        typer.echo("   • Verify the URL is correct and the web console is reachable")
        typer.echo("   • Check the username and password")
        typer.echo("   • Try with --no-verify-ssl if using a self-signed certificate")
        raise typer.Exit(1)

    typer.echo(f"\n✅ {typer.style('Connection successful!', fg=typer.colors.GREEN, bold=True)}")

    version = result.get("version")
    if version is not None:
        typer.echo("\n📊 System Information:")
        typer.echo(f"   Installed version: {version.current}")
        typer.echo(f"   Latest version: {version.latest}")
    elif result.get("version_error"):
        typer.echo(f"\n⚠️  Could not read the system version: {result['version_error']}")

    typer.echo("\n✓ Your pfSense connection is properly configured")
    typer.echo("✓ You can now use this profile in Claude Desktop")


async def _test_connection_async(config: PfSenseConfig) -> Dict[str, Any]:
    """Log in and read the system version.

    Returns:
        Dictionary with the test results
    """
    try:
        client = await connect(config)
    except PfSenseError as e:
        return {"success": False, "error": log_error_safely(logger, e, "test_connection")}

    try:
        return {"success": True, "version": await client.system.get_system_version()}
    except PfSenseError as e:
        # Logged in but the version endpoint is unavailable
        return {"success": True, "version_error": log_error_safely(logger, e, "get_system_version")}
    finally:
        await client.close()
