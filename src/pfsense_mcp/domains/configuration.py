"""
pfSense MCP Server - Configuration Domain

This module provides the tool that connects the server to a pfSense web
console using locally stored credentials, and the helpers other domains use to
reach the connected client.
"""

import json
import logging
from typing import Any

from mcp.server.fastmcp import Context
from pydantic import BaseModel

from ..core import (
    AuthenticationError,
    ConfigurationError,
    FailedRequestError,
    PfSenseClient,
    PfSenseError,
)
from ..core.config_loader import ConfigLoader
from ..main import mcp, server_state
from ..shared.error_handlers import ErrorSeverity, handle_tool_error

logger = logging.getLogger("pfsense-mcp")


# ========== HELPER FUNCTIONS ==========


async def get_pfsense_client() -> PfSenseClient:
    """Get pfSense client from server state with validation."""
    return await server_state.get_client()


def to_json(value: Any) -> str:
    """Serialize records (or lists of records) for a tool response."""
    if isinstance(value, BaseModel):
        value = value.model_dump(mode="json")
    elif isinstance(value, list):
        value = [item.model_dump(mode="json") if isinstance(item, BaseModel) else item for item in value]
    return json.dumps(value, indent=2)


# ========== CONFIGURATION TOOLS ==========


@mcp.tool(
    name="configure_pfsense_connection",
    description="Configure pfSense connection using locally stored credentials (secure - never sends credentials to LLM)",
)
async def configure_pfsense_connection(ctx: Context, profile: str = "default") -> str:
    """Configure the pfSense connection using locally stored credentials.

    **SECURITY:** Credentials are loaded from local storage only and never sent to the LLM.

    **Setup Required:** Before using this tool, credentials must be configured using:
    1. CLI command: `pfsense-mcp setup` (recommended)
    2. Environment variables: PFSENSE_URL, PFSENSE_USERNAME, PFSENSE_PASSWORD
    3. Config file: ~/.pfsense-mcp/config.json

    Args:
        ctx: MCP context
        profile: Profile name to load credentials from (default: "default")

    Returns:
        Success message with connection details (no credentials exposed)
    """
    try:
        logger.info(f"Loading pfSense configuration for profile: {profile}")
        config = ConfigLoader.load(profile)

        await server_state.initialize(config, profile)

        await ctx.info(f"pfSense connection configured successfully using profile '{profile}'")

        return (
            f"✅ pfSense connection configured successfully!\n\n"
            f"Profile: {profile}\n"
            f"URL: {config.url}\n"
            f"Username: {config.username}\n"
            f"SSL Verification: {'Enabled' if config.verify_ssl else 'Disabled'}\n"
            f"Serialize all writes: {'Enabled' if config.serialize_all_writes else 'Disabled'}\n\n"
            f"🔒 Security: Credentials loaded from local storage (never exposed to LLM)"
        )

    except ConfigurationError as e:
        error_msg = f"Configuration error: {e!s}"
        logger.error(error_msg)
        await ctx.error(error_msg)
        return (
            f"❌ Configuration Error: {e!s}\n\n"
            f"📖 Setup Instructions:\n"
            f"1. Run: pfsense-mcp setup --profile {profile}\n"
            f"2. Or set environment variables: PFSENSE_URL, PFSENSE_USERNAME, PFSENSE_PASSWORD\n"
            f"3. Or create config file: {ConfigLoader.DEFAULT_CONFIG_FILE}\n\n"
            f"💡 Tip: Use 'pfsense-mcp list-profiles' to see configured profiles"
        )

    except AuthenticationError as e:
        # Login failures also cover an unreachable console
        root = e.__cause__
        if isinstance(root, FailedRequestError):
            error_msg = f"Network error: {root.message}"
            await ctx.error(error_msg)
            return (
                f"❌ Network Error: {root.message}\n\n"
                f"Could not reach pfSense after {root.attempts} attempt(s).\n"
                f"Run: pfsense-mcp test-connection --profile {profile} (to diagnose)"
            )

        error_msg = f"Authentication failed: {e!s}"
        logger.error(error_msg)
        await ctx.error(error_msg)
        return (
            f"❌ Authentication Error: {e!s}\n\n"
            f"The credentials for profile '{profile}' appear to be invalid.\n"
            f"Run: pfsense-mcp setup --profile {profile} (to update credentials)"
        )

    except PfSenseError as e:
        return await handle_tool_error(ctx, "configure_pfsense_connection", e, ErrorSeverity.HIGH)
