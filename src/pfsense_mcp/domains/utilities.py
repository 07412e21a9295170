"""Utilities domain for pfSense MCP Server.

This module provides utility tools for advanced operations:
- System version lookup
- PHP command execution through the diagnostic script console
"""

import json
import logging

from mcp.server.fastmcp import Context

from ..core import PfSenseError
from ..main import mcp
from ..shared.error_handlers import ErrorSeverity, handle_tool_error
from .configuration import get_pfsense_client, to_json

logger = logging.getLogger("pfsense-mcp")


@mcp.tool(name="get_system_version", description="Get installed and latest available pfSense version")
async def get_system_version(ctx: Context) -> str:
    try:
        client = await get_pfsense_client()
        return to_json(await client.system.get_system_version())
    except PfSenseError as e:
        return await handle_tool_error(ctx, "get_system_version", e)


@mcp.tool(
    name="execute_php_command",
    description=(
        "Run a PHP snippet in the pfSense script console and return the JSON it prints. "
        "Use only when no dedicated tool exists."
    ),
)
async def execute_php_command(ctx: Context, command: str, crud_hint: str = "read") -> str:
    """Execute a PHP command on pfSense.

    The snippet must print a JSON value, e.g.
    ``print_r(json_encode($config['system']['hostname']));``.

    Args:
        ctx: MCP context
        command: PHP code to run
        crud_hint: create, read, update or delete. Anything but read runs
            exclusively, never alongside another script.

    Returns:
        The decoded JSON value, re-serialized
    """
    try:
        client = await get_pfsense_client()
        logger.info(f"Executing PHP command with hint '{crud_hint}' ({len(command)} characters)")
        result = await client.system.execute_php_command(command, crud_hint)
        return json.dumps(result, indent=2)
    except PfSenseError as e:
        severity = ErrorSeverity.MEDIUM if crud_hint == "read" else ErrorSeverity.HIGH
        return await handle_tool_error(ctx, "execute_php_command", e, severity)
