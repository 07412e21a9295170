"""
pfSense MCP Server - Firewall Domain

This module provides tools for managing pfSense firewall aliases (IP and port)
and for reloading the firewall filter so alias changes take effect.
"""

import logging
from typing import List, Optional

from mcp.server.fastmcp import Context

from ..core import ApplyOperationFailed, PfSenseError
from ..main import mcp
from ..resources import FirewallAliasEntry
from ..shared.error_handlers import ErrorSeverity, handle_apply_warning, handle_tool_error
from .configuration import get_pfsense_client, to_json

logger = logging.getLogger("pfsense-mcp")


# ========== IP ALIAS TOOLS ==========


@mcp.tool(name="list_firewall_ip_aliases", description="List firewall IP aliases (host and network types)")
async def list_firewall_ip_aliases(ctx: Context) -> str:
    """List firewall IP aliases.

    Args:
        ctx: MCP context

    Returns:
        JSON list of IP aliases with their entries
    """
    try:
        client = await get_pfsense_client()
        return to_json(await client.firewall_ip_aliases.get_all())
    except PfSenseError as e:
        return await handle_tool_error(ctx, "list_firewall_ip_aliases", e)


@mcp.tool(name="get_firewall_ip_alias", description="Get a firewall IP alias by name")
async def get_firewall_ip_alias(ctx: Context, name: str) -> str:
    try:
        client = await get_pfsense_client()
        return to_json(await client.firewall_ip_aliases.get(name))
    except PfSenseError as e:
        return await handle_tool_error(ctx, "get_firewall_ip_alias", e)


@mcp.tool(name="create_firewall_ip_alias", description="Create a firewall IP alias (run reload_firewall_filter to apply)")
async def create_firewall_ip_alias(
    ctx: Context,
    name: str,
    alias_type: str = "host",
    description: str = "",
    entries: Optional[List[FirewallAliasEntry]] = None,
) -> str:
    """Create a firewall IP alias.

    Args:
        ctx: MCP context
        name: Alias name (letters, digits and underscores)
        alias_type: "host" or "network"
        description: Alias description
        entries: Addresses (IP, CIDR, FQDN or alias) with optional descriptions

    Returns:
        JSON of the alias as stored by pfSense
    """
    try:
        client = await get_pfsense_client()
        alias = await client.firewall_ip_aliases.create(
            {"name": name, "type": alias_type, "description": description, "entries": entries or []}
        )
        await ctx.info(f"Firewall IP alias '{name}' created, reload the firewall filter to apply it")
        return to_json(alias)
    except PfSenseError as e:
        return await handle_tool_error(ctx, "create_firewall_ip_alias", e, ErrorSeverity.HIGH)


@mcp.tool(name="update_firewall_ip_alias", description="Replace a firewall IP alias (run reload_firewall_filter to apply)")
async def update_firewall_ip_alias(
    ctx: Context,
    name: str,
    alias_type: str = "host",
    description: str = "",
    entries: Optional[List[FirewallAliasEntry]] = None,
) -> str:
    try:
        client = await get_pfsense_client()
        alias = await client.firewall_ip_aliases.update(
            {"name": name, "type": alias_type, "description": description, "entries": entries or []}
        )
        return to_json(alias)
    except PfSenseError as e:
        return await handle_tool_error(ctx, "update_firewall_ip_alias", e, ErrorSeverity.HIGH)


@mcp.tool(name="delete_firewall_ip_alias", description="Delete a firewall IP alias by name")
async def delete_firewall_ip_alias(ctx: Context, name: str) -> str:
    try:
        client = await get_pfsense_client()
        await client.firewall_ip_aliases.delete(name)
        return to_json({"status": "deleted", "name": name})
    except PfSenseError as e:
        return await handle_tool_error(ctx, "delete_firewall_ip_alias", e, ErrorSeverity.HIGH)


# ========== PORT ALIAS TOOLS ==========


@mcp.tool(name="list_firewall_port_aliases", description="List firewall port aliases")
async def list_firewall_port_aliases(ctx: Context) -> str:
    try:
        client = await get_pfsense_client()
        return to_json(await client.firewall_port_aliases.get_all())
    except PfSenseError as e:
        return await handle_tool_error(ctx, "list_firewall_port_aliases", e)


@mcp.tool(name="get_firewall_port_alias", description="Get a firewall port alias by name")
async def get_firewall_port_alias(ctx: Context, name: str) -> str:
    try:
        client = await get_pfsense_client()
        return to_json(await client.firewall_port_aliases.get(name))
    except PfSenseError as e:
        return await handle_tool_error(ctx, "get_firewall_port_alias", e)


@mcp.tool(name="create_firewall_port_alias", description="Create a firewall port alias (run reload_firewall_filter to apply)")
async def create_firewall_port_alias(
    ctx: Context,
    name: str,
    description: str = "",
    entries: Optional[List[FirewallAliasEntry]] = None,
) -> str:
    """Create a firewall port alias.

    Args:
        ctx: MCP context
        name: Alias name (letters, digits and underscores)
        description: Alias description
        entries: Ports ("443") or port ranges ("8000:8080") with optional descriptions

    Returns:
        JSON of the alias as stored by pfSense
    """
    try:
        client = await get_pfsense_client()
        alias = await client.firewall_port_aliases.create(
            {"name": name, "description": description, "entries": entries or []}
        )
        return to_json(alias)
    except PfSenseError as e:
        return await handle_tool_error(ctx, "create_firewall_port_alias", e, ErrorSeverity.HIGH)


@mcp.tool(name="update_firewall_port_alias", description="Replace a firewall port alias (run reload_firewall_filter to apply)")
async def update_firewall_port_alias(
    ctx: Context,
    name: str,
    description: str = "",
    entries: Optional[List[FirewallAliasEntry]] = None,
) -> str:
    try:
        client = await get_pfsense_client()
        alias = await client.firewall_port_aliases.update(
            {"name": name, "description": description, "entries": entries or []}
        )
        return to_json(alias)
    except PfSenseError as e:
        return await handle_tool_error(ctx, "update_firewall_port_alias", e, ErrorSeverity.HIGH)


@mcp.tool(name="delete_firewall_port_alias", description="Delete a firewall port alias by name")
async def delete_firewall_port_alias(ctx: Context, name: str) -> str:
    try:
        client = await get_pfsense_client()
        await client.firewall_port_aliases.delete(name)
        return to_json({"status": "deleted", "name": name})
    except PfSenseError as e:
        return await handle_tool_error(ctx, "delete_firewall_port_alias", e, ErrorSeverity.HIGH)


# ========== FILTER TOOLS ==========


@mcp.tool(name="reload_firewall_filter", description="Reload the firewall filter so alias changes take effect")
async def reload_firewall_filter(ctx: Context) -> str:
    """Reload the firewall filter.

    A failed reload is reported as a warning: the preceding alias changes are
    already saved and will be applied by the next successful reload.
    """
    try:
        client = await get_pfsense_client()
        await client.apply.reload_firewall_filter()
        return to_json({"status": "applied", "target": "firewall filter"})
    except ApplyOperationFailed as e:
        return await handle_apply_warning(ctx, "reload_firewall_filter", e)
    except PfSenseError as e:
        return await handle_tool_error(ctx, "reload_firewall_filter", e)
