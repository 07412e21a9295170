"""
pfSense MCP Server - DNS Resolver Domain

This module provides tools for the DNS resolver (unbound): domain overrides,
host overrides, custom configuration files, and applying resolver changes.
"""

import logging
from typing import List, Optional

from mcp.server.fastmcp import Context

from ..core import ApplyOperationFailed, PfSenseError
from ..main import mcp
from ..resources import HostOverrideAlias
from ..shared.error_handlers import ErrorSeverity, handle_apply_warning, handle_tool_error
from .configuration import get_pfsense_client, to_json

logger = logging.getLogger("pfsense-mcp")


def _domain_override_json(override) -> str:
    data = override.model_dump(mode="json")
    data["effective_port"] = override.effective_port
    return to_json(data)


# ========== DOMAIN OVERRIDE TOOLS ==========


@mcp.tool(name="list_domain_overrides", description="List DNS resolver domain overrides")
async def list_domain_overrides(ctx: Context) -> str:
    try:
        client = await get_pfsense_client()
        return to_json(await client.domain_overrides.get_all())
    except PfSenseError as e:
        return await handle_tool_error(ctx, "list_domain_overrides", e)


@mcp.tool(name="get_domain_override", description="Get a DNS resolver domain override by domain")
async def get_domain_override(ctx: Context, domain: str) -> str:
    try:
        client = await get_pfsense_client()
        return _domain_override_json(await client.domain_overrides.get(domain))
    except PfSenseError as e:
        return await handle_tool_error(ctx, "get_domain_override", e)


@mcp.tool(
    name="save_domain_override",
    description="Create or replace a DNS resolver domain override (run apply_dns_resolver_changes to apply)",
)
async def save_domain_override(
    ctx: Context,
    domain: str,
    ip_address: str,
    port: Optional[int] = None,
    tls_queries: bool = False,
    tls_hostname: str = "",
    description: str = "",
    replace: bool = False,
) -> str:
    """Create (or with ``replace`` update) a domain override.

    Args:
        ctx: MCP context
        domain: Domain whose queries are forwarded
        ip_address: Server the queries are forwarded to
        port: Server port, 53 (or 853 with TLS) when omitted
        tls_queries: Forward queries over TLS
        tls_hostname: Hostname used to verify the server certificate
        description: Override description
        replace: Update the existing override for ``domain`` instead of creating one

    Returns:
        JSON of the override as stored by pfSense
    """
    record = {
        "domain": domain,
        "ip_address": ip_address,
        "port": port,
        "tls_queries": tls_queries,
        "tls_hostname": tls_hostname,
        "description": description,
    }
    try:
        client = await get_pfsense_client()
        if replace:
            override = await client.domain_overrides.update(record)
        else:
            override = await client.domain_overrides.create(record)
        return _domain_override_json(override)
    except PfSenseError as e:
        return await handle_tool_error(ctx, "save_domain_override", e, ErrorSeverity.HIGH)


@mcp.tool(name="delete_domain_override", description="Delete a DNS resolver domain override by domain")
async def delete_domain_override(ctx: Context, domain: str) -> str:
    try:
        client = await get_pfsense_client()
        await client.domain_overrides.delete(domain)
        return to_json({"status": "deleted", "domain": domain})
    except PfSenseError as e:
        return await handle_tool_error(ctx, "delete_domain_override", e, ErrorSeverity.HIGH)


# ========== HOST OVERRIDE TOOLS ==========


@mcp.tool(name="list_host_overrides", description="List DNS resolver host overrides")
async def list_host_overrides(ctx: Context) -> str:
    try:
        client = await get_pfsense_client()
        return to_json(await client.host_overrides.get_all())
    except PfSenseError as e:
        return await handle_tool_error(ctx, "list_host_overrides", e)


@mcp.tool(name="get_host_override", description="Get a DNS resolver host override by FQDN")
async def get_host_override(ctx: Context, fqdn: str) -> str:
    try:
        client = await get_pfsense_client()
        return to_json(await client.host_overrides.get(fqdn))
    except PfSenseError as e:
        return await handle_tool_error(ctx, "get_host_override", e)


@mcp.tool(
    name="save_host_override",
    description="Create or replace a DNS resolver host override (run apply_dns_resolver_changes to apply)",
)
async def save_host_override(
    ctx: Context,
    domain: str,
    ip_addresses: List[str],
    host: str = "",
    description: str = "",
    aliases: Optional[List[HostOverrideAlias]] = None,
    replace: bool = False,
) -> str:
    """Create (or with ``replace`` update) a host override.

    Args:
        ctx: MCP context
        domain: Parent domain of the host
        ip_addresses: Addresses returned for the host
        host: Host label, empty for the domain itself
        description: Override description
        aliases: Additional names answered with the same addresses
        replace: Update the existing override for the FQDN instead of creating one
    """
    record = {
        "host": host,
        "domain": domain,
        "ip_addresses": ip_addresses,
        "description": description,
        "aliases": aliases or [],
    }
    try:
        client = await get_pfsense_client()
        if replace:
            override = await client.host_overrides.update(record)
        else:
            override = await client.host_overrides.create(record)
        return to_json(override)
    except PfSenseError as e:
        return await handle_tool_error(ctx, "save_host_override", e, ErrorSeverity.HIGH)


@mcp.tool(name="delete_host_override", description="Delete a DNS resolver host override by FQDN")
async def delete_host_override(ctx: Context, fqdn: str) -> str:
    try:
        client = await get_pfsense_client()
        await client.host_overrides.delete(fqdn)
        return to_json({"status": "deleted", "fqdn": fqdn})
    except PfSenseError as e:
        return await handle_tool_error(ctx, "delete_host_override", e, ErrorSeverity.HIGH)


# ========== CONFIG FILE TOOLS ==========


@mcp.tool(name="list_dns_resolver_config_files", description="List custom DNS resolver configuration files")
async def list_dns_resolver_config_files(ctx: Context) -> str:
    try:
        client = await get_pfsense_client()
        return to_json(await client.config_files.get_all())
    except PfSenseError as e:
        return await handle_tool_error(ctx, "list_dns_resolver_config_files", e)


@mcp.tool(
    name="save_dns_resolver_config_file",
    description="Write a custom DNS resolver configuration file (run apply_dns_resolver_changes to apply)",
)
async def save_dns_resolver_config_file(ctx: Context, name: str, content: str, replace: bool = False) -> str:
    """Write ``<name>.conf`` into the resolver's include directory.

    Args:
        ctx: MCP context
        name: File name without extension (lowercase letters, digits and dashes)
        content: Unbound configuration text
        replace: Require the file to exist already
    """
    try:
        client = await get_pfsense_client()
        record = {"name": name, "content": content}
        if replace:
            config_file = await client.config_files.update(record)
        else:
            config_file = await client.config_files.create(record)
        return to_json(config_file)
    except PfSenseError as e:
        return await handle_tool_error(ctx, "save_dns_resolver_config_file", e, ErrorSeverity.HIGH)


@mcp.tool(name="delete_dns_resolver_config_file", description="Delete a custom DNS resolver configuration file")
async def delete_dns_resolver_config_file(ctx: Context, name: str) -> str:
    try:
        client = await get_pfsense_client()
        await client.config_files.delete(name)
        return to_json({"status": "deleted", "name": name})
    except PfSenseError as e:
        return await handle_tool_error(ctx, "delete_dns_resolver_config_file", e, ErrorSeverity.HIGH)


# ========== APPLY TOOLS ==========


@mcp.tool(name="apply_dns_resolver_changes", description="Apply pending DNS resolver changes")
async def apply_dns_resolver_changes(ctx: Context) -> str:
    """Apply pending DNS resolver changes.

    A failed apply is reported as a warning: the preceding writes are already
    saved and will take effect with the next successful apply.
    """
    try:
        client = await get_pfsense_client()
        await client.apply.apply_dns_resolver_changes()
        return to_json({"status": "applied", "target": "DNS resolver"})
    except ApplyOperationFailed as e:
        return await handle_apply_warning(ctx, "apply_dns_resolver_changes", e)
    except PfSenseError as e:
        return await handle_tool_error(ctx, "apply_dns_resolver_changes", e)
