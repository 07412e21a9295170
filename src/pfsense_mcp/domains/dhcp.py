"""
pfSense MCP Server - DHCP Domain

This module provides tools for managing DHCPv4 static mappings per interface
and for applying pending DHCPv4 changes.
"""

import logging
from typing import List, Optional

from mcp.server.fastmcp import Context

from ..core import ApplyOperationFailed, PfSenseError
from ..main import mcp
from ..shared.error_handlers import ErrorSeverity, handle_apply_warning, handle_tool_error
from .configuration import get_pfsense_client, to_json

logger = logging.getLogger("pfsense-mcp")


@mcp.tool(name="list_dhcpv4_static_mappings", description="List DHCPv4 static mappings of an interface")
async def list_dhcpv4_static_mappings(ctx: Context, interface: str = "lan") -> str:
    try:
        client = await get_pfsense_client()
        return to_json(await client.dhcpv4_static_mappings.get_all(interface=interface))
    except PfSenseError as e:
        return await handle_tool_error(ctx, "list_dhcpv4_static_mappings", e)


@mcp.tool(name="get_dhcpv4_static_mapping", description="Get a DHCPv4 static mapping by MAC address")
async def get_dhcpv4_static_mapping(ctx: Context, mac_address: str, interface: str = "lan") -> str:
    try:
        client = await get_pfsense_client()
        return to_json(await client.dhcpv4_static_mappings.get(mac_address, interface=interface))
    except PfSenseError as e:
        return await handle_tool_error(ctx, "get_dhcpv4_static_mapping", e)


@mcp.tool(
    name="save_dhcpv4_static_mapping",
    description="Create or replace a DHCPv4 static mapping (run apply_dhcpv4_changes to apply)",
)
async def save_dhcpv4_static_mapping(
    ctx: Context,
    mac_address: str,
    interface: str = "lan",
    ip_address: str = "",
    hostname: str = "",
    description: str = "",
    client_identifier: str = "",
    arp_table_static_entry: bool = False,
    wins_servers: Optional[List[str]] = None,
    dns_servers: Optional[List[str]] = None,
    gateway: str = "",
    domain_name: str = "",
    domain_search_list: Optional[List[str]] = None,
    default_lease_time: Optional[int] = None,
    maximum_lease_time: Optional[int] = None,
    replace: bool = False,
) -> str:
    """Create (or with ``replace`` update) a DHCPv4 static mapping.

    Args:
        ctx: MCP context
        mac_address: Client MAC address (colon separated)
        interface: Interface the DHCP server runs on
        ip_address: Fixed IPv4 address, empty for none
        hostname: Client hostname
        description: Mapping description
        client_identifier: DHCP client identifier
        arp_table_static_entry: Add a static ARP table entry
        wins_servers: Up to two WINS servers
        dns_servers: Up to four DNS servers
        gateway: Gateway handed to the client
        domain_name: Domain name handed to the client
        domain_search_list: Search domains handed to the client
        default_lease_time: Default lease time in seconds
        maximum_lease_time: Maximum lease time in seconds
        replace: Update the existing mapping for the MAC address instead of creating one
    """
    record = {
        "interface": interface,
        "mac_address": mac_address,
        "client_identifier": client_identifier,
        "ip_address": ip_address,
        "arp_table_static_entry": arp_table_static_entry,
        "hostname": hostname,
        "description": description,
        "wins_servers": wins_servers or [],
        "dns_servers": dns_servers or [],
        "gateway": gateway,
        "domain_name": domain_name,
        "domain_search_list": domain_search_list or [],
        "default_lease_time": default_lease_time,
        "maximum_lease_time": maximum_lease_time,
    }
    try:
        client = await get_pfsense_client()
        if replace:
            mapping = await client.dhcpv4_static_mappings.update(record)
        else:
            mapping = await client.dhcpv4_static_mappings.create(record)
        return to_json(mapping)
    except PfSenseError as e:
        return await handle_tool_error(ctx, "save_dhcpv4_static_mapping", e, ErrorSeverity.HIGH)


@mcp.tool(name="delete_dhcpv4_static_mapping", description="Delete a DHCPv4 static mapping by MAC address")
async def delete_dhcpv4_static_mapping(ctx: Context, mac_address: str, interface: str = "lan") -> str:
    try:
        client = await get_pfsense_client()
        await client.dhcpv4_static_mappings.delete(mac_address, interface=interface)
        return to_json({"status": "deleted", "mac_address": mac_address, "interface": interface})
    except PfSenseError as e:
        return await handle_tool_error(ctx, "delete_dhcpv4_static_mapping", e, ErrorSeverity.HIGH)


@mcp.tool(name="apply_dhcpv4_changes", description="Apply pending DHCPv4 changes of an interface")
async def apply_dhcpv4_changes(ctx: Context, interface: str = "lan") -> str:
    try:
        client = await get_pfsense_client()
        await client.apply.apply_dhcpv4_changes(interface)
        return to_json({"status": "applied", "target": f"DHCPv4 on {interface}"})
    except ApplyOperationFailed as e:
        return await handle_apply_warning(ctx, "apply_dhcpv4_changes", e)
    except PfSenseError as e:
        return await handle_tool_error(ctx, "apply_dhcpv4_changes", e)
