#!/usr/bin/env python3
"""
pfSense MCP Server - Main Entry Point

This module initializes the FastMCP server and registers all domain-specific tools.
It serves as the central coordination point for the modular MCP server architecture.
"""

import logging
from mcp.server.fastmcp import FastMCP

from .core.state import ServerState

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger("pfsense-mcp")

# Initialize FastMCP server
mcp = FastMCP(
    "pfSense MCP Server",
    instructions=(
        "Manage pfSense firewalls through their web console: firewall aliases, "
        "DNS resolver overrides and config files, DHCPv4 static mappings. "
        "Writes are buffered by pfSense until the matching apply tool is called."
    ),
)

# Initialize global server state
server_state = ServerState()


# Import domain modules to register their MCP tools
# Each domain module uses the global `mcp` instance to register its tools
# using decorators like: @mcp.tool(name="tool_name", description="...")
from .domains import configuration  # Connection setup
from .domains import firewall       # Firewall aliases and filter reload
from .domains import dns_resolver   # Domain/host overrides, config files, apply
from .domains import dhcp           # DHCPv4 static mappings and apply
from .domains import utilities      # System version and PHP script escape hatch


def run():
    """Entry point for running the server."""
    mcp.run()


if __name__ == "__main__":
    run()
