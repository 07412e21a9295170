#!/usr/bin/env python3
"""
pfSense MCP Server - Launcher

Runs the MCP server from a source checkout without installing the package.
Installed deployments use the ``pfsense-mcp-server`` console script instead.

Tool modules:
  * configuration - Connection setup
  * firewall - IP and port aliases, filter reload
  * dns_resolver - Domain overrides, host overrides, configuration files
  * dhcp - DHCPv4 static mappings
  * utilities - System version, PHP script console
"""

from src.pfsense_mcp.main import mcp

if __name__ == "__main__":
    mcp.run()
