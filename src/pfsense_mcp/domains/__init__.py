"""
pfSense MCP Server - Domain Modules

This package contains domain-specific tool implementations organized by feature area.
Each module provides MCP tools for a specific aspect of pfSense management.
"""

# Domain modules are imported here to register their MCP tools.
# configuration must not come first: the other modules import it while
# main is still registering tools.
from . import (
    dhcp,
    dns_resolver,
    firewall,
    utilities,
    configuration,
)

__all__ = [
    "configuration",
    "dhcp",
    "dns_resolver",
    "firewall",
    "utilities",
]
