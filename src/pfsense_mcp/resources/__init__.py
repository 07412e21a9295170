"""
pfSense MCP Server - Resource Accessors

Typed records and Get/GetAll/Create/Update/Delete accessors for each managed
configuration resource, plus apply and system operations.
"""

from .apply import ChangeApplier
from .base import Entry, ResourceAccessor, build_record
from .dhcp import DHCPv4StaticMapping, DHCPv4StaticMappingAccessor
from .dns_resolver import (
    ConfigFile,
    ConfigFileAccessor,
    DomainOverride,
    DomainOverrideAccessor,
    HostOverride,
    HostOverrideAccessor,
    HostOverrideAlias,
)
from .firewall_alias import (
    FirewallAliasEntry,
    FirewallIPAlias,
    FirewallIPAliasAccessor,
    FirewallPortAlias,
    FirewallPortAliasAccessor,
)
from .system import SystemAccessor, SystemVersion

__all__ = [
    "ChangeApplier",
    "Entry",
    "ResourceAccessor",
    "build_record",
    "DHCPv4StaticMapping",
    "DHCPv4StaticMappingAccessor",
    "ConfigFile",
    "ConfigFileAccessor",
    "DomainOverride",
    "DomainOverrideAccessor",
    "HostOverride",
    "HostOverrideAccessor",
    "HostOverrideAlias",
    "FirewallAliasEntry",
    "FirewallIPAlias",
    "FirewallIPAliasAccessor",
    "FirewallPortAlias",
    "FirewallPortAliasAccessor",
    "SystemAccessor",
    "SystemVersion",
]
