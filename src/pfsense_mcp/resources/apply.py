"""
pfSense MCP Server - Apply Operations

pfSense buffers configuration edits until an explicit apply or reload step
makes them live. These steps are kept separate from the writes so a caller can
tell a rejected write from a write that was stored but not activated.
"""

import logging
from typing import TYPE_CHECKING, Any, Dict, Mapping, Optional

from ..core.exceptions import ApplyOperationFailed, PfSenseError
from ..core.locks import LockCategory
from ..shared.constants import (
    APPLY_CHANGES_VALUE,
    PAGE_DHCP,
    PAGE_STATUS_FILTER_RELOAD,
    PAGE_UNBOUND,
    RELOAD_FILTER_VALUE,
)
from ..shared.error_handlers import validate_interface

if TYPE_CHECKING:
    from ..core.client import PfSenseClient

logger = logging.getLogger("pfsense-mcp")


class ChangeApplier:
    """Activation steps for previously submitted configuration edits."""

    def __init__(self, client: "PfSenseClient"):
        self.client = client

    async def _apply(
        self,
        target: str,
        category: LockCategory,
        path: str,
        fields: Mapping[str, Any],
        params: Optional[Mapping[str, Any]] = None,
    ) -> None:
        try:
            async with self.client.coordinator.write(category):
                await self.client.request_page(
                    "POST", path, data=fields, params=params, mutating=True, operation=f"apply_{category.value}"
                )
        except PfSenseError as e:
            raise ApplyOperationFailed(target, cause=e, category=category.value) from e
        logger.info(f"Applied {target}")

    async def reload_firewall_filter(self) -> None:
        await self._apply(
            "firewall filter reload",
            LockCategory.FIREWALL_FILTER,
            PAGE_STATUS_FILTER_RELOAD,
            {"reloadfilter": RELOAD_FILTER_VALUE},
        )

    async def apply_dns_resolver_changes(self) -> None:
        await self._apply(
            "DNS resolver changes",
            LockCategory.DNS_RESOLVER_APPLY,
            PAGE_UNBOUND,
            {"apply": APPLY_CHANGES_VALUE},
        )

    async def apply_dhcpv4_changes(self, interface: str) -> None:
        try:
            validate_interface(interface)
        except PfSenseError as e:
            raise ApplyOperationFailed(
                f"'{interface}' DHCPv4 changes", cause=e, category=LockCategory.DHCPV4_APPLY.value
            ) from e

        params: Dict[str, Any] = {"if": interface}
        await self._apply(
            f"'{interface}' DHCPv4 changes",
            LockCategory.DHCPV4_APPLY,
            PAGE_DHCP,
            {"apply": APPLY_CHANGES_VALUE},
            params=params,
        )
