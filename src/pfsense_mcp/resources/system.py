"""
pfSense MCP Server - System Operations

The script-console escape hatch and the installed system version.
"""

import json
import logging
from typing import TYPE_CHECKING, Any, Dict

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from ..core.exceptions import (
    ClientValidationError,
    CreateOperationFailed,
    DeleteOperationFailed,
    GetOperationFailed,
    ParseError,
    PfSenseError,
    UpdateOperationFailed,
)
from ..core.locks import LockCategory
from ..shared.constants import PAGE_PKG_MGR_INSTALL

if TYPE_CHECKING:
    from ..core.client import PfSenseClient

logger = logging.getLogger("pfsense-mcp")

# Lock discipline and error wrapper per CRUD hint
CRUD_HINTS: Dict[str, tuple] = {
    "create": (True, CreateOperationFailed),
    "read": (False, GetOperationFailed),
    "update": (True, UpdateOperationFailed),
    "delete": (True, DeleteOperationFailed),
}


class SystemVersion(BaseModel):
    """Installed and latest available system version."""

    model_config = ConfigDict(populate_by_name=True)

    current: str = Field(alias="installed_version", min_length=1)
    latest: str = Field(alias="version", min_length=1)


class SystemAccessor:
    def __init__(self, client: "PfSenseClient"):
        self.client = client

    async def execute_php_command(self, command: str, crud_hint: str) -> Any:
        """Run an arbitrary PHP snippet and decode the JSON it prints.

        Args:
            command: PHP code, must print a JSON value
            crud_hint: One of create, read, update, delete. Reads share the
                script lock; the others take it exclusively.

        Raises:
            ClientValidationError: Unknown hint, before any request is sent
            OperationFailedError: The matching wrapper around the failure
        """
        if crud_hint not in CRUD_HINTS:
            raise ClientValidationError(
                f"invalid CRUD option '{crud_hint}', expected one of {', '.join(CRUD_HINTS)}",
                context={"crud_hint": crud_hint},
            )
        if not command or not command.strip():
            raise ClientValidationError("command cannot be empty")

        exclusive, wrapper = CRUD_HINTS[crud_hint]
        category = LockCategory.EXECUTE_SCRIPT
        lock = self.client.coordinator.write if exclusive else self.client.coordinator.read

        try:
            async with lock(category):
                return await self.client.run_php_command(command)
        except PfSenseError as e:
            raise wrapper("PHP command result", cause=e, category=category.value) from e

    async def get_system_version(self) -> SystemVersion:
        category = LockCategory.SYSTEM
        try:
            async with self.client.coordinator.read(category):
                response = await self.client.submit_raw(
                    PAGE_PKG_MGR_INSTALL, {"ajax": "ajax", "getversion": "yes"}, operation="get_system_version"
                )
            try:
                return SystemVersion.model_validate(json.loads(response.text))
            except (json.JSONDecodeError, ValidationError) as e:
                raise ParseError(
                    f"unable to parse system version response, {e}", context={"body": response.text[:200]}
                ) from e
        except PfSenseError as e:
            raise GetOperationFailed("system version", cause=e, category=category.value) from e
