"""
Tests for pfSense MCP Server utilities domain.

This module tests the system version and PHP command tools.
"""

import json
import sys
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from mcp.server.fastmcp import FastMCP

# Mock the circular import with proper FastMCP instance
mock_mcp = FastMCP("test-server")
mock_main = MagicMock()
mock_main.mcp = mock_mcp
mock_main.server_state = MagicMock()
sys.modules["src.pfsense_mcp.main"] = mock_main

from src.pfsense_mcp.domains.utilities import execute_php_command, get_system_version

PATCH_TARGET = "src.pfsense_mcp.domains.utilities.get_pfsense_client"


@pytest.mark.asyncio
class TestGetSystemVersion:
    """Test get_system_version tool."""

    async def test_version(self, mock_mcp_context, pfsense_client, fake_console):
        fake_console.version = {"installed_version": "2.7.0-RELEASE", "version": "2.7.2-RELEASE"}

        with patch(PATCH_TARGET, AsyncMock(return_value=pfsense_client)):
            result = json.loads(await get_system_version(ctx=mock_mcp_context))

        assert result == {"current": "2.7.0-RELEASE", "latest": "2.7.2-RELEASE"}


@pytest.mark.asyncio
class TestExecutePHPCommand:
    """Test execute_php_command tool."""

    async def test_returns_json(self, mock_mcp_context, pfsense_client, fake_console):
        fake_console.script_outputs["print_r(json_encode($config['system']));"] = '{"hostname": "fw"}'

        with patch(PATCH_TARGET, AsyncMock(return_value=pfsense_client)):
            result = await execute_php_command(
                ctx=mock_mcp_context, command="print_r(json_encode($config['system']));"
            )

        assert json.loads(result) == {"hostname": "fw"}

    async def test_invalid_hint(self, mock_mcp_context, pfsense_client, fake_console):
        requests_before = len(fake_console.requests)

        with patch(PATCH_TARGET, AsyncMock(return_value=pfsense_client)):
            result = await execute_php_command(ctx=mock_mcp_context, command="print_r(1);", crud_hint="merge")

        assert "invalid CRUD option 'merge'" in result
        assert len(fake_console.requests) == requests_before

    async def test_script_failure(self, mock_mcp_context, pfsense_client, fake_console):
        fake_console.script_outputs["oops();"] = "PHP ERROR: Type: 1, File: /tmp/x, Line: 1"

        with patch(PATCH_TARGET, AsyncMock(return_value=pfsense_client)):
            result = await execute_php_command(ctx=mock_mcp_context, command="oops();", crud_hint="delete")

        assert result.startswith("Error: Failed to delete PHP command result.")
        assert "Server-side script failed" in result

    async def test_uses_client_system_accessor(self, mock_mcp_context):
        client = MagicMock()
        client.system.execute_php_command = AsyncMock(return_value=[1, 2])

        with patch(PATCH_TARGET, return_value=client):
            result = await execute_php_command(ctx=mock_mcp_context, command="x", crud_hint="update")

        client.system.execute_php_command.assert_awaited_once_with("x", "update")
        assert json.loads(result) == [1, 2]
