"""
Tests for pfSense MCP Server - Test Connection CLI Command
"""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from typer.testing import CliRunner

from src.pfsense_mcp.cli import app
from src.pfsense_mcp.core.config_loader import ConfigLoader
from src.pfsense_mcp.core.exceptions import (
    AuthenticationError,
    ConfigurationError,
    GetOperationFailed,
    ParseError,
)
from src.pfsense_mcp.core.models import PfSenseConfig
from src.pfsense_mcp.resources import SystemVersion

runner = CliRunner()


@pytest.fixture
def mock_config():
    return PfSenseConfig(url="https://192.168.1.1", username="admin", password="secret", verify_ssl=False)


def make_client(version=None, version_error=None):
    client = MagicMock()
    client.close = AsyncMock()
    client.system.get_system_version = AsyncMock(return_value=version, side_effect=version_error)
    return client


class TestTestConnectionCommand:
    """Test test-connection command."""

    def test_connection_success(self, mock_config):
        client = make_client(SystemVersion(current="2.7.0-RELEASE", latest="2.7.2-RELEASE"))

        with (
            patch.object(ConfigLoader, "load", return_value=mock_config),
            patch("src.pfsense_mcp.cli.test.connect", AsyncMock(return_value=client)),
        ):
            result = runner.invoke(app, ["test-connection"])

        assert result.exit_code == 0
        assert "URL: https://192.168.1.1" in result.output
        assert "SSL Verification: Disabled" in result.output
        assert "Connection successful!" in result.output
        assert "Installed version: 2.7.0-RELEASE" in result.output
        assert "Latest version: 2.7.2-RELEASE" in result.output
        client.close.assert_awaited_once()

    def test_connection_without_version(self, mock_config):
        client = make_client(version_error=GetOperationFailed("system version", cause=ParseError("bad json")))

        with (
            patch.object(ConfigLoader, "load", return_value=mock_config),
            patch("src.pfsense_mcp.cli.test.connect", AsyncMock(return_value=client)),
        ):
            result = runner.invoke(app, ["test-connection", "--profile", "lab"])

        assert result.exit_code == 0
        assert "Connection successful!" in result.output
        assert "Could not read the system version" in result.output
        client.close.assert_awaited_once()

    def test_connection_failed(self, mock_config):
        with (
            patch.object(ConfigLoader, "load", return_value=mock_config),
            patch(
                "src.pfsense_mcp.cli.test.connect",
                AsyncMock(side_effect=AuthenticationError("login failed, credentials rejected")),
            ),
        ):
            result = runner.invoke(app, ["test-connection"])

        assert result.exit_code == 1
        assert "Connection failed" in result.output
        assert "Authentication failed" in result.output
        assert "secret" not in result.output

    def test_connection_not_configured(self):
        with patch.object(ConfigLoader, "load", side_effect=ConfigurationError("No credentials found")):
            result = runner.invoke(app, ["test-connection"])

        assert result.exit_code == 1
        assert "Configuration error" in result.output
