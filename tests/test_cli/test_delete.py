"""
Tests for pfSense MCP Server - Delete Profile CLI Command
"""

import json

import pytest
from typer.testing import CliRunner

from src.pfsense_mcp.cli import app
from src.pfsense_mcp.core.config_loader import ConfigLoader

runner = CliRunner()


@pytest.fixture
def config_with_profiles(tmp_path, monkeypatch):
    """Write a config file with two profiles into a temporary directory."""
    config_dir = tmp_path / ".pfsense-mcp"
    config_file = config_dir / "config.json"
    config_dir.mkdir()
    config_file.write_text(
        json.dumps(
            {
                "default": {"url": "https://192.168.1.1", "username": "admin", "password": "a"},
                "staging": {"url": "https://10.0.0.1", "username": "ops", "password": "b"},
            }
        )
    )
    config_file.chmod(0o600)
    monkeypatch.setattr(ConfigLoader, "DEFAULT_CONFIG_DIR", config_dir)
    monkeypatch.setattr(ConfigLoader, "DEFAULT_CONFIG_FILE", config_file)
    return config_file


class TestDeleteCommand:
    """Test delete-profile command."""

    def test_delete_with_force(self, config_with_profiles):
        result = runner.invoke(app, ["delete-profile", "staging", "--force"])

        assert result.exit_code == 0
        assert "Profile 'staging' deleted successfully" in result.output
        assert "Remaining profiles: default" in result.output
        assert list(json.loads(config_with_profiles.read_text())) == ["default"]

    def test_delete_confirmed(self, config_with_profiles):
        result = runner.invoke(app, ["delete-profile", "staging"], input="y\n")

        assert result.exit_code == 0
        assert "URL: https://10.0.0.1" in result.output
        assert "Username: ops" in result.output
        assert "staging" not in json.loads(config_with_profiles.read_text())

    def test_delete_cancelled(self, config_with_profiles):
        result = runner.invoke(app, ["delete-profile", "staging"], input="n\n")

        assert result.exit_code == 0
        assert "Operation cancelled" in result.output
        assert "staging" in json.loads(config_with_profiles.read_text())

    def test_delete_last_profile(self, config_with_profiles):
        runner.invoke(app, ["delete-profile", "staging", "-f"])
        result = runner.invoke(app, ["delete-profile", "default", "-f"])

        assert result.exit_code == 0
        assert "No profiles remaining" in result.output

    def test_delete_unknown_profile(self, config_with_profiles):
        result = runner.invoke(app, ["delete-profile", "production", "--force"])

        assert result.exit_code == 1
        assert "Profile 'production' not found" in result.output
        assert "Available profiles: default, staging" in result.output
