"""
pfSense MCP Server - Secure Configuration Loader

This module loads web console credentials from multiple sources with cascading
priority: environment variables → config file → keyring.
Credentials are never exposed to the LLM or stored in conversation logs.
"""

import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Optional

import keyring
from keyring.errors import KeyringError
from pydantic import ValidationError

from .exceptions import ConfigurationError
from .models import PfSenseConfig

logger = logging.getLogger("pfsense-mcp")

TRUTHY = ("true", "1", "yes")

# Optional settings a profile or the environment may carry besides credentials
TUNING_FIELDS = ("max_attempts", "retry_min_wait", "retry_max_wait", "serialize_all_writes", "timeout")


class ConfigLoader:
    """
    Secure configuration loader for pfSense web console credentials.

    Priority order for credential sources:
    1. Environment variables (highest priority) - for CI/CD and containers
    2. Config file (~/.pfsense-mcp/config.json) - for multiple profiles
    3. Keyring storage (lowest priority) - backward compatibility

    Security features:
    - Automatic file permission enforcement (0600)
    - No credential logging
    - Profile-based multi-firewall support
    """

    DEFAULT_CONFIG_DIR = Path.home() / ".pfsense-mcp"
    DEFAULT_CONFIG_FILE = DEFAULT_CONFIG_DIR / "config.json"
    REQUIRED_FILE_PERMISSIONS = 0o600
    KEYRING_SERVICE_NAME = "pfsense-mcp-server"

    @classmethod
    def load(cls, profile: str = "default") -> PfSenseConfig:
        """
        Load pfSense configuration for the specified profile.

        Args:
            profile: Profile name to load (default: "default")

        Returns:
            PfSenseConfig object with credentials

        Raises:
            ConfigurationError: If no credentials found or configuration invalid
        """
        logger.debug(f"Loading configuration for profile: {profile}")

        config = cls._load_from_env()
        if config:
            logger.info("Loaded configuration from environment variables")
            return config

        config = cls._load_from_config_file(profile)
        if config:
            logger.info(f"Loaded configuration for profile '{profile}' from config file")
            return config

        config = cls._load_from_keyring(profile)
        if config:
            logger.info(f"Loaded configuration for profile '{profile}' from keyring (legacy)")
            logger.warning("Keyring storage is deprecated. Please migrate to config file using 'pfsense-mcp setup'")
            return config

        raise ConfigurationError(
            f"No credentials found for profile '{profile}'. "
            f"Please configure credentials using 'pfsense-mcp setup' or set environment variables "
            f"(PFSENSE_URL, PFSENSE_USERNAME, PFSENSE_PASSWORD)"
        )

    @classmethod
    def _build(cls, source: str, data: Dict[str, Any]) -> PfSenseConfig:
        try:
            return PfSenseConfig(**{key: value for key, value in data.items() if value is not None})
        except ValidationError as e:
            logger.error(f"Invalid configuration in {source}: {e.error_count()} error(s)")
            raise ConfigurationError(f"Invalid configuration in {source}: {e}") from e

    @classmethod
    def _load_from_env(cls) -> Optional[PfSenseConfig]:
        """Load configuration from environment variables."""
        url = os.getenv("PFSENSE_URL")
        password = os.getenv("PFSENSE_PASSWORD")

        if not (url and password):
            return None

        data: Dict[str, Any] = {
            "url": url,
            "username": os.getenv("PFSENSE_USERNAME"),
            "password": password,
            "verify_ssl": os.getenv("PFSENSE_VERIFY_SSL", "true").lower() in TRUTHY,
            "max_attempts": os.getenv("PFSENSE_MAX_ATTEMPTS"),
        }
        serialize = os.getenv("PFSENSE_SERIALIZE_ALL_WRITES")
        if serialize is not None:
            data["serialize_all_writes"] = serialize.lower() in TRUTHY

        return cls._build("environment variables", data)

    @classmethod
    def _read_config_file(cls) -> Dict[str, Any]:
        config_file = cls.DEFAULT_CONFIG_FILE
        cls._verify_file_permissions(config_file)
        try:
            with open(config_file, 'r') as f:
                return json.load(f)
        except json.JSONDecodeError as e:
            logger.error(f"Invalid JSON in config file: {e}")
            raise ConfigurationError(f"Invalid JSON in config file: {e}") from e
        except OSError as e:
            logger.error(f"Error reading config file: {e}")
            raise ConfigurationError(f"Error reading config file: {e}") from e

    @classmethod
    def _write_config_file(cls, config_data: Dict[str, Any]) -> None:
        config_file = cls.DEFAULT_CONFIG_FILE
        config_file.parent.mkdir(parents=True, exist_ok=True)
        with open(config_file, 'w') as f:
            json.dump(config_data, f, indent=2)
        cls._set_secure_permissions(config_file)

    @classmethod
    def _load_from_config_file(cls, profile: str) -> Optional[PfSenseConfig]:
        """Load configuration from config file."""
        if not cls.DEFAULT_CONFIG_FILE.exists():
            logger.debug(f"Config file not found: {cls.DEFAULT_CONFIG_FILE}")
            return None

        config_data = cls._read_config_file()
        if profile not in config_data:
            logger.debug(f"Profile '{profile}' not found in config file")
            return None

        profile_config = config_data[profile]
        if "url" not in profile_config or "password" not in profile_config:
            raise ConfigurationError(f"Missing required field in config file profile '{profile}'")

        return cls._build("config file", profile_config)

    @classmethod
    def _load_from_keyring(cls, profile: str) -> Optional[PfSenseConfig]:
        """Load configuration from keyring (backward compatibility)."""
        try:
            stored = keyring.get_password(cls.KEYRING_SERVICE_NAME, profile)
        except KeyringError as e:
            logger.debug(f"Could not load from keyring: {e}")
            return None

        if not stored:
            return None

        try:
            cred_data = json.loads(stored)
        except json.JSONDecodeError:
            logger.debug("Keyring entry is not valid JSON, ignoring it")
            return None

        return cls._build("keyring", cred_data)

    @classmethod
    def save_profile(cls, profile: str, config: PfSenseConfig) -> None:
        """
        Save configuration profile to config file.

        Args:
            profile: Profile name
            config: pfSense configuration to save
        """
        if cls.DEFAULT_CONFIG_FILE.exists():
            config_data = cls._read_config_file()
        else:
            config_data = {}

        profile_data = {
            "url": config.url,
            "username": config.username,
            "password": config.password,
            "verify_ssl": config.verify_ssl,
        }
        defaults = PfSenseConfig.model_fields
        for field in TUNING_FIELDS:
            value = getattr(config, field)
            if value != defaults[field].default:
                profile_data[field] = value
        config_data[profile] = profile_data

        cls._write_config_file(config_data)
        logger.info(f"Saved profile '{profile}' to config file")

    @classmethod
    def delete_profile(cls, profile: str) -> None:
        """
        Delete a profile from config file.

        Raises:
            ConfigurationError: If profile doesn't exist or deletion fails
        """
        if not cls.DEFAULT_CONFIG_FILE.exists():
            raise ConfigurationError(f"Config file not found: {cls.DEFAULT_CONFIG_FILE}")

        config_data = cls._read_config_file()
        if profile not in config_data:
            raise ConfigurationError(f"Profile '{profile}' not found")

        del config_data[profile]
        cls._write_config_file(config_data)
        logger.info(f"Deleted profile '{profile}' from config file")

    @classmethod
    def list_profiles(cls) -> List[str]:
        if not cls.DEFAULT_CONFIG_FILE.exists():
            return []
        return list(cls._read_config_file().keys())

    @classmethod
    def get_profile_info(cls, profile: str) -> Dict[str, Any]:
        """
        Get non-sensitive information about a profile.

        Returns:
            Dictionary with URL, username and verify_ssl (never the password)

        Raises:
            ConfigurationError: If profile doesn't exist
        """
        if not cls.DEFAULT_CONFIG_FILE.exists():
            raise ConfigurationError(f"Config file not found: {cls.DEFAULT_CONFIG_FILE}")

        config_data = cls._read_config_file()
        if profile not in config_data:
            raise ConfigurationError(f"Profile '{profile}' not found")

        profile_config = config_data[profile]
        return {
            "url": profile_config["url"],
            "username": profile_config.get("username", "admin"),
            "verify_ssl": profile_config.get("verify_ssl", True),
            "serialize_all_writes": profile_config.get("serialize_all_writes", True),
        }

    @classmethod
    def _set_secure_permissions(cls, file_path: Path) -> None:
        """Set secure file permissions (0600 - owner read/write only)."""
        try:
            os.chmod(file_path, cls.REQUIRED_FILE_PERMISSIONS)
            logger.debug(f"Set secure permissions on {file_path}")
        except OSError as e:
            logger.warning(f"Could not set secure permissions on {file_path}: {e}")

    @classmethod
    def _verify_file_permissions(cls, file_path: Path) -> None:
        """Verify file has secure permissions and fix them if not."""
        try:
            current_perms = os.stat(file_path).st_mode & 0o777
        except OSError as e:
            logger.debug(f"Could not verify file permissions: {e}")
            return

        if current_perms != cls.REQUIRED_FILE_PERMISSIONS:
            logger.warning(
                f"Config file {file_path} has insecure permissions {oct(current_perms)}. "
                f"Recommended: {oct(cls.REQUIRED_FILE_PERMISSIONS)}"
            )
            cls._set_secure_permissions(file_path)
