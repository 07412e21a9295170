"""
pfSense MCP Server - Server State Management

This module provides server state management with proper lifecycle handling.
The web console session expires on the appliance side, so the state logs in
again after a fixed lifetime, after the appliance ends the session and
whenever the stored credentials change.
"""

import asyncio
import json
import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import TYPE_CHECKING, Optional

import httpx
import keyring
from keyring.errors import KeyringError

from .exceptions import ConfigurationError, PfSenseError
from .models import PfSenseConfig

if TYPE_CHECKING:
    from .client import PfSenseClient

logger = logging.getLogger("pfsense-mcp")


@dataclass
class ServerState:
    """Managed server state with proper lifecycle."""

    config: PfSenseConfig | None = None
    client: Optional["PfSenseClient"] = None
    session_created: datetime | None = None
    session_ttl: timedelta = timedelta(minutes=30)  # pfSense default session timeout is 4 hours
    transport: Optional[httpx.AsyncBaseTransport] = None
    _current_profile: str | None = None  # Track which profile is loaded
    _login_lock: asyncio.Lock = field(default_factory=asyncio.Lock, repr=False)

    async def initialize(self, config: PfSenseConfig, profile: str | None = None):
        """Initialize server state and log in to validate the credentials.

        Args:
            config: pfSense connection configuration
            profile: Profile the configuration was loaded from, if any

        Raises:
            AuthenticationError: If login fails
        """
        # Import here to avoid circular dependency
        from .client import connect

        await self.cleanup()

        try:
            self._store_credentials(config, profile or "default")
        except KeyringError as e:
            logger.warning(f"Could not store credentials securely: {e}. Using in-memory storage.")

        self.client = await connect(config, transport=self.transport)
        self.config = config
        self.session_created = datetime.now()
        self._current_profile = profile

        logger.info("pfSense connection initialized successfully")

    def _store_credentials(self, config: PfSenseConfig, profile: str):
        """Store credentials securely using keyring."""
        from .config_loader import ConfigLoader

        credentials = {
            "url": config.url,
            "username": config.username,
            "password": config.password,
            "verify_ssl": config.verify_ssl,
        }
        keyring.set_password(ConfigLoader.KEYRING_SERVICE_NAME, profile, json.dumps(credentials))
        logger.debug("Credentials stored securely")

    def _config_changed(self, new_config: PfSenseConfig, old_config: PfSenseConfig) -> bool:
        """
        Detect if credentials have changed between configs.

        Notes:
            Compares URL, username and password to detect rotation.
            Changes to verify_ssl don't trigger reinitialization.
        """
        return (
            new_config.url != old_config.url
            or new_config.username != old_config.username
            or new_config.password != old_config.password
        )

    async def get_client(self) -> "PfSenseClient":
        """Get pfSense client with session validation and credential rotation detection.

        Raises:
            ConfigurationError: If client is not configured

        Notes:
            Automatically detects and handles:
            - Session expiry, on the local lifetime or ended by the appliance
            - Credential rotation (config file changes)
        """
        if not self.config or not self.client:
            raise ConfigurationError(
                "pfSense client not configured. Use configure_pfsense_connection first."
            )

        # Concurrent tool calls share one login
        async with self._login_lock:
            if not self.client.session.authenticated:
                logger.info("Session ended by pfSense, logging in again...")
                await self.client.login()
                self.session_created = datetime.now()
            elif self.session_created and datetime.now() - self.session_created > self.session_ttl:
                logger.info("Session expired, logging in again...")
                await self.client.login()
                self.session_created = datetime.now()

        if self._current_profile:
            from .config_loader import ConfigLoader

            try:
                current_config = ConfigLoader.load(self._current_profile)
            except PfSenseError as e:
                logger.debug(f"Could not check for config changes: {e}")
            else:
                if self._config_changed(current_config, self.config):
                    logger.info(
                        f"Credentials changed for profile '{self._current_profile}', reinitializing..."
                    )
                    await self.initialize(current_config, self._current_profile)

        return self.client

    async def cleanup(self):
        """Cleanup resources."""
        if self.client:
            await self.client.close()
            self.client = None
        self.config = None
        self.session_created = None
