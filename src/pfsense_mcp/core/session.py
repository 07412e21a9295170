"""
pfSense MCP Server - Session Management

The web console rotates its anti-forgery token on every rendered page. This
module keeps the most recent token pair and guards it against concurrent
readers and writers.
"""

import asyncio
import logging
from datetime import datetime
from typing import Optional, Tuple

from bs4 import BeautifulSoup

from .exceptions import AuthenticationError
from .html import scrape_csrf_token

logger = logging.getLogger("pfsense-mcp")


class Session:
    """Anti-forgery token pair of the authenticated web session.

    Authentication cookies live in the HTTP client's cookie jar; this object only
    tracks the token and whether login succeeded.
    """

    def __init__(self):
        self._lock = asyncio.Lock()
        self._token_name: Optional[str] = None
        self._token_value: Optional[str] = None
        self.authenticated = False
        self.logged_in_at: Optional[datetime] = None
        self.refreshed_at: Optional[datetime] = None

    @property
    def has_token(self) -> bool:
        return self._token_name is not None and self._token_value is not None

    async def current_token(self) -> Tuple[str, str]:
        """Return the token pair from the most recent response.

        Raises:
            AuthenticationError: No token has been obtained yet
        """
        async with self._lock:
            if self._token_name is None or self._token_value is None:
                raise AuthenticationError("no anti-forgery token, client is not logged in")
            return self._token_name, self._token_value

    async def refresh(self, soup: BeautifulSoup) -> None:
        """Store the token pair rendered in ``soup``.

        Raises:
            ParseError: The page carries no token
        """
        name, value = scrape_csrf_token(soup)
        async with self._lock:
            self._token_name = name
            self._token_value = value
            self.refreshed_at = datetime.now()
        logger.debug("Anti-forgery token refreshed")

    async def mark_authenticated(self) -> None:
        async with self._lock:
            self.authenticated = True
            self.logged_in_at = datetime.now()

    async def clear(self) -> None:
        async with self._lock:
            self._token_name = None
            self._token_value = None
            self.authenticated = False
            self.logged_in_at = None
