"""
pfSense MCP Server - HTML Scraping

The web console was never designed for automation, so the markup it renders is
effectively the wire protocol. Every routine that depends on that markup lives
here so a change in the console only needs updating in one place.
"""

import re
from typing import List, Tuple

from bs4 import BeautifulSoup

from ..shared.constants import (
    CSRF_FAILURE_PHRASE,
    LOGIN_FORM_FIELD,
    SCRIPT_ERROR_MARKERS,
    VALIDATION_ERROR_HEADING,
)
from .exceptions import ParseError, ScriptExecutionError

CSRF_TOKEN_NAME_PATTERN = re.compile(r'var csrfMagicName = "([^"]+)";')
CSRF_TOKEN_VALUE_PATTERN = re.compile(r'var csrfMagicToken = "([^"]+)";')


def parse_html(body: str) -> BeautifulSoup:
    return BeautifulSoup(body, "html.parser")


def scrape_csrf_token(soup: BeautifulSoup) -> Tuple[str, str]:
    """Extract the anti-forgery token pair from the page head.

    Raises:
        ParseError: No head section or no token in it
    """
    head = soup.find("head")
    if head is None:
        raise ParseError("unable to scrape HTML, page has no head section")

    # Token lives in an inline script, keep the raw markup
    text = str(head)
    name_match = CSRF_TOKEN_NAME_PATTERN.search(text)
    if name_match is None:
        raise ParseError("unable to scrape HTML, anti-forgery token name not found")

    value_match = CSRF_TOKEN_VALUE_PATTERN.search(text)
    if value_match is None:
        raise ParseError("unable to scrape HTML, anti-forgery token not found")

    return name_match.group(1), value_match.group(1)


def scrape_validation_errors(soup: BeautifulSoup) -> List[str]:
    """Extract the messages of the console's input error box, if any."""
    for container in soup.select("div.input-errors"):
        heading = container.find("p")
        if heading is None or VALIDATION_ERROR_HEADING not in heading.get_text():
            continue
        error_list = container.find("ul")
        if error_list is None:
            continue
        return [item.get_text().strip() for item in error_list.find_all("li")]
    return []


def scrape_script_output(soup: BeautifulSoup) -> str:
    """Return the echoed output of the diagnostic script console.

    Raises:
        ParseError: No output element on the page
        ScriptExecutionError: The console reported an error instead of output
    """
    output = soup.find("pre")
    if output is None:
        raise ParseError("unable to scrape HTML, script console output not found")

    text = output.get_text()
    for marker in SCRIPT_ERROR_MARKERS:
        if marker in text:
            raise ScriptExecutionError(
                f"server-side script failed, {text.strip()}",
                context={"marker": marker},
            )

    return text


def is_csrf_rejection(soup: BeautifulSoup) -> bool:
    return CSRF_FAILURE_PHRASE in soup.get_text()


def is_login_page(soup: BeautifulSoup) -> bool:
    return soup.find("input", attrs={"name": LOGIN_FORM_FIELD}) is not None


def sanitize_message(text: str) -> str:
    """Reduce an HTML fragment to plain alphanumeric words."""
    plain = BeautifulSoup(text, "html.parser").get_text()
    return re.sub(r"[^a-zA-Z0-9 ]+", "", plain)
