"""Cookie and header handling for static and rendered fetches.

A request carries at most one cookie string in ``name=value; name=value``
form. Static fetches send it verbatim as the ``Cookie`` header; rendered
fetches turn it into browser cookies scoped to the host being fetched.

Example usage:

    from smartcrawl.auth import build_browser_config, build_request_headers

    headers = build_request_headers("sid=abc; theme=dark", user_agent="MyBot/1.0")
    browser_cfg = build_browser_config(
        "https://example.com/list", cookie="sid=abc", user_agent="MyBot/1.0"
    )
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import urlparse

from crawl4ai import BrowserConfig

from .config import DEFAULT_USER_AGENT

LOGGER = logging.getLogger(__name__)


def parse_cookie_string(cookie: Optional[str]) -> List[Tuple[str, str]]:
    """Split a cookie header value into ``(name, value)`` pairs.

    Entries are separated by ``;`` and trimmed; blank entries and entries
    without ``=`` are dropped.
    """
    pairs: List[Tuple[str, str]] = []
    for raw in (cookie or "").split(";"):
        entry = raw.strip()
        if not entry:
            continue
        name, sep, value = entry.partition("=")
        name = name.strip()
        if not sep or not name:
            LOGGER.debug("Skipping malformed cookie entry %r", entry)
            continue
        pairs.append((name, value.strip()))
    return pairs


def build_request_headers(
    cookie: Optional[str] = None,
    user_agent: Optional[str] = None,
) -> Dict[str, str]:
    """Headers for a static GET: always a User-Agent, a Cookie only when given."""
    headers = {"User-Agent": user_agent or DEFAULT_USER_AGENT}
    if cookie and cookie.strip():
        headers["Cookie"] = cookie.strip()
    return headers


def build_browser_cookies(cookie: Optional[str], url: str) -> List[Dict[str, Any]]:
    """Browser cookies for ``url``'s host."""
    host = urlparse(url).hostname or ""
    if not host:
        return []
    return [
        {"name": name, "value": value, "domain": host, "path": "/"}
        for name, value in parse_cookie_string(cookie)
    ]


def build_browser_config(
    url: str,
    *,
    cookie: Optional[str] = None,
    user_agent: Optional[str] = None,
) -> BrowserConfig:
    """Build a crawl4ai BrowserConfig for one rendered fetch of ``url``.

    The browser context is never persisted, so nothing leaks between fetches.
    """
    kwargs: Dict[str, Any] = {
        "headless": True,
        "use_persistent_context": False,
        "user_agent": user_agent or DEFAULT_USER_AGENT,
        "verbose": False,
    }

    cookies = build_browser_cookies(cookie, url)
    if cookies:
        kwargs["cookies"] = cookies
        LOGGER.info("Auth: injecting %d cookie(s) for %s", len(cookies), cookies[0]["domain"])

    return BrowserConfig(**kwargs)
