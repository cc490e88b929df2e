"""Document acquisition: plain HTTP GET or full browser rendering.

This is the only module that touches the network. Static fetches use one
``httpx.AsyncClient`` per request; rendered fetches start one Crawl4AI
browser per request inside ``async with``, so the browser is closed before
the call returns whether the render succeeded or not.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Optional

import httpx
from crawl4ai import AsyncWebCrawler

from .auth import build_browser_config, build_request_headers
from .config import (
    DEFAULT_TIMEOUT,
    DEFAULT_USER_AGENT,
    RunConfigOverrides,
    build_render_run_config,
)
from .document import FetchedDocument
from .errors import FetchError

LOGGER = logging.getLogger(__name__)


async def fetch_static(
    url: str,
    *,
    cookie: Optional[str] = None,
    user_agent: Optional[str] = None,
    timeout: float = DEFAULT_TIMEOUT,
) -> FetchedDocument:
    """GET ``url`` and return its body.

    Raises:
        FetchError: On network failure or an HTTP error status.
    """
    headers = build_request_headers(cookie, user_agent)
    try:
        async with httpx.AsyncClient(
            headers=headers,
            follow_redirects=True,
            timeout=timeout,
        ) as client:
            response = await client.get(url)
            response.raise_for_status()
            html = response.text
            final_url = str(response.url)
            status_code = response.status_code

    except httpx.HTTPStatusError as exc:
        status = exc.response.status_code
        raise FetchError(f"HTTP {status} for {url}", url=url, status_code=status) from exc

    except (httpx.RequestError, httpx.InvalidURL) as exc:
        raise FetchError(f"Request failed for {url}: {exc}", url=url) from exc

    return FetchedDocument(
        request_url=url,
        final_url=final_url,
        html=html,
        status_code=status_code,
    )


async def fetch_rendered(
    url: str,
    *,
    cookie: Optional[str] = None,
    user_agent: Optional[str] = None,
    wait_selector: Optional[str] = None,
    click_selector: Optional[str] = None,
    timeout: float = DEFAULT_TIMEOUT,
    overrides: Optional[RunConfigOverrides] = None,
) -> FetchedDocument:
    """Render ``url`` in a fresh headless browser and return the resulting DOM.

    If ``click_selector`` is given the element is clicked after the page (and
    ``wait_selector``, if any) is ready. A navigation that fails after the
    click is tolerated as long as the browser still produced HTML.

    Raises:
        FetchError: On navigation failure, selector-wait timeout or an HTTP
            error status.
    """
    browser_cfg = build_browser_config(url, cookie=cookie, user_agent=user_agent)
    run_config = build_render_run_config(
        wait_selector=wait_selector,
        click_selector=click_selector,
        timeout=timeout,
        overrides=overrides,
    )

    try:
        async with AsyncWebCrawler(config=browser_cfg) as crawler:
            container = await crawler.arun(url=url, config=run_config)
    except Exception as exc:
        raise FetchError(f"Rendering failed for {url}: {exc}", url=url) from exc

    try:
        result = container[0]
    except (IndexError, TypeError):
        result = container

    if result is None:
        raise FetchError(f"Renderer returned no result for {url}", url=url)

    html = getattr(result, "html", None) or ""
    status_code = getattr(result, "status_code", None)
    final_url = str(getattr(result, "redirected_url", None) or getattr(result, "url", None) or url)

    if not getattr(result, "success", False):
        if click_selector and html:
            LOGGER.warning(
                "Post-click navigation on %s did not settle (%s); using current page state",
                url,
                getattr(result, "error_message", None) or "unknown error",
            )
        else:
            reason = getattr(result, "error_message", None) or (
                f"HTTP {status_code}" if status_code else "no content"
            )
            raise FetchError(
                f"Rendering failed for {url}: {reason}", url=url, status_code=status_code
            )

    if status_code is not None and status_code >= 400:
        raise FetchError(f"HTTP {status_code} for {url}", url=url, status_code=status_code)

    return FetchedDocument(
        request_url=url,
        final_url=final_url,
        html=html,
        status_code=status_code,
        rendered=True,
    )


class DocumentFetcher:
    """Fetches documents with one crawl's cookie, user agent and mode.

    Every call is independent: no connection, browser or response is reused
    between fetches.
    """

    def __init__(
        self,
        *,
        cookie: Optional[str] = None,
        user_agent: str = DEFAULT_USER_AGENT,
        rendered: bool = False,
        timeout: float = DEFAULT_TIMEOUT,
        overrides: Optional[RunConfigOverrides] = None,
    ):
        self.cookie = cookie
        self.user_agent = user_agent
        self.rendered = rendered
        self.timeout = timeout
        self.overrides = overrides

    async def fetch(
        self,
        url: str,
        *,
        wait_selector: Optional[str] = None,
        click_selector: Optional[str] = None,
    ) -> FetchedDocument:
        """Fetch ``url`` in this fetcher's mode.

        The whole fetch is bounded by ``timeout`` (plus a grace period for the
        browser's own timeouts in rendered mode); expiry raises FetchError.
        """
        if self.rendered:
            LOGGER.debug("Rendering %s", url)
            coro = fetch_rendered(
                url,
                cookie=self.cookie,
                user_agent=self.user_agent,
                wait_selector=wait_selector,
                click_selector=click_selector,
                timeout=self.timeout,
                overrides=self.overrides,
            )
            # The browser gets its own page timeout; leave room for startup and the click delay.
            limit = self.timeout * 2 + 10
        else:
            if wait_selector or click_selector:
                LOGGER.debug("Ignoring wait/click selectors for static fetch of %s", url)
            LOGGER.debug("Fetching %s", url)
            coro = fetch_static(
                url,
                cookie=self.cookie,
                user_agent=self.user_agent,
                timeout=self.timeout,
            )
            limit = self.timeout + 5

        try:
            return await asyncio.wait_for(coro, timeout=limit)
        except asyncio.TimeoutError as exc:
            raise FetchError(f"Timed out after {limit:.0f}s fetching {url}", url=url) from exc
