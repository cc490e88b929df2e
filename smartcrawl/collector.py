"""Turn a list page into records.

:func:`crawl_async` fetches the top-level document, selects the list items
and evaluates the request's fields against each item in document order. It
always returns a :class:`CrawlResult`; configuration, fetch and list-selector
failures are reported in it with ``success=False``.
"""

from __future__ import annotations

import logging
import time
from typing import List, Optional

from soupsieve import SelectorSyntaxError

from .document import document_root
from .engine import TraversalEngine
from .errors import ConfigError, FetchError, ListNotFound
from .fetcher import DocumentFetcher
from .schema import CrawlRequest, CrawlResult

LOGGER = logging.getLogger(__name__)


def build_fetcher(request: CrawlRequest) -> DocumentFetcher:
    return DocumentFetcher(
        cookie=request.cookie,
        user_agent=request.user_agent,
        rendered=request.use_rendered_fetch,
        timeout=request.timeout,
        overrides=request.render_overrides,
    )


async def crawl_async(
    request: CrawlRequest,
    *,
    fetcher: Optional[DocumentFetcher] = None,
) -> CrawlResult:
    """Crawl ``request.url`` and extract one record per list item.

    Args:
        request: What to fetch and which fields to extract.
        fetcher: Overrides the fetcher built from the request's cookie, user
            agent, rendering mode and timeout.

    Returns:
        CrawlResult with records in list order. Field failures are listed in
        ``errors`` without affecting ``success``.
    """
    try:
        request.validate()
    except ConfigError as exc:
        LOGGER.error("Invalid crawl request: %s", exc)
        return CrawlResult(success=False, errors=[str(exc)])

    fetcher = fetcher or build_fetcher(request)
    engine = TraversalEngine(fetcher, strict_click=request.strict_click)
    start_time = time.time()

    LOGGER.info(
        "Crawling %s (%s fetch, list selector %r)",
        request.url,
        "rendered" if request.use_rendered_fetch else "static",
        request.list_selector,
    )

    try:
        document = await fetcher.fetch(
            request.url,
            wait_selector=request.wait_selector,
            click_selector=request.click_selector,
        )
    except FetchError as exc:
        LOGGER.error("Failed to fetch %s: %s", request.url, exc)
        return CrawlResult(success=False, errors=[str(exc)])
    except Exception as exc:
        LOGGER.exception("Unexpected error fetching %s", request.url)
        return CrawlResult(success=False, errors=[f"Failed to fetch {request.url}: {exc}"])

    try:
        items = document_root(document.parse()).select(request.list_selector)
    except SelectorSyntaxError as exc:
        LOGGER.error("Invalid list selector %r: %s", request.list_selector, exc)
        return CrawlResult(
            success=False,
            errors=[f'Invalid list selector "{request.list_selector}": {exc}'],
        )
    if not items:
        exc = ListNotFound(request.list_selector)
        LOGGER.error("%s on %s", exc, request.url)
        return CrawlResult(success=False, errors=[str(exc)])

    if request.max_items is not None:
        items = items[: request.max_items]

    records = []
    errors: List[str] = []
    for index, item in enumerate(items, start=1):
        LOGGER.debug("Extracting item %d/%d", index, len(items))
        record = await engine.extract_fields(
            item,
            request.fields,
            document.url,
            depth=1,
            errors=errors,
        )
        records.append(record)

    LOGGER.info(
        "Crawl complete: %d record(s), %d field error(s) in %.1fs",
        len(records),
        len(errors),
        time.time() - start_time,
    )
    return CrawlResult(success=True, records=records, errors=errors)
