"""Error taxonomy for the extraction engine.

Crawl-level errors (``ConfigError``, ``ListNotFound`` and a ``FetchError`` on
the top-level document) end the whole crawl with ``success=False``. Field-level
errors (``FetchError`` during a hop, ``DepthExceeded``, ``ClickTargetNotFound``)
only null out the field that raised them.
"""

from __future__ import annotations

from typing import Optional


class CrawlError(Exception):
    """Base class for all engine errors."""


class ConfigError(CrawlError):
    """Raised when a request or field schema is invalid."""


class ListNotFound(CrawlError):
    """Raised when the list selector matches nothing in the top-level document."""

    def __init__(self, selector: str):
        self.selector = selector
        super().__init__(f'No elements matched list selector "{selector}"')


class FetchError(CrawlError):
    """Raised when a document cannot be fetched or rendered."""

    def __init__(self, message: str, url: str = "", status_code: Optional[int] = None):
        self.url = url
        self.status_code = status_code
        super().__init__(message)


class DepthExceeded(CrawlError):
    """Raised when navigation goes past the maximum depth."""

    def __init__(self, depth: int, max_depth: int):
        self.depth = depth
        self.max_depth = max_depth
        super().__init__(
            f"Navigation depth {depth} exceeds the maximum of {max_depth} hops"
        )


class ClickTargetNotFound(CrawlError):
    """Raised in strict mode when a configured click selector matches nothing."""

    def __init__(self, selector: str):
        self.selector = selector
        super().__init__(f'Click selector "{selector}" matched no element')
