"""Configuration-driven structured extraction from HTML list pages.

A crawl fetches one list page, selects its items and turns each item into a
record by evaluating a field schema. Navigation fields follow a link from the
item (up to three hops deep) and extract further fields from the linked page.

Example usage:

    from smartcrawl import CrawlRequest, NavigationField, NavigationSpec, PlainField, crawl

    request = CrawlRequest(
        url="https://example.com/articles",
        list_selector=".item",
        fields=[
            PlainField("title", ".title"),
            PlainField("link", "a.link", kind="attribute", attribute="href"),
            NavigationField(
                "detail",
                "a.link",
                NavigationSpec(click_selector="a.link", target_selector=".body"),
            ),
        ],
        max_items=10,
    )
    result = crawl(request)
    for record in result.records:
        print(record["title"], record["detail"])

    # JavaScript-heavy pages
    request.use_rendered_fetch = True
    result = await crawl_async(request)

    # From a JSON config file
    from smartcrawl import load_request
    result = crawl(load_request("./articles.json"))
"""

from __future__ import annotations

import asyncio
from typing import Optional

from .collector import crawl_async
from .config import DEFAULT_USER_AGENT, MAX_DEPTH, RunConfigOverrides
from .document import FetchedDocument
from .engine import TraversalEngine
from .errors import (
    ClickTargetNotFound,
    ConfigError,
    CrawlError,
    DepthExceeded,
    FetchError,
    ListNotFound,
)
from .fetcher import DocumentFetcher
from .links import OpaqueId, resolve_link
from .schema import (
    CrawlRequest,
    CrawlResult,
    ExtractKind,
    FieldSpec,
    NavigationField,
    NavigationSpec,
    PlainField,
    field_from_dict,
    load_request,
    request_from_dict,
)

__all__ = [
    # Schema
    "CrawlRequest",
    "CrawlResult",
    "ExtractKind",
    "FieldSpec",
    "NavigationField",
    "NavigationSpec",
    "PlainField",
    "field_from_dict",
    "load_request",
    "request_from_dict",
    # Errors
    "CrawlError",
    "ConfigError",
    "ListNotFound",
    "FetchError",
    "DepthExceeded",
    "ClickTargetNotFound",
    # Engine
    "DocumentFetcher",
    "FetchedDocument",
    "TraversalEngine",
    "OpaqueId",
    "resolve_link",
    # Crawl
    "crawl",
    "crawl_async",
    # Config
    "DEFAULT_USER_AGENT",
    "MAX_DEPTH",
    "RunConfigOverrides",
    # MCP Server
    "mcp",
]


def get_mcp_server():
    """Get the MCP server instance (lazy import to avoid dependency if not needed)."""
    from .mcp_server import mcp

    return mcp


# Lazy import for mcp to avoid requiring fastmcp if not used
def __getattr__(name):
    if name == "mcp":
        from .mcp_server import mcp

        return mcp
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


def crawl(
    request: CrawlRequest,
    *,
    fetcher: Optional[DocumentFetcher] = None,
) -> CrawlResult:
    """Synchronous wrapper for crawl_async."""
    return asyncio.run(crawl_async(request, fetcher=fetcher))
