"""MCP Server for structured list-page extraction.

Provides one tool, ``extract``, that crawls a list page and returns one
record per list item, following navigation fields to linked pages.

Supports both STDIO and HTTP transports.

Usage:
    # STDIO (for Claude Desktop, etc.)
    python -m smartcrawl.mcp_server

    # HTTP (for remote access)
    python -m smartcrawl.mcp_server --transport http --port 8000

    # Or via FastMCP CLI
    fastmcp run smartcrawl/mcp_server.py:mcp --transport http --port 8000

Environment Variables:
    SMARTCRAWL_COOKIE: Default cookie string for tool calls without one
    SMARTCRAWL_USER_AGENT: Default User-Agent
"""

from __future__ import annotations

import argparse
import json
import logging
import os
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from dotenv import load_dotenv
from fastmcp import FastMCP

from .cli_output import format_records_markdown
from .collector import crawl_async
from .config import DEFAULT_USER_AGENT
from .errors import ConfigError
from .schema import CrawlResult, request_from_dict

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(message)s",
    datefmt="%H:%M:%S",
)
LOGGER = logging.getLogger(__name__)

# Load .env before reading environment variables
load_dotenv()

DEFAULT_COOKIE = os.getenv("SMARTCRAWL_COOKIE")
DEFAULT_AGENT = os.getenv("SMARTCRAWL_USER_AGENT") or DEFAULT_USER_AGENT

# Create the MCP server
mcp = FastMCP(
    name="Smart Crawler",
    instructions="""
    A structured extraction server. The extract tool fetches a list page,
    selects its items with a CSS selector and returns one record per item.

    Fields:
    - plain: {"name", "selector", "type": "text" | "html" | "attribute", "attribute"}
    - navigation: {"name", "selector", "navigate": {"click_selector",
      "target_selector", "url_template", "wait_selector", "fields"}}
      follows the item's link (up to 3 hops) and extracts nested fields.

    Output formats:
    - json: {"success", "records", "errors"} (default)
    - markdown: one section per record
    """,
)


class OutputFormat(str, Enum):
    """Output format for extraction results."""

    json = "json"
    markdown = "markdown"


def _format_timestamp() -> str:
    """Get current timestamp in ISO format."""
    return datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S UTC")


def _format_output(result: CrawlResult, output_format: OutputFormat, url: str) -> str:
    if output_format == OutputFormat.markdown:
        return "\n".join(
            [format_records_markdown(result, url), f"_Crawled: {_format_timestamp()}_"]
        )
    payload = result.to_dict()
    payload["crawled_at"] = _format_timestamp()
    return json.dumps(payload, indent=2, ensure_ascii=False)


# =============================================================================
# EXTRACT TOOL
# =============================================================================


@mcp.tool
async def extract(
    url: str,
    list_selector: str,
    fields: List[Dict[str, Any]],
    cookie: Optional[str] = None,
    user_agent: Optional[str] = None,
    max_items: Optional[int] = None,
    use_rendered_fetch: bool = False,
    wait_selector: Optional[str] = None,
    click_selector: Optional[str] = None,
    strict_click: bool = False,
    output_format: str = "json",
):
    """
    Extract structured records from a list page.

    Args:
        url: URL of the list page
        list_selector: CSS selector matching each list item
        fields: Field definitions evaluated against every item
            - {"name": "title", "selector": ".title"}
            - {"name": "link", "selector": "a", "type": "attribute", "attribute": "href"}
            - {"name": "detail", "selector": "a",
               "navigate": {"target_selector": ".body", "fields": [...]}}
        cookie: Cookie string sent with every fetch (name=value; name=value)
        user_agent: User-Agent for every fetch
        max_items: Only extract the first N items
        use_rendered_fetch: Render pages in a headless browser (default: false)
        wait_selector: Wait for this selector on the list page (rendered only)
        click_selector: Click this element on the list page first (rendered only)
        strict_click: Fail navigation fields whose click selector matches nothing
        output_format: "json" (default) or "markdown"

    Returns:
        Records in the requested format. Configuration problems come back as
        {"success": false, "records": [], "errors": [...]}.

    Examples:
        extract(
            url="https://example.com/list",
            list_selector=".item",
            fields=[{"name": "title", "selector": ".title"}],
        )
    """
    try:
        fmt = OutputFormat(output_format.lower())
    except ValueError:
        fmt = OutputFormat.json

    try:
        request = request_from_dict(
            {
                "url": url,
                "list_selector": list_selector,
                "fields": fields,
                "cookie": cookie or DEFAULT_COOKIE,
                "user_agent": user_agent or DEFAULT_AGENT,
                "max_items": max_items,
                "use_rendered_fetch": use_rendered_fetch,
                "wait_selector": wait_selector,
                "click_selector": click_selector,
                "strict_click": strict_click,
            }
        )
    except ConfigError as exc:
        LOGGER.error("Invalid extract request: %s", exc)
        return json.dumps(CrawlResult(success=False, errors=[str(exc)]).to_dict(), indent=2)

    result = await crawl_async(request)
    LOGGER.info(
        "Extracted %d record(s) from %s (%d error(s))",
        len(result.records),
        url,
        len(result.errors),
    )
    return _format_output(result, fmt, url)


def main():
    """CLI entry point for running the MCP server."""
    parser = argparse.ArgumentParser(
        description="Run the smartcrawl MCP server.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Environment Variables:
    SMARTCRAWL_COOKIE      Default cookie string
    SMARTCRAWL_USER_AGENT  Default User-Agent

Examples:
    # STDIO transport (default, for Claude Desktop)
    python -m smartcrawl.mcp_server

    # HTTP transport (for remote access)
    python -m smartcrawl.mcp_server --transport http --port 8000

    # Custom host/port
    python -m smartcrawl.mcp_server --transport http --host 0.0.0.0 --port 9000
""",
    )
    parser.add_argument(
        "--transport",
        choices=["stdio", "http"],
        default="stdio",
        help="Transport protocol (default: stdio)",
    )
    parser.add_argument(
        "--host",
        default="127.0.0.1",
        help="Host to bind to for HTTP transport (default: 127.0.0.1)",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=8000,
        help="Port to bind to for HTTP transport (default: 8000)",
    )

    args = parser.parse_args()

    LOGGER.info("Default cookie: %s", "Set" if DEFAULT_COOKIE else "None")

    if args.transport == "http":
        LOGGER.info("Starting MCP server on http://%s:%d/mcp", args.host, args.port)
        mcp.run(transport="http", host=args.host, port=args.port)
    else:
        LOGGER.info("Starting MCP server with STDIO transport")
        mcp.run(transport="stdio")


if __name__ == "__main__":
    main()
