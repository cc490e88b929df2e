"""Command-line interface for structured list-page extraction."""

from __future__ import annotations

import argparse
import asyncio
import logging
import os
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

from dotenv import load_dotenv

# Configuration directory for global CLI usage
CONFIG_DIR = Path.home() / ".config" / "smartcrawl"
CONFIG_ENV_FILE = CONFIG_DIR / ".env"


def _load_config() -> None:
    """Load .env configuration with fallback to user config directory.

    Search order:
    1. .env in current working directory
    2. ~/.config/smartcrawl/.env
    """
    local_env = Path.cwd() / ".env"
    if local_env.is_file():
        load_dotenv(local_env)
        return

    if CONFIG_ENV_FILE.is_file():
        load_dotenv(CONFIG_ENV_FILE)


_load_config()

from .cli_output import write_output
from .collector import crawl_async
from .config import DEFAULT_TIMEOUT, DEFAULT_USER_AGENT
from .errors import ConfigError
from .schema import CrawlRequest, CrawlResult, load_config_file, request_from_dict


def _setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%H:%M:%S",
    )


def _env_timeout() -> Optional[float]:
    raw = os.getenv("SMARTCRAWL_TIMEOUT")
    if not raw:
        return None
    try:
        return float(raw)
    except ValueError:
        logging.warning("Ignoring invalid SMARTCRAWL_TIMEOUT=%r", raw)
        return None


def parse_field_option(value: str) -> Dict[str, Any]:
    """Parse ``NAME=SELECTOR[@ATTR]`` into a plain field definition.

    ``title=.title`` extracts text, ``link=a.more@href`` extracts the
    ``href`` attribute.
    """
    name, sep, rest = value.partition("=")
    name = name.strip()
    if not sep or not name or not rest.strip():
        raise ConfigError(f"Invalid --field {value!r}, expected NAME=SELECTOR[@ATTR]")

    selector, at, attribute = rest.rpartition("@")
    if not at:
        return {"name": name, "selector": rest.strip(), "type": "text"}
    if not selector.strip() or not attribute.strip():
        raise ConfigError(f"Invalid --field {value!r}, expected NAME=SELECTOR[@ATTR]")
    return {
        "name": name,
        "selector": selector.strip(),
        "type": "attribute",
        "attribute": attribute.strip(),
    }


# =============================================================================
# EXTRACT COMMAND
# =============================================================================


def _parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="smartcrawl",
        description="Extract structured records from a list page.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""\
Examples:
  # Title and link of every item
  smartcrawl https://example.com/list --list-selector .item \\
      --field title=.title --field link=a@href

  # Everything from a config file (fields with navigation, etc.)
  smartcrawl --config ./articles.json

  # Config file for the fields, URL from the command line
  smartcrawl https://example.com/list --config ./fields.json --list-selector .item

  # JavaScript-heavy page, wait for the list, markdown output
  smartcrawl https://example.com/app --list-selector .row --field name=.name \\
      --render --wait-selector .row --format markdown

  # Authenticated crawl
  smartcrawl https://example.com/list --list-selector .item --field title=.title \\
      --cookie "sid=abc; theme=dark"

Environment Variables:
  SMARTCRAWL_COOKIE       Default cookie string
  SMARTCRAWL_USER_AGENT   Default User-Agent
  SMARTCRAWL_TIMEOUT      Default per-fetch timeout in seconds
""",
    )

    parser.add_argument(
        "url",
        nargs="?",
        default=None,
        help="URL of the list page (optional when --config provides it)",
    )
    parser.add_argument(
        "--list-selector",
        "-s",
        type=str,
        default=None,
        help="CSS selector matching the list items",
    )
    parser.add_argument(
        "--config",
        "-c",
        type=str,
        default=None,
        help="JSON file holding a full request or a list of fields",
    )
    parser.add_argument(
        "--field",
        "-f",
        action="append",
        default=[],
        metavar="NAME=SELECTOR[@ATTR]",
        help="Plain field to extract (repeatable)",
    )
    parser.add_argument(
        "--cookie",
        type=str,
        default=None,
        help="Cookie string sent with every fetch (name=value; name=value)",
    )
    parser.add_argument(
        "--user-agent",
        type=str,
        default=None,
        help="User-Agent for every fetch",
    )
    parser.add_argument(
        "--max-items",
        type=int,
        default=None,
        help="Only extract the first N list items",
    )
    parser.add_argument(
        "--render",
        action="store_true",
        help="Render pages in a headless browser instead of a plain GET",
    )
    parser.add_argument(
        "--wait-selector",
        type=str,
        default=None,
        help="Wait for this selector before reading the list page (with --render)",
    )
    parser.add_argument(
        "--click-selector",
        type=str,
        default=None,
        help="Click this element on the list page before reading it (with --render)",
    )
    parser.add_argument(
        "--strict-click",
        action="store_true",
        help="Fail a navigation field when its click selector matches nothing",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=None,
        help=f"Per-fetch timeout in seconds (default: {DEFAULT_TIMEOUT:g})",
    )
    parser.add_argument(
        "--format",
        choices=["json", "markdown"],
        default="json",
        dest="output_format",
        help="Output format (default: json)",
    )
    parser.add_argument(
        "-o",
        "--output",
        type=str,
        default=None,
        help="Output file (default: stdout)",
    )

    spa_group = parser.add_argument_group("SPA / JavaScript rendering")
    spa_group.add_argument(
        "--delay",
        type=float,
        default=None,
        help="Seconds to wait after page load before capturing HTML (with --render)",
    )
    spa_group.add_argument(
        "--wait-until",
        type=str,
        default=None,
        choices=["load", "domcontentloaded", "networkidle", "commit"],
        help="Page load event to wait for (default: networkidle)",
    )

    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )

    return parser.parse_args(argv)


def _build_request(args: argparse.Namespace) -> CrawlRequest:
    """Merge the config file, command-line flags and environment defaults.

    Flags override the config file; the environment fills whatever neither
    sets.
    """
    data: Dict[str, Any] = load_config_file(args.config) if args.config else {}

    if args.url:
        data["url"] = args.url
    if args.list_selector:
        data["list_selector"] = args.list_selector
    if args.field:
        fields = list(data.get("fields") or [])
        fields.extend(parse_field_option(value) for value in args.field)
        data["fields"] = fields
    if args.max_items is not None:
        data["max_items"] = args.max_items
    if args.render:
        data["use_rendered_fetch"] = True
    if args.wait_selector:
        data["wait_selector"] = args.wait_selector
    if args.click_selector:
        data["click_selector"] = args.click_selector
    if args.strict_click:
        data["strict_click"] = True

    render_options = dict(data.get("render_options") or data.get("renderOptions") or {})
    data.pop("renderOptions", None)
    if args.delay is not None:
        render_options["delay"] = args.delay
    if args.wait_until:
        render_options["wait_until"] = args.wait_until
    if render_options:
        data["render_options"] = render_options

    cookie = args.cookie or data.get("cookie") or os.getenv("SMARTCRAWL_COOKIE")
    if cookie:
        data["cookie"] = cookie

    user_agent = (
        args.user_agent
        or data.get("user_agent")
        or data.get("userAgent")
        or os.getenv("SMARTCRAWL_USER_AGENT")
        or DEFAULT_USER_AGENT
    )
    data["user_agent"] = user_agent

    timeout = args.timeout if args.timeout is not None else data.get("timeout")
    if timeout is None:
        timeout = _env_timeout()
    if timeout is not None:
        data["timeout"] = timeout

    return request_from_dict(data)


async def _run_async(args: argparse.Namespace) -> int:
    """Main async entry point for extraction."""
    try:
        request = _build_request(args)
    except ConfigError as exc:
        logging.error("Configuration error: %s", exc)
        return 1

    result: CrawlResult = await crawl_async(request)
    write_output(result, args.output, args.output_format, url=request.url)

    if not result.success:
        logging.error("Crawl failed")
        return 1
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """CLI entry point for the smartcrawl command."""
    args = _parse_args(argv)
    _setup_logging(args.verbose)

    try:
        return asyncio.run(_run_async(args))
    except KeyboardInterrupt:
        logging.info("Interrupted")
        return 130
    except Exception as exc:
        logging.error("Error: %s", exc)
        if args.verbose:
            logging.exception("Full traceback:")
        return 1


if __name__ == "__main__":
    sys.exit(main())
