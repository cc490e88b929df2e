"""Engine constants and factory functions for Crawl4AI run configurations."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Optional

from crawl4ai import CrawlerRunConfig
from crawl4ai.async_configs import CacheMode

LOGGER = logging.getLogger(__name__)

# Hops allowed from the top-level document; depth 1 is the list page itself.
MAX_DEPTH = 3

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)

# Seconds allowed for a single fetch (static GET or rendered navigation).
DEFAULT_TIMEOUT = 30.0

# Seconds to let a click-triggered navigation settle before capturing HTML.
POST_CLICK_DELAY = 2.0

_CLICK_SCRIPT = """
(async () => {
    const waitSelector = %(wait)s;
    const clickSelector = %(click)s;
    const deadline = Date.now() + %(timeout_ms)d;
    const sleep = (ms) => new Promise((resolve) => setTimeout(resolve, ms));
    if (waitSelector) {
        while (!document.querySelector(waitSelector) && Date.now() < deadline) {
            await sleep(100);
        }
    }
    const target = document.querySelector(clickSelector);
    if (target) {
        target.click();
    }
})();
"""


@dataclass
class RunConfigOverrides:
    """Optional overrides for rendered fetches."""

    verbose: Optional[bool] = None
    wait_until: Optional[str] = None
    page_timeout: Optional[int] = None
    delay_before_return_html: Optional[float] = None
    magic: Optional[bool] = None
    cache_mode: Optional[str] = None
    scan_full_page: Optional[bool] = None


def _convert_cache_mode(value: Optional[str], default: CacheMode) -> CacheMode:
    if not value:
        return default
    candidate = value.strip().replace("CacheMode.", "")
    try:
        return CacheMode[candidate.upper()]
    except KeyError:
        pass
    try:
        return CacheMode(candidate.lower())
    except ValueError:
        LOGGER.warning(
            "Unknown cache_mode '%s'; falling back to %s.", value, default.name
        )
        return default


def _apply_overrides(config: CrawlerRunConfig, overrides: RunConfigOverrides) -> None:
    """Apply optional overrides to a CrawlerRunConfig."""
    if overrides.verbose is not None:
        config.verbose = overrides.verbose
    if overrides.wait_until is not None:
        config.wait_until = overrides.wait_until
    if overrides.page_timeout is not None:
        config.page_timeout = overrides.page_timeout
    if overrides.delay_before_return_html is not None:
        config.delay_before_return_html = overrides.delay_before_return_html
    if overrides.magic is not None:
        config.magic = overrides.magic
    if overrides.cache_mode:
        config.cache_mode = _convert_cache_mode(overrides.cache_mode, config.cache_mode)
    if overrides.scan_full_page is not None:
        config.scan_full_page = overrides.scan_full_page


def build_click_script(
    click_selector: str,
    wait_selector: Optional[str] = None,
    timeout: float = DEFAULT_TIMEOUT,
) -> str:
    """JavaScript that waits for ``wait_selector`` (bounded) then clicks ``click_selector``."""
    return _CLICK_SCRIPT % {
        "wait": json.dumps(wait_selector or ""),
        "click": json.dumps(click_selector),
        "timeout_ms": int(timeout * 1000),
    }


def build_render_run_config(
    *,
    wait_selector: Optional[str] = None,
    click_selector: Optional[str] = None,
    timeout: float = DEFAULT_TIMEOUT,
    overrides: Optional[RunConfigOverrides] = None,
) -> CrawlerRunConfig:
    """RunConfig for a single rendered fetch.

    Waits for network idleness, then either for ``wait_selector`` to appear or,
    when ``click_selector`` is set, runs a click script that performs the wait
    itself and leaves ``POST_CLICK_DELAY`` seconds for the resulting navigation.
    """
    config = CrawlerRunConfig(
        verbose=False,
        wait_until="networkidle",
        page_timeout=int(timeout * 1000),
        cache_mode=CacheMode.BYPASS,
    )
    if click_selector:
        config.js_code = build_click_script(click_selector, wait_selector, timeout)
        config.delay_before_return_html = POST_CLICK_DELAY
    elif wait_selector:
        config.wait_for = f"css:{wait_selector}"
    if overrides:
        _apply_overrides(config, overrides)
    return config
