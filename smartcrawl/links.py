"""Find the link a navigation field should follow.

Real markup marks clickable things in many ways: plain ``href`` attributes,
``data-*`` attributes read by client-side routers, inline ``onclick``
handlers, or nothing but an item id. :func:`resolve_link` walks an ordered
list of candidate sources around an element and returns the first link any of
them yields:

1. the first element matching ``click_selector`` inside the element
2. the element itself
3. its first descendant anchor
4. its nearest ancestor anchor
5. up to three enclosing containers, each searched for an anchor and then
   for an element with ``onclick`` / ``data-href`` / ``data-url``

On every candidate, :func:`extract_link` tries ``href``, the navigation
``data-*`` attributes, the ``onclick`` handler and finally the id attributes.
An id is returned as :class:`OpaqueId`; it only becomes a URL through a
template (:func:`apply_url_template`).
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Callable, Iterator, Optional, Tuple, Union

from bs4 import Tag

from .errors import ClickTargetNotFound

LOGGER = logging.getLogger(__name__)

ANCHOR_SELECTOR = "a[href]"
CLICKABLE_SELECTOR = "[onclick], [data-href], [data-url]"
CONTAINER_LEVELS = 3

NAVIGATION_DATA_ATTRS: Tuple[str, ...] = (
    "data-href",
    "data-url",
    "data-link",
    "data-src",
    "data-target-url",
)
IDENTIFIER_ATTRS: Tuple[str, ...] = ("data-id", "data-item-id", "data-model-id")

_LOCATION_ASSIGN = re.compile(
    r"(?:location\.href|window\.location|location)\s*=\s*['\"]([^'\"]+)['\"]"
)
_WINDOW_OPEN = re.compile(r"window\.open\s*\(\s*['\"]([^'\"]+)['\"]")

URL_TEMPLATE_PLACEHOLDER = "{id}"


@dataclass(frozen=True, slots=True)
class OpaqueId:
    """An item identifier found where a URL was expected."""

    value: str


Link = Union[str, OpaqueId]


def _attr(element: Tag, name: str) -> Optional[str]:
    value = element.get(name)
    if isinstance(value, list):
        value = " ".join(value)
    if value is None:
        return None
    value = value.strip()
    return value or None


# ---------------------------------------------------------------------------
# Extraction rules on a single candidate element
# ---------------------------------------------------------------------------


def link_from_href(element: Tag) -> Optional[str]:
    href = _attr(element, "href")
    if not href or href.startswith("#") or href.lower().startswith("javascript:"):
        return None
    return href


def link_from_data_attrs(element: Tag) -> Optional[str]:
    for name in NAVIGATION_DATA_ATTRS:
        value = _attr(element, name)
        if value and (value.startswith("/") or value.startswith("http")):
            return value
    return None


def link_from_onclick(element: Tag) -> Optional[str]:
    handler = _attr(element, "onclick")
    if not handler:
        return None
    for pattern in (_LOCATION_ASSIGN, _WINDOW_OPEN):
        match = pattern.search(handler)
        if match:
            return match.group(1)
    return None


def link_from_identifier(element: Tag) -> Optional[OpaqueId]:
    for name in IDENTIFIER_ATTRS:
        value = _attr(element, name)
        if value:
            return OpaqueId(value)
    return None


EXTRACTION_RULES: Tuple[Callable[[Tag], Optional[Link]], ...] = (
    link_from_href,
    link_from_data_attrs,
    link_from_onclick,
    link_from_identifier,
)


def extract_link(element: Tag) -> Optional[Link]:
    """Apply the extraction rules to one element; first hit wins."""
    for rule in EXTRACTION_RULES:
        link = rule(element)
        if link is not None:
            return link
    return None


# ---------------------------------------------------------------------------
# Candidate sources around the starting element
# ---------------------------------------------------------------------------


def candidates_from_click_selector(element: Tag, click_selector: str) -> Iterator[Tag]:
    if click_selector:
        match = element.select_one(click_selector)
        if match is not None:
            yield match


def candidates_from_self(element: Tag, click_selector: str) -> Iterator[Tag]:
    yield element


def candidates_from_descendant_anchor(element: Tag, click_selector: str) -> Iterator[Tag]:
    anchor = element.select_one(ANCHOR_SELECTOR)
    if anchor is not None:
        yield anchor


def candidates_from_ancestor_anchor(element: Tag, click_selector: str) -> Iterator[Tag]:
    for parent in element.parents:
        if parent.name == "a" and parent.has_attr("href"):
            yield parent
            return


def candidates_from_containers(element: Tag, click_selector: str) -> Iterator[Tag]:
    container = element.parent
    for _ in range(CONTAINER_LEVELS):
        if container is None:
            return
        anchor = container.select_one(ANCHOR_SELECTOR)
        if anchor is not None:
            yield anchor
        clickable = container.select_one(CLICKABLE_SELECTOR)
        if clickable is not None:
            yield clickable
        container = container.parent


CANDIDATE_SOURCES: Tuple[Callable[[Tag, str], Iterator[Tag]], ...] = (
    candidates_from_click_selector,
    candidates_from_self,
    candidates_from_descendant_anchor,
    candidates_from_ancestor_anchor,
    candidates_from_containers,
)


def iter_candidates(element: Tag, click_selector: str = "") -> Iterator[Tag]:
    """Candidate elements in priority order, produced lazily."""
    for source in CANDIDATE_SOURCES:
        yield from source(element, click_selector)


def _matches_click_selector(element: Tag, click_selector: str) -> bool:
    return element.css.match(click_selector) or element.select_one(click_selector) is not None


def resolve_link(
    element: Tag,
    click_selector: str = "",
    *,
    strict: bool = False,
) -> Optional[Link]:
    """Return the first URL or OpaqueId reachable from ``element``.

    With ``strict=True`` a non-empty ``click_selector`` that matches neither
    ``element`` nor anything inside it raises :class:`ClickTargetNotFound`
    instead of falling through to the broader heuristics.
    """
    click_selector = (click_selector or "").strip()
    if strict and click_selector and not _matches_click_selector(element, click_selector):
        raise ClickTargetNotFound(click_selector)

    for candidate in iter_candidates(element, click_selector):
        link = extract_link(candidate)
        if link is not None:
            LOGGER.debug("Resolved link %r from <%s>", link, candidate.name)
            return link
    return None


def apply_url_template(link: Optional[Link], url_template: Optional[str]) -> Optional[str]:
    """Turn a resolved link into something fetchable.

    URLs pass through; an OpaqueId is substituted into ``url_template`` and
    yields ``None`` when there is no template.
    """
    if link is None:
        return None
    if isinstance(link, OpaqueId):
        if not url_template:
            LOGGER.debug("Found id %s but no URL template is configured", link.value)
            return None
        return url_template.replace(URL_TEMPLATE_PLACEHOLDER, link.value, 1)
    return link
