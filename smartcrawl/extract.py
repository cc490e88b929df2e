"""Read plain field values out of parsed HTML."""

from __future__ import annotations

from typing import Optional, Union

from bs4 import BeautifulSoup, Tag

from .schema import ExtractKind

Node = Union[BeautifulSoup, Tag]


def normalize_text(text: str) -> str:
    """Collapse runs of whitespace and trim."""
    return " ".join(text.split())


def element_text(element: Node) -> str:
    """Trimmed text content of an element."""
    return element.get_text().strip()


def extract_value(
    element: Tag,
    kind: ExtractKind,
    attribute: Optional[str] = None,
) -> Optional[str]:
    """Value of an already located element; empty results become ``None``."""
    if kind is ExtractKind.TEXT:
        return normalize_text(element.get_text()) or None
    if kind is ExtractKind.MARKUP:
        markup = element.decode_contents()
        return markup or None
    if kind is ExtractKind.ATTRIBUTE:
        if not attribute:
            return None
        value = element.get(attribute)
        if isinstance(value, list):
            value = " ".join(value)
        return value or None
    return None


def extract(
    subtree: Node,
    selector: str,
    kind: ExtractKind,
    attribute: Optional[str] = None,
) -> Optional[str]:
    """First element matching ``selector`` inside ``subtree``, extracted as ``kind``."""
    element = subtree.select_one(selector)
    if element is None:
        return None
    return extract_value(element, kind, attribute)
