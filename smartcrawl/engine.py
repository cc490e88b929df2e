"""Recursive, depth-bounded field extraction.

The engine evaluates one field against one subtree. Plain fields are read in
place; navigation fields resolve a link, fetch the linked document and
evaluate their child fields there, one hop deeper. A selector that matches
nothing yields ``None``. Anything that goes wrong inside a child field is
recorded and nulls that child only.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Sequence, Union
from urllib.parse import urljoin

from bs4 import BeautifulSoup, Tag

from .config import MAX_DEPTH
from .document import document_root
from .errors import DepthExceeded
from .extract import element_text, extract_value
from .fetcher import DocumentFetcher
from .links import apply_url_template, resolve_link
from .schema import FieldSpec, NavigationField, Value

LOGGER = logging.getLogger(__name__)

Node = Union[BeautifulSoup, Tag]


def format_field_error(path: str, exc: Exception) -> str:
    return f"{path}: {exc}"


class TraversalEngine:
    """Evaluates field specs, following navigation fields through the fetcher."""

    def __init__(
        self,
        fetcher: DocumentFetcher,
        *,
        strict_click: bool = False,
        max_depth: int = MAX_DEPTH,
    ):
        self.fetcher = fetcher
        self.strict_click = strict_click
        self.max_depth = max_depth

    async def extract_field(
        self,
        subtree: Node,
        field: FieldSpec,
        document_url: str,
        depth: int = 1,
        *,
        errors: Optional[List[str]] = None,
        path: Optional[str] = None,
    ) -> Value:
        """Value of ``field`` within ``subtree``.

        Args:
            subtree: Search scope for ``field.selector``.
            field: The field to evaluate.
            document_url: URL of the document ``subtree`` belongs to; relative
                links resolve against it.
            depth: 1 for the list document, +1 per hop.
            errors: Collects messages from failing child fields. When omitted,
                a child failure propagates instead.
            path: Dotted field path used in those messages.

        Raises:
            DepthExceeded: If ``depth`` is past the maximum.
            FetchError: If the linked document cannot be fetched.
        """
        if depth > self.max_depth:
            raise DepthExceeded(depth, self.max_depth)

        element = subtree.select_one(field.selector)
        if element is None:
            return None

        if not isinstance(field, NavigationField):
            return extract_value(element, field.kind, field.attribute)

        return await self._follow(
            element,
            field,
            document_url,
            depth,
            errors=errors,
            path=path or field.name,
        )

    async def _follow(
        self,
        element: Tag,
        field: NavigationField,
        document_url: str,
        depth: int,
        *,
        errors: Optional[List[str]],
        path: str,
    ) -> Value:
        navigation = field.navigation
        link = resolve_link(element, navigation.click_selector, strict=self.strict_click)
        href = apply_url_template(link, navigation.url_template)
        if not href:
            LOGGER.debug("No link found for field %s", path)
            return None

        next_url = urljoin(document_url, href)
        LOGGER.debug("Following %s -> %s (depth %d)", path, next_url, depth)
        document = await self.fetcher.fetch(next_url, wait_selector=navigation.wait_selector)
        soup = document.parse()

        if navigation.target_selector:
            target = soup.select_one(navigation.target_selector)
            if target is None:
                LOGGER.debug(
                    "Target selector %r matched nothing on %s",
                    navigation.target_selector,
                    next_url,
                )
                return None
        else:
            target = document_root(soup)

        if not navigation.fields:
            return element_text(target)

        return await self.extract_fields(
            target,
            navigation.fields,
            document.url,
            depth + 1,
            errors=errors,
            path=path,
        )

    async def extract_fields(
        self,
        subtree: Node,
        fields: Sequence[FieldSpec],
        document_url: str,
        depth: int,
        *,
        errors: Optional[List[str]] = None,
        path: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Evaluate sibling fields in order, isolating each one's failure.

        Failures are recorded in ``errors`` and null the failing field. Without
        an ``errors`` list the first failure propagates to the caller.
        """
        values: Dict[str, Any] = {}
        for field in fields:
            field_path = f"{path}.{field.name}" if path else field.name
            try:
                values[field.name] = await self.extract_field(
                    subtree,
                    field,
                    document_url,
                    depth,
                    errors=errors,
                    path=field_path,
                )
            except Exception as exc:
                if errors is None:
                    raise
                LOGGER.warning("Field %s failed: %s", field_path, exc)
                errors.append(format_field_error(field_path, exc))
                values[field.name] = None
        return values
