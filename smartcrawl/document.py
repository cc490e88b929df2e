"""Data structures representing fetched documents."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Union

from bs4 import BeautifulSoup, Tag

HTML_PARSER = "html.parser"


@dataclass(slots=True)
class FetchedDocument:
    """Raw HTML from one static or rendered fetch."""

    request_url: str
    final_url: str
    html: str
    status_code: Optional[int] = None
    rendered: bool = False

    @property
    def url(self) -> str:
        """URL that relative links in this document resolve against."""
        return self.final_url or self.request_url

    def parse(self) -> BeautifulSoup:
        return parse_html(self.html)

    def root(self) -> Union[BeautifulSoup, Tag]:
        """The ``<body>`` element, or the whole tree for body-less markup."""
        return document_root(self.parse())


def parse_html(html: str) -> BeautifulSoup:
    return BeautifulSoup(html or "", HTML_PARSER)


def document_root(soup: BeautifulSoup) -> Union[BeautifulSoup, Tag]:
    return soup.body or soup
