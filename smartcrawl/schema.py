"""Field schema, crawl request and crawl result types.

A field is either a :class:`PlainField` (extract a value where the selector
points) or a :class:`NavigationField` (follow a link from there and keep
extracting in the linked document). Navigation fields carry their own child
field list, so a schema is a tree.

Schemas can be written as JSON::

    {
        "url": "https://example.com/list",
        "list_selector": ".item",
        "fields": [
            {"name": "title", "selector": ".title"},
            {"name": "link", "selector": "a", "type": "attribute", "attribute": "href"},
            {
                "name": "detail",
                "selector": ".detail",
                "navigate": {
                    "click_selector": ".detail",
                    "target_selector": ".body",
                    "fields": [{"name": "author", "selector": ".author"}]
                }
            }
        ]
    }
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Union

from .config import DEFAULT_TIMEOUT, DEFAULT_USER_AGENT, RunConfigOverrides
from .errors import ConfigError

LOGGER = logging.getLogger(__name__)

Value = Union[str, None, Dict[str, Any]]


class ExtractKind(str, Enum):
    """How a plain field turns its element into a value."""

    TEXT = "text"
    MARKUP = "html"
    ATTRIBUTE = "attribute"


_KIND_ALIASES = {
    "text": ExtractKind.TEXT,
    "html": ExtractKind.MARKUP,
    "markup": ExtractKind.MARKUP,
    "attribute": ExtractKind.ATTRIBUTE,
    "attr": ExtractKind.ATTRIBUTE,
}


def _require(value: Optional[str], what: str) -> None:
    if not value or not str(value).strip():
        raise ConfigError(f"{what} must not be empty")


@dataclass(frozen=True, slots=True)
class PlainField:
    """Field whose value is read straight from the matched element."""

    name: str
    selector: str
    kind: ExtractKind = ExtractKind.TEXT
    attribute: Optional[str] = None

    def __post_init__(self) -> None:
        _require(self.name, "Field name")
        _require(self.selector, f"Selector of field '{self.name}'")
        if not isinstance(self.kind, ExtractKind):
            kind = _KIND_ALIASES.get(str(self.kind).lower())
            if kind is None:
                raise ConfigError(f"Field '{self.name}' has invalid kind {self.kind!r}")
            object.__setattr__(self, "kind", kind)
        if self.kind is ExtractKind.ATTRIBUTE and not self.attribute:
            raise ConfigError(f"Field '{self.name}' needs an attribute name")
        if self.kind is not ExtractKind.ATTRIBUTE and self.attribute:
            raise ConfigError(
                f"Field '{self.name}' sets an attribute but extracts {self.kind.value}"
            )


@dataclass(slots=True)
class NavigationSpec:
    """Where to click, what to fetch and what to extract after the hop."""

    click_selector: str = ""
    target_selector: Optional[str] = None
    fields: List["FieldSpec"] = field(default_factory=list)
    url_template: Optional[str] = None
    wait_selector: Optional[str] = None

    def __post_init__(self) -> None:
        self.fields = list(self.fields)
        validate_field_names(self.fields)


@dataclass(frozen=True, slots=True)
class NavigationField:
    """Field whose value comes from a linked document."""

    name: str
    selector: str
    navigation: NavigationSpec

    def __post_init__(self) -> None:
        _require(self.name, "Field name")
        _require(self.selector, f"Selector of field '{self.name}'")
        if not isinstance(self.navigation, NavigationSpec):
            raise ConfigError(f"Field '{self.name}' has no navigation settings")


FieldSpec = Union[PlainField, NavigationField]


def validate_field_names(fields: Iterable[FieldSpec]) -> None:
    """Raise ConfigError when sibling fields share a name."""
    seen: set[str] = set()
    for spec in fields:
        if not isinstance(spec, (PlainField, NavigationField)):
            raise ConfigError(f"Not a field definition: {spec!r}")
        if spec.name in seen:
            raise ConfigError(f"Duplicate field name '{spec.name}'")
        seen.add(spec.name)


@dataclass(slots=True)
class CrawlRequest:
    """Everything the engine needs for one crawl."""

    url: str
    list_selector: str
    fields: List[FieldSpec] = field(default_factory=list)
    cookie: Optional[str] = None
    user_agent: str = DEFAULT_USER_AGENT
    max_items: Optional[int] = None
    use_rendered_fetch: bool = False
    wait_selector: Optional[str] = None
    click_selector: Optional[str] = None
    strict_click: bool = False
    timeout: float = DEFAULT_TIMEOUT
    render_overrides: Optional[RunConfigOverrides] = None

    def validate(self) -> None:
        """Check the request before any fetch happens."""
        _require(self.url, "URL")
        _require(self.list_selector, "List selector")
        if self.max_items is not None and self.max_items < 1:
            raise ConfigError(f"max_items must be a positive integer, got {self.max_items}")
        if self.timeout <= 0:
            raise ConfigError(f"timeout must be positive, got {self.timeout}")
        validate_field_names(self.fields)


@dataclass(slots=True)
class CrawlResult:
    """Outcome of a crawl: ordered records plus non-fatal error messages."""

    success: bool
    records: List[Dict[str, Value]] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "records": self.records,
            "errors": self.errors,
        }


# ---------------------------------------------------------------------------
# Loading from dicts / JSON
# ---------------------------------------------------------------------------


def _get(data: Dict[str, Any], *keys: str, default: Any = None) -> Any:
    for key in keys:
        if key in data and data[key] is not None:
            return data[key]
    return default


def field_from_dict(data: Dict[str, Any]) -> FieldSpec:
    """Build a FieldSpec from its JSON form."""
    if not isinstance(data, dict):
        raise ConfigError(f"Field definition must be an object, got {type(data).__name__}")

    name = _get(data, "name", default="")
    selector = _get(data, "selector", default="")
    navigate = _get(data, "navigate", "navigation", "jump")

    if navigate is not None:
        if not isinstance(navigate, dict):
            raise ConfigError(f"Navigation of field '{name}' must be an object")
        return NavigationField(
            name=name,
            selector=selector,
            navigation=NavigationSpec(
                click_selector=_get(navigate, "click_selector", "clickSelector", default=""),
                target_selector=_get(navigate, "target_selector", "targetSelector") or None,
                fields=fields_from_list(_get(navigate, "fields", default=[])),
                url_template=_get(navigate, "url_template", "urlTemplate") or None,
                wait_selector=_get(navigate, "wait_selector", "waitSelector") or None,
            ),
        )

    raw_kind = str(_get(data, "type", "kind", default="text")).lower()
    kind = _KIND_ALIASES.get(raw_kind)
    if kind is None:
        raise ConfigError(f"Unknown extraction type '{raw_kind}' for field '{name}'")
    return PlainField(
        name=name,
        selector=selector,
        kind=kind,
        attribute=_get(data, "attribute", "attributeName") or None,
    )


def fields_from_list(items: Iterable[Dict[str, Any]]) -> List[FieldSpec]:
    fields = [field_from_dict(item) for item in items]
    validate_field_names(fields)
    return fields


_OVERRIDE_KEYS = {
    "verbose": "verbose",
    "wait_until": "wait_until",
    "waitUntil": "wait_until",
    "page_timeout": "page_timeout",
    "pageTimeout": "page_timeout",
    "delay": "delay_before_return_html",
    "delay_before_return_html": "delay_before_return_html",
    "delayBeforeReturnHtml": "delay_before_return_html",
    "magic": "magic",
    "cache_mode": "cache_mode",
    "cacheMode": "cache_mode",
    "scan_full_page": "scan_full_page",
    "scanFullPage": "scan_full_page",
}


def overrides_from_dict(data: Optional[Dict[str, Any]]) -> Optional[RunConfigOverrides]:
    """Build rendered-fetch overrides from a ``render_options`` object."""
    if not data:
        return None
    if not isinstance(data, dict):
        raise ConfigError("render_options must be an object")
    kwargs: Dict[str, Any] = {}
    for key, value in data.items():
        target = _OVERRIDE_KEYS.get(key)
        if target is None:
            raise ConfigError(f"Unknown render option '{key}'")
        kwargs[target] = value
    return RunConfigOverrides(**kwargs)


def request_from_dict(data: Dict[str, Any]) -> CrawlRequest:
    """Build a CrawlRequest from its JSON form (snake_case or camelCase keys)."""
    if not isinstance(data, dict):
        raise ConfigError("Request definition must be a JSON object")

    max_items = _get(data, "max_items", "maxItems")
    timeout = _get(data, "timeout", default=DEFAULT_TIMEOUT)
    try:
        max_items = int(max_items) if max_items is not None else None
        timeout = float(timeout)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"Invalid numeric setting: {exc}") from exc

    return CrawlRequest(
        url=_get(data, "url", default=""),
        list_selector=_get(data, "list_selector", "listSelector", default=""),
        fields=fields_from_list(_get(data, "fields", default=[])),
        cookie=_get(data, "cookie") or None,
        user_agent=_get(data, "user_agent", "userAgent") or DEFAULT_USER_AGENT,
        max_items=max_items,
        use_rendered_fetch=bool(_get(data, "use_rendered_fetch", "useRenderedFetch", default=False)),
        wait_selector=_get(data, "wait_selector", "waitSelector") or None,
        click_selector=_get(data, "click_selector", "clickSelector") or None,
        strict_click=bool(_get(data, "strict_click", "strictClick", default=False)),
        timeout=timeout,
        render_overrides=overrides_from_dict(_get(data, "render_options", "renderOptions")),
    )


def load_config_file(path: str) -> Dict[str, Any]:
    """Read a request config file and return its raw JSON data.

    A file holding a bare list is treated as the field list.

    Raises:
        ConfigError: If the file is missing or not valid JSON.
    """
    config_path = Path(path).expanduser()
    if not config_path.is_file():
        raise ConfigError(f"Config file not found: {config_path}")

    try:
        with open(config_path, "r", encoding="utf-8") as fh:
            data = json.load(fh)
    except json.JSONDecodeError as exc:
        raise ConfigError(f"Config file {config_path} is not valid JSON: {exc}") from exc

    if isinstance(data, list):
        data = {"fields": data}
    LOGGER.info("Loaded crawl config from %s", config_path)
    return data


def load_request(path: str) -> CrawlRequest:
    """Build a CrawlRequest from a JSON config file."""
    return request_from_dict(load_config_file(path))
