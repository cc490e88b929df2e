"""Tests for smartcrawl.links module."""

from __future__ import annotations

import pytest

from smartcrawl.document import parse_html
from smartcrawl.errors import ClickTargetNotFound
from smartcrawl.links import (
    OpaqueId,
    apply_url_template,
    extract_link,
    link_from_data_attrs,
    link_from_href,
    link_from_identifier,
    link_from_onclick,
    resolve_link,
)


def _el(html: str, selector: str = "#start"):
    return parse_html(html).select_one(selector)


class TestExtractionRules:
    def test_href(self):
        assert link_from_href(_el('<a id="start" href="/x">x</a>')) == "/x"

    @pytest.mark.parametrize("href", ["#top", "javascript:void(0)", "JavaScript:go()", ""])
    def test_href_rejected(self, href):
        assert link_from_href(_el(f'<a id="start" href="{href}">x</a>')) is None

    def test_data_href(self):
        assert link_from_data_attrs(_el('<div id="start" data-href="/d/1"></div>')) == "/d/1"

    def test_data_target_url_absolute(self):
        el = _el('<div id="start" data-target-url="https://x.test/p"></div>')
        assert link_from_data_attrs(el) == "https://x.test/p"

    def test_data_attr_must_look_like_url(self):
        assert link_from_data_attrs(_el('<div id="start" data-url="details"></div>')) is None

    def test_onclick_location_href(self):
        el = _el("""<div id="start" onclick="location.href='/o/1'"></div>""")
        assert link_from_onclick(el) == "/o/1"

    def test_onclick_window_location(self):
        el = _el("""<div id="start" onclick='window.location = "/o/2"'></div>""")
        assert link_from_onclick(el) == "/o/2"

    def test_onclick_window_open(self):
        el = _el("""<div id="start" onclick="window.open('/o/3', '_blank')"></div>""")
        assert link_from_onclick(el) == "/o/3"

    def test_onclick_without_url(self):
        assert link_from_onclick(_el('<div id="start" onclick="toggle()"></div>')) is None

    def test_identifier(self):
        el = _el('<div id="start" data-item-id="42"></div>')
        assert link_from_identifier(el) == OpaqueId("42")

    def test_rule_order_prefers_href(self):
        el = _el('<a id="start" href="/a" data-href="/b" data-id="3">x</a>')
        assert extract_link(el) == "/a"


class TestResolveLink:
    def test_click_selector_target_first(self):
        el = _el(
            '<div id="start" data-href="/self"><a href="/other">o</a>'
            '<span class="go" data-url="/go"></span></div>'
        )
        assert resolve_link(el, ".go") == "/go"

    def test_element_itself(self):
        assert resolve_link(_el('<a id="start" href="/self">s</a>')) == "/self"

    def test_descendant_anchor(self):
        el = _el('<div id="start"><span>t</span><a href="/child">c</a></div>')
        assert resolve_link(el) == "/child"

    def test_ancestor_anchor(self):
        el = _el('<a href="/parent"><span id="start">t</span></a>')
        assert resolve_link(el) == "/parent"

    def test_container_anchor(self):
        html = '<li><div><span id="start">t</span></div><a href="/sibling">s</a></li>'
        assert resolve_link(_el(html)) == "/sibling"

    def test_container_clickable(self):
        html = (
            "<section><div><span id=\"start\">t</span></div>"
            "<button onclick=\"location.href='/btn'\">go</button></section>"
        )
        assert resolve_link(_el(html)) == "/btn"

    def test_container_search_limited_to_three_levels(self):
        html = (
            '<div><a href="/far">far</a>'
            '<div><div><div><span id="start">t</span></div></div></div></div>'
        )
        assert resolve_link(_el(html)) is None

    def test_opaque_id(self):
        assert resolve_link(_el('<div id="start" data-id="7">t</div>')) == OpaqueId("7")

    def test_nothing_found(self):
        assert resolve_link(_el('<p id="start">plain</p>')) is None

    def test_lenient_unmatched_click_selector_falls_through(self):
        el = _el('<a id="start" href="/self">s</a>')
        assert resolve_link(el, ".missing") == "/self"

    def test_strict_unmatched_click_selector_raises(self):
        el = _el('<a id="start" href="/self">s</a>')
        with pytest.raises(ClickTargetNotFound):
            resolve_link(el, ".missing", strict=True)

    def test_strict_click_selector_matching_element_itself(self):
        el = _el('<a id="start" class="go" href="/self">s</a>')
        assert resolve_link(el, ".go", strict=True) == "/self"


class TestApplyUrlTemplate:
    def test_url_passes_through(self):
        assert apply_url_template("/x", "/item/{id}") == "/x"

    def test_id_with_template(self):
        assert apply_url_template(OpaqueId("42"), "/item/{id}") == "/item/42"

    def test_id_without_template(self):
        assert apply_url_template(OpaqueId("42"), None) is None

    def test_none(self):
        assert apply_url_template(None, "/item/{id}") is None
