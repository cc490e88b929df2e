"""Tests for smartcrawl.fetcher module."""

from __future__ import annotations

import asyncio
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from smartcrawl import fetcher as fetcher_module
from smartcrawl.errors import FetchError
from smartcrawl.fetcher import DocumentFetcher, fetch_rendered, fetch_static


def _mock_client(response=None, side_effect=None):
    client = AsyncMock()
    client.__aenter__ = AsyncMock(return_value=client)
    client.__aexit__ = AsyncMock(return_value=False)
    if side_effect is not None:
        client.get = AsyncMock(side_effect=side_effect)
    else:
        client.get = AsyncMock(return_value=response)
    return client


def _response(status_code=200, text="<html></html>", url="https://example.com/list"):
    request = httpx.Request("GET", url)
    return httpx.Response(status_code, text=text, request=request)


class DummyCrawler:
    """Stands in for AsyncWebCrawler and tracks whether it was closed."""

    instances: list = []
    result_overrides: dict = {}
    raise_on_run = None

    def __init__(self, config=None):
        self.config = config
        self.entered = False
        self.exited = False
        self.run_config = None
        self.result = SimpleNamespace(
            success=True,
            html="<html><body><p>ok</p></body></html>",
            status_code=200,
            url="https://example.com/list",
            redirected_url=None,
            error_message=None,
        )
        for key, value in self.result_overrides.items():
            setattr(self.result, key, value)
        DummyCrawler.instances.append(self)

    async def __aenter__(self):
        self.entered = True
        return self

    async def __aexit__(self, exc_type, exc, tb):
        self.exited = True
        return False

    async def arun(self, url, config):
        self.run_config = config
        if self.raise_on_run:
            raise self.raise_on_run
        return [self.result]


@pytest.fixture
def dummy_crawler(monkeypatch: pytest.MonkeyPatch):
    DummyCrawler.instances = []
    DummyCrawler.result_overrides = {}
    DummyCrawler.raise_on_run = None
    monkeypatch.setattr(fetcher_module, "AsyncWebCrawler", DummyCrawler)
    return DummyCrawler


class TestFetchStatic:
    @pytest.mark.asyncio
    async def test_success_sends_headers(self):
        client = _mock_client(_response(text="<p>hi</p>"))
        with patch("smartcrawl.fetcher.httpx.AsyncClient", return_value=client) as ctor:
            doc = await fetch_static(
                "https://example.com/list", cookie="sid=abc", user_agent="Bot/1.0"
            )

        headers = ctor.call_args.kwargs["headers"]
        assert headers == {"User-Agent": "Bot/1.0", "Cookie": "sid=abc"}
        assert ctor.call_args.kwargs["follow_redirects"] is True
        assert doc.html == "<p>hi</p>"
        assert doc.status_code == 200
        assert doc.rendered is False

    @pytest.mark.asyncio
    async def test_final_url_after_redirect(self):
        client = _mock_client(_response(url="https://example.com/moved"))
        with patch("smartcrawl.fetcher.httpx.AsyncClient", return_value=client):
            doc = await fetch_static("https://example.com/list")
        assert doc.request_url == "https://example.com/list"
        assert doc.url == "https://example.com/moved"

    @pytest.mark.asyncio
    async def test_http_error_status(self):
        client = _mock_client(_response(status_code=404))
        with patch("smartcrawl.fetcher.httpx.AsyncClient", return_value=client):
            with pytest.raises(FetchError, match="HTTP 404") as excinfo:
                await fetch_static("https://example.com/list")
        assert excinfo.value.status_code == 404

    @pytest.mark.asyncio
    async def test_network_error(self):
        client = _mock_client(side_effect=httpx.ConnectError("refused"))
        with patch("smartcrawl.fetcher.httpx.AsyncClient", return_value=client):
            with pytest.raises(FetchError, match="Request failed"):
                await fetch_static("https://example.com/list")


class TestFetchRendered:
    @pytest.mark.asyncio
    async def test_success_closes_browser(self, dummy_crawler):
        doc = await fetch_rendered("https://example.com/list", cookie="sid=abc")

        crawler = dummy_crawler.instances[0]
        assert crawler.entered and crawler.exited
        assert crawler.config.cookies[0]["name"] == "sid"
        assert doc.rendered is True
        assert "<p>ok</p>" in doc.html

    @pytest.mark.asyncio
    async def test_browser_closed_on_failure(self, dummy_crawler):
        dummy_crawler.raise_on_run = RuntimeError("net::ERR_NAME_NOT_RESOLVED")

        with pytest.raises(FetchError, match="Rendering failed"):
            await fetch_rendered("https://nowhere.invalid/")

        assert dummy_crawler.instances[0].exited is True

    @pytest.mark.asyncio
    async def test_unsuccessful_result(self, dummy_crawler):
        dummy_crawler.result_overrides = {
            "success": False,
            "html": "",
            "error_message": "Wait condition failed",
        }

        with pytest.raises(FetchError, match="Wait condition failed"):
            await fetch_rendered("https://example.com/list", wait_selector=".never")

    @pytest.mark.asyncio
    async def test_failed_post_click_navigation_tolerated(self, dummy_crawler):
        dummy_crawler.result_overrides = {
            "success": False,
            "error_message": "Navigation interrupted",
        }

        doc = await fetch_rendered("https://example.com/list", click_selector=".more")
        assert "<p>ok</p>" in doc.html
        assert ".more" in dummy_crawler.instances[0].run_config.js_code

    @pytest.mark.asyncio
    async def test_redirected_url(self, dummy_crawler):
        dummy_crawler.result_overrides = {"redirected_url": "https://example.com/page/2"}

        doc = await fetch_rendered("https://example.com/list")
        assert doc.url == "https://example.com/page/2"

    @pytest.mark.asyncio
    async def test_http_error_status(self, dummy_crawler):
        dummy_crawler.result_overrides = {"status_code": 403}

        with pytest.raises(FetchError, match="HTTP 403"):
            await fetch_rendered("https://example.com/list")


class TestDocumentFetcher:
    @pytest.mark.asyncio
    async def test_static_mode_dispatch(self, monkeypatch):
        fake = AsyncMock(return_value=MagicMock())
        monkeypatch.setattr(fetcher_module, "fetch_static", fake)

        fetcher = DocumentFetcher(cookie="a=1", user_agent="Bot/1.0", timeout=5)
        await fetcher.fetch("https://example.com", wait_selector=".x")

        fake.assert_awaited_once_with(
            "https://example.com", cookie="a=1", user_agent="Bot/1.0", timeout=5
        )

    @pytest.mark.asyncio
    async def test_rendered_mode_dispatch(self, monkeypatch):
        fake = AsyncMock(return_value=MagicMock())
        monkeypatch.setattr(fetcher_module, "fetch_rendered", fake)

        fetcher = DocumentFetcher(rendered=True)
        await fetcher.fetch("https://example.com", wait_selector=".x", click_selector=".y")

        kwargs = fake.call_args.kwargs
        assert kwargs["wait_selector"] == ".x"
        assert kwargs["click_selector"] == ".y"

    @pytest.mark.asyncio
    async def test_timeout_becomes_fetch_error(self, monkeypatch):
        seen: dict = {}

        async def expired(coro, timeout):
            seen["timeout"] = timeout
            coro.close()
            raise asyncio.TimeoutError()

        monkeypatch.setattr(fetcher_module.asyncio, "wait_for", expired)

        fetcher = DocumentFetcher(timeout=2)
        with pytest.raises(FetchError, match="Timed out"):
            await fetcher.fetch("https://example.com")
        assert seen["timeout"] == 7
