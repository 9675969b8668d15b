"""Tests for the page fetcher strategies.

Mocking strategy:
- ``respx`` patches ``httpx`` at the transport layer so the static-HTTP and
  remote-service strategies make no real network calls.
- ``async_playwright`` is patched in ``aetherscribe.scraper.fetcher`` with a
  MagicMock tree (playwright → chromium → browser → page) so the browser
  strategy runs without a Chromium install.
- Retry delays are set to zero.
"""

from __future__ import annotations

import json
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest
import respx
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from aetherscribe.config import Settings
from aetherscribe.errors import FetchError, FetchTimeoutError, TransientFetchError
from aetherscribe.scraper.fetcher import (
    BrowserFetcher,
    HttpFetcher,
    RemoteFetcher,
    _is_spa,
    build_fetcher,
)
from aetherscribe.scraper.models import RawPage

URL = "https://example.com/article"
REMOTE_ENDPOINT = "https://scraper.example.net/v1/scrape"

_SIMPLE_HTML = """\
<!DOCTYPE html>
<html>
<head><title>Test Page</title></head>
<body>
  <main>
    <p>This is the main content of the test page with enough text for extraction.</p>
    <p>It discusses topics such as renewable energy and battery technology.</p>
  </main>
</body>
</html>
"""

_SPA_HTML = """\
<!DOCTYPE html>
<html>
<head><title>React App</title></head>
<body>
  <div id="root"></div>
  <script src="/bundle.js"></script>
</body>
</html>
"""


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _mock_playwright(html: str = _SIMPLE_HTML, goto_side_effect=None):
    """Return ``(factory, pw, browser, page)`` mimicking ``async_playwright``."""
    page = MagicMock()
    page.goto = AsyncMock(side_effect=goto_side_effect)
    page.wait_for_selector = AsyncMock()
    page.content = AsyncMock(return_value=html)

    browser = MagicMock()
    browser.new_page = AsyncMock(return_value=page)
    browser.close = AsyncMock()

    pw = MagicMock()
    pw.chromium.launch = AsyncMock(return_value=browser)
    pw.chromium.connect = AsyncMock(return_value=browser)

    context_manager = MagicMock()
    context_manager.__aenter__ = AsyncMock(return_value=pw)
    context_manager.__aexit__ = AsyncMock(return_value=False)
    factory = MagicMock(return_value=context_manager)
    return factory, pw, browser, page


# ---------------------------------------------------------------------------
# _is_spa unit tests
# ---------------------------------------------------------------------------

class TestIsSpa:
    def test_detects_react_root_div(self) -> None:
        assert _is_spa(_SPA_HTML) is True

    def test_detects_next_data(self) -> None:
        html = "<html><body><script>window.__NEXT_DATA__ = {}</script></body></html>"
        assert _is_spa(html) is True

    def test_detects_angular(self) -> None:
        html = '<html ng-version="12.0.0"><body>content</body></html>'
        assert _is_spa(html) is True

    def test_normal_page_not_spa(self) -> None:
        assert _is_spa(_SIMPLE_HTML) is False

    def test_server_rendered_root_with_content_not_spa(self) -> None:
        html = '<html><body><div id="app"><p>Rendered on the server.</p></div></body></html>'
        assert _is_spa(html) is False

    def test_minimal_body_heuristic(self) -> None:
        big_script = "<script>" + "x" * 2500 + "</script>"
        html = f"<html><body>{big_script}<p> </p></body></html>"
        assert _is_spa(html) is True


# ---------------------------------------------------------------------------
# Browser strategy
# ---------------------------------------------------------------------------

class TestBrowserFetcher:
    async def test_returns_rendered_html_and_closes_browser(self) -> None:
        factory, pw, browser, page = _mock_playwright()
        fetcher = BrowserFetcher(navigation_timeout=40, content_wait_timeout=5)

        with patch("aetherscribe.scraper.fetcher.async_playwright", factory):
            raw = await fetcher.fetch(URL)

        assert isinstance(raw, RawPage)
        assert raw.url == URL
        assert raw.html == _SIMPLE_HTML
        page.goto.assert_awaited_once_with(URL, timeout=40000, wait_until="networkidle")
        page.set_default_navigation_timeout.assert_called_once_with(40000)
        selector, = page.wait_for_selector.await_args.args
        assert "main" in selector and "article" in selector
        assert page.wait_for_selector.await_args.kwargs["timeout"] == 5000
        browser.close.assert_awaited_once()

    async def test_content_wait_timeout_is_tolerated(self) -> None:
        factory, _, browser, page = _mock_playwright()
        page.wait_for_selector.side_effect = PlaywrightTimeoutError("Timeout 5000ms exceeded")

        with patch("aetherscribe.scraper.fetcher.async_playwright", factory):
            raw = await BrowserFetcher().fetch(URL)

        assert raw.html == _SIMPLE_HTML
        browser.close.assert_awaited_once()

    async def test_navigation_timeout_raises_and_closes_browser(self) -> None:
        factory, _, browser, page = _mock_playwright(
            goto_side_effect=PlaywrightTimeoutError("Timeout 40000ms exceeded")
        )

        with patch("aetherscribe.scraper.fetcher.async_playwright", factory):
            with pytest.raises(FetchTimeoutError):
                await BrowserFetcher(retries=3, retry_base_delay=0).fetch(URL)

        # Timeouts are not retried.
        browser.close.assert_awaited_once()
        page.content.assert_not_awaited()

    async def test_timeout_error_is_also_builtin_timeout(self) -> None:
        factory, _, _, _ = _mock_playwright(
            goto_side_effect=PlaywrightTimeoutError("Timeout 40000ms exceeded")
        )
        with patch("aetherscribe.scraper.fetcher.async_playwright", factory):
            with pytest.raises(TimeoutError):
                await BrowserFetcher().fetch(URL)

    async def test_browser_error_raises_fetch_error_and_closes_browser(self) -> None:
        factory, _, browser, _ = _mock_playwright(
            goto_side_effect=PlaywrightError("net::ERR_NAME_NOT_RESOLVED at https://example.com")
        )

        with patch("aetherscribe.scraper.fetcher.async_playwright", factory):
            with pytest.raises(FetchError) as excinfo:
                await BrowserFetcher(retries=2, retry_base_delay=0).fetch(URL)

        assert not isinstance(excinfo.value, TransientFetchError)
        browser.close.assert_awaited_once()

    async def test_unexpected_error_still_closes_browser(self) -> None:
        factory, _, browser, _ = _mock_playwright(goto_side_effect=RuntimeError("boom"))

        with patch("aetherscribe.scraper.fetcher.async_playwright", factory):
            with pytest.raises(RuntimeError):
                await BrowserFetcher().fetch(URL)

        browser.close.assert_awaited_once()

    async def test_transient_error_is_retried_once(self) -> None:
        factory, pw, browser, _ = _mock_playwright(
            goto_side_effect=[PlaywrightError("net::ERR_CONNECTION_RESET"), None]
        )

        with patch("aetherscribe.scraper.fetcher.async_playwright", factory):
            raw = await BrowserFetcher(retries=1, retry_base_delay=0).fetch(URL)

        assert raw.html == _SIMPLE_HTML
        assert pw.chromium.launch.await_count == 2
        assert browser.close.await_count == 2

    async def test_transient_error_gives_up_after_retries(self) -> None:
        factory, _, browser, _ = _mock_playwright(
            goto_side_effect=PlaywrightError("net::ERR_CONNECTION_RESET")
        )

        with patch("aetherscribe.scraper.fetcher.async_playwright", factory):
            with pytest.raises(TransientFetchError):
                await BrowserFetcher(retries=1, retry_base_delay=0).fetch(URL)

        assert browser.close.await_count == 2

    async def test_ws_endpoint_connects_instead_of_launching(self) -> None:
        factory, pw, _, _ = _mock_playwright()
        fetcher = BrowserFetcher(ws_endpoint="ws://browser.internal:3000/")

        with patch("aetherscribe.scraper.fetcher.async_playwright", factory):
            await fetcher.fetch(URL)

        pw.chromium.connect.assert_awaited_once_with("ws://browser.internal:3000/")
        pw.chromium.launch.assert_not_awaited()

    async def test_launch_failure_is_fetch_error(self) -> None:
        factory, pw, _, _ = _mock_playwright()
        pw.chromium.launch.side_effect = PlaywrightError("Executable doesn't exist")

        with patch("aetherscribe.scraper.fetcher.async_playwright", factory):
            with pytest.raises(FetchError):
                await BrowserFetcher().fetch(URL)


# ---------------------------------------------------------------------------
# Static HTTP strategy
# ---------------------------------------------------------------------------

class TestHttpFetcher:
    @respx.mock
    async def test_successful_fetch_returns_raw_page(self) -> None:
        respx.get(URL).mock(return_value=httpx.Response(200, text=_SIMPLE_HTML))

        raw = await HttpFetcher().fetch(URL)

        assert raw.url == URL
        assert "<title>Test Page</title>" in raw.html

    @respx.mock
    async def test_client_error_is_not_retried(self) -> None:
        route = respx.get(URL).mock(return_value=httpx.Response(404, text="Not Found"))

        with pytest.raises(FetchError) as excinfo:
            await HttpFetcher(retries=2, retry_base_delay=0).fetch(URL)

        assert not isinstance(excinfo.value, TransientFetchError)
        assert route.call_count == 1

    @respx.mock
    async def test_server_error_is_retried(self) -> None:
        route = respx.get(URL).mock(
            side_effect=[httpx.Response(503), httpx.Response(200, text=_SIMPLE_HTML)]
        )

        raw = await HttpFetcher(retries=1, retry_base_delay=0).fetch(URL)

        assert raw.html == _SIMPLE_HTML
        assert route.call_count == 2

    @respx.mock
    async def test_connect_error_exhausts_retries(self) -> None:
        route = respx.get(URL).mock(side_effect=httpx.ConnectError("connection refused"))

        with pytest.raises(TransientFetchError):
            await HttpFetcher(retries=1, retry_base_delay=0).fetch(URL)

        assert route.call_count == 2

    @respx.mock
    async def test_timeout_raises_fetch_timeout(self) -> None:
        respx.get(URL).mock(side_effect=httpx.ReadTimeout("timed out"))

        with pytest.raises(FetchTimeoutError):
            await HttpFetcher(timeout=1).fetch(URL)

    @respx.mock
    async def test_spa_escalates_to_browser(self) -> None:
        respx.get(URL).mock(return_value=httpx.Response(200, text=_SPA_HTML))
        browser = AsyncMock(spec=BrowserFetcher)
        browser.fetch.return_value = RawPage(url=URL, html=_SIMPLE_HTML)

        raw = await HttpFetcher(browser=browser).fetch(URL)

        browser.fetch.assert_awaited_once_with(URL)
        assert raw.html == _SIMPLE_HTML

    @respx.mock
    async def test_spa_without_browser_returns_shell(self) -> None:
        respx.get(URL).mock(return_value=httpx.Response(200, text=_SPA_HTML))

        raw = await HttpFetcher(browser=None).fetch(URL)

        assert raw.html == _SPA_HTML


# ---------------------------------------------------------------------------
# Remote scraping-service strategy
# ---------------------------------------------------------------------------

class TestRemoteFetcher:
    def _fetcher(self, **kwargs) -> RemoteFetcher:
        return RemoteFetcher(
            endpoint=REMOTE_ENDPOINT, api_key="fc-test", retry_base_delay=0, **kwargs
        )

    @respx.mock
    async def test_returns_raw_html_from_service(self) -> None:
        route = respx.post(REMOTE_ENDPOINT).mock(
            return_value=httpx.Response(
                200, json={"success": True, "data": {"rawHtml": _SIMPLE_HTML}}
            )
        )

        raw = await self._fetcher(timeout=20).fetch(URL)

        assert raw.html == _SIMPLE_HTML
        request = route.calls.last.request
        assert request.headers["Authorization"] == "Bearer fc-test"
        payload = json.loads(request.content)
        assert payload == {"url": URL, "formats": ["rawHtml"], "timeout": 20000}

    @respx.mock
    async def test_unsuccessful_result_raises(self) -> None:
        respx.post(REMOTE_ENDPOINT).mock(
            return_value=httpx.Response(200, json={"success": False, "error": "blocked"})
        )
        with pytest.raises(FetchError):
            await self._fetcher().fetch(URL)

    @respx.mock
    async def test_empty_html_raises(self) -> None:
        respx.post(REMOTE_ENDPOINT).mock(
            return_value=httpx.Response(200, json={"success": True, "data": {}})
        )
        with pytest.raises(FetchError):
            await self._fetcher().fetch(URL)

    @respx.mock
    async def test_service_timeout_status(self) -> None:
        respx.post(REMOTE_ENDPOINT).mock(return_value=httpx.Response(408))
        with pytest.raises(FetchTimeoutError):
            await self._fetcher().fetch(URL)

    @respx.mock
    async def test_rate_limited_service_is_retried(self) -> None:
        route = respx.post(REMOTE_ENDPOINT).mock(
            side_effect=[
                httpx.Response(429),
                httpx.Response(200, json={"success": True, "data": {"rawHtml": _SIMPLE_HTML}}),
            ]
        )

        raw = await self._fetcher(retries=1).fetch(URL)

        assert raw.html == _SIMPLE_HTML
        assert route.call_count == 2

    @respx.mock
    async def test_auth_failure_is_not_retried(self) -> None:
        route = respx.post(REMOTE_ENDPOINT).mock(return_value=httpx.Response(401))
        with pytest.raises(FetchError):
            await self._fetcher(retries=3).fetch(URL)
        assert route.call_count == 1

    def test_missing_api_key_rejected(self) -> None:
        with pytest.raises(ValueError):
            RemoteFetcher(endpoint=REMOTE_ENDPOINT, api_key="")


# ---------------------------------------------------------------------------
# Factory
# ---------------------------------------------------------------------------

class TestBuildFetcher:
    def test_browser_strategy(self) -> None:
        fetcher = build_fetcher(
            Settings(fetch_strategy="browser", navigation_timeout=12, browser_ws_endpoint="")
        )
        assert isinstance(fetcher, BrowserFetcher)
        assert fetcher.navigation_timeout == 12

    def test_http_strategy_escalates_to_browser(self) -> None:
        fetcher = build_fetcher(Settings(fetch_strategy="http", fetch_retries=2))
        assert isinstance(fetcher, HttpFetcher)
        assert isinstance(fetcher.browser, BrowserFetcher)
        assert fetcher.retries == 2

    def test_remote_strategy(self) -> None:
        fetcher = build_fetcher(
            Settings(fetch_strategy="remote", remote_scraper_api_key="fc-key")
        )
        assert isinstance(fetcher, RemoteFetcher)
        assert fetcher.api_key == "fc-key"

    def test_unknown_strategy(self) -> None:
        with pytest.raises(ValueError):
            build_fetcher(Settings(fetch_strategy="carrier-pigeon"))
