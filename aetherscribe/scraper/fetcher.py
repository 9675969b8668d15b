"""Page fetchers behind a single pluggable interface.

Strategies
----------
``browser`` (default)
    Headless Chromium via Playwright.  Executes client-side JavaScript, then
    waits briefly for a main-content container before capturing the HTML.
    Connects to ``BROWSER_WS_ENDPOINT`` instead of launching when it is set.

``http``
    Plain ``httpx`` GET.  Escalates to the browser strategy when the response
    looks like a JavaScript SPA shell.

``remote``
    A Firecrawl-compatible scraping service that renders the page remotely
    and returns its raw HTML.

Every strategy retries :class:`TransientFetchError` with exponential backoff
and maps timeouts to :class:`FetchTimeoutError`.
"""

from __future__ import annotations

import asyncio
import logging
import re
from abc import ABC, abstractmethod

import httpx
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError
from playwright.async_api import async_playwright

from aetherscribe.config import Settings, settings
from aetherscribe.errors import FetchError, FetchTimeoutError, TransientFetchError
from aetherscribe.scraper.extractor import WAIT_FOR_SELECTORS
from aetherscribe.scraper.models import RawPage

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# SPA / JS-rendered page detection heuristics
# ---------------------------------------------------------------------------
_SPA_PATTERNS = [
    re.compile(r'<div[^>]+id=["\'](?:root|app|__next)["\'][^>]*>\s*</div>', re.IGNORECASE),
    re.compile(r"window\.__NEXT_DATA__", re.IGNORECASE),
    re.compile(r"ng-version=", re.IGNORECASE),
    re.compile(r"data-reactroot", re.IGNORECASE),
]

_DEFAULT_HEADERS = {
    "User-Agent": (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
        "AppleWebKit/537.36 (KHTML, like Gecko) "
        "Chrome/122.0.0.0 Safari/537.36"
    )
}

_BROWSER_ARGS = ["--no-sandbox", "--disable-setuid-sandbox"]

# Chromium network errors that are usually gone on a second attempt.
_TRANSIENT_NET_ERRORS = (
    "ERR_CONNECTION_RESET",
    "ERR_CONNECTION_CLOSED",
    "ERR_NETWORK_CHANGED",
    "ERR_EMPTY_RESPONSE",
)


def _is_spa(html: str) -> bool:
    """Return ``True`` if *html* looks like a JavaScript SPA that needs rendering."""
    for pattern in _SPA_PATTERNS:
        if pattern.search(html):
            return True
    # Very little visible text relative to total HTML size.  Script and style
    # bodies are stripped first so their source doesn't count as text.
    no_scripts = re.sub(
        r"<(script|style)[^>]*>.*?</(script|style)>", "", html,
        flags=re.IGNORECASE | re.DOTALL,
    )
    stripped = re.sub(r"<[^>]+>", "", no_scripts).strip()
    return len(html) > 2000 and len(stripped) < 200


# ---------------------------------------------------------------------------
# Abstract base
# ---------------------------------------------------------------------------

class ContentFetcher(ABC):
    """Retrieve rendered HTML for a URL."""

    def __init__(self, retries: int = 1, retry_base_delay: float = 1.0) -> None:
        self.retries = max(retries, 0)
        self.retry_base_delay = retry_base_delay

    @property
    @abstractmethod
    def name(self) -> str:
        """Strategy name as used in ``FETCH_STRATEGY``."""

    @abstractmethod
    async def _fetch_once(self, url: str) -> RawPage:
        """Perform a single fetch attempt."""

    async def fetch(self, url: str) -> RawPage:
        """Fetch *url*, retrying transient failures with exponential backoff.

        Raises:
            FetchTimeoutError: If the navigation deadline is exceeded.
            FetchError: For any other retrieval failure.
        """
        attempts = self.retries + 1
        for attempt in range(attempts):
            try:
                return await self._fetch_once(url)
            except TransientFetchError as exc:
                if attempt + 1 >= attempts:
                    raise
                delay = self.retry_base_delay * (2 ** attempt)
                logger.warning(
                    "[%s] transient failure for %s (attempt %d/%d): %s; retrying in %.1fs",
                    self.name, url, attempt + 1, attempts, exc, delay,
                )
                await asyncio.sleep(delay)
        raise FetchError(f"Could not fetch {url}")

    async def aclose(self) -> None:
        """Release long-lived resources.  Per-call strategies hold none."""


# ---------------------------------------------------------------------------
# Browser strategy
# ---------------------------------------------------------------------------

class BrowserFetcher(ContentFetcher):
    """Render pages in headless Chromium.

    A fresh browser is opened per fetch and is always closed, whatever the
    outcome, so a hung page can never leak a process.
    """

    def __init__(
        self,
        navigation_timeout: float = 40.0,
        content_wait_timeout: float = 5.0,
        ws_endpoint: str = "",
        retries: int = 1,
        retry_base_delay: float = 1.0,
    ) -> None:
        super().__init__(retries=retries, retry_base_delay=retry_base_delay)
        self.navigation_timeout = navigation_timeout
        self.content_wait_timeout = content_wait_timeout
        self.ws_endpoint = ws_endpoint

    @property
    def name(self) -> str:
        return "browser"

    async def _open_browser(self, pw):
        if self.ws_endpoint:
            return await pw.chromium.connect(self.ws_endpoint)
        return await pw.chromium.launch(headless=True, args=_BROWSER_ARGS)

    async def _wait_for_content(self, page) -> None:
        """Give late-hydrating pages a short chance to render a content container."""
        try:
            await page.wait_for_selector(
                ", ".join(WAIT_FOR_SELECTORS),
                timeout=int(self.content_wait_timeout * 1000),
            )
        except PlaywrightTimeoutError:
            logger.debug("No main-content selector appeared; capturing page as-is")

    async def _fetch_once(self, url: str) -> RawPage:
        timeout_ms = int(self.navigation_timeout * 1000)

        async with async_playwright() as pw:
            try:
                browser = await self._open_browser(pw)
            except PlaywrightError as exc:
                raise FetchError(f"Could not start browser: {exc}") from exc

            try:
                page = await browser.new_page()
                page.set_default_navigation_timeout(timeout_ms)
                await page.goto(url, timeout=timeout_ms, wait_until="networkidle")
                await self._wait_for_content(page)
                html = await page.content()
            except PlaywrightTimeoutError as exc:
                raise FetchTimeoutError(
                    f"Navigation to {url} timed out after {self.navigation_timeout:g}s"
                ) from exc
            except PlaywrightError as exc:
                message = str(exc)
                if any(marker in message for marker in _TRANSIENT_NET_ERRORS):
                    raise TransientFetchError(message) from exc
                raise FetchError(f"Browser failed to load {url}: {message}") from exc
            finally:
                await browser.close()

        return RawPage(url=url, html=html)


# ---------------------------------------------------------------------------
# Static HTTP strategy
# ---------------------------------------------------------------------------

class HttpFetcher(ContentFetcher):
    """Fetch with ``httpx``; hand SPA shells over to *browser* when given."""

    def __init__(
        self,
        timeout: float = 30.0,
        browser: BrowserFetcher | None = None,
        retries: int = 1,
        retry_base_delay: float = 1.0,
    ) -> None:
        super().__init__(retries=retries, retry_base_delay=retry_base_delay)
        self.timeout = timeout
        self.browser = browser

    @property
    def name(self) -> str:
        return "http"

    async def _fetch_once(self, url: str) -> RawPage:
        try:
            async with httpx.AsyncClient(
                headers=_DEFAULT_HEADERS,
                timeout=self.timeout,
                follow_redirects=True,
            ) as client:
                response = await client.get(url)
        except httpx.TimeoutException as exc:
            raise FetchTimeoutError(f"GET {url} timed out after {self.timeout:g}s") from exc
        except httpx.TransportError as exc:
            raise TransientFetchError(f"GET {url} failed: {exc}") from exc

        if response.status_code >= 500:
            raise TransientFetchError(f"GET {url} returned {response.status_code}")
        if response.status_code >= 400:
            raise FetchError(f"GET {url} returned {response.status_code}")

        html = response.text
        if self.browser is not None and _is_spa(html):
            logger.info("SPA fingerprint detected for %s; rendering in browser", url)
            return await self.browser.fetch(url)

        return RawPage(url=url, html=html)


# ---------------------------------------------------------------------------
# Remote scraping-service strategy
# ---------------------------------------------------------------------------

class RemoteFetcher(ContentFetcher):
    """Delegate rendering to a Firecrawl-compatible ``/scrape`` endpoint."""

    def __init__(
        self,
        endpoint: str,
        api_key: str,
        timeout: float = 30.0,
        retries: int = 1,
        retry_base_delay: float = 1.0,
    ) -> None:
        if not api_key:
            raise ValueError(
                "REMOTE_SCRAPER_API_KEY is not set. "
                "Set it or switch to FETCH_STRATEGY=browser."
            )
        super().__init__(retries=retries, retry_base_delay=retry_base_delay)
        self.endpoint = endpoint
        self.api_key = api_key
        self.timeout = timeout

    @property
    def name(self) -> str:
        return "remote"

    async def _fetch_once(self, url: str) -> RawPage:
        payload = {
            "url": url,
            "formats": ["rawHtml"],
            "timeout": int(self.timeout * 1000),
        }
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }
        # Leave the service room to report its own timeout before ours fires.
        try:
            async with httpx.AsyncClient(timeout=self.timeout + 5) as client:
                response = await client.post(self.endpoint, json=payload, headers=headers)
        except httpx.TimeoutException as exc:
            raise FetchTimeoutError(f"Scraping service timed out for {url}") from exc
        except httpx.TransportError as exc:
            raise TransientFetchError(f"Scraping service unreachable: {exc}") from exc

        status = response.status_code
        if status == 408:
            raise FetchTimeoutError(f"Scraping service timed out for {url}")
        if status == 429 or status >= 500:
            raise TransientFetchError(f"Scraping service returned {status}")
        if status != 200:
            raise FetchError(f"Scraping service returned {status} for {url}")

        data = response.json()
        if not data.get("success"):
            raise FetchError(f"Scraping service reported failure for {url}")
        html = data.get("data", {}).get("rawHtml") or ""
        if not html:
            raise FetchError(f"Scraping service returned no HTML for {url}")

        return RawPage(url=url, html=html)


# ---------------------------------------------------------------------------
# Factory
# ---------------------------------------------------------------------------

def build_fetcher(config: Settings | None = None) -> ContentFetcher:
    """Return the fetcher selected by ``config.fetch_strategy``."""
    config = config or settings
    retry = {
        "retries": config.fetch_retries,
        "retry_base_delay": config.fetch_retry_base_delay,
    }
    strategy = config.fetch_strategy.lower()

    if strategy in ("browser", "http"):
        browser = BrowserFetcher(
            navigation_timeout=config.navigation_timeout,
            content_wait_timeout=config.content_wait_timeout,
            ws_endpoint=config.browser_ws_endpoint,
            **retry,
        )
        if strategy == "browser":
            return browser
        return HttpFetcher(timeout=config.request_timeout, browser=browser, **retry)

    if strategy == "remote":
        return RemoteFetcher(
            endpoint=config.remote_scraper_url,
            api_key=config.remote_scraper_api_key,
            timeout=config.request_timeout,
            **retry,
        )

    raise ValueError(
        f"Unknown FETCH_STRATEGY {config.fetch_strategy!r}; "
        "expected 'browser', 'http' or 'remote'."
    )
