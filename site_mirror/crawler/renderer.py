"""
Page renderer using Playwright for JavaScript rendering.

Navigates to pages in a headless browser, streams every network
response observed during the load to a callback, and returns the
final DOM.
"""

import asyncio
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Dict, Iterable, List, Optional

from playwright.async_api import (
    async_playwright,
    Browser,
    BrowserContext,
    Page,
    Response,
    Error as PlaywrightError,
    TimeoutError as PlaywrightTimeout,
)

from . import extractor
from ..utils.constants import (
    BLOCK_SIGNATURES,
    DEFAULT_PAGE_TIMEOUT,
    DEFAULT_USER_AGENT,
    DEFAULT_WAIT_UNTIL,
)
from ..utils.log import get_logger


@dataclass
class ResourceResponse:
    """A network response observed while a page was loading."""

    url: str
    status: int
    headers: Dict[str, str] = field(default_factory=dict)
    body: bytes = b""

    @property
    def content_type(self) -> str:
        return self.headers.get('content-type', '')


@dataclass
class RenderResult:
    """Outcome of navigating to a page."""

    url: str
    final_url: Optional[str] = None
    status: Optional[int] = None
    html: Optional[str] = None

    @property
    def ok(self) -> bool:
        """True if a response arrived with a non-error status."""
        return (
            self.status is not None
            and self.status < 400
            and self.html is not None
        )


ResponseHandler = Callable[[ResourceResponse], Awaitable[None]]


class PageRenderer:
    """
    Renders web pages using a Playwright headless browser.

    One browser context is shared by every page of a run so cookies and
    the user agent apply to all navigations.
    """

    def __init__(
        self,
        timeout: int = DEFAULT_PAGE_TIMEOUT,
        wait_until: str = DEFAULT_WAIT_UNTIL,
        headless: bool = True,
        user_agent: Optional[str] = None,
        cookies: Optional[List[Dict]] = None,
        block_signatures: Iterable[str] = BLOCK_SIGNATURES
    ):
        """
        Initialize the page renderer.

        Args:
            timeout: Page load timeout in milliseconds
            wait_until: Event to wait for ('load', 'domcontentloaded', 'networkidle')
            headless: Run browser in headless mode
            user_agent: User agent for the browser context
            cookies: Playwright cookie dicts added to the context
            block_signatures: CSS selectors marking anti-bot pages
        """
        self.timeout = timeout
        self.wait_until = wait_until
        self.headless = headless
        self.user_agent = user_agent or DEFAULT_USER_AGENT
        self.cookies = cookies or []
        self.block_signatures = tuple(block_signatures)
        self.logger = get_logger("renderer")

        self._playwright = None
        self._browser: Optional[Browser] = None
        self._context: Optional[BrowserContext] = None

    async def start(self) -> None:
        """Start the browser and create the shared context."""
        self.logger.info("Starting Playwright browser...")
        self._playwright = await async_playwright().start()
        self._browser = await self._playwright.chromium.launch(
            headless=self.headless,
            args=[
                '--disable-blink-features=AutomationControlled',
                '--no-sandbox',
                '--disable-setuid-sandbox',
                '--disable-dev-shm-usage',
            ]
        )
        self._context = await self._browser.new_context(
            user_agent=self.user_agent,
            viewport={"width": 1920, "height": 1080},
            ignore_https_errors=True,
        )
        if self.cookies:
            await self._context.add_cookies(self.cookies)
            self.logger.info(f"Added {len(self.cookies)} cookies to browser context")
        self.logger.info("Browser started successfully")

    async def stop(self) -> None:
        """Stop the browser."""
        if self._context:
            await self._context.close()
            self._context = None
        if self._browser:
            await self._browser.close()
            self._browser = None
        if self._playwright:
            await self._playwright.stop()
            self._playwright = None
        self.logger.info("Browser stopped")

    async def render(
        self,
        url: str,
        on_response: Optional[ResponseHandler] = None
    ) -> RenderResult:
        """
        Navigate to a page and return its final HTML.

        Every response seen during navigation is passed to on_response;
        all of those callbacks have finished when this method returns.

        Args:
            url: URL to render
            on_response: Async callback for observed responses

        Returns:
            RenderResult; status is None when no response arrived
        """
        if not self._context:
            await self.start()

        page: Optional[Page] = None
        pending: List[asyncio.Task] = []

        def dispatch(response: Response) -> None:
            if on_response is not None:
                pending.append(
                    asyncio.ensure_future(self._forward(response, on_response))
                )

        try:
            page = await self._context.new_page()
            page.on("response", dispatch)

            self.logger.debug(f"Rendering: {url}")
            response = await page.goto(
                url,
                wait_until=self.wait_until,
                timeout=self.timeout
            )

            if not response:
                self.logger.warning(f"No response for {url}")
                return RenderResult(url=url)

            if response.status >= 400:
                self.logger.warning(f"HTTP {response.status} for {url}")
                return RenderResult(url=url, final_url=page.url, status=response.status)

            html_content = await page.content()
            final_url = page.url

            self.logger.debug(f"Successfully rendered: {final_url}")
            return RenderResult(
                url=url,
                final_url=final_url,
                status=response.status,
                html=html_content
            )

        except PlaywrightTimeout:
            self.logger.warning(f"Timeout rendering {url}")
            return RenderResult(url=url)
        except PlaywrightError as e:
            self.logger.warning(f"Error rendering {url}: {e}")
            return RenderResult(url=url)
        finally:
            if page:
                page.remove_listener("response", dispatch)
            await self._drain(pending)
            if page:
                await page.close()

    @staticmethod
    async def _drain(pending: List[asyncio.Task]) -> None:
        """Await dispatched callbacks, including any queued while waiting."""
        while pending:
            batch = list(pending)
            pending.clear()
            await asyncio.gather(*batch)

    async def _forward(
        self,
        response: Response,
        on_response: ResponseHandler
    ) -> None:
        """Read a response body and hand it to the callback."""
        try:
            body = await response.body()
        except PlaywrightError as e:
            # Redirects and aborted requests have no body
            self.logger.debug(f"No body for {response.url}: {e}")
            return

        await on_response(ResourceResponse(
            url=response.url,
            status=response.status,
            headers=dict(response.headers),
            body=body,
        ))

    def extract_links(self, html: str, page_url: str) -> List[str]:
        """Extract outbound links from rendered HTML."""
        return extractor.extract_links(html, page_url)

    def detect_block(self, html: str) -> Optional[str]:
        """Return the matching block signature, if any."""
        return extractor.detect_block(html, self.block_signatures)

    async def __aenter__(self):
        """Async context manager entry."""
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        await self.stop()
