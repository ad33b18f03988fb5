"""
Main site mirror crawler module.

Drives the recursive traversal: renders pages, archives the resources
they load, rewrites and saves documents, and schedules discovered links
depth-first with randomized politeness delays and retry on blocked or
failed pages.
"""

import asyncio
import json
import os
import random
import time
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Optional, Set

from .archiver import ResourceArchiver
from .renderer import PageRenderer, RenderResult, ResourceResponse
from .rewrite import LinkRewriter
from .scope import ScopePolicy
from ..utils.constants import (
    DEFAULT_MAX_DEPTH,
    DEFAULT_MAX_RETRIES,
    DEFAULT_PAGE_TIMEOUT,
    DEFAULT_RETRY_DELAY,
    DEFAULT_WAIT,
)
from ..utils.log import get_logger, print_info, print_success
from ..utils.paths import ensure_dir, ensure_parent_dir, normalize_url, url_to_page_path


@dataclass(frozen=True)
class CrawlTarget:
    """A page scheduled for crawling."""

    url: str
    depth: int


@dataclass
class PageDocument:
    """A rendered page on its way to disk."""

    url: str
    raw_html: str
    local_path: str
    rewritten_html: str = ""
    outbound_links: List[str] = field(default_factory=list)
    resource_map: Dict[str, str] = field(default_factory=dict)


@dataclass
class CrawlResult:
    """Results of the crawling operation."""

    pages_saved: int = 0
    resources_archived: int = 0
    retries: int = 0
    pages: List[str] = field(default_factory=list)
    failed: List[str] = field(default_factory=list)
    errors: List[Dict] = field(default_factory=list)
    duration_seconds: float = 0.0


class RetriesExhausted(Exception):
    """Raised internally when a target runs out of render attempts."""


class MirrorCrawler:
    """
    Main site mirror class.

    Owns the visited set and the archived-resource set and hands them to
    the scope policy and the archiver. Processes one page at a time.
    """

    def __init__(
        self,
        url: str,
        output_dir: str,
        max_depth: int = DEFAULT_MAX_DEPTH,
        wait: float = DEFAULT_WAIT,
        random_wait: bool = True,
        retry_delay: float = DEFAULT_RETRY_DELAY,
        max_retries: Optional[int] = DEFAULT_MAX_RETRIES,
        timeout: int = DEFAULT_PAGE_TIMEOUT,
        user_agent: Optional[str] = None,
        cookies: Optional[List[Dict]] = None,
        headless: bool = True,
        renderer: Any = None,
        rng: Optional[random.Random] = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep
    ):
        """
        Initialize the crawler.

        Args:
            url: Seed URL
            output_dir: Mirror root directory
            max_depth: Deepest link level rendered (seed is depth 0)
            wait: Base politeness delay between pages in seconds
            random_wait: Scale each delay by a random factor in [0.5, 1.5]
            retry_delay: Pause before re-rendering a blocked or failed page
            max_retries: Retries per page before giving up; None retries forever
            timeout: Page load timeout in milliseconds
            user_agent: Browser user agent
            cookies: Playwright cookie dicts for the browser context
            headless: Run the browser headless
            renderer: Object implementing the renderer interface; a
                PageRenderer is created when omitted
            rng: Random generator for link shuffling and delays
            sleep: Coroutine function used for all delays
        """
        self.start_url = normalize_url(url)
        if not self.start_url:
            raise ValueError(f"Invalid URL: {url}")

        self.output_dir = os.path.abspath(output_dir)
        self.max_depth = max_depth
        self.wait = wait
        self.random_wait = random_wait
        self.retry_delay = retry_delay
        self.max_retries = max_retries

        self.logger = get_logger("crawler")
        self._rng = rng or random.Random()
        self._sleep = sleep

        self.renderer = renderer or PageRenderer(
            timeout=timeout,
            headless=headless,
            user_agent=user_agent,
            cookies=cookies
        )

        # Run-wide state, shared by reference with the components
        self._visited: Set[str] = set()
        self._archived: Set[str] = set()

        self.scope = ScopePolicy(self._visited)
        self.archiver = ResourceArchiver(self.output_dir, self._archived)
        self.rewriter = LinkRewriter(self.output_dir)

        self._saved_pages: List[str] = []
        self._failed: List[str] = []
        self._errors: List[Dict] = []
        self._retries = 0

    @property
    def visited(self) -> Set[str]:
        return self._visited

    async def crawl(self) -> CrawlResult:
        """
        Mirror the site starting at the seed URL.

        Returns:
            CrawlResult with statistics
        """
        start_time = time.time()

        print_info(f"Starting mirror of {self.start_url}")
        print_info(f"Output directory: {self.output_dir}")
        print_info(f"Max depth: {self.max_depth}, wait: {self.wait}s")

        ensure_dir(self.output_dir)

        try:
            await self.renderer.start()
            await self._crawl_pages()
        finally:
            await self.renderer.stop()

        self._generate_sitemap()
        self._generate_error_log()

        duration = time.time() - start_time

        result = CrawlResult(
            pages_saved=len(self._saved_pages),
            resources_archived=len(self.archiver.records),
            retries=self._retries,
            pages=list(self._saved_pages),
            failed=list(self._failed),
            errors=list(self._errors),
            duration_seconds=duration
        )

        print_success(
            f"Mirror complete! {result.pages_saved} pages, "
            f"{result.resources_archived} resources in {duration:.1f}s"
        )

        return result

    async def _crawl_pages(self) -> None:
        """Depth-first traversal over an explicit stack."""
        stack: List[CrawlTarget] = [CrawlTarget(self.start_url, 0)]
        self.scope.mark_visited(self.start_url)
        first = True

        while stack:
            target = stack.pop()

            if target.depth > self.max_depth:
                self.logger.debug(f"Depth {target.depth} exceeds limit: {target.url}")
                continue

            self.scope.mark_visited(target.url)

            if not first:
                await self._politeness_delay()
            first = False

            try:
                children = await self._crawl_page(target)
            except RetriesExhausted as e:
                self.logger.error(f"Giving up on {target.url}: {e}")
                self._failed.append(target.url)
                self._errors.append({
                    'url': target.url,
                    'error': str(e),
                    'type': 'retries_exhausted'
                })
                continue

            # Reversed so the first shuffled link is popped next
            for link in reversed(children):
                stack.append(CrawlTarget(link, target.depth + 1))

        self.logger.info(f"Saved {len(self._saved_pages)} pages")

    async def _politeness_delay(self) -> None:
        """Sleep before the next page render."""
        delay = self.wait
        if self.random_wait:
            delay *= self._rng.uniform(0.5, 1.5)
        if delay > 0:
            self.logger.debug(f"Waiting {delay:.2f}s")
            await self._sleep(delay)

    async def _crawl_page(self, target: CrawlTarget) -> List[str]:
        """
        Render a page until it loads unblocked, then save it.

        Args:
            target: Page to crawl

        Returns:
            Accepted child links in visiting order

        Raises:
            RetriesExhausted: If max_retries is set and every attempt failed
        """
        attempt = 0

        while True:
            self.logger.info(f"[depth {target.depth}] Crawling: {target.url}")

            resource_map: Dict[str, str] = {}
            result = await self.renderer.render(
                target.url,
                self._response_handler(resource_map)
            )

            problem = self._check_result(result)
            if problem is None:
                return self._save_page(result, resource_map)

            if self.max_retries is not None and attempt >= self.max_retries:
                raise RetriesExhausted(f"{problem} after {attempt + 1} attempts")

            attempt += 1
            self._retries += 1
            self.logger.warning(
                f"{problem} for {target.url}; retry {attempt} in {self.retry_delay}s"
            )
            await self._sleep(self.retry_delay)

    def _check_result(self, result: RenderResult) -> Optional[str]:
        """Describe why a render must be retried, or None if it succeeded."""
        if not result.ok:
            if result.status is None:
                return "Load failed (no response)"
            return f"Load failed (HTTP {result.status})"

        signature = self.renderer.detect_block(result.html)
        if signature:
            return f"Blocked ({signature})"

        return None

    def _response_handler(
        self,
        resource_map: Dict[str, str]
    ) -> Callable[[ResourceResponse], Awaitable[None]]:
        """Build the callback that archives responses for one render."""

        async def on_response(response: ResourceResponse) -> None:
            if not 200 <= response.status < 300:
                return

            try:
                path = self.archiver.archive(
                    response.url,
                    response.body,
                    response.content_type
                )
            except OSError as e:
                self.logger.error(f"Error archiving {response.url}: {e}")
                self._errors.append({
                    'url': response.url,
                    'error': str(e),
                    'type': 'archive_error'
                })
                return

            # Stored while rendering an earlier page
            if path is None:
                path = self.archiver.local_path(response.url)

            if path:
                resource_map[response.url] = path

        return on_response

    def _save_page(self, result: RenderResult, resource_map: Dict[str, str]) -> List[str]:
        """
        Rewrite and save a rendered page and select its children.

        Args:
            result: Successful render
            resource_map: Resources observed while rendering

        Returns:
            Accepted child links in visiting order
        """
        page_url = result.final_url or result.url
        if page_url != result.url:
            self.scope.mark_visited(page_url)

        links = self.renderer.extract_links(result.html, page_url)
        self._rng.shuffle(links)
        accepted = [link for link in links if self.scope.accept(link, page_url)]

        document = PageDocument(
            url=page_url,
            raw_html=result.html,
            local_path=url_to_page_path(page_url, self.output_dir),
            outbound_links=accepted,
            resource_map=resource_map
        )
        document.rewritten_html = self.rewriter.rewrite(
            document.raw_html,
            self.rewriter.relative_map(document.resource_map, document.local_path)
        )

        try:
            ensure_parent_dir(document.local_path)
            with open(document.local_path, 'w', encoding='utf-8') as f:
                f.write(document.rewritten_html)
        except OSError as e:
            self.logger.error(f"Error saving page {page_url}: {e}")
            self._errors.append({
                'url': page_url,
                'error': str(e),
                'type': 'save_error'
            })
        else:
            self._saved_pages.append(page_url)
            self.logger.debug(f"Saved page: {page_url} -> {document.local_path}")

        self.logger.info(
            f"{len(accepted)} of {len(links)} links accepted, "
            f"{len(resource_map)} resources mapped on {page_url}"
        )

        return [normalize_url(link) for link in document.outbound_links]

    def _generate_sitemap(self) -> None:
        """Generate sitemap.json file."""
        sitemap_path = os.path.join(self.output_dir, 'sitemap.json')

        records = self.archiver.records
        sitemap_data = {
            'base_url': self.start_url,
            'total_pages': len(self._saved_pages),
            'total_resources': len(records),
            'pages': sorted(self._saved_pages),
            'resources': {
                url: record.local_path
                for url, record in sorted(records.items())
            }
        }

        with open(sitemap_path, 'w', encoding='utf-8') as f:
            json.dump(sitemap_data, f, indent=2, ensure_ascii=False)

        self.logger.info(f"Generated sitemap: {sitemap_path}")

    def _generate_error_log(self) -> None:
        """Generate errors.json file if there are errors."""
        if not self._errors:
            return

        errors_path = os.path.join(self.output_dir, 'errors.json')

        with open(errors_path, 'w', encoding='utf-8') as f:
            json.dump(self._errors, f, indent=2, ensure_ascii=False)

        self.logger.info(f"Generated error log: {errors_path}")
