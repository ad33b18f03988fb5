from typing import Dict, List, Optional

import pytest

from site_mirror.crawler import MirrorCrawler, RenderResult, ResourceResponse
from site_mirror.crawler.extractor import detect_block, extract_links


class StubRenderer:
    """
    In-memory renderer.

    Serves HTML from a dict, replays canned resource responses and
    returns queued failure results before the real page.
    """

    def __init__(
        self,
        pages: Dict[str, str],
        resources: Optional[Dict[str, List[ResourceResponse]]] = None,
        failures: Optional[Dict[str, List[RenderResult]]] = None
    ):
        self.pages = pages
        self.resources = resources or {}
        self.failures = {url: list(results) for url, results in (failures or {}).items()}
        self.rendered: List[str] = []
        self.started = False
        self.stopped = False

    async def start(self) -> None:
        self.started = True

    async def stop(self) -> None:
        self.stopped = True

    async def render(self, url, on_response=None) -> RenderResult:
        self.rendered.append(url)

        queued = self.failures.get(url)
        if queued:
            return queued.pop(0)

        for response in self.resources.get(url, []):
            if on_response is not None:
                await on_response(response)

        html = self.pages.get(url, "<html><body>empty</body></html>")
        return RenderResult(url=url, final_url=url, status=200, html=html)

    def extract_links(self, html, page_url):
        return extract_links(html, page_url)

    def detect_block(self, html):
        return detect_block(html)


class SleepRecorder:
    """Stands in for asyncio.sleep and records every requested delay."""

    def __init__(self):
        self.calls: List[float] = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


def page(*hrefs: str, body: str = "") -> str:
    """Build a small HTML page linking to the given hrefs."""
    anchors = "".join(f'<a href="{href}">link</a>' for href in hrefs)
    return f"<html><head></head><body>{body}{anchors}</body></html>"


@pytest.fixture()
def sleep_recorder() -> SleepRecorder:
    return SleepRecorder()


@pytest.fixture()
def make_crawler(tmp_path, sleep_recorder):
    """Factory building a MirrorCrawler around a StubRenderer."""

    def factory(seed: str, renderer: StubRenderer, **kwargs) -> MirrorCrawler:
        options = {
            'max_depth': 5,
            'wait': 1.0,
            'random_wait': False,
            'retry_delay': 10.0,
        }
        options.update(kwargs)
        return MirrorCrawler(
            url=seed,
            output_dir=str(tmp_path / "out"),
            renderer=renderer,
            sleep=sleep_recorder,
            **options
        )

    return factory
