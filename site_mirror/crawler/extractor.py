"""
Link extractor and block-signature detector.

Uses BeautifulSoup for HTML parsing to find outbound links and
anti-bot interstitial markers in rendered pages.
"""

from typing import Iterable, List, Optional
from urllib.parse import urljoin

from bs4 import BeautifulSoup, FeatureNotFound

from ..utils.constants import BLOCK_SIGNATURES
from ..utils.log import get_logger
from ..utils.paths import NON_NAVIGABLE_PREFIXES


logger = get_logger("extractor")


def parse_html(html: str) -> BeautifulSoup:
    """Parse HTML with lxml, falling back to the builtin parser."""
    try:
        return BeautifulSoup(html, 'lxml')
    except FeatureNotFound:
        return BeautifulSoup(html, 'html.parser')


def extract_links(html: str, page_url: str) -> List[str]:
    """
    Extract outbound links from a document.

    Hrefs are resolved against the page URL. Fragments are kept so the
    scope policy can recognise same-page anchors. Hrefs that cannot be
    parsed are dropped silently.

    Args:
        html: Rendered HTML
        page_url: URL of the page (for resolving relative URLs)

    Returns:
        Absolute URLs in document order, without duplicates
    """
    soup = parse_html(html)

    links: List[str] = []
    seen = set()

    for element in soup.find_all(['a', 'area'], href=True):
        href = element.get('href', '').strip()

        if not href or href.lower().startswith(NON_NAVIGABLE_PREFIXES):
            continue

        try:
            full_url = urljoin(page_url, href)
        except ValueError:
            continue

        if full_url not in seen:
            seen.add(full_url)
            links.append(full_url)

    logger.debug(f"Extracted {len(links)} links from {page_url}")
    return links


def detect_block(
    html: str,
    signatures: Iterable[str] = BLOCK_SIGNATURES
) -> Optional[str]:
    """
    Check a rendered document for an anti-bot interstitial.

    Args:
        html: Rendered HTML
        signatures: CSS selectors identifying block pages

    Returns:
        The first matching signature, or None if the page looks genuine
    """
    soup = parse_html(html)

    for selector in signatures:
        if soup.select_one(selector) is not None:
            return selector

    return None
