"""
Scope and dedup policy for discovered links.

Decides whether a link found on a page is eligible to be crawled.
"""

import posixpath
from typing import Set
from urllib.parse import urlparse, urldefrag

from ..utils.log import get_logger
from ..utils.paths import normalize_url, get_hostname


class ScopePolicy:
    """
    Filters candidate links by validity, dedup and the no-parent rule.

    The visited set is owned by the crawler and shared by reference;
    the policy only ever adds to it.
    """

    def __init__(self, visited: Set[str]):
        """
        Initialize the scope policy.

        Args:
            visited: Set of normalized URLs already enqueued or completed
        """
        self.visited = visited
        self.logger = get_logger("scope")

    def mark_visited(self, url: str) -> str:
        """
        Record a URL as visited without applying any rule.

        Args:
            url: URL to record

        Returns:
            The normalized URL that was recorded
        """
        normalized = normalize_url(url) or url
        self.visited.add(normalized)
        return normalized

    def is_visited(self, url: str) -> bool:
        """Check whether a URL is already enqueued or completed."""
        return (normalize_url(url) or url) in self.visited

    def accept(self, candidate_url: str, origin_url: str) -> bool:
        """
        Decide whether a candidate link should be crawled.

        An accepted candidate is recorded in the visited set, so any
        later candidate equal to it is rejected.

        Args:
            candidate_url: Absolute URL found on the origin page
            origin_url: URL of the page the candidate was discovered on

        Returns:
            True if the candidate should be enqueued
        """
        normalized = normalize_url(candidate_url)
        if not normalized:
            return False

        if self._is_fragment_anchor(candidate_url, origin_url):
            return False

        if normalized in self.visited:
            return False

        if not self._within_origin_subtree(normalized, origin_url):
            self.logger.debug(f"Out of scope (no-parent): {normalized}")
            return False

        self.visited.add(normalized)
        return True

    @staticmethod
    def _is_fragment_anchor(candidate_url: str, origin_url: str) -> bool:
        """Check whether the candidate only points into the origin page."""
        url, fragment = urldefrag(candidate_url.strip())
        if not fragment:
            return False
        return normalize_url(url) == normalize_url(origin_url)

    @staticmethod
    def _within_origin_subtree(url: str, origin_url: str) -> bool:
        """
        Apply the no-parent rule.

        Links to other hosts are always in scope. On the origin's host
        the candidate path must live under the origin page's directory.
        A last segment without an extension ('/docs') counts as a
        directory; a file-like one ('/docs/page.html') scopes to its parent.
        """
        if get_hostname(url) != get_hostname(origin_url):
            return True

        origin_path = urlparse(origin_url).path or '/'
        if origin_path.endswith('/'):
            origin_dir = origin_path
        elif '.' not in posixpath.basename(origin_path):
            origin_dir = origin_path + '/'
        else:
            origin_dir = posixpath.dirname(origin_path)
            if not origin_dir.endswith('/'):
                origin_dir += '/'

        candidate_path = urlparse(url).path or '/'
        return (
            candidate_path.startswith(origin_dir)
            or candidate_path + '/' == origin_dir
        )
