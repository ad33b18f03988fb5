"""
Link rewriter for pointing saved documents at archived resources.

Rewriting is a literal substring substitution over the whole document,
not a DOM-aware pass: a resource URL is replaced wherever it appears,
attributes, inline scripts and text alike. A resource URL that happens to
be a substring of an unrelated token is replaced too. Links between pages
are left as their original absolute URLs.
"""

import os
from typing import Dict

from ..utils.log import get_logger
from ..utils.paths import get_relative_path


class LinkRewriter:
    """
    Replaces resource URLs in HTML with their local archived paths.
    """

    def __init__(self, output_dir: str):
        """
        Initialize the link rewriter.

        Args:
            output_dir: Mirror root directory
        """
        self.output_dir = output_dir
        self.logger = get_logger("rewriter")

    def rewrite(self, html: str, resource_map: Dict[str, str]) -> str:
        """
        Replace every occurrence of each mapped URL with its local path.

        Longer URLs are substituted first so that a URL which is a prefix
        of another mapped URL does not split it.

        Args:
            html: Document HTML
            resource_map: Resource URL -> local path

        Returns:
            Rewritten HTML
        """
        replaced = 0
        for url in sorted(resource_map, key=len, reverse=True):
            if not url:
                continue
            count = html.count(url)
            if count:
                html = html.replace(url, resource_map[url])
                replaced += count

        self.logger.debug(
            f"Rewrote {replaced} references to {len(resource_map)} resources"
        )
        return html

    def relative_map(
        self,
        resource_map: Dict[str, str],
        page_local_path: str
    ) -> Dict[str, str]:
        """
        Convert mirror-relative resource paths into page-relative paths.

        Args:
            resource_map: Resource URL -> path relative to the mirror root
            page_local_path: File path where the page will be saved

        Returns:
            Resource URL -> path relative to the page's directory
        """
        return {
            url: get_relative_path(
                page_local_path,
                os.path.join(self.output_dir, *path.split('/'))
            )
            for url, path in resource_map.items()
        }
