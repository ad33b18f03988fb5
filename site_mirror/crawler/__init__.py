"""
Crawler module for site mirroring.

Contains components for scoping, rendering, archiving, rewriting, and
orchestrating the crawl.
"""

from .crawler import MirrorCrawler, CrawlTarget, CrawlResult, PageDocument
from .renderer import PageRenderer, RenderResult, ResourceResponse
from .archiver import ResourceArchiver, ResourceRecord
from .rewrite import LinkRewriter
from .scope import ScopePolicy

__all__ = [
    "MirrorCrawler",
    "CrawlTarget",
    "CrawlResult",
    "PageDocument",
    "PageRenderer",
    "RenderResult",
    "ResourceResponse",
    "ResourceArchiver",
    "ResourceRecord",
    "LinkRewriter",
    "ScopePolicy",
]
