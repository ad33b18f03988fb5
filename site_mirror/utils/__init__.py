"""
Utility modules for the site mirror.

Contains logging, URL and path handling, cookie loading, and constants.
"""

from .log import setup_logger, get_logger
from .paths import normalize_url, url_to_page_path, ensure_dir
from .cookies import load_cookie_file
from .constants import (
    DEFAULT_USER_AGENT,
    DEFAULT_PAGE_TIMEOUT,
    DEFAULT_WAIT,
    DEFAULT_RETRY_DELAY,
    DEFAULT_MAX_RETRIES,
    DEFAULT_MAX_DEPTH,
    DEFAULT_OUTPUT_DIR,
)

__all__ = [
    "setup_logger",
    "get_logger",
    "normalize_url",
    "url_to_page_path",
    "ensure_dir",
    "load_cookie_file",
    "DEFAULT_USER_AGENT",
    "DEFAULT_PAGE_TIMEOUT",
    "DEFAULT_WAIT",
    "DEFAULT_RETRY_DELAY",
    "DEFAULT_MAX_RETRIES",
    "DEFAULT_MAX_DEPTH",
    "DEFAULT_OUTPUT_DIR",
]
