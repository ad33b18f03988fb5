"""
Path and URL utilities for the site mirror.

Provides URL normalization, on-disk path generation, and directory management.
"""

import hashlib
import ipaddress
import mimetypes
import os
import re
from typing import Optional
from urllib.parse import urlparse, urlunparse, urljoin, unquote


# Pseudo-URLs that can never be navigated to
NON_NAVIGABLE_PREFIXES = ('javascript:', 'mailto:', 'tel:', 'data:', 'about:', 'blob:')

NAVIGABLE_SCHEMES = ('http', 'https')

UNSAFE_FILENAME_CHARS = re.compile(r'[<>:"|?*\\]')

HOST_LABEL = re.compile(r'^(?!-)[a-z0-9_-]{1,63}(?<!-)$')


def normalize_url(url: str, base_url: Optional[str] = None) -> str:
    """
    Normalize a URL by resolving relative paths and removing fragments.

    Scheme and host are lower-cased and an empty path becomes '/'.
    The query string is kept.

    Args:
        url: URL to normalize
        base_url: Base URL for resolving relative URLs

    Returns:
        Normalized URL string, or "" if the URL is not a navigable
        absolute http(s) URL
    """
    if not url:
        return ""

    url = url.strip()
    if not url or url.lower().startswith(NON_NAVIGABLE_PREFIXES):
        return ""

    try:
        if base_url:
            url = urljoin(base_url, url)
        parsed = urlparse(url)
    except ValueError:
        # e.g. unbalanced brackets in an IPv6 host
        return ""

    if parsed.scheme.lower() not in NAVIGABLE_SCHEMES or not parsed.netloc:
        return ""

    if not is_valid_host(get_hostname(url)):
        return ""

    return urlunparse((
        parsed.scheme.lower(),
        parsed.netloc.lower(),
        parsed.path or '/',
        parsed.params,
        parsed.query,
        ''  # Remove fragment
    ))


def is_valid_host(hostname: str) -> bool:
    """
    Check that a hostname is a DNS name or an IP address.

    Args:
        hostname: Lower-cased hostname without port

    Returns:
        True if the hostname is well formed
    """
    if not hostname:
        return False

    try:
        ipaddress.ip_address(hostname)
        return True
    except ValueError:
        pass

    labels = hostname.rstrip('.').split('.')
    if len(hostname) > 253 or not all(HOST_LABEL.match(label) for label in labels):
        return False
    return True


def get_hostname(url: str) -> str:
    """
    Extract the hostname (without port or credentials) from a URL.

    Args:
        url: URL to extract hostname from

    Returns:
        Lower-cased hostname, or "" if there is none
    """
    try:
        return urlparse(url).hostname or ""
    except ValueError:
        return ""


def url_to_page_path(url: str, output_dir: str) -> str:
    """
    Convert a page URL to the local file path of its saved document.

    Layout is <output>/<hostname>/<url-path>, with 'index.html' for
    directory URLs and '.html' appended when the last segment is not
    already an HTML file. A query string is folded into the filename
    as a short hash so that ?page=1 and ?page=2 do not collide.

    Args:
        url: Page URL
        output_dir: Base output directory

    Returns:
        Local file path
    """
    parsed = urlparse(url)
    hostname = parsed.hostname or 'unknown-host'

    path = unquote(parsed.path)
    if not path or path.endswith('/'):
        path += 'index.html'

    segments = [
        UNSAFE_FILENAME_CHARS.sub('_', segment)
        for segment in path.split('/')
        if segment not in ('', '.', '..')
    ]
    if not segments:
        segments = ['index.html']

    filename = segments[-1]
    if not filename.lower().endswith(('.html', '.htm')):
        filename = f"{filename}.html"

    if parsed.query:
        stem, ext = os.path.splitext(filename)
        query_hash = hashlib.sha1(parsed.query.encode('utf-8')).hexdigest()[:8]
        filename = f"{stem}__q_{query_hash}{ext}"

    segments[-1] = filename
    return os.path.join(output_dir, hostname, *segments)


def guess_extension(url: str, content_type: Optional[str]) -> str:
    """
    Pick a file extension for an archived resource.

    The URL path's own extension wins; otherwise one is inferred from
    the content type.

    Args:
        url: Resource URL
        content_type: Content-Type header value (may carry parameters)

    Returns:
        Extension including the leading dot, or "" if none is known
    """
    filename = os.path.basename(unquote(urlparse(url).path))
    ext = os.path.splitext(filename)[1]
    if ext and not UNSAFE_FILENAME_CHARS.search(ext):
        return ext.lower()

    if content_type:
        mime = content_type.split(';', 1)[0].strip().lower()
        guessed = mimetypes.guess_extension(mime)
        if guessed:
            return guessed

    return ''


def ensure_dir(path: str) -> None:
    """
    Ensure a directory exists, creating it if necessary.

    Args:
        path: Directory path to ensure exists
    """
    os.makedirs(path, exist_ok=True)


def ensure_parent_dir(file_path: str) -> None:
    """
    Ensure the parent directory of a file exists.

    Args:
        file_path: File path whose parent directory should exist
    """
    parent = os.path.dirname(file_path)
    if parent:
        ensure_dir(parent)


def get_relative_path(from_path: str, to_path: str) -> str:
    """
    Calculate the relative path from one file to another.

    Args:
        from_path: Source file path
        to_path: Target file path

    Returns:
        Relative path string
    """
    from_dir = os.path.dirname(from_path)
    rel_path = os.path.relpath(to_path, from_dir)
    # Use forward slashes for URLs
    return rel_path.replace('\\', '/')
