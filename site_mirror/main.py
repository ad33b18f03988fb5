#!/usr/bin/env python3
"""
Site Mirror - save a website for offline browsing.

This tool renders pages with Playwright, archives every resource the
browser loads, rewrites the saved pages to use the archived copies, and
follows links depth-first under a no-parent scope.

Usage:
    mirror https://example.com/docs/ --output=./mirror --depth=3 --wait=2

Features:
    - Renders JavaScript pages with Playwright
    - Archives CSS, JS, images, fonts and other responses by URL hash
    - Randomized politeness delay between pages
    - Retries blocked (captcha/challenge) and failed pages
    - Netscape cookies.txt support
"""

import argparse
import asyncio
import logging
import os
import sys
import traceback
from typing import List, Optional
from urllib.parse import urlparse

from site_mirror.crawler import MirrorCrawler
from site_mirror.utils.constants import (
    DEFAULT_MAX_DEPTH,
    DEFAULT_MAX_RETRIES,
    DEFAULT_OUTPUT_DIR,
    DEFAULT_PAGE_TIMEOUT,
    DEFAULT_RETRY_DELAY,
    DEFAULT_USER_AGENT,
    DEFAULT_WAIT,
)
from site_mirror.utils.cookies import load_cookie_file
from site_mirror.utils.paths import NAVIGABLE_SCHEMES, is_valid_host
from site_mirror.utils.log import (
    setup_logger,
    print_status,
    print_success,
    print_error,
    print_info
)


TRUE_VALUES = ('true', 'yes', 'on', '1')
FALSE_VALUES = ('false', 'no', 'off', '0')


def str_to_bool(value: str) -> bool:
    """
    Parse a boolean command line value.

    Raises:
        argparse.ArgumentTypeError: If the value is not a recognised boolean
    """
    lowered = value.strip().lower()
    if lowered in TRUE_VALUES:
        return True
    if lowered in FALSE_VALUES:
        return False
    raise argparse.ArgumentTypeError(f"expected a boolean, got {value!r}")


def parse_arguments(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """
    Parse command line arguments.

    Args:
        argv: Argument list (defaults to sys.argv)

    Returns:
        Parsed arguments namespace
    """
    parser = argparse.ArgumentParser(
        prog='mirror',
        description='Mirror a website to local disk for offline browsing',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    %(prog)s https://example.com/ --output=./site
    %(prog)s https://example.com/docs/ --depth=2 --wait=3 --randomWait=false
    %(prog)s https://example.com/ --cookies=cookies.txt --max-retries=5
        """
    )

    parser.add_argument(
        'url',
        help='URL to start mirroring from (e.g., https://example.com/docs/)'
    )

    parser.add_argument(
        '--output', '-o',
        default=DEFAULT_OUTPUT_DIR,
        help=f'Output directory (default: {DEFAULT_OUTPUT_DIR})'
    )

    parser.add_argument(
        '--depth', '-d',
        type=int,
        default=DEFAULT_MAX_DEPTH,
        help=f'Maximum link depth from the start page (default: {DEFAULT_MAX_DEPTH})'
    )

    parser.add_argument(
        '--wait', '-w',
        type=float,
        default=DEFAULT_WAIT,
        help=f'Delay between pages in seconds (default: {DEFAULT_WAIT})'
    )

    parser.add_argument(
        '--randomWait', '--random-wait',
        dest='random_wait',
        type=str_to_bool,
        default=True,
        help='Vary each delay between 0.5x and 1.5x of --wait (default: true)'
    )

    parser.add_argument(
        '--cookies',
        default=None,
        help='Netscape cookies.txt file to load into the browser'
    )

    parser.add_argument(
        '--userAgent', '--user-agent',
        dest='user_agent',
        default=DEFAULT_USER_AGENT,
        help='Browser user agent string'
    )

    parser.add_argument(
        '--timeout',
        type=int,
        default=DEFAULT_PAGE_TIMEOUT,
        help=f'Page load timeout in milliseconds (default: {DEFAULT_PAGE_TIMEOUT})'
    )

    parser.add_argument(
        '--retry-delay',
        type=float,
        default=DEFAULT_RETRY_DELAY,
        help=f'Pause before retrying a blocked or failed page (default: {DEFAULT_RETRY_DELAY})'
    )

    parser.add_argument(
        '--max-retries',
        type=int,
        default=DEFAULT_MAX_RETRIES,
        help='Retries per page before giving up (default: retry forever)'
    )

    parser.add_argument(
        '--no-headless',
        action='store_true',
        help='Run browser in visible mode (useful for debugging)'
    )

    parser.add_argument(
        '--verbose', '-v',
        action='store_true',
        help='Enable verbose logging'
    )

    parser.add_argument(
        '--quiet', '-q',
        action='store_true',
        help='Suppress output except errors'
    )

    return parser.parse_args(argv)


def validate_url(url: str) -> str:
    """
    Validate the start URL, adding https:// when no scheme is given.

    Args:
        url: URL string to validate

    Returns:
        URL string with a scheme

    Raises:
        ValueError: If URL is invalid
    """
    url = url.strip()
    if '://' not in url:
        url = 'https://' + url

    try:
        parsed = urlparse(url)
        hostname = parsed.hostname
    except ValueError as e:
        raise ValueError(f"Invalid URL: {url} ({e})")

    if parsed.scheme.lower() not in NAVIGABLE_SCHEMES:
        raise ValueError(f"Unsupported scheme '{parsed.scheme}' in {url}")

    if not is_valid_host(hostname or ''):
        raise ValueError(f"Invalid URL: {url}")

    return url


def print_summary(result) -> None:
    """
    Print the crawl summary.

    Args:
        result: CrawlResult object
    """
    print_status("=" * 60, "bold")
    print_success("MIRROR SUMMARY")
    print_status(f"  Pages saved:        {result.pages_saved}", "white")
    print_status(f"  Resources archived: {result.resources_archived}", "white")
    print_status(f"  Retries:            {result.retries}", "white")
    print_status(f"  Abandoned pages:    {len(result.failed)}", "white")
    print_status(f"  Errors:             {len(result.errors)}", "white")
    print_status(f"  Duration:           {result.duration_seconds:.1f} seconds", "white")
    print_status("=" * 60, "bold")


async def main(argv: Optional[List[str]] = None) -> int:
    """
    Main entry point for the site mirror.

    Returns:
        Exit code (0 for success, 1 for error)
    """
    args = parse_arguments(argv)

    log_level = logging.DEBUG if args.verbose else (logging.WARNING if args.quiet else logging.INFO)
    setup_logger(level=log_level)

    try:
        url = validate_url(args.url)
        cookies = load_cookie_file(args.cookies) if args.cookies else None
    except ValueError as e:
        print_error(f"Invalid input: {e}")
        return 1
    except OSError as e:
        print_error(f"Cannot read cookie file: {e}")
        return 1

    if not args.quiet:
        print_info(f"Target URL: {url}")
        print_info(f"Output: {args.output}")

    try:
        crawler = MirrorCrawler(
            url=url,
            output_dir=args.output,
            max_depth=args.depth,
            wait=args.wait,
            random_wait=args.random_wait,
            retry_delay=args.retry_delay,
            max_retries=args.max_retries,
            timeout=args.timeout,
            user_agent=args.user_agent,
            cookies=cookies,
            headless=not args.no_headless
        )

        result = await crawler.crawl()

        if not args.quiet:
            print_summary(result)

        print_success(f"Website mirrored to: {os.path.abspath(args.output)}")

        return 0

    except KeyboardInterrupt:
        print_error("Mirror interrupted by user")
        return 1
    except Exception as e:
        print_error(f"Error: {e}")
        if args.verbose:
            traceback.print_exc()
        return 1


def run() -> None:
    """Entry point wrapper for console scripts."""
    sys.exit(asyncio.run(main()))


if __name__ == '__main__':
    run()
