"""
Site Mirror - render a website with a headless browser and save it to disk.

This package crawls a site depth-first, archives every resource the
browser loads, and rewrites saved pages to use the archived copies.
"""

__version__ = "1.0.0"
__author__ = "Site Mirror Team"
