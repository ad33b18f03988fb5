"""
Resource archiver for persisting responses observed during page loads.

Stores every non-document response once per URL under a
content-addressed path derived from a hash of the URL.
"""

import hashlib
import os
from dataclasses import dataclass
from typing import Dict, Optional, Set

from ..utils.constants import DOCUMENT_CONTENT_TYPES, RESOURCES_DIR
from ..utils.log import get_logger
from ..utils.paths import ensure_parent_dir, guess_extension


@dataclass(frozen=True)
class ResourceRecord:
    """A resource stored in the mirror."""

    source_url: str
    content_hash: str
    local_path: str  # relative to the mirror root
    content_type: str = ""


def is_document(content_type: Optional[str]) -> bool:
    """Check whether a content type denotes a navigable HTML document."""
    if not content_type:
        return False
    mime = content_type.split(';', 1)[0].strip().lower()
    return mime in DOCUMENT_CONTENT_TYPES


def hash_url(url: str) -> str:
    """Hex digest identifying a resource by its URL."""
    return hashlib.sha256(url.encode('utf-8')).hexdigest()


def resource_path_for(url: str, content_type: Optional[str] = None) -> str:
    """
    Derive the mirror-relative storage path of a resource.

    Args:
        url: Resource URL
        content_type: Content-Type used when the URL has no extension

    Returns:
        Path of the form resources/<hash[0:2]>/<hash><ext>
    """
    url_hash = hash_url(url)
    ext = guess_extension(url, content_type)
    return f"{RESOURCES_DIR}/{url_hash[:2]}/{url_hash}{ext}"


class ResourceArchiver:
    """
    Writes resource bodies to disk, at most once per URL per run.

    The archived-URL set is owned by the crawler and shared by reference.
    """

    def __init__(self, output_dir: str, archived: Optional[Set[str]] = None):
        """
        Initialize the resource archiver.

        Args:
            output_dir: Mirror root directory
            archived: Set of resource URLs already handled in this run
        """
        self.output_dir = output_dir
        self.archived = archived if archived is not None else set()
        self.logger = get_logger("archiver")

        self._records: Dict[str, ResourceRecord] = {}

    @property
    def records(self) -> Dict[str, ResourceRecord]:
        """Get mapping of URL to record for stored resources."""
        return self._records.copy()

    def local_path(self, url: str) -> Optional[str]:
        """
        Get the mirror-relative path of an already stored resource.

        Args:
            url: Resource URL

        Returns:
            Relative path if the resource was stored, None otherwise
        """
        record = self._records.get(url)
        return record.local_path if record else None

    def archive(
        self,
        resource_url: str,
        body: bytes,
        content_type: Optional[str] = None
    ) -> Optional[str]:
        """
        Store a resource body if its URL has not been seen yet.

        Args:
            resource_url: URL the response was fetched from
            body: Response body
            content_type: Content-Type header of the response

        Returns:
            Path relative to the mirror root, or None if the URL was
            already archived or the response is an HTML document

        Raises:
            OSError: If the file cannot be written. The URL still counts
                as archived, so it is not attempted again.
        """
        if is_document(content_type):
            return None

        if resource_url in self.archived:
            return None
        self.archived.add(resource_url)

        relative_path = resource_path_for(resource_url, content_type)
        full_path = os.path.join(self.output_dir, *relative_path.split('/'))

        ensure_parent_dir(full_path)
        with open(full_path, 'wb') as f:
            f.write(body)

        self._records[resource_url] = ResourceRecord(
            source_url=resource_url,
            content_hash=hash_url(resource_url),
            local_path=relative_path,
            content_type=content_type or "",
        )
        self.logger.debug(f"Archived: {resource_url} -> {relative_path}")

        return relative_path
