"""
Abstract base class for blob store providers.

This module defines the interface every blob store must implement, so the
API routes and the command line tool work the same against Cloudflare R2
or a local directory. It also holds the small listing helpers the routes
share: filtering audio objects and finding an object by search terms.
"""

import re
from abc import ABC, abstractmethod
from typing import Optional, Dict, List, Iterable

from shared.constants import AUDIO_EXTENSIONS
from shared.models import BlobInfo


AUDIO_EXT_PATTERN = re.compile(
    r"\.(" + "|".join(AUDIO_EXTENSIONS) + r")(\?.*)?$",
    re.IGNORECASE,
)


class BlobStoreError(Exception):
    """Raised when a blob store call fails (network, auth, missing bucket)."""


class BlobStore(ABC):
    """
    Abstract base class for blob stores.

    Listing and uploads raise ``BlobStoreError`` on failure so callers can
    map them to an error response; existence checks return booleans.
    """

    @abstractmethod
    def authenticate(self, credentials: Dict[str, str]) -> bool:
        """
        Connect to the store.

        Args:
            credentials: Provider-specific credentials (see ``StoreConfig.credentials``)

        Returns:
            True if the store is reachable, False otherwise
        """
        pass

    @abstractmethod
    def list_blobs(self, prefix: Optional[str] = None,
                   limit: Optional[int] = None) -> List[BlobInfo]:
        """
        List objects in the store.

        Args:
            prefix: Only return objects whose pathname starts with this
            limit: Maximum number of objects to return

        Returns:
            Blob listings in store order
        """
        pass

    @abstractmethod
    def put(self, remote_key: str, data: bytes,
            content_type: Optional[str] = None) -> BlobInfo:
        """
        Upload bytes under ``remote_key`` with public read access.

        Returns:
            The stored blob, including its public URL
        """
        pass

    @abstractmethod
    def file_exists(self, remote_key: str) -> bool:
        pass

    @abstractmethod
    def get_file_url(self, remote_key: str) -> str:
        """Public URL for an object key."""
        pass


def filter_audio(blobs: Iterable[BlobInfo]) -> List[BlobInfo]:
    """Keep only objects whose pathname has an audio extension."""
    return [b for b in blobs if AUDIO_EXT_PATTERN.search(b.pathname)]


def split_terms(query: str) -> List[str]:
    return [t for t in query.strip().lower().split() if t]


def find_blob(blobs: Iterable[BlobInfo], query: str) -> Optional[BlobInfo]:
    """
    First blob whose pathname contains every whitespace-separated term of
    ``query`` (case-insensitive).
    """
    terms = split_terms(query)
    if not terms:
        return None
    for blob in blobs:
        lower = blob.pathname.lower()
        if all(t in lower for t in terms):
            return blob
    return None
