"""
Local filesystem blob store.
Implements the BlobStore interface over a directory, for self-hosting and
development without cloud credentials.
"""

import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Dict, List
from urllib.parse import quote

from shared.models import BlobInfo
from .storage_provider import BlobStore, BlobStoreError


class LocalStorageProvider(BlobStore):
    """
    Blob store backed by the local filesystem.

    Pathnames are POSIX paths relative to the bucket directory. URLs use
    ``public_url`` when set (e.g. a static file server in front of the
    directory), otherwise ``file://``.
    """

    def __init__(self):
        self.base_path: Optional[Path] = None
        self.bucket_name: Optional[str] = None
        self.public_url: Optional[str] = None

    def authenticate(self, credentials: Dict[str, str]) -> bool:
        """'Authenticate' by setting (and creating) the base path."""
        path = credentials.get('base_path') or credentials.get('endpoint')
        if not path:
            return False

        self.base_path = Path(path).expanduser().absolute()
        self.base_path.mkdir(parents=True, exist_ok=True)
        self.bucket_name = credentials.get('bucket') or ""
        self.public_url = (credentials.get('public_url') or "").rstrip("/") or None
        return True

    def _bucket_root(self) -> Path:
        if self.base_path is None:
            raise BlobStoreError("Store not initialised")
        if self.bucket_name in [".", "", "default", None]:
            return self.base_path
        return self.base_path / self.bucket_name

    def _get_path(self, remote_key: str) -> Path:
        """Absolute local path for a key, refusing keys that escape the bucket."""
        root = self._bucket_root().resolve()
        target = (root / remote_key).resolve()
        if root != target and root not in target.parents:
            raise BlobStoreError(f"Invalid key: {remote_key}")
        return target

    def list_blobs(self, prefix: Optional[str] = None,
                   limit: Optional[int] = None) -> List[BlobInfo]:
        root = self._bucket_root()
        if not root.exists():
            return []

        blobs: List[BlobInfo] = []
        try:
            for dirpath, dirnames, filenames in os.walk(root):
                dirnames.sort()
                for filename in sorted(filenames):
                    full_path = Path(dirpath) / filename
                    pathname = full_path.relative_to(root).as_posix()
                    if prefix and not pathname.startswith(prefix):
                        continue
                    stat = full_path.stat()
                    blobs.append(BlobInfo(
                        pathname=pathname,
                        url=self.get_file_url(pathname),
                        size=stat.st_size,
                        uploaded_at=datetime.fromtimestamp(stat.st_mtime, tz=timezone.utc).isoformat(),
                    ))
                    if limit is not None and len(blobs) >= limit:
                        return blobs
        except OSError as e:
            raise BlobStoreError(f"List failed: {e}") from e
        return blobs

    def put(self, remote_key: str, data: bytes,
            content_type: Optional[str] = None) -> BlobInfo:
        dest_path = self._get_path(remote_key)
        try:
            dest_path.parent.mkdir(parents=True, exist_ok=True)
            dest_path.write_bytes(data)
        except OSError as e:
            raise BlobStoreError(f"Upload failed: {e}") from e
        return BlobInfo(pathname=remote_key, url=self.get_file_url(remote_key), size=len(data))

    def file_exists(self, remote_key: str) -> bool:
        try:
            return self._get_path(remote_key).exists()
        except BlobStoreError:
            return False

    def get_file_url(self, remote_key: str) -> str:
        if self.public_url:
            encoded = "/".join(quote(segment, safe="") for segment in remote_key.split("/"))
            return f"{self.public_url}/{encoded}"
        return self._get_path(remote_key).as_uri()
