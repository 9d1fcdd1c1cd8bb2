"""
Local filesystem storage provider.
Implements the S3StorageProvider interface for self-hosted media.
"""

import logging
from typing import Optional, Dict
from pathlib import Path

from .storage_provider import S3StorageProvider

logger = logging.getLogger(__name__)


class LocalStorageProvider(S3StorageProvider):
    """
    Storage provider that keeps blobs on the local filesystem.
    The backend serves them back under ``/media/<key>``.
    """

    def __init__(self, public_base_url: str = "/media"):
        self.base_path: Optional[Path] = None
        self.public_base_url = public_base_url.rstrip('/')

    def authenticate(self, credentials: Dict[str, str]) -> bool:
        """'Authenticate' by setting the base path."""
        path = credentials.get('base_path')
        if not path:
            return False

        self.base_path = Path(path).expanduser().absolute()
        self.base_path.mkdir(parents=True, exist_ok=True)
        if credentials.get('public_url'):
            self.public_base_url = credentials['public_url'].rstrip('/')
        return True

    def _get_path(self, remote_key: str) -> Path:
        """Get absolute local path for a remote key."""
        if self.base_path is None:
            raise ValueError("Base path not set")
        path = (self.base_path / remote_key).resolve()
        # Keys must stay inside the media root
        if self.base_path.resolve() not in path.parents:
            raise ValueError(f"Invalid key: {remote_key}")
        return path

    def upload_bytes(self, data: bytes, remote_key: str,
                     content_type: Optional[str] = None) -> bool:
        try:
            dest_path = self._get_path(remote_key)
            dest_path.parent.mkdir(parents=True, exist_ok=True)
            dest_path.write_bytes(data)
            return True
        except (OSError, ValueError) as e:
            logger.error(f"Local upload error: {e}")
            return False

    def get_public_url(self, remote_key: str) -> str:
        return f"{self.public_base_url}/{remote_key}"
