"""
Abstract base class for the cloud asset host.

Uploaded audio and cover images live on an S3-compatible bucket (Cloudflare R2)
or on the local filesystem when self-hosting. The backend only needs to put a
blob somewhere and hand back a public URL for it.
"""

from abc import ABC, abstractmethod
from typing import Optional, Dict


class S3StorageProvider(ABC):
    """
    Interface every asset host implements.

    Keys are bucket-relative paths such as ``songs/<uuid>.mp3``.
    """

    @abstractmethod
    def authenticate(self, credentials: Dict[str, str]) -> bool:
        """
        Connect to the storage backend.

        Args:
            credentials: Provider-specific settings (keys, bucket, base path...)

        Returns:
            True if the provider is ready for uploads
        """
        pass

    @abstractmethod
    def upload_bytes(self, data: bytes, remote_key: str,
                     content_type: Optional[str] = None) -> bool:
        """Store an in-memory blob. Returns True on success."""
        pass

    @abstractmethod
    def get_public_url(self, remote_key: str) -> str:
        """
        Get the URL clients use to fetch a stored blob.

        Args:
            remote_key: Key (path) of the file

        Returns:
            Absolute URL string
        """
        pass
