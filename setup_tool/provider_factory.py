"""
Factory for creating storage provider instances.

Simplifies provider selection and initialization.
"""

from typing import Dict, Optional

from shared.models import StorageProvider
from .storage_provider import S3StorageProvider
from .cloudflare_r2 import CloudflareR2Provider
from .local_provider import LocalStorageProvider


class StorageProviderFactory:
    """Factory for creating storage provider instances."""

    @staticmethod
    def create(provider_type: StorageProvider) -> S3StorageProvider:
        """
        Create a storage provider instance.

        Raises:
            ValueError: If provider type is not supported
        """
        if provider_type == StorageProvider.CLOUDFLARE_R2:
            return CloudflareR2Provider()

        elif provider_type == StorageProvider.LOCAL:
            return LocalStorageProvider()

        else:
            raise ValueError(f"Unknown provider type: {provider_type}")

    @staticmethod
    def connect(provider_type: StorageProvider,
                credentials: Dict[str, str]) -> Optional[S3StorageProvider]:
        """Create and authenticate a provider. Returns None if authentication fails."""
        provider = StorageProviderFactory.create(provider_type)
        if not provider.authenticate(credentials):
            return None
        return provider

    @staticmethod
    def get_provider_name(provider_type: StorageProvider) -> str:
        """Get human-readable provider name."""
        names = {
            StorageProvider.CLOUDFLARE_R2: "Cloudflare R2",
            StorageProvider.LOCAL: "Local filesystem",
        }
        return names.get(provider_type, "Unknown")
