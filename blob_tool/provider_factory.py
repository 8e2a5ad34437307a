"""
Factory for creating blob store instances.

Simplifies provider selection and initialization.
"""

from typing import Optional

from shared.config import StoreConfig, load_store_config
from shared.models import StorageProvider
from .storage_provider import BlobStore, BlobStoreError
from .cloudflare_r2 import CloudflareR2Provider
from .local_provider import LocalStorageProvider


class StorageProviderFactory:
    """Factory for creating blob store instances."""

    @staticmethod
    def create(provider_type: StorageProvider) -> BlobStore:
        """
        Create an (unauthenticated) blob store.

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
    def from_config(config: Optional[StoreConfig] = None) -> BlobStore:
        """
        Create and authenticate the configured store.

        Raises:
            BlobStoreError: If no store is configured or authentication fails
        """
        if config is None:
            try:
                config = load_store_config()
            except ValueError as e:
                raise BlobStoreError(str(e)) from e
        if config is None:
            raise BlobStoreError("No blob store configured (set BLOB_PROVIDER or run 'blob-tool init')")
        store = StorageProviderFactory.create(config.provider)
        if not store.authenticate(config.credentials()):
            raise BlobStoreError(f"Could not connect to {StorageProviderFactory.get_provider_name(config.provider)}")
        return store

    @staticmethod
    def get_provider_name(provider_type: StorageProvider) -> str:
        """Get human-readable provider name."""
        names = {
            StorageProvider.CLOUDFLARE_R2: "Cloudflare R2",
            StorageProvider.LOCAL: "Local Folder",
        }
        return names.get(provider_type, "Unknown")
