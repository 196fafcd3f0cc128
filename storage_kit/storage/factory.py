"""
Storage backend factory.

Maps a provider name plus its configuration to a concrete backend through an
explicit dispatch over the closed StorageProvider enumeration.
"""
from typing import Any, Mapping

from storage_kit.schemas.providers import (
    S3_COMPATIBLE_PROVIDERS,
    StorageConfig,
    StorageProvider,
    parse_storage_config,
)
from storage_kit.storage.azure import AzureBlobStorageBackend
from storage_kit.storage.base import StorageBackend
from storage_kit.storage.s3 import S3StorageBackend


def create_storage_backend(
    provider: StorageProvider | str,
    config: "StorageConfig | Mapping[str, Any]",
) -> StorageBackend:
    """
    Build the backend for ``provider``.

    Args:
        provider: Provider name (``minio``, ``s3``, ``azure``, ...)
        config: Provider configuration, validated model or raw mapping

    Returns:
        StorageBackend instance

    Raises:
        ValueError: If the provider is unknown or the config type does not
            match it
        pydantic.ValidationError: If the configuration is invalid
    """
    provider = StorageProvider(provider)
    parsed = parse_storage_config(config, provider)

    if provider in S3_COMPATIBLE_PROVIDERS:
        return S3StorageBackend(provider, parsed)
    elif provider is StorageProvider.AZURE:
        return AzureBlobStorageBackend(parsed)

    raise ValueError(f"Unknown storage provider: {provider.value}")
