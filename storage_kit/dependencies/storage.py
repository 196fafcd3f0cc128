"""
Storage dependency injection for FastAPI.

This module provides the FastAPI dependency that injects the StorageKit
facade into endpoints. Tests replace it through app.dependency_overrides.
"""
from functools import lru_cache

from storage_kit.config import settings
from storage_kit.services.kit import StorageKit


@lru_cache
def get_storage_kit() -> StorageKit:
    """
    Return the StorageKit built from application settings.

    The kit is built once and reused; switching providers is a matter of
    changing STORAGE_PROVIDER and the matching credentials.

    Raises:
        ValueError: If STORAGE_PROVIDER is not supported
        StorageError: PROVIDER_ERROR if the backend cannot be built
    """
    return StorageKit.from_config(settings.storage_config(), settings.kit_options())
