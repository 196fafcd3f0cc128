"""
Request handling, provider registry and the StorageKit facade.
"""
from storage_kit.services.error_mapping import (
    ERROR_STATUS_MAP,
    is_storage_error,
    map_any_error_to_response,
    map_error_to_response,
)
from storage_kit.services.handler import StorageHandler, StorageKitOptions, wait_for_pending_hooks
from storage_kit.services.kit import ProviderScopedStorageKit, StorageKit
from storage_kit.services.registry import ProviderRegistry

__all__ = [
    "ERROR_STATUS_MAP",
    "ProviderRegistry",
    "ProviderScopedStorageKit",
    "StorageHandler",
    "StorageKit",
    "StorageKitOptions",
    "is_storage_error",
    "map_any_error_to_response",
    "map_error_to_response",
    "wait_for_pending_hooks",
]
