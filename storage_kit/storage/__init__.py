"""
Storage abstraction layer for object storage.

This package provides one async operation contract over S3-compatible
providers and Azure Blob Storage, plus the error taxonomy shared by every
backend.
"""

from storage_kit.storage.azure import AzureBlobStorageBackend
from storage_kit.storage.base import BucketScope, StorageBackend, build_key
from storage_kit.storage.exceptions import ErrorCode, StorageError, wrap_exception
from storage_kit.storage.factory import create_storage_backend
from storage_kit.storage.s3 import S3StorageBackend

__all__ = [
    "AzureBlobStorageBackend",
    "BucketScope",
    "ErrorCode",
    "S3StorageBackend",
    "StorageBackend",
    "StorageError",
    "build_key",
    "create_storage_backend",
    "wrap_exception",
]
