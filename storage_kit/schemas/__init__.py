"""
Pydantic schemas for provider configuration, operation results and errors.
"""
from storage_kit.schemas.common import ErrorBody, ErrorDetail, HttpErrorResponse
from storage_kit.schemas.providers import (
    S3_COMPATIBLE_PROVIDERS,
    AzureProviderConfig,
    S3ProviderConfig,
    StorageConfig,
    StorageProvider,
    parse_storage_config,
)
from storage_kit.schemas.storage import (
    BulkDeleteFailure,
    BulkDeleteResponse,
    FileUploadResponse,
    HealthCheckResponse,
    SignedUrlOptions,
    SignedUrlResponse,
    UploadCompleteEvent,
    UploadedFile,
    UploadOptions,
)

__all__ = [
    "AzureProviderConfig",
    "BulkDeleteFailure",
    "BulkDeleteResponse",
    "ErrorBody",
    "ErrorDetail",
    "FileUploadResponse",
    "HealthCheckResponse",
    "HttpErrorResponse",
    "S3_COMPATIBLE_PROVIDERS",
    "S3ProviderConfig",
    "SignedUrlOptions",
    "SignedUrlResponse",
    "StorageConfig",
    "StorageProvider",
    "UploadCompleteEvent",
    "UploadOptions",
    "UploadedFile",
    "parse_storage_config",
]
