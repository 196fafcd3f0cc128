"""
Abstract base class for storage backends.

This module defines the operation contract every provider must implement.
Operations take the bucket explicitly; ``select_bucket`` returns an immutable
BucketScope pairing a backend with one bucket, so concurrent call chains
that select different buckets on the same backend never interfere.
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from storage_kit.schemas.storage import (
    BulkDeleteResponse,
    FileUploadResponse,
    HealthCheckResponse,
    SignedUrlOptions,
    SignedUrlResponse,
    UploadOptions,
)
from storage_kit.storage.constants import (
    DEFAULT_SIGNED_URL_EXPIRATION,
    MAX_BULK_DELETE_KEYS,
    MAX_SIGNED_URL_EXPIRATION,
)
from storage_kit.storage.exceptions import ErrorCode, StorageError


def require_bucket(bucket: str | None) -> str:
    """Raise BUCKET_NOT_FOUND when no bucket name is given."""
    if not bucket:
        raise StorageError(
            ErrorCode.BUCKET_NOT_FOUND,
            "No bucket selected. Call select_bucket() with a bucket name first.",
            {},
        )
    return bucket


def build_key(file_name: str, folder: str | None = None) -> str:
    """
    Build an object key from a folder and a file name.

    Leading and trailing slashes are trimmed from the folder.

    Examples:
        build_key("a.png") -> "a.png"
        build_key("a.png", "/avatars/") -> "avatars/a.png"
    """
    if not folder:
        return file_name
    clean_folder = folder.strip("/")
    return f"{clean_folder}/{file_name}" if clean_folder else file_name


def resolve_expiration(
    expires_in: int | None,
    default: int = DEFAULT_SIGNED_URL_EXPIRATION,
    key: str | None = None,
) -> int:
    """
    Resolve the expiration (in seconds) for a presigned URL.

    Args:
        expires_in: Requested expiration, or None for the default
        default: Provider default expiration
        key: Object key, only used for error details

    Returns:
        Expiration in seconds

    Raises:
        StorageError: SIGNED_URL_FAILED if outside 1..MAX_SIGNED_URL_EXPIRATION
    """
    seconds = default if expires_in is None else expires_in
    if seconds <= 0 or seconds > MAX_SIGNED_URL_EXPIRATION:
        raise StorageError(
            ErrorCode.SIGNED_URL_FAILED,
            f"Expiration must be between 1 and {MAX_SIGNED_URL_EXPIRATION} seconds",
            {"key": key, "expiresIn": seconds, "maximum": MAX_SIGNED_URL_EXPIRATION},
        )
    return seconds


def validate_bulk_delete_keys(keys: list[str]) -> None:
    """
    Check the size of a bulk delete request.

    Raises:
        StorageError: EMPTY_KEYS_ARRAY if no keys are given
        StorageError: KEYS_LIMIT_EXCEEDED if more than MAX_BULK_DELETE_KEYS
    """
    if len(keys) == 0:
        raise StorageError(
            ErrorCode.EMPTY_KEYS_ARRAY,
            "The 'keys' array must not be empty",
            {},
        )
    if len(keys) > MAX_BULK_DELETE_KEYS:
        raise StorageError(
            ErrorCode.KEYS_LIMIT_EXCEEDED,
            f"The 'keys' array must not exceed {MAX_BULK_DELETE_KEYS} items",
            {"provided": len(keys), "maximum": MAX_BULK_DELETE_KEYS},
        )


def expires_at(seconds: int) -> datetime:
    """UTC timestamp ``seconds`` from now."""
    return datetime.now(timezone.utc) + timedelta(seconds=seconds)


class StorageBackend(ABC):
    """
    Abstract base class for storage backends.

    All provider implementations (S3 family, Azure, custom backends) must
    implement these methods. Implementations translate native SDK errors
    into StorageError codes and never let a raw SDK exception escape.
    """

    provider_name: str = "custom"

    def select_bucket(self, bucket: str) -> "BucketScope":
        """
        Select a bucket for subsequent operations.

        Args:
            bucket: Bucket (container) name

        Returns:
            Immutable BucketScope bound to this backend and bucket

        Raises:
            StorageError: BUCKET_NOT_FOUND if the name is empty
        """
        require_bucket(bucket)
        return BucketScope(backend=self, bucket=bucket)

    @abstractmethod
    async def upload(
        self,
        bucket: str,
        data: bytes,
        file_name: str,
        folder: str | None = None,
        options: UploadOptions | None = None,
    ) -> FileUploadResponse:
        """
        Upload a file.

        Args:
            bucket: Target bucket
            data: File content
            file_name: Name of the file
            folder: Optional folder prefix
            options: Content type and upsert behaviour

        Returns:
            FileUploadResponse with public URL and key

        Raises:
            StorageError: BUCKET_NOT_FOUND if the bucket doesn't exist
            StorageError: UPLOAD_FAILED if the upload fails
        """
        pass

    @abstractmethod
    async def delete(self, bucket: str, key: str) -> None:
        """
        Delete a single file.

        Existence is verified before deleting, since some providers delete
        idempotently.

        Raises:
            StorageError: FILE_NOT_FOUND if the file doesn't exist
            StorageError: BUCKET_NOT_FOUND if the bucket doesn't exist
            StorageError: DELETE_FAILED if deletion fails
        """
        pass

    @abstractmethod
    async def bulk_delete(self, bucket: str, keys: list[str]) -> BulkDeleteResponse:
        """
        Delete up to MAX_BULK_DELETE_KEYS files.

        Missing or undeletable keys are reported per key in the response;
        they never fail the whole call.

        Raises:
            StorageError: EMPTY_KEYS_ARRAY / KEYS_LIMIT_EXCEEDED on bad input
            StorageError: BUCKET_NOT_FOUND if the bucket doesn't exist
        """
        pass

    @abstractmethod
    async def get_presigned_upload_url(
        self,
        bucket: str,
        key: str,
        options: SignedUrlOptions | None = None,
    ) -> SignedUrlResponse:
        """
        Generate a presigned URL for uploading ``key``.

        Raises:
            StorageError: SIGNED_URL_FAILED if signing fails
        """
        pass

    @abstractmethod
    async def get_presigned_download_url(
        self,
        bucket: str,
        key: str,
        options: SignedUrlOptions | None = None,
    ) -> SignedUrlResponse:
        """
        Generate a presigned URL for downloading ``key``.

        Raises:
            StorageError: SIGNED_URL_FAILED if signing fails
        """
        pass

    @abstractmethod
    async def get_file_url(self, bucket: str, key: str) -> str:
        """Return the public URL of ``key``."""
        pass

    @abstractmethod
    async def health_check(self, bucket: str | None = None) -> HealthCheckResponse:
        """
        Probe provider connectivity.

        Never raises: failures are reported as an unhealthy response.

        Args:
            bucket: Optional bucket to probe instead of the whole account
        """
        pass


@dataclass(frozen=True)
class BucketScope:
    """A backend fixed to one bucket."""

    backend: StorageBackend
    bucket: str

    async def upload(
        self,
        data: bytes,
        file_name: str,
        folder: str | None = None,
        options: UploadOptions | None = None,
    ) -> FileUploadResponse:
        return await self.backend.upload(self.bucket, data, file_name, folder, options)

    async def delete(self, key: str) -> None:
        await self.backend.delete(self.bucket, key)

    async def bulk_delete(self, keys: list[str]) -> BulkDeleteResponse:
        return await self.backend.bulk_delete(self.bucket, keys)

    async def get_presigned_upload_url(
        self,
        key: str,
        options: SignedUrlOptions | None = None,
    ) -> SignedUrlResponse:
        return await self.backend.get_presigned_upload_url(self.bucket, key, options)

    async def get_presigned_download_url(
        self,
        key: str,
        options: SignedUrlOptions | None = None,
    ) -> SignedUrlResponse:
        return await self.backend.get_presigned_download_url(self.bucket, key, options)

    async def get_file_url(self, key: str) -> str:
        return await self.backend.get_file_url(self.bucket, key)

    async def health_check(self) -> HealthCheckResponse:
        return await self.backend.health_check(self.bucket)
