"""
Azure Blob Storage backend.

Buckets map to containers. Presigned URLs are SAS tokens signed with the
account key, taken from the config or parsed out of the connection string.
The azure-storage-blob client is synchronous, so calls run via
asyncio.to_thread.
"""
import asyncio
from datetime import datetime, timedelta, timezone
from typing import Any

from azure.core.exceptions import ResourceExistsError
from azure.storage.blob import (
    BlobSasPermissions,
    BlobServiceClient,
    ContentSettings,
    generate_blob_sas,
)

from storage_kit.logging_config import setup_logging
from storage_kit.schemas.providers import AzureProviderConfig, StorageProvider
from storage_kit.schemas.storage import (
    BulkDeleteFailure,
    BulkDeleteResponse,
    FileUploadResponse,
    HealthCheckResponse,
    SignedUrlOptions,
    SignedUrlResponse,
    UploadOptions,
)
from storage_kit.storage.base import (
    StorageBackend,
    build_key,
    require_bucket,
    resolve_expiration,
    validate_bulk_delete_keys,
)
from storage_kit.storage.constants import BULK_DELETE_BATCH_SIZE, DEFAULT_CONTENT_TYPE
from storage_kit.storage.exceptions import ErrorCode, StorageError

logger = setup_logging()

CACHE_CONTROL = "max-age=8640000"  # 100 days

# Tolerate clock skew between this host and Azure when signing
SAS_START_SKEW = timedelta(minutes=1)

_KNOWN_ERROR_CODES = ("ContainerNotFound", "BlobNotFound", "BlobAlreadyExists")


def _error_code(exc: BaseException) -> str:
    """Azure error code from the exception, falling back to its message."""
    code = getattr(exc, "error_code", None)
    if code:
        return str(getattr(code, "value", code))
    text = str(exc)
    for candidate in _KNOWN_ERROR_CODES:
        if candidate in text:
            return candidate
    return ""


def parse_connection_string(connection_string: str) -> dict[str, str]:
    """
    Split an Azure connection string into its ``Key=Value`` parts.

    Values may contain ``=`` (base64 account keys), so only the first one
    separates key from value.
    """
    parts: dict[str, str] = {}
    for segment in connection_string.split(";"):
        name, sep, value = segment.partition("=")
        if sep and name.strip():
            parts[name.strip()] = value.strip()
    return parts


class AzureBlobStorageBackend(StorageBackend):
    """Storage backend for Azure Blob Storage."""

    provider_name = StorageProvider.AZURE.value

    def __init__(
        self,
        config: AzureProviderConfig,
        service_client: Any | None = None,
    ):
        """
        Initialize the Azure backend.

        Args:
            config: Validated Azure configuration
            service_client: Optional prebuilt BlobServiceClient
        """
        self.config = config

        if service_client is None:
            if config.connection_string:
                service_client = BlobServiceClient.from_connection_string(
                    config.connection_string
                )
            else:
                service_client = BlobServiceClient(
                    account_url=f"https://{config.account_name}.blob.core.windows.net",
                    credential={
                        "account_name": config.account_name,
                        "account_key": config.account_key,
                    },
                )
        self._service = service_client

    def _sas_credentials(self) -> tuple[str, str]:
        if self.config.account_name and self.config.account_key:
            return self.config.account_name, self.config.account_key

        parts = parse_connection_string(self.config.connection_string or "")
        account_name = parts.get("AccountName")
        account_key = parts.get("AccountKey")
        if account_name and account_key:
            return account_name, account_key

        raise StorageError(
            ErrorCode.SIGNED_URL_FAILED,
            "Could not extract AccountName and AccountKey from the connection "
            "string for SAS generation",
            {"provider": self.provider_name},
        )

    def _blob_url(self, bucket: str, key: str) -> str:
        return self._service.get_blob_client(container=bucket, blob=key).url

    def _public_url(self, bucket: str, key: str) -> str:
        if self.config.public_url_base:
            return f"{self.config.public_url_base.rstrip('/')}/{bucket}/{key}"
        return self._blob_url(bucket, key)

    def _bucket_not_found(self, bucket: str, **details: Any) -> StorageError:
        return StorageError(
            ErrorCode.BUCKET_NOT_FOUND,
            "The specified container does not exist",
            {"bucket": bucket, "provider": self.provider_name, **details},
        )

    def _file_not_found(self, bucket: str, key: str) -> StorageError:
        return StorageError(
            ErrorCode.FILE_NOT_FOUND,
            "The requested file does not exist",
            {"key": key, "bucket": bucket},
        )

    async def upload(
        self,
        bucket: str,
        data: bytes,
        file_name: str,
        folder: str | None = None,
        options: UploadOptions | None = None,
    ) -> FileUploadResponse:
        require_bucket(bucket)
        options = options or UploadOptions()
        key = build_key(file_name, folder)
        blob = self._service.get_blob_client(container=bucket, blob=key)

        try:
            await asyncio.to_thread(
                blob.upload_blob,
                data,
                overwrite=options.upsert is not False,
                content_settings=ContentSettings(
                    content_type=options.content_type or DEFAULT_CONTENT_TYPE,
                    cache_control=CACHE_CONTROL,
                ),
            )
        except Exception as e:
            code = _error_code(e)
            if code == "ContainerNotFound":
                raise self._bucket_not_found(bucket) from e
            if code == "BlobAlreadyExists" or isinstance(e, ResourceExistsError):
                raise StorageError(
                    ErrorCode.UPLOAD_FAILED,
                    "The file already exists and upsert is disabled",
                    {"key": key, "bucket": bucket, "reason": "exists"},
                ) from e
            logger.error(f"azure upload failed for {bucket}/{key}: {e}")
            raise StorageError(
                ErrorCode.UPLOAD_FAILED,
                f"Failed to upload file: {e}",
                {"key": key, "bucket": bucket},
            ) from e

        return FileUploadResponse(url=self._public_url(bucket, key), key=key)

    async def delete(self, bucket: str, key: str) -> None:
        require_bucket(bucket)
        container = self._service.get_container_client(bucket)

        def _delete() -> None:
            blob = container.get_blob_client(key)
            if not blob.exists():
                if not container.exists():
                    raise self._bucket_not_found(bucket)
                raise self._file_not_found(bucket, key)
            blob.delete_blob()

        try:
            await asyncio.to_thread(_delete)
        except StorageError:
            raise
        except Exception as e:
            code = _error_code(e)
            if code == "ContainerNotFound":
                raise self._bucket_not_found(bucket) from e
            if code == "BlobNotFound":
                raise self._file_not_found(bucket, key) from e
            logger.error(f"azure delete failed for {bucket}/{key}: {e}")
            raise StorageError(
                ErrorCode.DELETE_FAILED,
                f"Failed to delete file: {e}",
                {"key": key, "bucket": bucket},
            ) from e

    async def _delete_one(self, container: Any, key: str) -> ErrorCode | None:
        """Delete one blob; return the failure code, or None on success."""
        try:
            await asyncio.to_thread(container.delete_blob, key)
        except Exception as e:
            code = _error_code(e)
            if code == "BlobNotFound":
                return ErrorCode.FILE_NOT_FOUND
            if code == "ContainerNotFound":
                return ErrorCode.BUCKET_NOT_FOUND
            logger.warning(f"azure bulk delete failed for key {key}: {e}")
            return ErrorCode.DELETE_FAILED
        return None

    async def bulk_delete(self, bucket: str, keys: list[str]) -> BulkDeleteResponse:
        """
        Delete blobs in batches of BULK_DELETE_BATCH_SIZE concurrent requests.

        A missing container is detected before anything is deleted. If the
        container disappears mid-run, the in-flight batch completes and the
        call then fails with BUCKET_NOT_FOUND, reporting partial progress in
        the error details.
        """
        require_bucket(bucket)
        validate_bulk_delete_keys(keys)
        container = self._service.get_container_client(bucket)

        try:
            exists = await asyncio.to_thread(container.exists)
        except Exception as e:
            logger.error(f"azure container lookup failed for {bucket}: {e}")
            raise StorageError(
                ErrorCode.DELETE_FAILED,
                f"Failed to delete files: {e}",
                {"bucket": bucket, "keyCount": len(keys)},
            ) from e
        if not exists:
            raise self._bucket_not_found(bucket)

        deleted_count = 0
        failures: list[BulkDeleteFailure] = []

        for start in range(0, len(keys), BULK_DELETE_BATCH_SIZE):
            batch = keys[start:start + BULK_DELETE_BATCH_SIZE]
            results = await asyncio.gather(
                *(self._delete_one(container, key) for key in batch)
            )

            container_missing = False
            for key, code in zip(batch, results):
                if code is None:
                    deleted_count += 1
                elif code is ErrorCode.BUCKET_NOT_FOUND:
                    container_missing = True
                else:
                    failures.append(BulkDeleteFailure(key=key, reason_code=code))

            if container_missing:
                logger.error(
                    f"azure container {bucket} disappeared during bulk delete "
                    f"after {deleted_count} deletions"
                )
                raise self._bucket_not_found(
                    bucket,
                    deletedCount=deleted_count,
                    processedCount=start + len(batch),
                    requestedCount=len(keys),
                )

        return BulkDeleteResponse(deleted_count=deleted_count, failures=failures)

    async def _sas_url(
        self,
        bucket: str,
        key: str,
        permission: BlobSasPermissions,
        expiry: datetime,
        content_type: str | None = None,
    ) -> str:
        account_name, account_key = self._sas_credentials()

        try:
            token = await asyncio.to_thread(
                generate_blob_sas,
                account_name=account_name,
                container_name=bucket,
                blob_name=key,
                account_key=account_key,
                permission=permission,
                expiry=expiry,
                start=datetime.now(timezone.utc) - SAS_START_SKEW,
                protocol="https",
                content_type=content_type,
            )
        except Exception as e:
            logger.error(f"azure SAS generation failed for {bucket}/{key}: {e}")
            raise StorageError(
                ErrorCode.SIGNED_URL_FAILED,
                f"Failed to generate signed URL: {e}",
                {"key": key, "bucket": bucket},
            ) from e

        return f"{self._blob_url(bucket, key)}?{token}"

    async def get_presigned_upload_url(
        self,
        bucket: str,
        key: str,
        options: SignedUrlOptions | None = None,
    ) -> SignedUrlResponse:
        require_bucket(bucket)
        options = options or SignedUrlOptions()
        seconds = resolve_expiration(
            options.expires_in, self.config.default_signed_url_expiration, key
        )
        expiry = datetime.now(timezone.utc) + timedelta(seconds=seconds)
        signed_url = await self._sas_url(
            bucket,
            key,
            BlobSasPermissions(create=True, write=True),
            expiry,
            options.content_type,
        )
        return SignedUrlResponse(
            signed_url=signed_url,
            public_url=self._public_url(bucket, key),
            expires_at=expiry,
        )

    async def get_presigned_download_url(
        self,
        bucket: str,
        key: str,
        options: SignedUrlOptions | None = None,
    ) -> SignedUrlResponse:
        require_bucket(bucket)
        options = options or SignedUrlOptions()
        seconds = resolve_expiration(
            options.expires_in, self.config.default_signed_url_expiration, key
        )
        expiry = datetime.now(timezone.utc) + timedelta(seconds=seconds)
        signed_url = await self._sas_url(
            bucket, key, BlobSasPermissions(read=True), expiry
        )
        return SignedUrlResponse(signed_url=signed_url, expires_at=expiry)

    async def get_file_url(self, bucket: str, key: str) -> str:
        require_bucket(bucket)
        return self._public_url(bucket, key)

    async def health_check(self, bucket: str | None = None) -> HealthCheckResponse:
        def _probe() -> None:
            if bucket:
                self._service.get_container_client(bucket).get_container_properties()
                return
            for _ in self._service.list_containers(results_per_page=1):
                break

        try:
            await asyncio.to_thread(_probe)
        except Exception as e:
            logger.warning(f"azure health check failed: {e}")
            return HealthCheckResponse(
                status="unhealthy",
                error_message=str(e) or e.__class__.__name__,
            )

        return HealthCheckResponse(status="healthy", provider_name=self.provider_name)
