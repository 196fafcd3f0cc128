"""
S3-compatible object storage backend.

One implementation serves the whole S3 family: AWS S3, MinIO, Cloudflare R2,
Backblaze B2, Google Cloud Storage (interoperability API) and DigitalOcean
Spaces. Only the endpoint and region defaults differ per provider.

boto3 is synchronous, so every SDK call runs via asyncio.to_thread.
"""
import asyncio
from typing import Any

import boto3
from botocore.config import Config
from botocore.exceptions import ClientError

from storage_kit.logging_config import setup_logging
from storage_kit.schemas.providers import (
    S3_COMPATIBLE_PROVIDERS,
    S3ProviderConfig,
    StorageProvider,
)
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
    expires_at,
    require_bucket,
    resolve_expiration,
    validate_bulk_delete_keys,
)
from storage_kit.storage.constants import DEFAULT_CONTENT_TYPE
from storage_kit.storage.exceptions import ErrorCode, StorageError

logger = setup_logging()

CACHE_CONTROL = "max-age=2592000"  # 30 days

_KEY_MISSING_CODES = {"NoSuchKey", "NotFound", "404"}

# Credential failures make a listing probe unhealthy; anything else proves
# the endpoint answered.
_AUTH_ERROR_CODES = {"InvalidAccessKeyId", "SignatureDoesNotMatch", "InvalidToken"}


def _error_code(exc: BaseException) -> str:
    if isinstance(exc, ClientError):
        return str(exc.response.get("Error", {}).get("Code", ""))
    return ""


def _is_bucket_missing(exc: BaseException) -> bool:
    return _error_code(exc) == "NoSuchBucket" or "NoSuchBucket" in str(exc)


def _is_key_missing(exc: BaseException) -> bool:
    return _error_code(exc) in _KEY_MISSING_CODES or "NoSuchKey" in str(exc)


def default_region(provider: StorageProvider) -> str:
    """R2 expects the literal region ``auto``; everything else uses us-east-1."""
    if provider is StorageProvider.CLOUDFLARE_R2:
        return "auto"
    return "us-east-1"


def resolve_endpoint(
    provider: StorageProvider,
    endpoint: str | None,
    region: str,
) -> str | None:
    """
    Resolve the endpoint URL for an S3-family provider.

    Args:
        provider: S3-family provider
        endpoint: Configured endpoint, if any
        region: Effective region

    Returns:
        Endpoint URL without a trailing slash, or None for AWS S3 defaults

    Raises:
        ValueError: If the provider needs an explicit endpoint and none is set
    """
    if endpoint:
        return endpoint.rstrip("/")

    if provider in (StorageProvider.MINIO, StorageProvider.CLOUDFLARE_R2):
        raise ValueError(f"An endpoint is required for provider '{provider.value}'")
    if provider is StorageProvider.GCS:
        return "https://storage.googleapis.com"
    if provider is StorageProvider.SPACES:
        return f"https://{region}.digitaloceanspaces.com"
    if provider is StorageProvider.BACKBLAZE:
        return f"https://s3.{region}.backblazeb2.com"
    return None


class S3StorageBackend(StorageBackend):
    """
    Storage backend for S3-compatible providers.

    Uses path-style addressing and SigV4 signing, which every supported
    S3-compatible service accepts.
    """

    def __init__(
        self,
        provider: StorageProvider | str,
        config: S3ProviderConfig,
        client: Any | None = None,
    ):
        """
        Initialize the S3 backend.

        Args:
            provider: One of the S3-family providers
            config: Validated S3 provider configuration
            client: Optional prebuilt boto3 S3 client (tests, custom sessions)

        Raises:
            ValueError: If the provider is not S3-compatible, does not match
                the config type, or is missing a required endpoint
        """
        provider = StorageProvider(provider)
        if provider not in S3_COMPATIBLE_PROVIDERS:
            raise ValueError(f"Provider '{provider.value}' is not S3-compatible")
        if config.type != provider.value:
            raise ValueError(
                f"Config type '{config.type}' does not match provider '{provider.value}'"
            )

        self.provider = provider
        self.provider_name = provider.value
        self.config = config
        self.region = config.region or default_region(provider)
        self.endpoint = resolve_endpoint(provider, config.endpoint, self.region)

        if client is None:
            client = boto3.client(
                "s3",
                endpoint_url=self.endpoint,
                region_name=self.region,
                aws_access_key_id=config.access_key_id,
                aws_secret_access_key=config.secret_access_key,
                config=Config(
                    signature_version="s3v4",
                    s3={"addressing_style": "path"},
                ),
            )
        self._client = client

    def _public_url(self, bucket: str, key: str) -> str:
        if self.config.public_url_base:
            return f"{self.config.public_url_base.rstrip('/')}/{bucket}/{key}"
        if self.endpoint:
            return f"{self.endpoint}/{bucket}/{key}"
        return f"https://{bucket}.s3.{self.region}.amazonaws.com/{key}"

    def _bucket_not_found(self, bucket: str) -> StorageError:
        return StorageError(
            ErrorCode.BUCKET_NOT_FOUND,
            "The specified bucket does not exist",
            {"bucket": bucket, "provider": self.provider_name},
        )

    def _object_exists(self, bucket: str, key: str) -> bool:
        try:
            self._client.head_object(Bucket=bucket, Key=key)
            return True
        except ClientError as e:
            if _is_key_missing(e):
                return False
            raise

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
        content_type = options.content_type or DEFAULT_CONTENT_TYPE

        def _upload() -> None:
            if options.upsert is False and self._object_exists(bucket, key):
                raise StorageError(
                    ErrorCode.UPLOAD_FAILED,
                    "The file already exists and upsert is disabled",
                    {"key": key, "bucket": bucket, "reason": "exists"},
                )
            self._client.put_object(
                Bucket=bucket,
                Key=key,
                Body=data,
                ContentType=content_type,
                CacheControl=CACHE_CONTROL,
            )

        try:
            await asyncio.to_thread(_upload)
        except StorageError:
            raise
        except Exception as e:
            if _is_bucket_missing(e):
                raise self._bucket_not_found(bucket) from e
            logger.error(
                f"{self.provider_name} upload failed for {bucket}/{key}: {e}"
            )
            raise StorageError(
                ErrorCode.UPLOAD_FAILED,
                f"Failed to upload file: {e}",
                {"key": key, "bucket": bucket},
            ) from e

        return FileUploadResponse(url=self._public_url(bucket, key), key=key)

    async def delete(self, bucket: str, key: str) -> None:
        require_bucket(bucket)

        def _delete() -> None:
            # The exact key sorts first among keys sharing its prefix
            response = self._client.list_objects_v2(
                Bucket=bucket, Prefix=key, MaxKeys=1
            )
            contents = response.get("Contents") or []
            if not any(obj.get("Key") == key for obj in contents):
                raise StorageError(
                    ErrorCode.FILE_NOT_FOUND,
                    "The requested file does not exist",
                    {"key": key, "bucket": bucket},
                )
            self._client.delete_object(Bucket=bucket, Key=key)

        try:
            await asyncio.to_thread(_delete)
        except StorageError:
            raise
        except Exception as e:
            if _is_bucket_missing(e):
                raise self._bucket_not_found(bucket) from e
            logger.error(
                f"{self.provider_name} delete failed for {bucket}/{key}: {e}"
            )
            raise StorageError(
                ErrorCode.DELETE_FAILED,
                f"Failed to delete file: {e}",
                {"key": key, "bucket": bucket},
            ) from e

    async def bulk_delete(self, bucket: str, keys: list[str]) -> BulkDeleteResponse:
        require_bucket(bucket)
        validate_bulk_delete_keys(keys)

        try:
            response = await asyncio.to_thread(
                self._client.delete_objects,
                Bucket=bucket,
                Delete={"Objects": [{"Key": key} for key in keys], "Quiet": False},
            )
        except Exception as e:
            if _is_bucket_missing(e):
                raise self._bucket_not_found(bucket) from e
            logger.error(f"{self.provider_name} bulk delete failed on {bucket}: {e}")
            raise StorageError(
                ErrorCode.DELETE_FAILED,
                f"Failed to delete files: {e}",
                {"bucket": bucket, "keyCount": len(keys)},
            ) from e

        failures = [
            BulkDeleteFailure(
                key=err.get("Key", "unknown"),
                reason_code=(
                    ErrorCode.FILE_NOT_FOUND
                    if err.get("Code") == "NoSuchKey"
                    else ErrorCode.DELETE_FAILED
                ),
            )
            for err in response.get("Errors") or []
        ]
        return BulkDeleteResponse(
            deleted_count=len(response.get("Deleted") or []),
            failures=failures,
        )

    async def _presign(
        self,
        operation: str,
        params: dict[str, Any],
        seconds: int,
    ) -> str:
        try:
            return await asyncio.to_thread(
                self._client.generate_presigned_url,
                operation,
                Params=params,
                ExpiresIn=seconds,
            )
        except Exception as e:
            logger.error(
                f"{self.provider_name} presign ({operation}) failed for "
                f"{params['Bucket']}/{params['Key']}: {e}"
            )
            raise StorageError(
                ErrorCode.SIGNED_URL_FAILED,
                f"Failed to generate presigned URL: {e}",
                {"key": params["Key"], "bucket": params["Bucket"]},
            ) from e

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
        signed_url = await self._presign(
            "put_object",
            {
                "Bucket": bucket,
                "Key": key,
                "ContentType": options.content_type or DEFAULT_CONTENT_TYPE,
            },
            seconds,
        )
        return SignedUrlResponse(
            signed_url=signed_url,
            public_url=self._public_url(bucket, key),
            expires_at=expires_at(seconds),
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
        signed_url = await self._presign(
            "get_object", {"Bucket": bucket, "Key": key}, seconds
        )
        return SignedUrlResponse(signed_url=signed_url, expires_at=expires_at(seconds))

    async def get_file_url(self, bucket: str, key: str) -> str:
        require_bucket(bucket)
        return self._public_url(bucket, key)

    async def health_check(self, bucket: str | None = None) -> HealthCheckResponse:
        def _probe() -> None:
            if bucket:
                self._client.head_bucket(Bucket=bucket)
                return
            try:
                self._client.list_buckets()
            except ClientError as e:
                if _error_code(e) in _AUTH_ERROR_CODES:
                    raise

        try:
            await asyncio.to_thread(_probe)
        except Exception as e:
            logger.warning(f"{self.provider_name} health check failed: {e}")
            return HealthCheckResponse(
                status="unhealthy",
                error_message=str(e) or e.__class__.__name__,
            )

        return HealthCheckResponse(status="healthy", provider_name=self.provider_name)
