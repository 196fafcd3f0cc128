import pytest
from fastapi.testclient import TestClient

from storage_kit.dependencies.storage import get_storage_kit
from storage_kit.main import app
from storage_kit.schemas.storage import (
    BulkDeleteFailure,
    BulkDeleteResponse,
    FileUploadResponse,
    HealthCheckResponse,
    SignedUrlOptions,
    SignedUrlResponse,
    UploadOptions,
)
from storage_kit.services.handler import StorageKitOptions
from storage_kit.services.kit import StorageKit
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


class InMemoryStorageBackend(StorageBackend):
    """
    Dict-backed storage backend.

    Buckets must be declared up front; unknown buckets raise BUCKET_NOT_FOUND
    like a real provider. Every backend call is recorded in ``calls``.
    """

    def __init__(
        self,
        buckets: tuple[str, ...] = ("uploads",),
        healthy: bool = True,
        provider_name: str = "memory",
    ):
        self.objects: dict[str, dict[str, tuple[bytes, str]]] = {b: {} for b in buckets}
        self.calls: list[tuple] = []
        self.healthy = healthy
        self.provider_name = provider_name

    def _bucket(self, bucket: str) -> dict[str, tuple[bytes, str]]:
        require_bucket(bucket)
        if bucket not in self.objects:
            raise StorageError(
                ErrorCode.BUCKET_NOT_FOUND,
                "The specified bucket does not exist",
                {"bucket": bucket},
            )
        return self.objects[bucket]

    def _url(self, bucket: str, key: str) -> str:
        return f"memory://{bucket}/{key}"

    async def upload(self, bucket, data, file_name, folder=None, options=None):
        self.calls.append(("upload", bucket, file_name, folder, options))
        options = options or UploadOptions()
        objects = self._bucket(bucket)
        key = build_key(file_name, folder)
        if options.upsert is False and key in objects:
            raise StorageError(
                ErrorCode.UPLOAD_FAILED,
                "The file already exists and upsert is disabled",
                {"key": key, "bucket": bucket, "reason": "exists"},
            )
        objects[key] = (data, options.content_type or DEFAULT_CONTENT_TYPE)
        return FileUploadResponse(url=self._url(bucket, key), key=key)

    async def delete(self, bucket, key):
        self.calls.append(("delete", bucket, key))
        objects = self._bucket(bucket)
        if key not in objects:
            raise StorageError(
                ErrorCode.FILE_NOT_FOUND,
                "The requested file does not exist",
                {"key": key, "bucket": bucket},
            )
        del objects[key]

    async def bulk_delete(self, bucket, keys):
        self.calls.append(("bulk_delete", bucket, list(keys)))
        validate_bulk_delete_keys(keys)
        objects = self._bucket(bucket)
        deleted = 0
        failures = []
        for key in keys:
            if key in objects:
                del objects[key]
                deleted += 1
            else:
                failures.append(
                    BulkDeleteFailure(key=key, reason_code=ErrorCode.FILE_NOT_FOUND)
                )
        return BulkDeleteResponse(deleted_count=deleted, failures=failures)

    async def get_presigned_upload_url(self, bucket, key, options=None):
        self.calls.append(("presign_upload", bucket, key, options))
        options = options or SignedUrlOptions()
        seconds = resolve_expiration(options.expires_in, key=key)
        return SignedUrlResponse(
            signed_url=f"{self._url(bucket, key)}?method=PUT&expires={seconds}",
            public_url=self._url(bucket, key),
            expires_at=expires_at(seconds),
        )

    async def get_presigned_download_url(self, bucket, key, options=None):
        self.calls.append(("presign_download", bucket, key, options))
        options = options or SignedUrlOptions()
        seconds = resolve_expiration(options.expires_in, key=key)
        return SignedUrlResponse(
            signed_url=f"{self._url(bucket, key)}?method=GET&expires={seconds}",
            expires_at=expires_at(seconds),
        )

    async def get_file_url(self, bucket, key):
        self.calls.append(("file_url", bucket, key))
        require_bucket(bucket)
        return self._url(bucket, key)

    async def health_check(self, bucket=None):
        self.calls.append(("health_check", bucket))
        if not self.healthy:
            return HealthCheckResponse(status="unhealthy", error_message="connection refused")
        return HealthCheckResponse(status="healthy", provider_name=self.provider_name)


@pytest.fixture
def make_backend():
    """Factory for in-memory backends with custom buckets or health."""
    return InMemoryStorageBackend


@pytest.fixture
def memory_backend():
    return InMemoryStorageBackend(buckets=("uploads", "images"))


@pytest.fixture
def kit_options():
    return StorageKitOptions(default_bucket="uploads")


@pytest.fixture
def kit(memory_backend, kit_options):
    return StorageKit.from_backend(memory_backend, kit_options)


@pytest.fixture
def client(kit):
    """FastAPI TestClient wired to the in-memory kit."""
    app.dependency_overrides[get_storage_kit] = lambda: kit

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()
