"""
Unit tests for the Azure Blob Storage backend.
"""
import base64
from unittest.mock import MagicMock

import pytest
from azure.core.exceptions import HttpResponseError, ResourceExistsError, ResourceNotFoundError

from storage_kit.schemas.providers import AzureProviderConfig
from storage_kit.schemas.storage import SignedUrlOptions, UploadOptions
from storage_kit.storage.azure import AzureBlobStorageBackend, parse_connection_string
from storage_kit.storage.exceptions import ErrorCode, StorageError

ACCOUNT_KEY = base64.b64encode(b"storage-kit-test-account-key").decode()
CONNECTION_STRING = (
    "DefaultEndpointsProtocol=https;AccountName=devaccount;"
    f"AccountKey={ACCOUNT_KEY};EndpointSuffix=core.windows.net"
)
BLOB_URL = "https://devaccount.blob.core.windows.net/uploads/a.png"


def azure_error(exc_class, code: str):
    error = exc_class(f"{code}: the operation failed")
    error.error_code = code
    return error


@pytest.fixture
def service():
    client = MagicMock()
    client.get_blob_client.return_value.url = BLOB_URL
    return client


@pytest.fixture
def container(service):
    return service.get_container_client.return_value


@pytest.fixture
def backend(service):
    config = AzureProviderConfig(type="azure", connection_string=CONNECTION_STRING)
    return AzureBlobStorageBackend(config, service_client=service)


def test_parse_connection_string_keeps_base64_padding():
    """Test values containing '=' survive parsing."""
    parts = parse_connection_string("AccountName=dev;AccountKey=abc==;EndpointSuffix=core.windows.net")

    assert parts == {
        "AccountName": "dev",
        "AccountKey": "abc==",
        "EndpointSuffix": "core.windows.net",
    }


class TestUpload:
    """Upload tests"""

    @pytest.mark.asyncio
    async def test_upload(self, backend, service):
        """Test upload with content settings"""
        result = await backend.upload(
            "uploads", b"data", "a.png", "/avatars/", UploadOptions(content_type="image/png")
        )

        service.get_blob_client.assert_any_call(container="uploads", blob="avatars/a.png")
        blob = service.get_blob_client.return_value
        args, kwargs = blob.upload_blob.call_args
        assert args == (b"data",)
        assert kwargs["overwrite"] is True
        assert kwargs["content_settings"].content_type == "image/png"
        assert kwargs["content_settings"].cache_control == "max-age=8640000"
        assert result.key == "avatars/a.png"
        assert result.url == BLOB_URL

    @pytest.mark.asyncio
    async def test_upload_without_upsert(self, backend, service):
        """Test upsert=False disables overwrite"""
        blob = service.get_blob_client.return_value
        blob.upload_blob.side_effect = azure_error(ResourceExistsError, "BlobAlreadyExists")

        with pytest.raises(StorageError) as exc:
            await backend.upload("uploads", b"data", "a.png", options=UploadOptions(upsert=False))

        assert blob.upload_blob.call_args.kwargs["overwrite"] is False
        assert exc.value.code == ErrorCode.UPLOAD_FAILED
        assert exc.value.details["reason"] == "exists"

    @pytest.mark.asyncio
    async def test_missing_container(self, backend, service):
        """Test ContainerNotFound maps to BUCKET_NOT_FOUND"""
        blob = service.get_blob_client.return_value
        blob.upload_blob.side_effect = azure_error(ResourceNotFoundError, "ContainerNotFound")

        with pytest.raises(StorageError) as exc:
            await backend.upload("nope", b"data", "a.png")

        assert exc.value.code == ErrorCode.BUCKET_NOT_FOUND
        assert exc.value.details["bucket"] == "nope"

    @pytest.mark.asyncio
    async def test_other_failure(self, backend, service):
        """Test unknown errors map to UPLOAD_FAILED"""
        blob = service.get_blob_client.return_value
        blob.upload_blob.side_effect = HttpResponseError("server busy")

        with pytest.raises(StorageError) as exc:
            await backend.upload("uploads", b"data", "a.png")

        assert exc.value.code == ErrorCode.UPLOAD_FAILED

    @pytest.mark.asyncio
    async def test_public_url_base(self, service):
        """Test configured public URL base overrides the blob URL"""
        config = AzureProviderConfig(
            type="azure",
            connection_string=CONNECTION_STRING,
            public_url_base="https://cdn.example.com",
        )
        backend = AzureBlobStorageBackend(config, service_client=service)

        result = await backend.upload("uploads", b"data", "a.png")

        assert result.url == "https://cdn.example.com/uploads/a.png"


class TestDelete:
    """Single delete tests"""

    @pytest.mark.asyncio
    async def test_delete_existing(self, backend, container):
        """Test existence is checked before deleting"""
        blob = container.get_blob_client.return_value
        blob.exists.return_value = True

        await backend.delete("uploads", "a.png")

        container.get_blob_client.assert_called_once_with("a.png")
        blob.delete_blob.assert_called_once_with()

    @pytest.mark.asyncio
    async def test_missing_blob(self, backend, container):
        """Test a missing blob in an existing container"""
        container.get_blob_client.return_value.exists.return_value = False
        container.exists.return_value = True

        with pytest.raises(StorageError) as exc:
            await backend.delete("uploads", "a.png")

        assert exc.value.code == ErrorCode.FILE_NOT_FOUND
        container.get_blob_client.return_value.delete_blob.assert_not_called()

    @pytest.mark.asyncio
    async def test_missing_container(self, backend, container):
        """Test a missing container"""
        container.get_blob_client.return_value.exists.return_value = False
        container.exists.return_value = False

        with pytest.raises(StorageError) as exc:
            await backend.delete("nope", "a.png")

        assert exc.value.code == ErrorCode.BUCKET_NOT_FOUND

    @pytest.mark.asyncio
    async def test_blob_removed_concurrently(self, backend, container):
        """Test BlobNotFound raised by the delete itself"""
        blob = container.get_blob_client.return_value
        blob.exists.return_value = True
        blob.delete_blob.side_effect = azure_error(ResourceNotFoundError, "BlobNotFound")

        with pytest.raises(StorageError) as exc:
            await backend.delete("uploads", "a.png")

        assert exc.value.code == ErrorCode.FILE_NOT_FOUND

    @pytest.mark.asyncio
    async def test_delete_failure(self, backend, container):
        """Test other errors map to DELETE_FAILED"""
        blob = container.get_blob_client.return_value
        blob.exists.return_value = True
        blob.delete_blob.side_effect = HttpResponseError("forbidden")

        with pytest.raises(StorageError) as exc:
            await backend.delete("uploads", "a.png")

        assert exc.value.code == ErrorCode.DELETE_FAILED


class TestBulkDelete:
    """Bulk delete tests"""

    @pytest.mark.asyncio
    async def test_all_deleted_in_batches(self, backend, container):
        """Test every key is deleted once"""
        container.exists.return_value = True
        keys = [f"k{i}" for i in range(120)]

        result = await backend.bulk_delete("uploads", keys)

        assert result.deleted_count == 120
        assert result.failures == []
        deleted = sorted(call.args[0] for call in container.delete_blob.call_args_list)
        assert deleted == sorted(keys)

    @pytest.mark.asyncio
    async def test_per_key_failures(self, backend, container):
        """Test missing and failing blobs are reported per key"""
        container.exists.return_value = True

        def delete_blob(key):
            if key == "missing.png":
                raise azure_error(ResourceNotFoundError, "BlobNotFound")
            if key == "locked.png":
                raise azure_error(HttpResponseError, "LeaseIdMissing")

        container.delete_blob.side_effect = delete_blob

        result = await backend.bulk_delete("uploads", ["a.png", "missing.png", "locked.png"])

        assert result.deleted_count == 1
        reasons = {f.key: f.reason_code for f in result.failures}
        assert reasons == {
            "missing.png": ErrorCode.FILE_NOT_FOUND,
            "locked.png": ErrorCode.DELETE_FAILED,
        }

    @pytest.mark.asyncio
    async def test_missing_container_before_start(self, backend, container):
        """Test nothing is deleted when the container is missing"""
        container.exists.return_value = False

        with pytest.raises(StorageError) as exc:
            await backend.bulk_delete("nope", ["a.png", "b.png"])

        assert exc.value.code == ErrorCode.BUCKET_NOT_FOUND
        container.delete_blob.assert_not_called()

    @pytest.mark.asyncio
    async def test_container_removed_mid_run(self, backend, container):
        """Test the in-flight batch finishes, then the call fails"""
        container.exists.return_value = True

        def delete_blob(key):
            if 60 <= int(key[1:]) < 100:
                raise azure_error(ResourceNotFoundError, "ContainerNotFound")

        container.delete_blob.side_effect = delete_blob
        keys = [f"k{i}" for i in range(120)]

        with pytest.raises(StorageError) as exc:
            await backend.bulk_delete("uploads", keys)

        assert exc.value.code == ErrorCode.BUCKET_NOT_FOUND
        assert exc.value.details["deletedCount"] == 60
        assert exc.value.details["processedCount"] == 100
        assert exc.value.details["requestedCount"] == 120
        # Third batch never starts
        assert container.delete_blob.call_count == 100

    @pytest.mark.asyncio
    async def test_validates_keys(self, backend, container):
        """Test key validation before any SDK call"""
        with pytest.raises(StorageError) as exc:
            await backend.bulk_delete("uploads", [])

        assert exc.value.code == ErrorCode.EMPTY_KEYS_ARRAY
        container.exists.assert_not_called()


class TestPresignedUrls:
    """SAS URL tests"""

    @pytest.mark.asyncio
    async def test_upload_url_from_connection_string(self):
        """Test SAS credentials parsed from the connection string"""
        config = AzureProviderConfig(type="azure", connection_string=CONNECTION_STRING)
        backend = AzureBlobStorageBackend(config)

        result = await backend.get_presigned_upload_url(
            "uploads", "a.png", SignedUrlOptions(expires_in=600)
        )

        assert result.signed_url.startswith(f"{BLOB_URL}?")
        assert "sp=cw" in result.signed_url
        assert "sig=" in result.signed_url
        assert "spr=https" in result.signed_url
        assert result.public_url == BLOB_URL

    @pytest.mark.asyncio
    async def test_download_url_from_account_key(self):
        """Test SAS credentials from account name and key"""
        config = AzureProviderConfig(
            type="azure", account_name="devaccount", account_key=ACCOUNT_KEY
        )
        backend = AzureBlobStorageBackend(config)

        result = await backend.get_presigned_download_url("uploads", "a.png")

        assert result.signed_url.startswith(f"{BLOB_URL}?")
        assert "sp=r" in result.signed_url
        assert result.public_url is None

    @pytest.mark.asyncio
    async def test_connection_string_without_key(self, service):
        """Test SAS generation needs an account key"""
        config = AzureProviderConfig(
            type="azure",
            connection_string="BlobEndpoint=https://devaccount.blob.core.windows.net/;SharedAccessSignature=sv=2020",
        )
        backend = AzureBlobStorageBackend(config, service_client=service)

        with pytest.raises(StorageError) as exc:
            await backend.get_presigned_upload_url("uploads", "a.png")

        assert exc.value.code == ErrorCode.SIGNED_URL_FAILED

    @pytest.mark.asyncio
    async def test_expiration_out_of_range(self, backend):
        """Test invalid expiration"""
        with pytest.raises(StorageError) as exc:
            await backend.get_presigned_download_url(
                "uploads", "a.png", SignedUrlOptions(expires_in=0)
            )

        assert exc.value.code == ErrorCode.SIGNED_URL_FAILED


@pytest.mark.asyncio
async def test_get_file_url(backend, service):
    """Test file URL is the blob URL."""
    assert await backend.get_file_url("uploads", "a.png") == BLOB_URL


class TestHealthCheck:
    """Health check tests"""

    @pytest.mark.asyncio
    async def test_healthy(self, backend, service):
        """Test listing one container page"""
        service.list_containers.return_value = iter([])

        result = await backend.health_check()

        assert result.status == "healthy"
        assert result.provider_name == "azure"
        service.list_containers.assert_called_once_with(results_per_page=1)

    @pytest.mark.asyncio
    async def test_bucket_probe(self, backend, container):
        """Test a missing container is unhealthy"""
        container.get_container_properties.side_effect = azure_error(
            ResourceNotFoundError, "ContainerNotFound"
        )

        result = await backend.health_check("nope")

        assert result.status == "unhealthy"
        assert "ContainerNotFound" in result.error_message

    @pytest.mark.asyncio
    async def test_never_raises(self, backend, service):
        """Test transport failures are reported"""
        service.list_containers.side_effect = ConnectionError("name resolution failed")

        result = await backend.health_check()

        assert result.status == "unhealthy"
        assert result.error_message == "name resolution failed"
