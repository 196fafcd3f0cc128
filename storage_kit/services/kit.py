"""
Storage Kit facade.

StorageKit is the object an application holds. It owns a provider registry
and a request handler for the default provider, and can hand out
provider-scoped kits that share the same options (default bucket, limits,
hooks).

Example:
    kit = StorageKit.from_providers(
        {"minio": minio_config, "azure": azure_config},
        provider="minio",
        options=StorageKitOptions(default_bucket="uploads"),
    )
    await kit.upload_file("_", data, "a.png")
    await kit.use_provider("azure").delete_file("_", "a.png")
"""
from typing import Any, Mapping

from storage_kit.schemas.providers import StorageConfig, parse_storage_config
from storage_kit.schemas.storage import (
    BulkDeleteResponse,
    FileUploadResponse,
    HealthCheckResponse,
    SignedUrlOptions,
    SignedUrlResponse,
    UploadedFile,
    UploadOptions,
)
from storage_kit.services.handler import StorageHandler, StorageKitOptions
from storage_kit.services.registry import BackendFactory, ProviderRegistry
from storage_kit.storage.base import BucketScope, StorageBackend
from storage_kit.storage.exceptions import ErrorCode, StorageError
from storage_kit.storage.factory import create_storage_backend


class ProviderScopedStorageKit:
    """Facade bound to a single backend."""

    def __init__(self, handler: StorageHandler):
        self._handler = handler

    @property
    def handler(self) -> StorageHandler:
        return self._handler

    @property
    def storage(self) -> StorageBackend:
        """The underlying backend."""
        return self._handler.backend

    def bucket(self, name: str) -> BucketScope:
        """Bucket-scoped handle; ``"_"`` resolves to the default bucket."""
        return self._handler.bucket(name)

    async def upload_file(
        self,
        bucket: str,
        data: bytes,
        file_name: str,
        folder: str | None = None,
        options: UploadOptions | None = None,
    ) -> FileUploadResponse:
        return await self._handler.upload_bytes(bucket, data, file_name, folder, options)

    async def delete_file(self, bucket: str, key: str) -> None:
        await self._handler.handle_delete(bucket, key)

    async def delete_files(self, bucket: str, keys: list[str]) -> BulkDeleteResponse:
        return await self._handler.handle_bulk_delete(bucket, keys)

    async def get_presigned_upload_url(
        self,
        bucket: str,
        key: str,
        options: SignedUrlOptions | None = None,
    ) -> SignedUrlResponse:
        return await self._handler.get_presigned_upload_url(bucket, key, options)

    async def get_presigned_download_url(
        self,
        bucket: str,
        key: str,
        options: SignedUrlOptions | None = None,
    ) -> SignedUrlResponse:
        return await self._handler.get_presigned_download_url(bucket, key, options)

    async def get_file_url(self, bucket: str, key: str) -> str:
        return await self._handler.get_file_url(bucket, key)

    async def health_check(self) -> HealthCheckResponse:
        return await self._handler.handle_health_check()

    # HTTP-shaped operations, for adapters

    async def handle_upload(
        self,
        bucket: str,
        file: UploadedFile | None,
        path: str | None = None,
        content_type: str | None = None,
    ) -> FileUploadResponse:
        return await self._handler.handle_upload(bucket, file, path, content_type)

    async def handle_delete(self, bucket: str, key: str) -> None:
        await self._handler.handle_delete(bucket, key)

    async def handle_bulk_delete(self, bucket: str, keys: Any) -> BulkDeleteResponse:
        return await self._handler.handle_bulk_delete(bucket, keys)

    async def handle_signed_url(
        self,
        bucket: str,
        key: str | None,
        url_type: str | None,
        options: SignedUrlOptions | None = None,
    ) -> SignedUrlResponse:
        return await self._handler.handle_signed_url(bucket, key, url_type, options)

    async def handle_health_check(self) -> HealthCheckResponse:
        return await self._handler.handle_health_check()


class StorageKit(ProviderScopedStorageKit):
    """Facade over a provider registry with a default provider."""

    def __init__(
        self,
        registry: ProviderRegistry,
        provider: str,
        options: StorageKitOptions | None = None,
    ):
        """
        Args:
            registry: Built provider registry
            provider: Default provider name
            options: Shared options; defaults apply when omitted

        Raises:
            StorageError: PROVIDER_NOT_CONFIGURED if ``provider`` is not
                registered
        """
        self._registry = registry
        self._provider = provider
        self._options = options if options is not None else StorageKitOptions()
        super().__init__(StorageHandler(registry.get(provider), self._options))

    @classmethod
    def from_config(
        cls,
        config: "StorageConfig | Mapping[str, Any]",
        options: StorageKitOptions | None = None,
        backend_factory: BackendFactory = create_storage_backend,
    ) -> "StorageKit":
        """Single-provider kit keyed by ``config.type``."""
        parsed = parse_storage_config(config)
        registry = ProviderRegistry({parsed.type: parsed}, backend_factory)
        return cls(registry, parsed.type, options)

    @classmethod
    def from_providers(
        cls,
        providers: Mapping[str, "StorageConfig | Mapping[str, Any] | None"],
        provider: str,
        options: StorageKitOptions | None = None,
        backend_factory: BackendFactory = create_storage_backend,
    ) -> "StorageKit":
        """
        Multi-provider kit.

        Raises:
            StorageError: PROVIDER_NOT_CONFIGURED if the default provider has
                no configuration; checked before any backend is built
            StorageError: PROVIDER_ERROR if a provider fails to build
        """
        configured = [name for name, config in providers.items() if config is not None]
        if provider not in configured:
            raise StorageError(
                ErrorCode.PROVIDER_NOT_CONFIGURED,
                f"Default provider '{provider}' is not configured",
                {"requestedProvider": provider, "availableProviders": configured},
            )
        return cls(ProviderRegistry(providers, backend_factory), provider, options)

    @classmethod
    def from_backend(
        cls,
        backend: StorageBackend,
        options: StorageKitOptions | None = None,
        provider: str | None = None,
    ) -> "StorageKit":
        """Kit over a custom backend instance."""
        name = provider or backend.provider_name
        return cls(ProviderRegistry.from_backends({name: backend}), name, options)

    @property
    def registry(self) -> ProviderRegistry:
        return self._registry

    @property
    def provider(self) -> str:
        """Default provider name."""
        return self._provider

    @property
    def options(self) -> StorageKitOptions:
        return self._options

    def use_provider(self, name: str) -> ProviderScopedStorageKit:
        """
        Kit bound to another registered provider.

        The scoped kit shares this kit's options object, so default bucket,
        limits and hooks are the same.

        Raises:
            StorageError: PROVIDER_NOT_CONFIGURED if ``name`` is not registered
        """
        return ProviderScopedStorageKit(StorageHandler(self._registry.get(name), self._options))
