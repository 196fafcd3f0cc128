"""
Framework-agnostic request handler.

StorageHandler validates inputs, resolves the default-bucket placeholder and
delegates to a StorageBackend. HTTP adapters and the StorageKit facade both
sit on top of it, so every validation rule lives in one place.
"""
import asyncio
import functools
import inspect
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable

from storage_kit.logging_config import setup_logging
from storage_kit.schemas.storage import (
    BulkDeleteResponse,
    FileUploadResponse,
    HealthCheckResponse,
    SignedUrlOptions,
    SignedUrlResponse,
    UploadCompleteEvent,
    UploadedFile,
    UploadOptions,
)
from storage_kit.storage.base import BucketScope, StorageBackend
from storage_kit.storage.constants import DEFAULT_MAX_FILE_SIZE
from storage_kit.storage.exceptions import ErrorCode, StorageError, wrap_exception
from storage_kit.utils.validators import (
    is_mime_type_allowed,
    require_param,
    resolve_bucket,
    validate_keys_param,
    validate_signed_url_type,
)

logger = setup_logging()

UploadCompleteHook = Callable[[UploadCompleteEvent], Any]
ErrorHook = Callable[[StorageError], Any]


@dataclass
class StorageKitOptions:
    """
    Behaviour shared by a kit and every provider-scoped kit derived from it.

    Hooks may be plain functions or coroutine functions.
    """

    default_bucket: str | None = None
    max_file_size: int = DEFAULT_MAX_FILE_SIZE
    allowed_mime_types: list[str] = field(default_factory=list)
    on_upload_complete: UploadCompleteHook | None = None
    on_error: ErrorHook | None = None


# Strong references to hook tasks still running
_pending_hooks: set[asyncio.Future] = set()


def _hook_finished(name: str, task: asyncio.Future) -> None:
    _pending_hooks.discard(task)
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        logger.error(f"{name} hook failed: {str(exc)}", exc_info=exc)


def _call_hook(hook: Callable[[Any], Any], payload: Any, name: str) -> None:
    """
    Invoke a user hook without waiting for it.

    Plain functions run inline. Awaitable results are scheduled on the
    running loop and never awaited by the caller. Failures of either kind are
    logged, never propagated.
    """
    try:
        result = hook(payload)
        if inspect.isawaitable(result):
            task = asyncio.ensure_future(result)
            _pending_hooks.add(task)
            task.add_done_callback(functools.partial(_hook_finished, name))
    except Exception as e:
        logger.error(f"{name} hook failed: {str(e)}", exc_info=True)


async def wait_for_pending_hooks() -> None:
    """Wait until every scheduled async hook has finished (shutdown, tests)."""
    while _pending_hooks:
        await asyncio.gather(*list(_pending_hooks), return_exceptions=True)


def _reports_errors(method: Callable[..., Awaitable[Any]]) -> Callable[..., Awaitable[Any]]:
    """
    Normalize and report errors leaving a handler method.

    StorageErrors pass through; anything else becomes PROVIDER_ERROR. Either
    way the on_error hook sees the error before it propagates.
    """

    @functools.wraps(method)
    async def wrapper(self: "StorageHandler", *args: Any, **kwargs: Any) -> Any:
        try:
            return await method(self, *args, **kwargs)
        except StorageError as e:
            self._notify_error(e)
            raise
        except Exception as e:
            error = wrap_exception(e)
            logger.error(
                f"Unexpected failure in {method.__name__}: {str(e)}",
                exc_info=True,
            )
            self._notify_error(error)
            raise error from e

    return wrapper


class StorageHandler:
    """Validates requests and dispatches them to one storage backend."""

    def __init__(self, backend: StorageBackend, options: StorageKitOptions | None = None):
        self.backend = backend
        self.options = options if options is not None else StorageKitOptions()

    def _notify_error(self, error: StorageError) -> None:
        if self.options.on_error is not None:
            _call_hook(self.options.on_error, error, "on_error")

    def _notify_upload(self, result: FileUploadResponse, bucket: str) -> None:
        if self.options.on_upload_complete is not None:
            event = UploadCompleteEvent(url=result.url, key=result.key, bucket=bucket)
            _call_hook(self.options.on_upload_complete, event, "on_upload_complete")

    def resolve_bucket(self, bucket: str) -> str:
        """Resolve ``"_"`` to the default bucket."""
        return resolve_bucket(bucket, self.options.default_bucket)

    def bucket(self, name: str) -> BucketScope:
        """
        Get a handle bound to one bucket of this backend.

        Raises:
            StorageError: MISSING_REQUIRED_PARAM for ``"_"`` without default
            StorageError: BUCKET_NOT_FOUND for an empty name
        """
        return self.backend.select_bucket(self.resolve_bucket(name))

    @_reports_errors
    async def handle_upload(
        self,
        bucket: str,
        file: UploadedFile | None,
        path: str | None = None,
        content_type: str | None = None,
    ) -> FileUploadResponse:
        """
        Validate and upload a multipart file.

        Args:
            bucket: Bucket name or ``"_"``
            file: Normalized upload, None when the request had no file
            path: Optional folder prefix
            content_type: Overrides the file's own MIME type

        Raises:
            StorageError: MISSING_FILE if absent, too large or of a
                disallowed MIME type
        """
        if file is None:
            raise StorageError(
                ErrorCode.MISSING_FILE,
                "The request must contain a 'file' field",
                {},
            )

        max_size = self.options.max_file_size
        if max_size and file.size > max_size:
            logger.warning(f"Rejected upload of {file.original_name}: {file.size} bytes")
            raise StorageError(
                ErrorCode.MISSING_FILE,
                f"File size exceeds maximum allowed size of {max_size} bytes",
                {"size": file.size, "maxSize": max_size},
            )

        allowed = self.options.allowed_mime_types
        if not is_mime_type_allowed(file.mime_type, allowed):
            logger.warning(f"Rejected upload of {file.original_name}: {file.mime_type}")
            raise StorageError(
                ErrorCode.MISSING_FILE,
                f"File type '{file.mime_type}' is not allowed",
                {"mimeType": file.mime_type, "allowed": list(allowed)},
            )

        resolved = self.resolve_bucket(bucket)
        result = await self.backend.upload(
            resolved,
            file.data,
            file.original_name,
            path,
            UploadOptions(content_type=content_type or file.mime_type),
        )
        self._notify_upload(result, resolved)
        return result

    @_reports_errors
    async def upload_bytes(
        self,
        bucket: str,
        data: bytes,
        file_name: str,
        folder: str | None = None,
        options: UploadOptions | None = None,
    ) -> FileUploadResponse:
        """Upload raw bytes without multipart validation."""
        require_param(file_name, "file_name")
        resolved = self.resolve_bucket(bucket)
        result = await self.backend.upload(resolved, data, file_name, folder, options)
        self._notify_upload(result, resolved)
        return result

    @_reports_errors
    async def handle_delete(self, bucket: str, key: str) -> None:
        require_param(key, "key")
        await self.backend.delete(self.resolve_bucket(bucket), key)

    @_reports_errors
    async def handle_bulk_delete(self, bucket: str, keys: Any) -> BulkDeleteResponse:
        keys = validate_keys_param(keys)
        return await self.backend.bulk_delete(self.resolve_bucket(bucket), keys)

    @_reports_errors
    async def handle_signed_url(
        self,
        bucket: str,
        key: str | None,
        url_type: str | None,
        options: SignedUrlOptions | None = None,
    ) -> SignedUrlResponse:
        """
        Generate a presigned upload or download URL.

        Raises:
            StorageError: MISSING_REQUIRED_PARAM if key or type is missing
            StorageError: INVALID_SIGNED_URL_TYPE for any other type
        """
        require_param(key, "key")
        validate_signed_url_type(url_type)
        resolved = self.resolve_bucket(bucket)

        if url_type == "upload":
            return await self.backend.get_presigned_upload_url(resolved, key, options)
        # Content type is meaningless for downloads
        download_options = SignedUrlOptions(expires_in=options.expires_in) if options else None
        return await self.backend.get_presigned_download_url(resolved, key, download_options)

    @_reports_errors
    async def get_presigned_upload_url(
        self,
        bucket: str,
        key: str,
        options: SignedUrlOptions | None = None,
    ) -> SignedUrlResponse:
        require_param(key, "key")
        return await self.backend.get_presigned_upload_url(
            self.resolve_bucket(bucket), key, options
        )

    @_reports_errors
    async def get_presigned_download_url(
        self,
        bucket: str,
        key: str,
        options: SignedUrlOptions | None = None,
    ) -> SignedUrlResponse:
        require_param(key, "key")
        return await self.backend.get_presigned_download_url(
            self.resolve_bucket(bucket), key, options
        )

    @_reports_errors
    async def get_file_url(self, bucket: str, key: str) -> str:
        require_param(key, "key")
        return await self.backend.get_file_url(self.resolve_bucket(bucket), key)

    async def handle_health_check(self) -> HealthCheckResponse:
        """Probe the backend. Never raises."""
        try:
            return await self.backend.health_check()
        except Exception as e:
            logger.error(f"Health check raised: {str(e)}", exc_info=True)
            return HealthCheckResponse(
                status="unhealthy",
                error_message=str(e) or e.__class__.__name__,
            )
