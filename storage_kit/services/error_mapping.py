"""
Error to HTTP response mapping.

Every StorageError code has one HTTP status. Adapters use
map_error_to_response at their boundary; map_any_error_to_response also
accepts arbitrary exceptions by wrapping them as PROVIDER_ERROR first.
"""
from typing import Any

from storage_kit.schemas.common import ErrorBody, ErrorDetail, HttpErrorResponse
from storage_kit.storage.exceptions import ErrorCode, StorageError, wrap_exception

ERROR_STATUS_MAP: dict[ErrorCode, int] = {
    ErrorCode.BUCKET_NOT_FOUND: 404,
    ErrorCode.FILE_NOT_FOUND: 404,
    ErrorCode.MISSING_FILE: 400,
    ErrorCode.MISSING_REQUIRED_PARAM: 400,
    ErrorCode.INVALID_SIGNED_URL_TYPE: 400,
    ErrorCode.EMPTY_KEYS_ARRAY: 400,
    ErrorCode.KEYS_LIMIT_EXCEEDED: 400,
    ErrorCode.PROVIDER_NOT_CONFIGURED: 400,
    ErrorCode.UPLOAD_FAILED: 500,
    ErrorCode.DELETE_FAILED: 500,
    ErrorCode.SIGNED_URL_FAILED: 500,
    ErrorCode.PROVIDER_ERROR: 500,
}

DEFAULT_ERROR_STATUS = 500


def is_storage_error(value: Any) -> bool:
    return isinstance(value, StorageError)


def map_error_to_response(error: StorageError) -> HttpErrorResponse:
    """
    Map a StorageError to an HTTP status and JSON body.

    Unrecognized codes fall back to 500.
    """
    return HttpErrorResponse(
        status=ERROR_STATUS_MAP.get(error.code, DEFAULT_ERROR_STATUS),
        body=ErrorBody(
            error=ErrorDetail(
                code=error.code,
                message=error.message,
                details=error.details,
            )
        ),
    )


def map_any_error_to_response(exc: BaseException) -> HttpErrorResponse:
    """Map any exception; non-StorageErrors become PROVIDER_ERROR (500)."""
    return map_error_to_response(wrap_exception(exc))
