"""
Storage-specific exceptions.

Every failure that leaves the storage layer is a StorageError carrying one
code from the closed ErrorCode set, a human-readable message and a details
mapping with enough context (key, bucket, provider, limits) to diagnose the
problem without a stack trace.
"""
from enum import Enum
from typing import Any


class ErrorCode(str, Enum):
    """Closed set of storage error codes."""

    BUCKET_NOT_FOUND = "BUCKET_NOT_FOUND"
    FILE_NOT_FOUND = "FILE_NOT_FOUND"
    MISSING_FILE = "MISSING_FILE"
    MISSING_REQUIRED_PARAM = "MISSING_REQUIRED_PARAM"
    INVALID_SIGNED_URL_TYPE = "INVALID_SIGNED_URL_TYPE"
    EMPTY_KEYS_ARRAY = "EMPTY_KEYS_ARRAY"
    KEYS_LIMIT_EXCEEDED = "KEYS_LIMIT_EXCEEDED"
    PROVIDER_NOT_CONFIGURED = "PROVIDER_NOT_CONFIGURED"
    UPLOAD_FAILED = "UPLOAD_FAILED"
    DELETE_FAILED = "DELETE_FAILED"
    SIGNED_URL_FAILED = "SIGNED_URL_FAILED"
    PROVIDER_ERROR = "PROVIDER_ERROR"


class StorageError(Exception):
    """
    Base exception for storage operations.

    Provides a consistent error format across all providers. The code is
    coerced into ErrorCode, so an ad-hoc string raises ValueError at
    construction time instead of leaking out as an unknown code.
    """

    def __init__(
        self,
        code: ErrorCode | str,
        message: str,
        details: dict[str, Any] | None = None,
    ):
        self.code = ErrorCode(code)
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        """
        Convert to the JSON error body.

        Returns:
            {"error": {"code": ..., "message": ..., "details": ...}}
        """
        return {
            "error": {
                "code": self.code.value,
                "message": self.message,
                "details": self.details,
            }
        }

    def __repr__(self) -> str:
        return f"StorageError(code={self.code.value!r}, message={self.message!r})"


def wrap_exception(exc: BaseException) -> StorageError:
    """
    Normalize any exception into a StorageError.

    StorageError instances are returned unchanged. Anything else becomes a
    PROVIDER_ERROR with the original message preserved in details.

    Args:
        exc: The exception to normalize

    Returns:
        StorageError instance
    """
    if isinstance(exc, StorageError):
        return exc

    message = str(exc) or exc.__class__.__name__
    return StorageError(
        ErrorCode.PROVIDER_ERROR,
        message,
        {
            "originalError": message,
            "errorType": exc.__class__.__name__,
        },
    )
