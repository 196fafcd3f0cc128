"""
Request validation helpers.

Pure functions used by the request handler before any backend is touched.
Each one raises StorageError with the matching validation code.
"""
from typing import Any

from storage_kit.storage.base import validate_bulk_delete_keys
from storage_kit.storage.constants import DEFAULT_BUCKET_PLACEHOLDER
from storage_kit.storage.exceptions import ErrorCode, StorageError

SIGNED_URL_TYPES = ("upload", "download")


def resolve_bucket(requested: str, default_bucket: str | None) -> str:
    """
    Resolve the bucket placeholder.

    ``"_"`` means the configured default bucket; any other value passes
    through unchanged.

    Raises:
        StorageError: MISSING_REQUIRED_PARAM if ``"_"`` is used without a
            default bucket
    """
    if requested != DEFAULT_BUCKET_PLACEHOLDER:
        return requested

    if not default_bucket:
        raise StorageError(
            ErrorCode.MISSING_REQUIRED_PARAM,
            "Bucket '_' requires a default bucket to be configured",
            {"parameter": "bucket"},
        )
    return default_bucket


def require_param(value: Any, name: str) -> None:
    """Raise MISSING_REQUIRED_PARAM when ``value`` is None or empty."""
    if value is None or value == "":
        raise StorageError(
            ErrorCode.MISSING_REQUIRED_PARAM,
            f"Missing required parameter: {name}",
            {"parameter": name},
        )


def is_mime_type_allowed(mime_type: str, allowed: list[str]) -> bool:
    """
    Check a MIME type against an allow-list.

    Entries ending in ``/*`` match by prefix (``image/*`` matches
    ``image/png``); other entries must match exactly. An empty list allows
    everything.
    """
    if not allowed:
        return True

    for pattern in allowed:
        if pattern.endswith("/*"):
            if mime_type.startswith(pattern[:-1]):
                return True
        elif mime_type == pattern:
            return True
    return False


def validate_keys_param(keys: Any) -> list[str]:
    """
    Validate the ``keys`` parameter of a bulk delete request.

    Raises:
        StorageError: MISSING_REQUIRED_PARAM if keys is absent or not a list
        StorageError: EMPTY_KEYS_ARRAY / KEYS_LIMIT_EXCEEDED on bad size
    """
    if keys is None or not isinstance(keys, list):
        raise StorageError(
            ErrorCode.MISSING_REQUIRED_PARAM,
            "Missing required parameter: keys (must be an array)",
            {"parameter": "keys"},
        )
    validate_bulk_delete_keys(keys)
    return keys


def validate_signed_url_type(url_type: Any) -> str:
    """
    Validate the ``type`` parameter of a signed URL request.

    Raises:
        StorageError: MISSING_REQUIRED_PARAM if missing
        StorageError: INVALID_SIGNED_URL_TYPE unless upload or download
    """
    require_param(url_type, "type")
    if url_type not in SIGNED_URL_TYPES:
        raise StorageError(
            ErrorCode.INVALID_SIGNED_URL_TYPE,
            "The 'type' parameter must be 'upload' or 'download'",
            {"provided": url_type, "allowed": list(SIGNED_URL_TYPES)},
        )
    return url_type
