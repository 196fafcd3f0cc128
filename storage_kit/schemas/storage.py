"""
Storage operation schemas.

Result values returned by every backend, the options accepted by upload and
signing calls, and the normalized upload payload built by the HTTP layer.
Results serialize with camelCase aliases (``signedUrl``, ``deletedCount``).
"""
from dataclasses import dataclass
from datetime import datetime
from typing import List, Literal

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from storage_kit.storage.exceptions import ErrorCode


class _ResultModel(BaseModel):
    model_config = ConfigDict(
        frozen=True,
        populate_by_name=True,
        alias_generator=to_camel,
    )


class FileUploadResponse(_ResultModel):
    """File upload response schema."""

    url: str
    """Public URL of the uploaded file."""

    key: str
    """Storage key (path) of the uploaded file."""

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "url": "http://localhost:9000/uploads/avatars/a.png",
                    "key": "avatars/a.png",
                }
            ]
        }
    }


class SignedUrlResponse(_ResultModel):
    """Presigned URL response schema."""

    signed_url: str
    """Presigned URL for upload (PUT) or download (GET)."""

    public_url: str | None = None
    """Eventual public URL of the file (upload URLs only)."""

    expires_at: datetime
    """When the presigned URL expires (UTC)."""


class BulkDeleteFailure(_ResultModel):
    """A single key that could not be deleted."""

    key: str
    reason_code: ErrorCode


class BulkDeleteResponse(_ResultModel):
    """Bulk delete response schema."""

    deleted_count: int
    """Number of successfully deleted files."""

    failures: List[BulkDeleteFailure] = []
    """Keys that failed to delete, with a reason code each."""


class HealthCheckResponse(_ResultModel):
    """Health check response schema."""

    status: Literal["healthy", "unhealthy"]
    provider_name: str | None = None
    error_message: str | None = None


@dataclass(frozen=True)
class UploadOptions:
    """Options for a single upload."""

    content_type: str | None = None
    upsert: bool | None = None


@dataclass(frozen=True)
class SignedUrlOptions:
    """Options for presigned URL generation."""

    content_type: str | None = None
    expires_in: int | None = None


@dataclass(frozen=True)
class UploadedFile:
    """
    Normalized file input from a multipart upload.

    HTTP adapters convert their framework-specific file objects into this
    shape before handing them to the request handler.
    """

    data: bytes
    original_name: str
    mime_type: str
    size: int


@dataclass(frozen=True)
class UploadCompleteEvent:
    """Payload passed to the on_upload_complete hook."""

    url: str
    key: str
    bucket: str
