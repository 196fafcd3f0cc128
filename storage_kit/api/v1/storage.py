"""
Storage API endpoints.

Thin FastAPI adapter over the StorageKit facade: converts multipart uploads,
query strings and JSON bodies into handler calls. Every StorageError raised
here is turned into its HTTP response by the application exception handler.
"""
from typing import Any

from fastapi import APIRouter, Body, Depends, File, Form, Query, Response, UploadFile, status
from fastapi.responses import JSONResponse

from storage_kit.dependencies.storage import get_storage_kit
from storage_kit.schemas.storage import (
    BulkDeleteResponse,
    FileUploadResponse,
    HealthCheckResponse,
    SignedUrlOptions,
    SignedUrlResponse,
    UploadedFile,
)
from storage_kit.services.kit import StorageKit
from storage_kit.storage.constants import DEFAULT_CONTENT_TYPE

router = APIRouter(tags=["storage"])


@router.get(
    "/health",
    response_model=HealthCheckResponse,
    responses={503: {"model": HealthCheckResponse}},
)
async def health_check(kit: StorageKit = Depends(get_storage_kit)):
    """
    Check provider connectivity.

    Returns 200 when the provider is reachable, 503 otherwise.
    """
    result = await kit.handle_health_check()
    return JSONResponse(
        status_code=(
            status.HTTP_200_OK
            if result.status == "healthy"
            else status.HTTP_503_SERVICE_UNAVAILABLE
        ),
        content=result.model_dump(mode="json", by_alias=True, exclude_none=True),
    )


@router.post(
    "/{bucket}/files",
    response_model=FileUploadResponse,
    status_code=status.HTTP_201_CREATED,
)
async def upload_file(
    bucket: str,
    file: UploadFile | None = File(None),
    path: str | None = Form(None),
    content_type: str | None = Form(None, alias="contentType"),
    kit: StorageKit = Depends(get_storage_kit),
):
    """
    Upload a file.

    **Request (multipart/form-data):**
    - file: File content
    - path: Optional folder prefix
    - contentType: Optional content type override

    Use `_` as bucket to target the configured default bucket.

    **Example:**
    ```bash
    curl -X POST http://localhost:8000/api/storage/_/files \\
      -F "file=@avatar.png" \\
      -F "path=avatars"
    ```
    """
    uploaded = None
    if file is not None:
        data = await file.read()
        uploaded = UploadedFile(
            data=data,
            original_name=file.filename or "file",
            mime_type=file.content_type or DEFAULT_CONTENT_TYPE,
            size=len(data),
        )
    return await kit.handle_upload(bucket, uploaded, path, content_type)


@router.delete(
    "/{bucket}/files/{file_path:path}",
    status_code=status.HTTP_204_NO_CONTENT,
)
async def delete_file(
    bucket: str,
    file_path: str,
    kit: StorageKit = Depends(get_storage_kit),
):
    """Delete a single file."""
    await kit.handle_delete(bucket, file_path)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.delete(
    "/{bucket}/files",
    response_model=BulkDeleteResponse,
)
async def delete_files(
    bucket: str,
    payload: Any = Body(None),
    kit: StorageKit = Depends(get_storage_kit),
):
    """
    Delete up to 1000 files.

    **Request (JSON):** `{"keys": ["a.png", "b.png"]}`

    Keys that could not be deleted are listed in `failures`.
    """
    keys = payload.get("keys") if isinstance(payload, dict) else None
    return await kit.handle_bulk_delete(bucket, keys)


@router.get(
    "/{bucket}/signed-url",
    response_model=SignedUrlResponse,
    response_model_exclude_none=True,
)
async def get_signed_url(
    bucket: str,
    key: str | None = Query(None),
    url_type: str | None = Query(None, alias="type"),
    expires_in: int | None = Query(None, alias="expiresIn"),
    content_type: str | None = Query(None, alias="contentType"),
    kit: StorageKit = Depends(get_storage_kit),
):
    """
    Generate a presigned URL.

    **Query parameters:**
    - key: Object key
    - type: `upload` or `download`
    - expiresIn: Optional expiration in seconds
    - contentType: Optional content type (upload only)
    """
    options = SignedUrlOptions(content_type=content_type, expires_in=expires_in)
    return await kit.handle_signed_url(bucket, key, url_type, options)
