from typing import Any, Dict

from pydantic import BaseModel

from storage_kit.storage.exceptions import ErrorCode


class ErrorDetail(BaseModel):
    code: ErrorCode
    message: str
    details: Dict[str, Any] = {}


class ErrorBody(BaseModel):
    error: ErrorDetail


class HttpErrorResponse(BaseModel):
    """HTTP-shaped error: status code plus the JSON body to send."""

    status: int
    body: ErrorBody
