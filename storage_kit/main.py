from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from storage_kit.api.v1.router import router as v1_router
from storage_kit.config import settings
from storage_kit.logging_config import setup_logging
from storage_kit.services.error_mapping import map_any_error_to_response, map_error_to_response
from storage_kit.services.handler import wait_for_pending_hooks
from storage_kit.storage.exceptions import ErrorCode, StorageError

# Setup application logging
logger = setup_logging(settings.LOG_LEVEL)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    yield
    # Let scheduled upload/error hooks finish before the loop goes away
    await wait_for_pending_hooks()


async def storage_error_handler(request: Request, exc: StorageError):
    """Render a StorageError as its HTTP status and JSON error body."""
    response = map_error_to_response(exc)
    if response.status >= 500:
        logger.error(
            f"Storage error {exc.code.value}: {exc.message}",
            extra={
                "path": request.url.path,
                "method": request.method,
            },
        )
    return JSONResponse(
        status_code=response.status,
        content=response.body.model_dump(mode="json"),
    )


async def validation_error_handler(request: Request, exc: RequestValidationError):
    """Render malformed request parameters as MISSING_REQUIRED_PARAM."""
    errors = exc.errors()
    first = errors[0] if errors else {}
    loc = first.get("loc") or ("request",)
    parameter = str(loc[-1])
    reason = str(first.get("msg", "Invalid value"))

    return await storage_error_handler(
        request,
        StorageError(
            ErrorCode.MISSING_REQUIRED_PARAM,
            f"Invalid parameter: {parameter} ({reason})",
            {"parameter": parameter, "reason": reason},
        ),
    )


async def generic_exception_handler(request: Request, exc: Exception):
    # Log detailed error for debugging (includes stack trace)
    logger.error(
        f"Unhandled exception: {exc.__class__.__name__}: {str(exc)}",
        exc_info=True,
        extra={
            "path": request.url.path,
            "method": request.method,
        },
    )

    response = map_any_error_to_response(exc)
    return JSONResponse(
        status_code=response.status,
        content=response.body.model_dump(mode="json"),
    )


def create_app() -> FastAPI:
    """Build the Storage Kit HTTP service."""
    app = FastAPI(title="Storage Kit API", lifespan=lifespan)

    # All storage endpoints live under /api/storage
    app.include_router(v1_router, prefix="/api/storage")

    app.add_exception_handler(StorageError, storage_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(Exception, generic_exception_handler)
    return app


app = create_app()
