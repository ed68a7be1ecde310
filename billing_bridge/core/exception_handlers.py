"""
FastAPI exception handlers for custom exceptions.

WHY: Exception handlers convert our custom exceptions into `{"failure": ...}`
JSON responses with the right status code, and make sure every failure is
logged once with its context.
"""

import logging

from fastapi import Request
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from billing_bridge.core.exceptions import AppException

logger = logging.getLogger(__name__)


async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    """
    Handle custom AppException and its subclasses.

    Args:
        request: The FastAPI request object
        exc: The custom exception instance

    Returns:
        JSONResponse with the failure reason
    """
    log = logger.error if exc.status_code >= 500 or exc.retryable else logger.warning
    log(
        f"{request.method} {request.url.path} failed: {exc.message}",
        extra=exc.log_context(),
    )
    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_dict(),
    )


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """
    Handle Pydantic validation errors raised by FastAPI parameter parsing.

    Args:
        request: The FastAPI request object
        exc: The Pydantic validation error

    Returns:
        JSONResponse with a 400 failure
    """
    fields = [".".join(str(loc) for loc in error["loc"]) for error in exc.errors()]
    logger.warning(
        f"Request validation failed for {request.url.path}",
        extra={"fields": fields},
    )
    return JSONResponse(
        status_code=400,
        content={"failure": "request validation failed"},
    )


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """
    Handle Starlette HTTP exceptions (404, 405) in the same body format.
    """
    return JSONResponse(
        status_code=exc.status_code,
        content={"failure": str(exc.detail)},
    )


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Catch-all handler for unexpected exceptions.

    WHY: Log the full traceback but return a generic error so internal
    details never reach the caller.
    """
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    return JSONResponse(
        status_code=500,
        content={"failure": "an unexpected error occurred"},
    )
