"""
app/api/error_handlers.py

The single mapping from raised errors to HTTP responses.

Body shape: {"kind": str, "message": str, "context"?: dict, "stack"?: list}
``stack`` is only present when APP_ENV=development.
"""

from __future__ import annotations

import logging
import traceback
from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from app.config import get_app_settings
from app.errors import HMPIServiceError

logger = logging.getLogger(__name__)


def _with_stack(payload: dict[str, Any], exc: BaseException) -> dict[str, Any]:
    if get_app_settings().is_development:
        payload["stack"] = traceback.format_exception(type(exc), exc, exc.__traceback__)
    return payload


def error_response(exc: BaseException) -> JSONResponse:
    if isinstance(exc, HMPIServiceError):
        payload = exc.to_dict()
        status_code = exc.status_code
    else:
        payload = {"kind": "internal_error", "message": "An unexpected error occurred."}
        status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    return JSONResponse(status_code=status_code, content=jsonable_encoder(_with_stack(payload, exc)))


async def _handle_service_error(request: Request, exc: HMPIServiceError) -> JSONResponse:
    log = logger.error if exc.status_code >= 500 else logger.info
    log(
        "Request failed method=%s path=%s kind=%s status=%d message=%s",
        request.method,
        request.url.path,
        exc.kind,
        exc.status_code,
        exc.message,
    )
    return error_response(exc)


async def _handle_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    payload = {
        "kind": "validation_error",
        "message": "Request validation failed.",
        "context": {"errors": exc.errors()},
    }
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content=jsonable_encoder(payload),
    )


async def _handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error method=%s path=%s", request.method, request.url.path)
    return error_response(exc)


def register_error_handlers(application: FastAPI) -> None:
    application.add_exception_handler(HMPIServiceError, _handle_service_error)
    application.add_exception_handler(RequestValidationError, _handle_validation_error)
    application.add_exception_handler(Exception, _handle_unexpected_error)
