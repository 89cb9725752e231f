"""Uniform response envelope and error rendering.

Every API response has the shape::

    {"data": ..., "error": null | {"code": ..., "message": ...}, "meta": {"timestamp": ...}}
"""

from datetime import UTC, datetime
from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from ugc_engine.errors import AppError, ErrorKind, ProviderError
from ugc_engine.logging import get_logger

logger = get_logger(__name__)

STATUS_BY_CODE = {
    "NotFound": status.HTTP_404_NOT_FOUND,
    "ValidationError": status.HTTP_400_BAD_REQUEST,
    "RateLimited": status.HTTP_429_TOO_MANY_REQUESTS,
    "ProviderError": status.HTTP_502_BAD_GATEWAY,
    "CompositionError": status.HTTP_502_BAD_GATEWAY,
    "UploadError": status.HTTP_502_BAD_GATEWAY,
    "RetryExhausted": status.HTTP_502_BAD_GATEWAY,
}


def _meta() -> dict[str, str]:
    return {"timestamp": datetime.now(UTC).isoformat()}


def envelope(data: Any) -> dict[str, Any]:
    """Wrap a successful result."""
    if isinstance(data, BaseModel):
        data = data.model_dump(mode="json")
    elif isinstance(data, list):
        data = [d.model_dump(mode="json") if isinstance(d, BaseModel) else d for d in data]
    return {"data": jsonable_encoder(data), "error": None, "meta": _meta()}


def error_response(
    status_code: int,
    error: dict[str, Any],
    headers: dict[str, str] | None = None,
) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"data": None, "error": jsonable_encoder(error), "meta": _meta()},
        headers=headers,
    )


async def app_error_handler(request: Request, exc: Exception) -> JSONResponse:
    if not isinstance(exc, AppError):
        return await unhandled_error_handler(request, exc)
    status_code = STATUS_BY_CODE.get(exc.code, status.HTTP_500_INTERNAL_SERVER_ERROR)
    headers = None
    if isinstance(exc, ProviderError) and exc.kind is ErrorKind.RATE_LIMITED:
        headers = {"Retry-After": str(int(exc.retry_after or 60))}

    logger.info("api_error", path=request.url.path, code=exc.code, status_code=status_code)
    return error_response(status_code, exc.to_dict(), headers)


async def request_validation_handler(request: Request, exc: Exception) -> JSONResponse:
    if not isinstance(exc, RequestValidationError):
        return await unhandled_error_handler(request, exc)
    fields = {
        ".".join(str(part) for part in err["loc"] if part != "body"): err["msg"]
        for err in exc.errors()
    }
    return error_response(
        status.HTTP_400_BAD_REQUEST,
        {"code": "ValidationError", "message": "Invalid request", "fields": fields},
    )


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("api_unhandled_error", path=request.url.path, error=str(exc))
    return error_response(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        {"code": "InternalError", "message": "An unexpected error occurred"},
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
