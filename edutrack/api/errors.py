"""Exception handlers. Every error leaves the API as ``{"message": ...}``."""

from __future__ import annotations

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from edutrack.core.constants import MSG_BAD_REQUEST, MSG_INTERNAL
from edutrack.core.exceptions import EduTrackError, InternalError
from edutrack.core.logging import get_logger

log = get_logger(__name__)


def error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"message": message})


async def _handle_edutrack_error(request: Request, exc: EduTrackError) -> JSONResponse:
    if isinstance(exc, InternalError):
        log.error(
            "internal_error",
            path=request.url.path,
            error=exc.message,
            error_type=type(exc).__name__,
            context=exc.context,
        )
        return error_response(exc.status_code, MSG_INTERNAL)
    return error_response(exc.status_code, exc.message)


async def _handle_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    log.debug("request_validation_failed", path=request.url.path, errors=len(exc.errors()))
    return error_response(status.HTTP_400_BAD_REQUEST, MSG_BAD_REQUEST)


async def _handle_http_exception(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return error_response(exc.status_code, str(exc.detail))


async def _handle_unexpected(request: Request, exc: Exception) -> JSONResponse:
    log.error("unhandled_exception", path=request.url.path, error=str(exc), exc_info=exc)
    return error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, MSG_INTERNAL)


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(EduTrackError, _handle_edutrack_error)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, _handle_validation_error)  # type: ignore[arg-type]
    app.add_exception_handler(StarletteHTTPException, _handle_http_exception)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, _handle_unexpected)
