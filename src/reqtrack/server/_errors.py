"""Error envelopes for the HTTP surface.

Every failure is rendered as ``{"error": ..., "code": ..., "details": ...}``
with the status code of its error kind.
"""

from __future__ import annotations

from http import HTTPStatus
from typing import TYPE_CHECKING, Final

from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from reqtrack.exceptions import ErrorKind, ReqtrackError

if TYPE_CHECKING:
    from fastapi import FastAPI, Request
    from structlog.typing import FilteringBoundLogger

__all__ = ["STATUS_BY_KIND", "error_response", "install_error_handlers"]

STATUS_BY_KIND: Final[dict[ErrorKind, int]] = {
    ErrorKind.NOT_FOUND: HTTPStatus.NOT_FOUND,
    ErrorKind.VALIDATION_ERROR: HTTPStatus.BAD_REQUEST,
    ErrorKind.UNAUTHENTICATED: HTTPStatus.UNAUTHORIZED,
    ErrorKind.FORBIDDEN: HTTPStatus.FORBIDDEN,
    ErrorKind.CONFLICT_DUPLICATE: HTTPStatus.CONFLICT,
    ErrorKind.CONFLICT_IN_USE: HTTPStatus.CONFLICT,
    ErrorKind.INTERNAL: HTTPStatus.INTERNAL_SERVER_ERROR,
}

_CODE_BY_STATUS: Final[dict[int, ErrorKind]] = {
    HTTPStatus.NOT_FOUND: ErrorKind.NOT_FOUND,
    HTTPStatus.METHOD_NOT_ALLOWED: ErrorKind.NOT_FOUND,
    HTTPStatus.UNAUTHORIZED: ErrorKind.UNAUTHENTICATED,
    HTTPStatus.FORBIDDEN: ErrorKind.FORBIDDEN,
}


def error_response(
    status: int, message: str, code: str, details: str | None = None
) -> JSONResponse:
    body: dict[str, str] = {"error": message, "code": code}
    if details is not None:
        body["details"] = details
    headers = {"WWW-Authenticate": "Bearer"} if status == HTTPStatus.UNAUTHORIZED else None
    return JSONResponse(body, status_code=status, headers=headers)


def _format_validation_error(exc: RequestValidationError) -> str:
    parts: list[str] = []
    for error in exc.errors():
        location = ".".join(str(p) for p in error.get("loc", ()) if p != "body")
        message = str(error.get("msg", "invalid"))
        parts.append(f"{location}: {message}" if location else message)
    return "; ".join(parts)


def install_error_handlers(app: FastAPI, logger: FilteringBoundLogger | None) -> None:
    """Register handlers that render every failure as an error envelope."""

    async def handle_domain_error(request: Request, exc: Exception) -> JSONResponse:
        assert isinstance(exc, ReqtrackError)  # noqa: S101
        status = STATUS_BY_KIND[exc.kind]
        if exc.kind is ErrorKind.INTERNAL:
            if logger is not None:
                logger.error(
                    "request_failed",
                    method=request.method,
                    path=request.url.path,
                    error_type=type(exc).__name__,
                )
            return error_response(status, "Internal server error", ErrorKind.INTERNAL.value)
        return error_response(status, exc.message, exc.code, exc.details)

    async def handle_request_validation(
        _request: Request, exc: Exception
    ) -> JSONResponse:
        assert isinstance(exc, RequestValidationError)  # noqa: S101
        return error_response(
            HTTPStatus.BAD_REQUEST,
            "Request validation failed",
            ErrorKind.VALIDATION_ERROR.value,
            _format_validation_error(exc),
        )

    async def handle_http_error(_request: Request, exc: Exception) -> JSONResponse:
        assert isinstance(exc, StarletteHTTPException)  # noqa: S101
        kind = _CODE_BY_STATUS.get(exc.status_code, ErrorKind.VALIDATION_ERROR)
        return error_response(exc.status_code, str(exc.detail), kind.value)

    async def handle_unexpected(request: Request, exc: Exception) -> JSONResponse:
        if logger is not None:
            logger.exception(
                "unhandled_exception",
                method=request.method,
                path=request.url.path,
                error_type=type(exc).__name__,
            )
        return error_response(
            HTTPStatus.INTERNAL_SERVER_ERROR,
            "Internal server error",
            ErrorKind.INTERNAL.value,
        )

    app.add_exception_handler(ReqtrackError, handle_domain_error)
    app.add_exception_handler(RequestValidationError, handle_request_validation)
    app.add_exception_handler(StarletteHTTPException, handle_http_error)
    app.add_exception_handler(Exception, handle_unexpected)
