"""
PEACE - Exception Handlers
すべての例外を {code, message, data} エンベロープに変換する
"""
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.api.responses import envelope
from app.core.errors import (
    AppError,
    CODE_BAD_REQUEST,
    CODE_FORBIDDEN,
    CODE_NOT_FOUND,
    CODE_SERVER_ERROR,
    CODE_UNAUTHORIZED,
)
from app.core.logger import get_traced_logger

logger = get_traced_logger("ErrorHandler")

_STATUS_CODES = {
    400: CODE_BAD_REQUEST,
    401: CODE_UNAUTHORIZED,
    403: CODE_FORBIDDEN,
    404: CODE_NOT_FOUND,
}


def code_for_status(status_code: int) -> str:
    if status_code in _STATUS_CODES:
        return _STATUS_CODES[status_code]
    if status_code >= 500:
        return CODE_SERVER_ERROR
    return CODE_BAD_REQUEST


async def app_error_handler(request: Request, exc: AppError):
    if exc.status_code >= 500:
        logger.error(
            "Request failed",
            metadata={"path": request.url.path, "error": exc.message, "error_type": exc.__class__.__name__},
        )
    return envelope(exc.code, exc.message, status_code=exc.status_code)


async def validation_error_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    message = "invalid request body"
    if errors:
        first = errors[0]
        location = ".".join(str(p) for p in first.get("loc", ()) if p != "body")
        message = f"invalid request: {location} {first.get('msg', '')}".strip()
    return envelope(CODE_BAD_REQUEST, message, status_code=400)


async def http_error_handler(request: Request, exc: StarletteHTTPException):
    message = exc.detail if isinstance(exc.detail, str) else "request failed"
    return envelope(
        code_for_status(exc.status_code),
        message,
        status_code=exc.status_code,
    )


async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception(
        "Unhandled exception",
        metadata={"path": request.url.path, "error_type": exc.__class__.__name__},
    )
    return envelope(CODE_SERVER_ERROR, "internal server error", status_code=500)


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
