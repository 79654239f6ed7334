# natours/core/errors.py
"""
Error hierarchy and the centralized error normalizer.

Operational errors (AppError and its subclasses) carry an HTTP status and a
message that is safe to show to clients. Everything else is treated as a
programming error: logged with its traceback and hidden behind a generic
message in production.
"""
import asyncio
import logging
import re
import sys
import traceback

import jwt
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from tortoise.exceptions import IntegrityError

from natours.config import settings

logger = logging.getLogger("uvicorn.error")


class AppError(Exception):
    """Operational error with a client-facing message."""

    def __init__(self, message: str, status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.status = "fail" if str(status_code).startswith("4") else "error"
        self.is_operational = True


class BadRequestError(AppError):
    def __init__(self, message: str):
        super().__init__(message, status.HTTP_400_BAD_REQUEST)


class ValidationFailedError(BadRequestError):
    pass


class InvalidIdentifierError(BadRequestError):
    def __init__(self, value):
        super().__init__(f"Invalid id: {value}.")
        self.value = value


class UnauthorizedError(AppError):
    def __init__(self, message: str):
        super().__init__(message, status.HTTP_401_UNAUTHORIZED)


class ForbiddenError(AppError):
    def __init__(self, message: str = "You do not have permission to perform this action"):
        super().__init__(message, status.HTTP_403_FORBIDDEN)


class NotFoundError(AppError):
    def __init__(self, message: str = "No document found with that ID"):
        super().__init__(message, status.HTTP_404_NOT_FOUND)


class InternalError(AppError):
    def __init__(self, message: str):
        super().__init__(message, status.HTTP_500_INTERNAL_SERVER_ERROR)


INVALID_TOKEN_MESSAGE = "Invalid token. Please log in again!"
EXPIRED_TOKEN_MESSAGE = "Your token has expired! Please log in again."
GENERIC_ERROR_MESSAGE = "Something went very wrong!"
INVALID_DATA_MESSAGE = "Invalid input data. A value conflicts with existing data or is missing."


def _status_for(code: int) -> str:
    return "fail" if 400 <= code < 500 else "error"


def _error_response(exc: Exception, status_code: int, message: str) -> JSONResponse:
    body = {"status": _status_for(status_code), "message": message}
    if not settings.is_production:
        body["error"] = {"name": type(exc).__name__, "detail": str(exc)}
        body["stack"] = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
    return JSONResponse(status_code=status_code, content=body)


def format_validation_errors(errors) -> str:
    parts = []
    for err in errors:
        loc = [str(p) for p in err.get("loc", ()) if p not in ("body", "query", "path")]
        msg = err.get("msg", "invalid value")
        parts.append(f"{'.'.join(loc)}: {msg}" if loc else msg)
    return "Invalid input data. " + ". ".join(parts)


_UNIQUE_COLUMNS = re.compile(r"UNIQUE constraint failed: ([\w., ]+)|Key \(([^)]+)\)=\(.*\) already exists")
_UNIQUE_VIOLATION = re.compile(r"UNIQUE constraint failed|duplicate key value violates unique constraint")


def format_integrity_error(exc: IntegrityError) -> str:
    """Duplicate-key wording for unique violations; NOT NULL and foreign-key failures get a generic message."""
    text = str(exc)
    if not _UNIQUE_VIOLATION.search(text):
        return INVALID_DATA_MESSAGE
    match = _UNIQUE_COLUMNS.search(text)
    if match:
        columns = match.group(1) or match.group(2)
        fields = ", ".join(c.strip().split(".")[-1] for c in columns.split(","))
        return f"Duplicate field value: {fields}. Please use another value!"
    return "Duplicate field value. Please use another value!"


async def app_error_handler(request: Request, exc: AppError):
    return JSONResponse(status_code=exc.status_code, content={"status": exc.status, "message": exc.message})


async def validation_error_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"status": "fail", "message": format_validation_errors(exc.errors())},
    )


async def integrity_error_handler(request: Request, exc: IntegrityError):
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"status": "fail", "message": format_integrity_error(exc)},
    )


async def expired_token_handler(request: Request, exc: jwt.ExpiredSignatureError):
    return JSONResponse(
        status_code=status.HTTP_401_UNAUTHORIZED,
        content={"status": "fail", "message": EXPIRED_TOKEN_MESSAGE},
    )


async def invalid_token_handler(request: Request, exc: jwt.InvalidTokenError):
    return JSONResponse(
        status_code=status.HTTP_401_UNAUTHORIZED,
        content={"status": "fail", "message": INVALID_TOKEN_MESSAGE},
    )


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    if exc.status_code == status.HTTP_404_NOT_FOUND and exc.detail == "Not Found":
        message = f"Can't find {request.url.path} on this server!"
    else:
        message = str(exc.detail)
    return JSONResponse(
        status_code=exc.status_code,
        content={"status": _status_for(exc.status_code), "message": message},
        headers=getattr(exc, "headers", None),
    )


async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("ERROR on %s %s: %s", request.method, request.url.path, exc)
    return _error_response(exc, status.HTTP_500_INTERNAL_SERVER_ERROR, GENERIC_ERROR_MESSAGE)


def register_exception_handlers(app: FastAPI) -> None:
    """Install the single error normalizer every route funnels into."""
    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(IntegrityError, integrity_error_handler)
    # ExpiredSignatureError subclasses InvalidTokenError; handlers resolve by MRO
    app.add_exception_handler(jwt.ExpiredSignatureError, expired_token_handler)
    app.add_exception_handler(jwt.InvalidTokenError, invalid_token_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)


# ------------------------------------------------------------------------------
# Process-level faults are fatal; a supervisor is expected to restart us
# ------------------------------------------------------------------------------
def _on_uncaught_exception(exc_type, exc, tb):
    logger.critical("UNCAUGHT EXCEPTION! Shutting down...", exc_info=(exc_type, exc, tb))
    sys.exit(1)


def _on_unhandled_rejection(loop: asyncio.AbstractEventLoop, context: dict):
    exc = context.get("exception")
    logger.critical("UNHANDLED REJECTION! Shutting down... %s", context.get("message"), exc_info=exc)
    loop.stop()
    raise SystemExit(1)


def install_process_handlers(loop: asyncio.AbstractEventLoop | None = None) -> None:
    sys.excepthook = _on_uncaught_exception
    (loop or asyncio.get_running_loop()).set_exception_handler(_on_unhandled_rejection)
