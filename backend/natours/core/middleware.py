# natours/core/middleware.py
"""
HTTP middleware: request body size cap and development request logging.
"""
import logging
import time
from typing import Callable

from fastapi import Request, Response, status
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

logger = logging.getLogger("uvicorn.error")


class BodyLimitMiddleware(BaseHTTPMiddleware):
    """Reject requests whose declared body is larger than `max_bytes`."""

    def __init__(self, app: Callable, max_bytes: int):
        super().__init__(app)
        self.max_bytes = max_bytes

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        length = request.headers.get("content-length")
        if length is not None and length.isdigit() and int(length) > self.max_bytes:
            return JSONResponse(
                status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
                content={"status": "fail", "message": f"Request body exceeds {self.max_bytes} bytes"},
            )
        return await call_next(request)


class RequestLogMiddleware(BaseHTTPMiddleware):
    """One line per request: METHOD path status duration."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        started = time.perf_counter()
        response = await call_next(request)
        duration_ms = (time.perf_counter() - started) * 1000
        logger.info("%s %s %s %.1f ms", request.method, request.url.path, response.status_code, duration_ms)
        return response
