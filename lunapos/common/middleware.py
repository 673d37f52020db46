"""
HTTP middleware: request logging and request timeout
"""
from fastapi import Request, status
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
import asyncio
import logging
import time

logger = logging.getLogger(__name__)


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    Logs one line per request with status and duration, and exposes the
    duration in the X-Process-Time header
    """

    # Paths too noisy to log
    QUIET_PATHS = ["/health"]

    async def dispatch(self, request: Request, call_next):
        started = time.perf_counter()
        response = await call_next(request)
        elapsed_ms = (time.perf_counter() - started) * 1000

        response.headers["X-Process-Time"] = f"{elapsed_ms:.1f}ms"
        if request.url.path not in self.QUIET_PATHS:
            logger.info(
                f"{request.method} {request.url.path} -> {response.status_code} ({elapsed_ms:.1f}ms)"
            )
        return response


class RequestTimeoutMiddleware(BaseHTTPMiddleware):
    """
    Aborts requests running longer than ``timeout_seconds`` with a 504
    ``{"message"}`` body
    """

    def __init__(self, app, timeout_seconds: float):
        super().__init__(app)
        self.timeout_seconds = timeout_seconds

    async def dispatch(self, request: Request, call_next):
        try:
            return await asyncio.wait_for(call_next(request), timeout=self.timeout_seconds)
        except asyncio.TimeoutError:
            logger.error(
                f"{request.method} {request.url.path} timed out after {self.timeout_seconds}s"
            )
            return JSONResponse(
                status_code=status.HTTP_504_GATEWAY_TIMEOUT,
                content={"message": "Request timed out"}
            )
