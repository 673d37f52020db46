"""
Error taxonomy and HTTP error handlers

Services raise these ``HTTPException`` subclasses directly; the handlers
registered in ``main.py`` turn every failure into a ``{"message": str}`` body.

- ValidationError (400): malformed input or violated precondition
- NotFoundError (404): referenced order or shift does not exist
- ConflictError (409): state transition not allowed (e.g. hold twice)
- OrderNotHeldError (400): restore/complete on an order that is not held
- PersistenceError (500): primary write failed and was rolled back

Ledger refresh failures after an order mutation are not part of this list:
they are logged by the order service and never reach the client.
"""

import logging

from fastapi import HTTPException, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


class POSError(HTTPException):
    """Base class for errors raised by the POS services"""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "Internal server error"

    def __init__(self, message: str = None):
        super().__init__(status_code=self.status_code, detail=message or self.default_message)

    @property
    def message(self) -> str:
        return self.detail


class ValidationError(POSError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid request"


class NotFoundError(POSError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Resource not found"


class ConflictError(POSError):
    status_code = status.HTTP_409_CONFLICT
    default_message = "Operation conflicts with the current state"


class OrderNotHeldError(ConflictError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Order is not held"


class PersistenceError(POSError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "Database error"


# ===== HANDLERS =====

async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    detail = exc.detail
    if not isinstance(detail, str):
        detail = str(jsonable_encoder(detail))
    return JSONResponse(
        status_code=exc.status_code,
        content={"message": detail},
        headers=getattr(exc, "headers", None)
    )


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    parts = []
    for error in exc.errors():
        location = ".".join(str(p) for p in error.get("loc", ()) if p != "body")
        parts.append(f"{location}: {error.get('msg')}" if location else error.get("msg", ""))
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"message": "; ".join(parts) or "Invalid request"}
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"message": str(exc) or "Internal server error"}
    )


def register_exception_handlers(app) -> None:
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
