"""Domain errors and their HTTP translation."""
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from logging_config import get_logger

logger = get_logger(__name__)


class StorefrontError(Exception):
    status_code = 500
    default_message = "Server error"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def payload(self) -> dict:
        return {"detail": self.message}


class ValidationError(StorefrontError):
    status_code = 400
    default_message = "Invalid request"


class Unauthorized(StorefrontError):
    status_code = 401
    default_message = "Authentication required"


class Forbidden(StorefrontError):
    status_code = 403
    default_message = "Access denied"


class NotFound(StorefrontError):
    status_code = 404
    default_message = "Not found"


class InsufficientStock(StorefrontError):
    status_code = 400

    def __init__(self, product: str, available: int, requested: int):
        self.product = product
        self.available = available
        self.requested = requested
        super().__init__(f"Not enough stock for {product}. Available: {available}, Requested: {requested}")

    def payload(self) -> dict:
        return {
            "detail": self.message,
            "product": self.product,
            "available": self.available,
            "requested": self.requested,
        }


class TerminalStateViolation(StorefrontError):
    status_code = 400
    default_message = "Cannot update status of a cancelled order"


class ConcurrentModification(StorefrontError):
    status_code = 409
    default_message = "The order was modified by another request, please retry"


class InternalError(StorefrontError):
    status_code = 500


async def storefront_error_handler(request: Request, exc: StorefrontError):
    if exc.status_code >= 500:
        logger.error("request_failed", path=request.url.path, error=exc.message)
        return JSONResponse(status_code=exc.status_code, content={"detail": InternalError.default_message})
    return JSONResponse(status_code=exc.status_code, content=exc.payload())


async def request_validation_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    field = ".".join(str(p) for p in errors[0]["loc"][1:]) if errors else ""
    message = f"{field}: {errors[0]['msg']}" if field else "Invalid request"
    return JSONResponse(status_code=400, content={"detail": message})


async def unhandled_error_handler(request: Request, exc: Exception):
    logger.error("unhandled_error", path=request.url.path, exc_info=exc)
    return JSONResponse(status_code=500, content={"detail": InternalError.default_message})


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(StorefrontError, storefront_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
