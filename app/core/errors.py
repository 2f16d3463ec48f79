"""
app/core/errors.py

Purpose: Renders every failure as an ErrorResponse

- Domain errors keep their own code and HTTP status
- Request validation failures become VALIDATION_ERROR with one entry per field
- Unhandled errors are logged with the request and hidden in production
"""

from typing import Any, List, Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.core.exceptions import VidhyaDhamError
from app.schemas.response import ErrorResponse
from app.core.config import settings
from app.core.logging import get_logger

logger = get_logger(__name__)

INTERNAL_ERROR_MESSAGE = "An internal error occurred. Please try again later."


def error_response(status_code: int, error: str, code: str, details: Optional[Any] = None) -> JSONResponse:
    body = ErrorResponse(error=error, code=code, details=details)
    return JSONResponse(status_code=status_code, content=jsonable_encoder(body))


def field_errors(exc: RequestValidationError) -> List[dict]:
    """One {"field", "message"} entry per rejected input, e.g. body.phone."""
    return [
        {
            "field": ".".join(str(part) for part in err.get("loc", ())),
            "message": err.get("msg", ""),
        }
        for err in exc.errors()
    ]


def add_exception_handlers(app: FastAPI):
    @app.exception_handler(VidhyaDhamError)
    async def domain_error_handler(request: Request, exc: VidhyaDhamError):
        if exc.status_code >= 500:
            logger.error(f"{exc.code} on {request.method} {request.url.path}: {exc.message}")
        else:
            logger.info(f"{exc.code}: {exc.message}")
        return error_response(exc.status_code, exc.message, exc.code, exc.details)

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        # Unknown routes and wrong methods
        return error_response(exc.status_code, str(exc.detail), "HTTP_ERROR")

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        details = field_errors(exc)
        logger.info(f"Rejected {request.method} {request.url.path}: {', '.join(d['field'] for d in details)}")
        return error_response(422, "Input validation failed", "VALIDATION_ERROR", details)

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.error(
            f"Unhandled exception: {exc}",
            extra={
                "method": request.method,
                "url": str(request.url),
                "client": request.client.host if request.client else "unknown"
            },
            exc_info=True
        )
        message = INTERNAL_ERROR_MESSAGE if settings.is_production else str(exc)
        return error_response(500, message, "INTERNAL_ERROR")
