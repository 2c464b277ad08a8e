"""
Error Handlers

Every error leaves the API in the same envelope:
{"error": {"code": ..., "message": ..., "details": ...}}
"""
from typing import Any, Dict

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pymongo.errors import PyMongoError
from starlette.exceptions import HTTPException as StarletteHTTPException

from ...domain.errors import DomainError
from ...utils.logger import get_logger, get_correlation_id

logger = get_logger(__name__)


def _error_response(status_code: int, content: Dict[str, Any], headers: Dict[str, str] = None) -> JSONResponse:
    merged = {"X-Correlation-Id": get_correlation_id() or ""}
    merged.update(headers or {})
    return JSONResponse(status_code=status_code, content=jsonable_encoder(content), headers=merged)


async def domain_error_handler(request: Request, exc: DomainError) -> JSONResponse:
    """Expected business errors: not found, blocked completion, cycles, ..."""
    logger.warning(
        f"Domain error: {exc.error_code} - {exc.message}",
        extra={"error_code": exc.error_code}
    )
    return _error_response(exc.http_status, exc.to_dict())


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Routes raise HTTPException(detail=DomainError.to_dict()); pass the envelope through"""
    detail = exc.detail
    if isinstance(detail, dict) and "error" in detail:
        content = detail
    else:
        content = {
            "error": {
                "code": "HTTP_ERROR",
                "message": str(detail),
                "details": {}
            }
        }
    return _error_response(exc.status_code, content, dict(exc.headers or {}))


async def validation_error_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Request body or parameters do not match the schema"""
    logger.warning(
        f"Validation error: {exc.errors()}, path={request.url.path}, method={request.method}",
        extra={"error_code": "VALIDATION_ERROR"}
    )
    return _error_response(
        status.HTTP_400_BAD_REQUEST,
        {
            "error": {
                "code": "VALIDATION_ERROR",
                "message": "Request validation failed",
                "details": {"errors": exc.errors()}
            }
        }
    )


async def database_error_handler(request: Request, exc: PyMongoError) -> JSONResponse:
    """Store failures bubble up unchanged from the repositories"""
    logger.error(f"Database error: {exc}", exc_info=True, extra={"error_code": "DATABASE_ERROR"})
    return _error_response(
        status.HTTP_503_SERVICE_UNAVAILABLE,
        {
            "error": {
                "code": "DATABASE_ERROR",
                "message": "The data store is unavailable",
                "details": {}
            }
        }
    )


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(f"Unexpected error: {exc}", exc_info=True)
    return _error_response(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        {
            "error": {
                "code": "INTERNAL_ERROR",
                "message": "An unexpected error occurred",
                "details": {"hint": "Check server logs for details"}
            }
        }
    )


def register_error_handlers(app: FastAPI) -> None:
    """
    Register all exception handlers with the FastAPI application.

    Args:
        app: The FastAPI application instance
    """
    app.add_exception_handler(DomainError, domain_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(PyMongoError, database_error_handler)
    app.add_exception_handler(Exception, general_exception_handler)
