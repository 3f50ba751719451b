"""
FastAPI Exception Handlers for Dashboards

Maps secret access exceptions to JSON error responses that carry the
dashboard's method label.

Author: SecretDash Team
Date: 2026-09-05
"""

import logging
from datetime import datetime, timezone

from fastapi import FastAPI, Request, status
from fastapi.exception_handlers import http_exception_handler
from fastapi.responses import JSONResponse, PlainTextResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from ..core.logging_config import get_correlation_id
from ..exceptions import (
    SecretAccessError,
    SecretNotFoundError,
    SecretFileNotFoundError,
    KeyVaultNotConfiguredError,
    KeyVaultUnauthorizedError,
    KeyVaultForbiddenError,
    VaultNotFoundError,
    CertificateLoadError,
)

logger = logging.getLogger(__name__)


# Exception to HTTP status code mapping
EXCEPTION_STATUS_CODES = {
    SecretNotFoundError: status.HTTP_404_NOT_FOUND,
    SecretFileNotFoundError: status.HTTP_404_NOT_FOUND,
    VaultNotFoundError: status.HTTP_404_NOT_FOUND,
    KeyVaultUnauthorizedError: status.HTTP_401_UNAUTHORIZED,
    KeyVaultForbiddenError: status.HTTP_403_FORBIDDEN,
    KeyVaultNotConfiguredError: status.HTTP_503_SERVICE_UNAVAILABLE,
    CertificateLoadError: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


def get_status_code_for_exception(exc: Exception) -> int:
    """
    Get HTTP status code for exception type.

    Args:
        exc: Exception instance

    Returns:
        HTTP status code
    """
    exc_type = type(exc)
    if exc_type in EXCEPTION_STATUS_CODES:
        return EXCEPTION_STATUS_CODES[exc_type]

    for exception_type, status_code in EXCEPTION_STATUS_CODES.items():
        if isinstance(exc, exception_type):
            return status_code

    return status.HTTP_500_INTERNAL_SERVER_ERROR


def error_body(message: str, code: str, method: str) -> dict:
    """Standard ``success: false`` response body."""
    return {
        "success": False,
        "error": message,
        "code": code,
        "method": method,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


def register_exception_handlers(app: FastAPI, method: str) -> None:
    """
    Register exception handlers with a dashboard app.

    Args:
        app: FastAPI app
        method: Dashboard method label included in every error body
    """

    async def secret_access_exception_handler(request: Request, exc: SecretAccessError) -> JSONResponse:
        status_code = get_status_code_for_exception(exc)
        logger.error(
            f"API error on {request.url.path}: {type(exc).__name__}: {exc.message} "
            f"(status={status_code}, correlation_id={get_correlation_id()})"
        )
        return JSONResponse(
            status_code=status_code,
            content=error_body(exc.message, exc.error_code, method),
        )

    async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.exception(f"Unexpected error on {request.url.path}: {exc}")
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=error_body(str(exc), "InternalError", method),
        )

    async def not_found_handler(request: Request, exc: StarletteHTTPException):
        if exc.status_code != status.HTTP_404_NOT_FOUND:
            return await http_exception_handler(request, exc)
        if request.url.path.startswith("/api/"):
            return JSONResponse(
                status_code=status.HTTP_404_NOT_FOUND,
                content={"error": "Not Found", "path": request.url.path},
            )
        return PlainTextResponse("Not Found", status_code=status.HTTP_404_NOT_FOUND)

    app.add_exception_handler(SecretAccessError, secret_access_exception_handler)
    app.add_exception_handler(StarletteHTTPException, not_found_handler)
    app.add_exception_handler(Exception, generic_exception_handler)
