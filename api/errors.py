"""
Exception handlers: map generator errors to JSON responses.
"""

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from config.logging_config import get_logger
from core.ebook_generator.exceptions import (
    AllProvidersFailedError,
    ConversionError,
    CredentialMissingError,
    EbookGeneratorError,
    InvalidStateError,
    ProviderTimeoutError,
)

logger = get_logger(__name__)


def status_for(exc: EbookGeneratorError) -> int:
    """HTTP status for a generator error."""
    if isinstance(exc, AllProvidersFailedError):
        # No configured provider at all is a configuration problem
        return 503 if not exc.failures else 502
    if isinstance(exc, CredentialMissingError):
        return 503
    if isinstance(exc, ProviderTimeoutError):
        return 504
    if isinstance(exc, InvalidStateError):
        return 409
    if isinstance(exc, ConversionError):
        return 422
    return 502


def register_exception_handlers(app: FastAPI) -> None:

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": exc.detail},
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(EbookGeneratorError)
    async def generator_error_handler(request: Request, exc: EbookGeneratorError):
        status_code = status_for(exc)
        content = {"error": str(exc)}
        if isinstance(exc, AllProvidersFailedError):
            content["failures"] = [f.to_dict() for f in exc.failures]
        if status_code >= 500:
            logger.error(f"{request.method} {request.url.path} -> {status_code}: {exc}")
        return JSONResponse(status_code=status_code, content=content)
