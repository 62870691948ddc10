"""
טיפול בשגיאות ל-API של EduBro.

שגיאות דומיין הופכות ל-JSON מסוג `{"detail": ...}` עם ה-status_code שלהן.
כל שגיאה אחרת נרשמת ללוג עם error id ומוחזרת כ-500.
"""

from __future__ import annotations

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from edubro.core.config import logger
from edubro.core.errors import MarketplaceError, ValidationFailedError


async def marketplace_error_handler(request: Request, exc: MarketplaceError) -> JSONResponse:
    logger.info(
        "Request refused | method=%s path=%s status=%s detail=%s",
        request.method,
        request.url.path,
        exc.status_code,
        exc.message,
    )
    content = {"detail": exc.message}
    if isinstance(exc, ValidationFailedError) and exc.errors:
        content["errors"] = exc.errors
    return JSONResponse(status_code=exc.status_code, content=content)


async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    רישום מלא של השגיאה ללוג + החזרת error id שהלקוח יכול לדווח עליו.
    """
    error_id = id(exc)
    logger.error(
        "Unhandled exception [%s] in %s %s: %s",
        error_id,
        request.method,
        request.url.path,
        exc,
        exc_info=True,
    )
    return JSONResponse(
        status_code=500,
        content={
            "detail": "Internal server error",
            "error_id": error_id,
            "error_type": type(exc).__name__,
        },
    )


def setup_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(MarketplaceError, marketplace_error_handler)
    app.add_exception_handler(Exception, global_exception_handler)
    logger.debug("Exception handlers registered")
