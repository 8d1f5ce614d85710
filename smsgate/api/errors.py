"""Exception handlers shared by both FastAPI apps."""
from __future__ import annotations

import logging

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from smsgate.utils.events import ValidationError

logger = logging.getLogger("smsgate.api")

SERVER_ERROR_RESULT = "Server error kindly try again later"
RETRIEVAL_ERROR = "Failed to retrieve messages"


def register_exception_handlers(app: FastAPI) -> None:
    """Register handlers for 400 (validation), HTTP and 500 errors."""

    @app.exception_handler(RequestValidationError)
    async def _request_validation_handler(request: Request, exc: RequestValidationError):
        logger.debug("request validation error path=%s errors=%s", request.url.path, exc.errors())
        return JSONResponse({"result": "Invalid request body"}, status_code=status.HTTP_400_BAD_REQUEST)

    @app.exception_handler(ValidationError)
    async def _send_validation_handler(request: Request, exc: ValidationError):
        return JSONResponse({"result": str(exc)}, status_code=status.HTTP_400_BAD_REQUEST)

    @app.exception_handler(HTTPException)
    async def _http_exception_handler(request: Request, exc: HTTPException):
        return JSONResponse({"error": exc.detail}, status_code=exc.status_code)

    @app.exception_handler(Exception)
    async def _unhandled_exception_handler(request: Request, exc: Exception):
        logger.exception("Unhandled error path=%s", request.url.path)
        return JSONResponse({"error": "Internal server error"}, status_code=status.HTTP_500_INTERNAL_SERVER_ERROR)


__all__ = ["register_exception_handlers", "SERVER_ERROR_RESULT", "RETRIEVAL_ERROR"]
