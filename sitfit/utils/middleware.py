"""Middleware for request handling and error processing."""

import logging
import time
from typing import Callable

from fastapi import FastAPI, Request, Response
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from .errors import InsufficientCredits, SitFitError, convert_exception

# Configure logger
logger = logging.getLogger(__name__)


async def sitfit_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Render application errors as JSON.

    Args:
        request: The incoming request
        exc: The raised exception

    Returns:
        JSON response with the error details
    """
    error = convert_exception(exc)

    # Running out of credits is an expected outcome, not a failure
    if isinstance(error, InsufficientCredits):
        logger.info(f"Upgrade prompt for user {error.user_id}: {request.method} {request.url.path}")
    elif error is exc:
        error.log()

    return JSONResponse(status_code=error.status_code, content=error.to_dict())


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Middleware for logging request details."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        """Log request details and timing.

        Args:
            request: The incoming request
            call_next: The next middleware or route handler

        Returns:
            The response
        """
        start_time = time.time()

        path = request.url.path
        method = request.method
        client = request.client.host if request.client else "unknown"

        response = await call_next(request)

        process_time = time.time() - start_time

        log_dict = {
            "path": path,
            "method": method,
            "client": client,
            "status_code": response.status_code,
            "process_time_ms": round(process_time * 1000, 2),
        }

        if response.status_code >= 500:
            logger.error(f"Request failed: {method} {path}", extra=log_dict)
        elif response.status_code >= 400:
            logger.warning(f"Request error: {method} {path}", extra=log_dict)
        else:
            logger.info(f"Request processed: {method} {path}", extra=log_dict)

        return response


def setup_middleware(app: FastAPI, request_logging: bool = False) -> None:
    """Set up error handlers and middleware for the application.

    Args:
        app: The FastAPI application
        request_logging: Whether to log every request
    """
    app.add_exception_handler(SitFitError, sitfit_error_handler)
    app.add_exception_handler(Exception, sitfit_error_handler)

    if request_logging:
        app.add_middleware(RequestLoggingMiddleware)
