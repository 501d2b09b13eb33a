"""
Middleware configuration for the application.
Includes Correlation ID setup, request logging and the page route guard.
"""

import time
import structlog
from typing import Callable
from fastapi import Request, Response
from fastapi.responses import RedirectResponse
from asgi_correlation_id import CorrelationIdMiddleware
from starlette.middleware.base import BaseHTTPMiddleware

from devflow.application.services.navigation import guard_route, is_guarded_path
from devflow.infrastructure.storage import AUTH_FLAG_KEY, USER_KEY, read_stored_user

logger = structlog.get_logger(__name__)


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Middleware to log requests and responses with timing."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        start_time = time.time()

        logger.info(
            "Request started",
            method=request.method,
            path=request.url.path,
            client_ip=request.client.host if request.client else "unknown",
        )

        try:
            response = await call_next(request)

            process_time = time.time() - start_time

            logger.info(
                "Request completed",
                method=request.method,
                path=request.url.path,
                status_code=response.status_code,
                process_time_ms=round(process_time * 1000, 2),
            )

            return response

        except Exception:
            process_time = time.time() - start_time
            logger.exception(
                "Request failed",
                method=request.method,
                path=request.url.path,
                process_time_ms=round(process_time * 1000, 2),
            )
            raise


class RouteGuardMiddleware(BaseHTTPMiddleware):
    """Redirect page requests according to the authenticated cookie flag."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        path = request.url.path
        if not is_guarded_path(path):
            return await call_next(request)

        authenticated = AUTH_FLAG_KEY in request.cookies
        user = read_stored_user(request.cookies.get(USER_KEY))
        decision = guard_route(path, authenticated, user.role if user else None)

        if decision.redirect_to:
            logger.info("Route guard redirect", path=path, redirect_to=decision.redirect_to)
            response = RedirectResponse(decision.redirect_to, status_code=307)
            if decision.notice:
                response.headers["X-Portal-Notice"] = decision.notice
            return response

        return await call_next(request)


def setup_middleware(app):
    """Setup all middleware for the application."""

    # Starlette runs the last added middleware first
    app.add_middleware(RouteGuardMiddleware)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(
        CorrelationIdMiddleware,
        header_name="X-Request-ID",
        update_request_header=True,
    )
