"""
FastAPI request-context middleware.

Assigns every request a correlation id, binds it to the loguru context for the
lifetime of the request, and echoes it back in the X-Request-Id header.
Authentication itself runs in route dependencies.
"""

from __future__ import annotations

import uuid

from loguru import logger
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

REQUEST_ID_HEADER = "X-Request-Id"


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Middleware attaching a request_id to request.state and to log records."""

    async def dispatch(self, request: Request, call_next):
        """Process incoming request."""
        request_id = request.headers.get(REQUEST_ID_HEADER) or str(uuid.uuid4())
        request.state.request_id = request_id

        with logger.contextualize(request_id=request_id):
            response = await call_next(request)
            logger.debug(f"{request.method} {request.url.path} -> {response.status_code}")

        response.headers[REQUEST_ID_HEADER] = request_id
        return response
