"""
Request ID Middleware for FastAPI.

Reuses an incoming X-Request-ID or mints one, binds it into the structlog
context for the duration of the request, and echoes it back in the
response header.
"""

import logging
import uuid
from typing import Callable

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

from ..utils.logging import RequestContext, get_logger

logger = logging.getLogger(__name__)
access_logger = get_logger("habitflow.access")


class RequestIdMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())[:8]
        request.state.request_id = request_id
        RequestContext.set(request_id=request_id)

        try:
            response = await call_next(request)
            response.headers["X-Request-ID"] = request_id
            access_logger.debug(
                "request",
                method=request.method,
                path=request.url.path,
                status=response.status_code,
            )
            return response
        finally:
            RequestContext.clear()
