"""
Public API key middleware.

When ``STORE_API_KEY`` is configured, every request outside the exempt
paths must carry it in the ``X-Api-Key`` header. Returns 401 otherwise.
"""

import logging
from typing import Callable

from fastapi import Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

from ..core.security import check_api_key

logger = logging.getLogger(__name__)

API_KEY_HEADER = "X-Api-Key"


class ApiKeyMiddleware(BaseHTTPMiddleware):
    """
    Args:
        app: The ASGI application.
        api_key: Expected key; an empty key disables the check.
        exempt_paths: Paths served without a key.
    """

    def __init__(self, app, api_key: str = "", exempt_paths: tuple = ("/health",)):
        super().__init__(app)
        self.api_key = api_key
        self.exempt_paths = exempt_paths

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        if not self.api_key or request.url.path in self.exempt_paths:
            return await call_next(request)

        if not check_api_key(request.headers.get(API_KEY_HEADER), self.api_key):
            logger.warning(
                "Rejected request without valid API key: %s %s",
                request.method,
                request.url.path,
            )
            return JSONResponse(
                status_code=401,
                content={"error": {"message": "Invalid or missing API key"}},
            )

        return await call_next(request)
