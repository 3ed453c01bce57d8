"""
HTTP error mapping.

Domain errors raised by routes become JSON bodies with a status picked from
``_STATUS_MAP``; anything unexpected is logged with its traceback and
answered with a bare 500. Both carry the request id so a user report can be
matched to the log line.
"""

import logging
import uuid
from typing import Any, Callable, Dict, List, Optional, Tuple, Type

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

from ..core.error_messages import sanitize_error
from ..domain.errors import (
    AuthError,
    DomainError,
    EmailAlreadyRegistered,
    HabitNotFound,
    ScheduleLocked,
    StoreUnavailable,
    ToggleRejected,
    ValidationError,
)

logger = logging.getLogger(__name__)

# Most specific first
_STATUS_MAP: List[Tuple[Type[DomainError], int]] = [
    (ValidationError, 422),
    (EmailAlreadyRegistered, 409),
    (AuthError, 401),
    (HabitNotFound, 404),
    (ScheduleLocked, 409),
    (ToggleRejected, 409),
    (StoreUnavailable, 503),
]


def status_for(exc: DomainError) -> int:
    return next((code for exc_type, code in _STATUS_MAP if isinstance(exc, exc_type)), 400)


def _request_id(request: Request) -> str:
    request_id = getattr(request.state, "request_id", None)
    if not request_id:
        request_id = uuid.uuid4().hex[:8]
        request.state.request_id = request_id
    return request_id


def get_error_response(error: Exception, request_id: Optional[str] = None) -> Dict[str, Any]:
    """JSON body for *error*: sanitized message, error type, offending field(s)."""
    detail: Dict[str, Any] = {
        "message": sanitize_error(error),
        "type": type(error).__name__,
    }
    if isinstance(error, ValidationError):
        detail["field"] = error.field
    elif isinstance(error, ScheduleLocked):
        detail["fields"] = error.fields

    body: Dict[str, Any] = {"error": detail}
    if request_id:
        body["request_id"] = request_id
    return body


async def domain_error_handler(request: Request, exc: DomainError) -> JSONResponse:
    status_code = status_for(exc)
    request_id = _request_id(request)
    where = f"[{request_id}] {request.method} {request.url.path}"
    if status_code >= 500:
        logger.error(f"Request failed {where}: {exc}")
    else:
        logger.info(f"Request rejected {where}: {type(exc).__name__}")
    return JSONResponse(status_code=status_code, content=get_error_response(exc, request_id))


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(DomainError, domain_error_handler)


class ErrorHandlerMiddleware(BaseHTTPMiddleware):
    """Last line of defence: unhandled exceptions become a logged JSON 500."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = _request_id(request)
        try:
            return await call_next(request)
        except HTTPException:
            raise
        except Exception as e:
            logger.error(
                f"Unhandled {type(e).__name__} [{request_id}] on "
                f"{request.method} {request.url.path}: {e}",
                exc_info=True,
            )
            return JSONResponse(
                status_code=500,
                content={"error": {"message": "Internal server error"}, "request_id": request_id},
            )
