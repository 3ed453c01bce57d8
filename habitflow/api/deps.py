"""FastAPI dependencies: session token extraction and session resolution."""

import logging
from typing import Optional

from fastapi import Depends, Request

from ..core.services import get_service
from ..domain.errors import NotAuthenticated
from ..services.user_session import SessionRegistry, UserSession

logger = logging.getLogger(__name__)

SESSION_COOKIE = "habitflow_session"


def get_sessions() -> SessionRegistry:
    return get_service("sessions")


def session_token(request: Request) -> Optional[str]:
    """Bearer token from the Authorization header, else the session cookie."""
    authorization = request.headers.get("Authorization", "")
    scheme, _, credentials = authorization.partition(" ")
    if scheme.lower() == "bearer" and credentials.strip():
        return credentials.strip()
    return request.cookies.get(SESSION_COOKIE) or None


async def current_session(
    request: Request, sessions: SessionRegistry = Depends(get_sessions)
) -> UserSession:
    return await sessions.resolve(session_token(request))


async def require_session(
    user_session: UserSession = Depends(current_session),
) -> UserSession:
    if not user_session.authenticated:
        raise NotAuthenticated()
    return user_session
