"""
Private dashboard views: today, analytics and habit detail.

Unauthenticated callers are redirected to the sign-in page. Entering any of
these routes re-fetches from the store before deriving the view.
"""

import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Query, Request, status
from fastapi.responses import RedirectResponse

from ..core.config import get_settings
from ..services.auth_gate import RouteAction
from ..services.user_session import UserSession
from .auth import user_payload
from .deps import current_session

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/dashboard", tags=["dashboard"])


def _guard(request: Request, user_session: UserSession) -> Optional[Any]:
    decision = user_session.gate.guard(request.url.path)
    if decision.action is RouteAction.REDIRECT:
        return RedirectResponse(decision.location, status_code=status.HTTP_303_SEE_OTHER)
    if decision.action is RouteAction.PLACEHOLDER:
        return {"loading": True}
    return None


def _page(user_session: UserSession, **content: Any) -> Dict[str, Any]:
    return {
        "user": user_payload(user_session.user),
        "load_error": user_session.workspace.load_error,
        **content,
    }


@router.get("")
async def dashboard_view(
    request: Request, user_session: UserSession = Depends(current_session)
):
    blocked = _guard(request, user_session)
    if blocked is not None:
        return blocked
    workspace = user_session.workspace
    await workspace.refresh()
    return _page(user_session, dashboard=workspace.dashboard())


@router.get("/analytics")
async def analytics_view(
    request: Request,
    range_days: Optional[int] = Query(None, alias="range"),
    user_session: UserSession = Depends(current_session),
):
    blocked = _guard(request, user_session)
    if blocked is not None:
        return blocked
    workspace = user_session.workspace
    await workspace.refresh()
    if range_days is None:
        range_days = get_settings().analytics_default_range
    return _page(user_session, analytics=workspace.analytics(range_days))


@router.get("/{habit_id}")
async def habit_detail_view(
    habit_id: str,
    request: Request,
    year: Optional[int] = Query(None),
    user_session: UserSession = Depends(current_session),
):
    blocked = _guard(request, user_session)
    if blocked is not None:
        return blocked
    workspace = user_session.workspace
    await workspace.load_habit(habit_id)
    return _page(user_session, detail=workspace.habit_detail(habit_id, year))
