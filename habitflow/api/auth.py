import logging
from typing import Any, Dict

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse, RedirectResponse
from pydantic import BaseModel

from ..core.config import get_settings
from ..domain.ports.auth_provider import AuthSession, AuthUser
from ..services.auth_gate import DASHBOARD_ROUTE, SIGN_IN_ROUTE, RouteAction
from ..services.user_session import SessionRegistry, UserSession
from .deps import SESSION_COOKIE, current_session, get_sessions

logger = logging.getLogger(__name__)

router = APIRouter(tags=["auth"])


# Request models
class SignInRequest(BaseModel):
    email: str
    password: str


class SignUpRequest(BaseModel):
    email: str
    password: str
    first_name: str = ""
    last_name: str = ""


def user_payload(user: AuthUser) -> Dict[str, Any]:
    return {
        "id": user.id,
        "email": user.email,
        "first_name": user.first_name,
        "last_name": user.last_name,
        "display_name": user.display_name,
    }


def _with_session_cookie(response: JSONResponse, session: AuthSession) -> JSONResponse:
    response.set_cookie(
        SESSION_COOKIE,
        session.token,
        max_age=get_settings().session_ttl_hours * 3600,
        httponly=True,
        samesite="lax",
    )
    return response


def _redirect_if_signed_in(request: Request, user_session: UserSession):
    decision = user_session.gate.guard(request.url.path)
    if decision.action is RouteAction.REDIRECT:
        return RedirectResponse(decision.location, status_code=status.HTTP_303_SEE_OTHER)
    return None


@router.post("/signin")
async def sign_in(
    body: SignInRequest,
    request: Request,
    user_session: UserSession = Depends(current_session),
    sessions: SessionRegistry = Depends(get_sessions),
):
    redirect = _redirect_if_signed_in(request, user_session)
    if redirect is not None:
        return redirect

    fresh = sessions.new_session()
    user = await fresh.sign_in(body.email, body.password)
    await sessions.register(fresh)
    return _with_session_cookie(
        JSONResponse({"user": user_payload(user), "redirect": DASHBOARD_ROUTE}),
        fresh.gate.session,
    )


@router.post("/signup")
async def sign_up(
    body: SignUpRequest,
    request: Request,
    user_session: UserSession = Depends(current_session),
    sessions: SessionRegistry = Depends(get_sessions),
):
    redirect = _redirect_if_signed_in(request, user_session)
    if redirect is not None:
        return redirect

    fresh = sessions.new_session()
    result = await fresh.sign_up(body.email, body.password, body.first_name, body.last_name)
    if result.confirmation_required:
        return JSONResponse(
            {
                "user": user_payload(result.user),
                "confirmation_required": True,
                "message": "Check your email to confirm your account, then sign in.",
                "redirect": SIGN_IN_ROUTE,
            },
            status_code=status.HTTP_201_CREATED,
        )
    await sessions.register(fresh)
    return _with_session_cookie(
        JSONResponse(
            {
                "user": user_payload(result.user),
                "confirmation_required": False,
                "redirect": DASHBOARD_ROUTE,
            },
            status_code=status.HTTP_201_CREATED,
        ),
        result.session,
    )


@router.post("/signout")
async def sign_out(
    user_session: UserSession = Depends(current_session),
    sessions: SessionRegistry = Depends(get_sessions),
):
    await sessions.sign_out(user_session)
    response = JSONResponse({"redirect": SIGN_IN_ROUTE})
    response.delete_cookie(SESSION_COOKIE)
    return response
