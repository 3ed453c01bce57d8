"""
Auth gate: observes the session and decides what each route renders.

The gate moves ``initializing -> unauthenticated <-> authenticated``. It is
also the identity source the habit store consults before every call, so
the store always acts for whoever the gate says is signed in.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Awaitable, Callable, List, Optional

from ..domain.errors import StoreUnavailable, ValidationError
from ..domain.ports.auth_provider import AuthProvider, AuthSession, AuthUser, SignUpResult

logger = logging.getLogger(__name__)


class AuthState(str, Enum):
    INITIALIZING = "initializing"
    UNAUTHENTICATED = "unauthenticated"
    AUTHENTICATED = "authenticated"


AuthListener = Callable[[AuthState, Optional[AuthUser]], Awaitable[None]]


# ---------------------------------------------------------------------------
# Route guarding
# ---------------------------------------------------------------------------

SIGN_IN_ROUTE = "/signin"
SIGN_UP_ROUTE = "/signup"
DASHBOARD_ROUTE = "/dashboard"
PUBLIC_ONLY_ROUTES = frozenset({SIGN_IN_ROUTE, SIGN_UP_ROUTE})


class RouteAccess(str, Enum):
    PUBLIC = "public"
    PUBLIC_ONLY = "public_only"
    PRIVATE = "private"


class RouteAction(str, Enum):
    RENDER = "render"
    REDIRECT = "redirect"
    PLACEHOLDER = "placeholder"


@dataclass(frozen=True)
class RouteDecision:
    action: RouteAction
    location: Optional[str] = None


def route_access(path: str) -> RouteAccess:
    """Classify a path. Anything under ``/dashboard`` is private."""
    path = path.rstrip("/") or "/"
    if path in PUBLIC_ONLY_ROUTES:
        return RouteAccess.PUBLIC_ONLY
    if path == DASHBOARD_ROUTE or path.startswith(DASHBOARD_ROUTE + "/"):
        return RouteAccess.PRIVATE
    return RouteAccess.PUBLIC


def guard_route(path: str, state: AuthState, loading: bool = False) -> RouteDecision:
    """Decide whether *path* renders, redirects, or shows a placeholder."""
    access = route_access(path)
    if access is RouteAccess.PUBLIC:
        return RouteDecision(RouteAction.RENDER)
    if loading or state is AuthState.INITIALIZING:
        return RouteDecision(RouteAction.PLACEHOLDER)
    if access is RouteAccess.PRIVATE and state is not AuthState.AUTHENTICATED:
        return RouteDecision(RouteAction.REDIRECT, SIGN_IN_ROUTE)
    if access is RouteAccess.PUBLIC_ONLY and state is AuthState.AUTHENTICATED:
        return RouteDecision(RouteAction.REDIRECT, DASHBOARD_ROUTE)
    return RouteDecision(RouteAction.RENDER)


# ---------------------------------------------------------------------------
# Gate
# ---------------------------------------------------------------------------


class AuthGate:
    """Session holder for one client: sign in, sign up, sign out, restore."""

    def __init__(self, provider: AuthProvider) -> None:
        self._provider = provider
        self._state = AuthState.INITIALIZING
        self._session: Optional[AuthSession] = None
        self._loading = False
        self._listeners: List[AuthListener] = []

    @property
    def state(self) -> AuthState:
        return self._state

    @property
    def loading(self) -> bool:
        return self._loading or self._state is AuthState.INITIALIZING

    @property
    def user(self) -> Optional[AuthUser]:
        return self._session.user if self._session else None

    @property
    def token(self) -> Optional[str]:
        return self._session.token if self._session else None

    @property
    def session(self) -> Optional[AuthSession]:
        return self._session

    def current_user_id(self) -> Optional[str]:
        if self._state is not AuthState.AUTHENTICATED or self._session is None:
            return None
        return self._session.user.id

    def guard(self, path: str) -> RouteDecision:
        return guard_route(path, self._state, self.loading)

    def subscribe(self, listener: AuthListener) -> Callable[[], None]:
        """Register *listener* for state changes; returns an unsubscribe callable."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    async def _transition(self, session: Optional[AuthSession]) -> None:
        previous = self._state
        self._session = session
        self._state = (
            AuthState.AUTHENTICATED if session is not None else AuthState.UNAUTHENTICATED
        )
        if previous is not self._state:
            logger.info(
                f"Auth state {previous.value} -> {self._state.value}"
                + (f" (user {session.user.id})" if session else "")
            )
        for listener in list(self._listeners):
            await listener(self._state, self.user)

    async def start(self, token: Optional[str] = None) -> AuthState:
        """Restore a stored session token, settling the initial state."""
        self._loading = True
        session = None
        try:
            if token:
                session = await self._provider.get_session(token)
        except StoreUnavailable as e:
            logger.error(f"Could not restore session: {e}")
        finally:
            self._loading = False
        await self._transition(session)
        return self._state

    async def revalidate(self) -> AuthState:
        """Check the held token is still live; an expired one signs the gate out."""
        if self._session is None:
            return self._state
        try:
            session = await self._provider.get_session(self._session.token)
        except StoreUnavailable as e:
            logger.warning(f"Session check failed, keeping current state: {e}")
            return self._state
        if session is None:
            logger.info(f"Session for user {self._session.user.id} expired")
            await self._transition(None)
        else:
            self._session = session
        return self._state

    async def sign_in(self, email: str, password: str) -> AuthUser:
        """Raises the provider's AuthError subclasses on failure; state is unchanged."""
        self._loading = True
        try:
            session = await self._provider.sign_in(email, password)
        finally:
            self._loading = False
        await self._transition(session)
        return session.user

    async def sign_up(
        self, email: str, password: str, first_name: str, last_name: str
    ) -> SignUpResult:
        if not (first_name or "").strip() or not (last_name or "").strip():
            raise ValidationError("name", "First name and last name are required.")
        self._loading = True
        try:
            result = await self._provider.sign_up(email, password, first_name, last_name)
        finally:
            self._loading = False
        if result.session is not None:
            await self._transition(result.session)
        else:
            logger.info(f"Sign-up for {result.user.id} awaits email confirmation")
        return result

    async def sign_out(self) -> None:
        """Drop the session locally first, then revoke it with the provider."""
        token = self.token
        await self._transition(None)
        if not token:
            return
        try:
            await self._provider.sign_out(token)
        except StoreUnavailable as e:
            logger.warning(f"Session revoke failed, signed out locally only: {e}")
