"""
Per-client binding of auth gate, habit store and workspace, plus the
registry that keeps one binding per live session token.

Signing in (or restoring a token) re-fetches the workspace; signing out or
losing the session abandons in-flight writes and drops everything cached.
"""

import logging
from collections import OrderedDict
from typing import Callable, Optional

from ..domain import dates
from ..domain.ports.auth_provider import AuthProvider, AuthUser, SignUpResult
from ..domain.ports.identity import IdentitySource
from ..domain.repositories.habit_store import HabitStore
from .auth_gate import AuthGate, AuthState
from .habit_workspace import HabitWorkspace

logger = logging.getLogger(__name__)

StoreFactory = Callable[[IdentitySource], HabitStore]


class UserSession:
    def __init__(
        self,
        provider: AuthProvider,
        store_factory: StoreFactory,
        clock: Callable[[], str] = dates.today,
    ) -> None:
        self.gate = AuthGate(provider)
        self.store = store_factory(self.gate)
        self.workspace = HabitWorkspace(self.store, clock)
        self.gate.subscribe(self._on_auth_change)

    @property
    def authenticated(self) -> bool:
        return self.gate.state is AuthState.AUTHENTICATED

    @property
    def user(self) -> Optional[AuthUser]:
        return self.gate.user

    @property
    def token(self) -> Optional[str]:
        return self.gate.token

    async def _on_auth_change(self, state: AuthState, user: Optional[AuthUser]) -> None:
        if state is AuthState.AUTHENTICATED:
            await self.workspace.refresh()
        else:
            await self.workspace.discard()

    async def start(self, token: Optional[str]) -> AuthState:
        return await self.gate.start(token)

    async def sign_in(self, email: str, password: str) -> AuthUser:
        return await self.gate.sign_in(email, password)

    async def sign_up(
        self, email: str, password: str, first_name: str, last_name: str
    ) -> SignUpResult:
        return await self.gate.sign_up(email, password, first_name, last_name)

    async def sign_out(self) -> None:
        await self.gate.sign_out()


class SessionRegistry:
    """Live ``UserSession`` objects keyed by session token, least recently used evicted."""

    def __init__(
        self,
        provider: AuthProvider,
        store_factory: StoreFactory,
        clock: Callable[[], str] = dates.today,
        max_sessions: int = 1000,
    ) -> None:
        self._provider = provider
        self._store_factory = store_factory
        self._clock = clock
        self._max_sessions = max_sessions
        self._sessions: "OrderedDict[str, UserSession]" = OrderedDict()

    def __len__(self) -> int:
        return len(self._sessions)

    def new_session(self) -> UserSession:
        return UserSession(self._provider, self._store_factory, self._clock)

    async def resolve(self, token: Optional[str]) -> UserSession:
        """The session bound to *token*, or an unauthenticated one."""
        if token and token in self._sessions:
            user_session = self._sessions[token]
            self._sessions.move_to_end(token)
            if await user_session.gate.revalidate() is AuthState.AUTHENTICATED:
                return user_session
            self._sessions.pop(token, None)
            return user_session

        user_session = self.new_session()
        await user_session.start(token)
        if user_session.authenticated:
            await self.register(user_session)
        return user_session

    async def register(self, user_session: UserSession) -> None:
        token = user_session.token
        if not token:
            return
        self._sessions[token] = user_session
        self._sessions.move_to_end(token)
        while len(self._sessions) > self._max_sessions:
            _, evicted = self._sessions.popitem(last=False)
            await evicted.workspace.discard()
            logger.debug("Evicted least recently used session")

    async def sign_out(self, user_session: UserSession) -> None:
        token = user_session.token
        if token:
            self._sessions.pop(token, None)
        await user_session.sign_out()

    async def close(self) -> None:
        """Abandon every session's in-flight writes (shutdown)."""
        sessions = list(self._sessions.values())
        self._sessions.clear()
        for user_session in sessions:
            await user_session.workspace.discard()
