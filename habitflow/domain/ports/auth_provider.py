"""AuthProvider port -- the store's identity facility."""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Protocol, runtime_checkable


@dataclass(frozen=True)
class AuthUser:
    id: str
    email: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None

    @property
    def display_name(self) -> str:
        """``First Last`` when known, otherwise the local part of the email."""
        if self.first_name:
            return f"{self.first_name} {self.last_name or ''}".strip()
        return self.email.split("@")[0] or "User"


@dataclass(frozen=True)
class AuthSession:
    """An opaque bearer token and the user it belongs to."""

    token: str
    user: AuthUser
    expires_at: datetime


@dataclass(frozen=True)
class SignUpResult:
    user: AuthUser
    # None while the email address awaits confirmation
    session: Optional[AuthSession]

    @property
    def confirmation_required(self) -> bool:
        return self.session is None


@runtime_checkable
class AuthProvider(Protocol):
    """Password sign-in and opaque session tokens."""

    async def sign_in(self, email: str, password: str) -> AuthSession:
        """Open a session.

        Raises:
            InvalidCredentials: Unknown email or wrong password.
            EmailNotConfirmed: Account exists but is unconfirmed.
        """
        ...

    async def sign_up(
        self, email: str, password: str, first_name: str, last_name: str
    ) -> SignUpResult:
        """Create an account, opening a session unless confirmation is required.

        Raises:
            EmailAlreadyRegistered: The email is taken.
        """
        ...

    async def sign_out(self, token: str) -> None:
        """Revoke a session token. Unknown tokens are ignored."""
        ...

    async def get_session(self, token: str) -> Optional[AuthSession]:
        """Validate and refresh a token; None when unknown or expired."""
        ...
