"""Domain port protocols for decoupling services from infrastructure."""

from .auth_provider import AuthProvider, AuthSession, AuthUser, SignUpResult
from .identity import IdentitySource

__all__ = ["AuthProvider", "AuthSession", "AuthUser", "IdentitySource", "SignUpResult"]
