"""
Typed domain errors for habitflow.

Callers distinguish failure modes (bad input vs. missing session vs. flaky
store) by type and map each to an appropriate user-facing message.
"""

from typing import Iterable, Optional


class DomainError(Exception):
    """Base class for all domain-specific errors."""


class ValidationError(DomainError):
    """User input was rejected before any state changed."""

    def __init__(self, field: str, message: str) -> None:
        self.field = field
        self.message = message
        super().__init__(f"{field}: {message}")


# ---------------------------------------------------------------------------
# Auth
# ---------------------------------------------------------------------------


class AuthError(DomainError):
    """Base for failures that should route the user to sign-in."""


class NotAuthenticated(AuthError):
    """No (valid) session is attached to the request."""

    def __init__(self, message: str = "Not signed in") -> None:
        super().__init__(message)


class InvalidCredentials(AuthError):
    """Email/password pair did not match an account."""

    def __init__(self) -> None:
        super().__init__("Invalid login credentials")


class EmailNotConfirmed(AuthError):
    """The account exists but its email address has not been confirmed."""

    def __init__(self, email: str) -> None:
        self.email = email
        super().__init__("Email not confirmed")


class EmailAlreadyRegistered(AuthError):
    def __init__(self, email: str) -> None:
        self.email = email
        super().__init__("User already registered")


# ---------------------------------------------------------------------------
# Habits / entries
# ---------------------------------------------------------------------------


class HabitNotFound(DomainError):
    """Habit with the given ID does not exist (or is not visible to the caller)."""

    def __init__(self, habit_id: str) -> None:
        self.habit_id = habit_id
        super().__init__(f"Habit {habit_id} not found")


class ScheduleLocked(DomainError):
    """An update tried to touch fields that are fixed once a habit exists."""

    def __init__(self, fields: Iterable[str]) -> None:
        self.fields = sorted(fields)
        super().__init__(
            f"Schedule fields cannot be changed after creation: {', '.join(self.fields)}"
        )


class ToggleRejected(DomainError):
    """A toggle was refused without touching local or remote state."""

    def __init__(self, habit_id: str, date: str, reason: str) -> None:
        self.habit_id = habit_id
        self.date = date
        self.reason = reason
        super().__init__(f"Cannot toggle {habit_id} on {date}: {reason}")


class StoreUnavailable(DomainError):
    """The backing store failed for a transient reason (network, backend)."""

    def __init__(self, operation: str, cause: Optional[BaseException] = None) -> None:
        self.operation = operation
        self.cause = cause
        super().__init__(f"Store operation {operation!r} failed")
