"""
Turns exceptions into text that is safe to show a user.

Messages we author ourselves (validation failures, refused toggles) pass
through. Known error types get a canned sentence; anything else is matched
on a few keywords and otherwise collapses to a generic apology, so SQL,
paths and tokens never reach a response body.

    try:
        await workspace.create_habit(title)
    except DomainError as e:
        message = sanitize_error(e, context="saving your habit")
"""

import re
from typing import List, Optional, Tuple, Type

from ..domain.errors import (
    EmailAlreadyRegistered,
    EmailNotConfirmed,
    HabitNotFound,
    InvalidCredentials,
    NotAuthenticated,
    ScheduleLocked,
    StoreUnavailable,
    ToggleRejected,
    ValidationError,
)

GENERIC_MESSAGE = "Something went wrong. Please try again later."
SIGN_IN_MESSAGE = "Please sign in to continue."
_SLOW = "The request took too long to complete. Please try again."
_OFFLINE = "Could not connect to the service. Please try again in a moment."

# First match wins
_BY_TYPE: List[Tuple[Type[BaseException], str]] = [
    (NotAuthenticated, SIGN_IN_MESSAGE),
    (InvalidCredentials, "Invalid email or password."),
    (EmailNotConfirmed, "Please confirm your email address before signing in."),
    (EmailAlreadyRegistered, "An account with this email already exists."),
    (HabitNotFound, "Habit not found."),
    (ScheduleLocked, "A habit's schedule cannot be changed once it has been created."),
    (StoreUnavailable, "Could not reach the server. Your change was not saved; please try again."),
    (TimeoutError, _SLOW),
    (ConnectionError, _OFFLINE),
]

_BY_KEYWORD: List[Tuple[re.Pattern, str]] = [
    (
        re.compile(r"database|sqlite|operational.?error|locked", re.IGNORECASE),
        "A temporary data issue occurred. Please try again in a moment.",
    ),
    (re.compile(r"timeout|timed?\s*out", re.IGNORECASE), _SLOW),
    (re.compile(r"connect|refused|unreachable", re.IGNORECASE), _OFFLINE),
]


def _message_for(exc: BaseException) -> str:
    if isinstance(exc, ValidationError):
        return exc.message
    if isinstance(exc, ToggleRejected):
        return f"This day can't be changed: {exc.reason}."
    for exc_type, message in _BY_TYPE:
        if isinstance(exc, exc_type):
            return message
    text = str(exc)
    for pattern, message in _BY_KEYWORD:
        if pattern.search(text):
            return message
    return GENERIC_MESSAGE


def sanitize_error(exc: Optional[BaseException], *, context: Optional[str] = None) -> str:
    """User-facing message for *exc*.

    With *context* (e.g. ``"saving your habit"``) the message is prefixed
    with ``"Sorry, there was an error <context>."``.
    """
    message = GENERIC_MESSAGE if exc is None else _message_for(exc)
    if context:
        return f"Sorry, there was an error {context}. {message}"
    return message
