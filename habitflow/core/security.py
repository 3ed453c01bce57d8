"""
Password hashing, session token minting and API key checks.

Passwords go through a passlib ``CryptContext`` (PBKDF2-SHA256 with the
round count from settings). Hashes made with another round count still
verify, since the count is stored in the hash. Hashing is CPU-bound, so
the async callers use :func:`hash_password_async` / :func:`verify_password_async`.
"""

import asyncio
import hmac
import logging
import secrets
from functools import lru_cache
from typing import Optional

from passlib.context import CryptContext

from .config import get_settings

logger = logging.getLogger(__name__)


@lru_cache(maxsize=4)
def password_context(rounds: Optional[int] = None) -> CryptContext:
    """Context hashing with *rounds*, or the configured count when None."""
    if rounds is None:
        rounds = get_settings().password_hash_iterations
    return CryptContext(
        schemes=["pbkdf2_sha256"],
        deprecated="auto",
        pbkdf2_sha256__default_rounds=rounds,
    )


def hash_password(password: str, rounds: Optional[int] = None) -> str:
    """Hash *password* with a fresh random salt."""
    return password_context(rounds).hash(password)


def verify_password(password: str, encoded: str) -> bool:
    """Check *password* against a stored hash; unknown formats never match."""
    context = password_context()
    try:
        return context.verify(password, encoded)
    except ValueError:
        logger.warning("Unrecognised password hash format")
        return False


async def hash_password_async(password: str) -> str:
    return await asyncio.to_thread(hash_password, password)


async def verify_password_async(password: str, encoded: str) -> bool:
    return await asyncio.to_thread(verify_password, password, encoded)


def new_session_token() -> str:
    """An unguessable opaque bearer token."""
    return secrets.token_urlsafe(32)


def check_api_key(presented: Optional[str], expected: str) -> bool:
    """True when no key is configured, or *presented* matches it."""
    if not expected:
        return True
    if not presented:
        return False
    return hmac.compare_digest(presented.encode(), expected.encode())
