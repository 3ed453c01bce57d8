"""SQLAlchemy implementation of AuthProvider.

Accounts with passlib PBKDF2 password hashes and opaque session tokens
whose expiry slides forward each time the token is validated.
"""

import logging
import uuid
from datetime import datetime, timedelta, timezone
from typing import Optional

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from habitflow.core.security import (
    hash_password_async,
    new_session_token,
    verify_password_async,
)
from habitflow.domain.errors import (
    EmailAlreadyRegistered,
    EmailNotConfirmed,
    InvalidCredentials,
    StoreUnavailable,
    ValidationError,
)
from habitflow.domain.ports.auth_provider import AuthSession, AuthUser, SignUpResult
from habitflow.models.account import Account, AccountSession

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes even for timezone-aware columns
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _normalize_email(email: str) -> str:
    return (email or "").strip().lower()


def user_from_account(account: Account) -> AuthUser:
    return AuthUser(
        id=account.id,
        email=account.email,
        first_name=account.first_name,
        last_name=account.last_name,
    )


class SqlAlchemyAuthProvider:
    """Concrete AuthProvider backed by SQLAlchemy async sessions."""

    def __init__(
        self,
        session_factory: async_sessionmaker,
        session_ttl: timedelta = timedelta(days=7),
        require_email_confirmation: bool = False,
    ) -> None:
        self._session_factory = session_factory
        self._session_ttl = session_ttl
        self._require_email_confirmation = require_email_confirmation

    async def _open_session(self, db: AsyncSession, account: Account) -> AuthSession:
        token = new_session_token()
        expires_at = _utcnow() + self._session_ttl
        db.add(AccountSession(token=token, account_id=account.id, expires_at=expires_at))
        await db.flush()
        return AuthSession(token=token, user=user_from_account(account), expires_at=expires_at)

    async def sign_in(self, email: str, password: str) -> AuthSession:
        email = _normalize_email(email)
        try:
            async with self._session_factory() as db:
                result = await db.execute(select(Account).where(Account.email == email))
                account = result.scalar_one_or_none()
                if account is None or not await verify_password_async(
                    password, account.password_hash
                ):
                    logger.info("Sign-in rejected: bad credentials")
                    raise InvalidCredentials()
                if not account.email_confirmed:
                    raise EmailNotConfirmed(email)
                session = await self._open_session(db, account)
                await db.commit()
        except SQLAlchemyError as e:
            logger.error(f"Sign-in failed: {e}")
            raise StoreUnavailable("sign_in", e) from e
        logger.info(f"User {session.user.id} signed in")
        return session

    async def sign_up(
        self, email: str, password: str, first_name: str, last_name: str
    ) -> SignUpResult:
        email = _normalize_email(email)
        if not first_name or not first_name.strip() or not last_name or not last_name.strip():
            raise ValidationError("name", "First name and last name are required.")
        if not email or "@" not in email:
            raise ValidationError("email", "A valid email address is required.")
        if not password:
            raise ValidationError("password", "Password is required.")

        account = Account(
            id=str(uuid.uuid4()),
            email=email,
            password_hash=await hash_password_async(password),
            first_name=first_name.strip(),
            last_name=last_name.strip(),
            email_confirmed=not self._require_email_confirmation,
        )
        try:
            async with self._session_factory() as db:
                db.add(account)
                try:
                    await db.flush()
                except IntegrityError:
                    await db.rollback()
                    raise EmailAlreadyRegistered(email)
                session = None
                if account.email_confirmed:
                    session = await self._open_session(db, account)
                await db.commit()
        except SQLAlchemyError as e:
            logger.error(f"Sign-up failed: {e}")
            raise StoreUnavailable("sign_up", e) from e
        logger.info(
            f"Registered user {account.id}"
            + ("" if session else " (awaiting email confirmation)")
        )
        return SignUpResult(user=user_from_account(account), session=session)

    async def sign_out(self, token: str) -> None:
        try:
            async with self._session_factory() as db:
                await db.execute(delete(AccountSession).where(AccountSession.token == token))
                await db.commit()
        except SQLAlchemyError as e:
            logger.error(f"Sign-out failed: {e}")
            raise StoreUnavailable("sign_out", e) from e

    async def get_session(self, token: str) -> Optional[AuthSession]:
        if not token:
            return None
        try:
            async with self._session_factory() as db:
                record = await db.get(AccountSession, token)
                if record is None:
                    return None
                now = _utcnow()
                if _as_utc(record.expires_at) <= now:
                    await db.delete(record)
                    await db.commit()
                    return None
                account = await db.get(Account, record.account_id)
                if account is None:
                    return None
                record.expires_at = now + self._session_ttl
                await db.commit()
                return AuthSession(
                    token=token,
                    user=user_from_account(account),
                    expires_at=record.expires_at,
                )
        except SQLAlchemyError as e:
            logger.error(f"Session lookup failed: {e}")
            raise StoreUnavailable("get_session", e) from e

    async def confirm_email(self, email: str) -> bool:
        """Mark an account's email as confirmed. Returns False if unknown."""
        email = _normalize_email(email)
        try:
            async with self._session_factory() as db:
                result = await db.execute(select(Account).where(Account.email == email))
                account = result.scalar_one_or_none()
                if account is None:
                    return False
                account.email_confirmed = True
                await db.commit()
                return True
        except SQLAlchemyError as e:
            logger.error(f"Email confirmation failed: {e}")
            raise StoreUnavailable("confirm_email", e) from e
