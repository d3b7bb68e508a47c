"""
Record store used by the auth core.

``AuthStore`` is the contract; ``SqlAlchemyAuthStore`` is the production
implementation on async SQLAlchemy. Every method runs in its own short
session and commits on its own, so a multi-step flow (profile, then user)
is NOT one transaction: if a later step fails the earlier rows stay.
"""
from datetime import datetime
from typing import Any, Optional, Protocol

from sqlalchemy import delete, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.core.database import get_sessionmaker
from app.core.errors import ConflictError, DependencyFailureError
from app.core.logger import get_logger
from app.models.otp_code import OtpCode
from app.models.profile import Profile
from app.models.user import User

logger = get_logger(__name__)


class AuthStore(Protocol):
    async def get_user_by_email(self, email: str) -> Optional[User]: ...

    async def get_user_by_id(self, user_id: int) -> Optional[User]: ...

    async def create_profile(self, contact_number: Optional[str] = None) -> Profile: ...

    async def create_user(self, **fields: Any) -> User: ...

    async def update_password(self, user_id: int, password_hash: str) -> None: ...

    async def delete_otps(self, email: str) -> int: ...

    async def create_otp(self, email: str, code_hash: str, created_at: datetime) -> OtpCode: ...

    async def get_latest_otp(self, email: str) -> Optional[OtpCode]: ...

    async def consume_otp(self, otp_id: int) -> bool:
        """Delete the row if it still exists. True only for the caller that deleted it."""
        ...


class SqlAlchemyAuthStore:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession] | None = None):
        self._session_factory = session_factory

    def _session(self) -> AsyncSession:
        factory = self._session_factory or get_sessionmaker()
        return factory()

    # ── Users ─────────────────────────────────────────────────────────
    async def get_user_by_email(self, email: str) -> Optional[User]:
        try:
            async with self._session() as db:
                result = await db.execute(select(User).where(User.email == email.lower()))
                return result.scalar_one_or_none()
        except SQLAlchemyError as exc:
            raise self._failure("get_user_by_email", exc)

    async def get_user_by_id(self, user_id: int) -> Optional[User]:
        try:
            async with self._session() as db:
                return await db.get(User, user_id)
        except SQLAlchemyError as exc:
            raise self._failure("get_user_by_id", exc)

    async def create_profile(self, contact_number: Optional[str] = None) -> Profile:
        try:
            async with self._session() as db:
                profile = Profile(contact_number=contact_number)
                db.add(profile)
                await db.commit()
                await db.refresh(profile)
                return profile
        except SQLAlchemyError as exc:
            raise self._failure("create_profile", exc)

    async def create_user(self, **fields: Any) -> User:
        try:
            async with self._session() as db:
                user = User(**fields)
                db.add(user)
                await db.commit()
                await db.refresh(user)
                return user
        except IntegrityError:
            # unique(email) lost a race with a concurrent signup
            raise ConflictError()
        except SQLAlchemyError as exc:
            raise self._failure("create_user", exc)

    async def update_password(self, user_id: int, password_hash: str) -> None:
        try:
            async with self._session() as db:
                await db.execute(
                    update(User).where(User.id == user_id).values(password_hash=password_hash)
                )
                await db.commit()
        except SQLAlchemyError as exc:
            raise self._failure("update_password", exc)

    # ── OTP codes ─────────────────────────────────────────────────────
    async def delete_otps(self, email: str) -> int:
        try:
            async with self._session() as db:
                result = await db.execute(delete(OtpCode).where(OtpCode.email == email))
                await db.commit()
                return result.rowcount or 0
        except SQLAlchemyError as exc:
            raise self._failure("delete_otps", exc)

    async def create_otp(self, email: str, code_hash: str, created_at: datetime) -> OtpCode:
        try:
            async with self._session() as db:
                otp = OtpCode(email=email, code_hash=code_hash, created_at=created_at)
                db.add(otp)
                await db.commit()
                await db.refresh(otp)
                return otp
        except SQLAlchemyError as exc:
            raise self._failure("create_otp", exc)

    async def get_latest_otp(self, email: str) -> Optional[OtpCode]:
        try:
            async with self._session() as db:
                result = await db.execute(
                    select(OtpCode)
                    .where(OtpCode.email == email)
                    .order_by(OtpCode.created_at.desc(), OtpCode.id.desc())
                    .limit(1)
                )
                return result.scalar_one_or_none()
        except SQLAlchemyError as exc:
            raise self._failure("get_latest_otp", exc)

    async def consume_otp(self, otp_id: int) -> bool:
        # Single DELETE ... WHERE id = :id; the database serializes concurrent
        # deletes of the same row, so exactly one caller sees rowcount == 1.
        try:
            async with self._session() as db:
                result = await db.execute(delete(OtpCode).where(OtpCode.id == otp_id))
                await db.commit()
                return result.rowcount == 1
        except SQLAlchemyError as exc:
            raise self._failure("consume_otp", exc)

    @staticmethod
    def _failure(op: str, exc: Exception) -> DependencyFailureError:
        logger.error("Record store %s failed: %s", op, exc.__class__.__name__)
        return DependencyFailureError()
