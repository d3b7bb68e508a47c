from __future__ import annotations

from enum import Enum
from typing import Optional
from datetime import datetime, timezone

from sqlalchemy import (
    String,
    Integer,
    Text,
    Boolean,
    DateTime,
    ForeignKey,
    Enum as SAEnum,
)
from sqlalchemy.orm import Mapped, mapped_column

from app.core.database import Base


# --------------------------------------------------
# ENUM
# --------------------------------------------------

class AccountType(str, Enum):
    STUDENT = "Student"
    INSTRUCTOR = "Instructor"
    ADMIN = "Admin"


def _now() -> datetime:
    return datetime.now(timezone.utc)


# --------------------------------------------------
# MODEL
# --------------------------------------------------

class User(Base):
    """
    Columns:
      email          — unique, always stored lowercase
      password_hash  — bcrypt hash (plaintext never stored, never serialized)
      approved       — False for Instructors until an admin vets them
      profile_id     — 1:1 Profile created at signup
    """
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    first_name: Mapped[str] = mapped_column(String(50), nullable=False)
    last_name:  Mapped[str] = mapped_column(String(50), nullable=False)

    email: Mapped[str] = mapped_column(String(255), unique=True, index=True, nullable=False)
    password_hash: Mapped[str] = mapped_column(Text, nullable=False)

    account_type: Mapped[AccountType] = mapped_column(
        SAEnum(AccountType, name="account_type_enum", values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=AccountType.STUDENT,
    )
    approved: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    contact_number: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    image: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)

    profile_id: Mapped[Optional[int]] = mapped_column(
        Integer,
        ForeignKey("profiles.id", ondelete="SET NULL"),
        nullable=True,
        unique=True,
    )

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_now, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_now, onupdate=_now, nullable=False
    )

    def __repr__(self) -> str:
        return f"<User id={self.id} email={self.email!r} type={self.account_type}>"
