from datetime import datetime

from sqlalchemy import DateTime, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from app.core.database import Base


class OtpCode(Base):
    """
    Signup email-verification code. Only the SHA-256 of the code is stored.
    Only the newest row per email can verify; a row is deleted on use.
    """
    __tablename__ = "otp_codes"

    __table_args__ = (
        Index("ix_otp_codes_email_created_at", "email", "created_at"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    email: Mapped[str] = mapped_column(String(255), nullable=False, index=True)

    code_hash: Mapped[str] = mapped_column(String(64), nullable=False)

    # Set by the caller's clock, not server_default, so expiry is testable
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
