from datetime import date
from typing import Optional

from sqlalchemy import Date, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from app.core.database import Base


class Profile(Base):
    """
    Additional user details, 1:1 with users.profile_id.
    Created empty at signup; everything except contact_number is filled in
    later by the profile endpoints.
    """
    __tablename__ = "profiles"

    id:             Mapped[int]            = mapped_column(Integer, primary_key=True, autoincrement=True)
    gender:         Mapped[Optional[str]]  = mapped_column(String(20), nullable=True)
    date_of_birth:  Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    about:          Mapped[Optional[str]]  = mapped_column(Text, nullable=True)
    contact_number: Mapped[Optional[str]]  = mapped_column(String(20), nullable=True)

    def __repr__(self) -> str:
        return f"<Profile id={self.id}>"
