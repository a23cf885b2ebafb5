"""
Switchboard — User SQLAlchemy Model
=====================================

What:  ORM model for the `users` table.
How:   Declarative SQLAlchemy 2.0 mapping on the shared Base from database.py.
Who:   Registered under the name "User" by the bootstrap; read and written
       through UserService.

Columns:
    - Every profile field is a free-form nullable string. Nothing is
      validated at this layer; optional checks live in UserService.
    - website: stored exactly as given. The https:// normalization happens
      only when a record is serialized (see schemas/user.py).
    - password: stored as given.
    - created: filled in by SQLAlchemy on the first INSERT when the caller
      did not set it.
"""

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import DateTime, Index, Integer, String
from sqlalchemy.types import TypeDecorator
from sqlalchemy.orm import Mapped, mapped_column

from switchboard.database import Base


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class UTCDateTime(TypeDecorator):
    """
    Timestamp that always comes back timezone-aware in UTC.

    PostgreSQL stores the offset itself; SQLite keeps naive text, so values
    are converted to UTC on the way in and tagged as UTC on the way out.
    """

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value: Optional[datetime], dialect) -> Optional[datetime]:
        if value is not None and value.tzinfo is not None:
            value = value.astimezone(timezone.utc)
        return value

    def process_result_value(self, value: Optional[datetime], dialect) -> Optional[datetime]:
        if value is not None and value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value


class User(Base):
    """A person known to the system."""

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    first_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    last_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    username: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    password: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    # Python-side default: evaluated at flush time, i.e. first persistence.
    created: Mapped[datetime] = mapped_column(
        UTCDateTime(),
        nullable=False,
        default=utcnow,
        comment="When this user was first persisted (UTC)",
    )

    website: Mapped[Optional[str]] = mapped_column(
        String(2048),
        nullable=True,
        comment="Stored as entered; normalized to https:// only when serialized",
    )

    __table_args__ = (
        Index("idx_users_username", "username"),
        Index("idx_users_created", created.desc()),
    )

    def __repr__(self) -> str:
        return f"<User(id={self.id}, username='{self.username}', created='{self.created}')>"
