"""
Switchboard — User Service
============================

What:  Create, read, list and update users, always answering in the readable
       form (UserRead) so the website normalization is applied on the way out.
How:   Works on an AsyncSession supplied by the caller (usually from
       Database.session()); it flushes but never commits.
Who:   Scripts and any embedding application holding a Database handle.

Validation:
    Off by default: fields are stored exactly as given. With strict=True
    (or VALIDATE_USER_FIELDS=true) the service rejects an email without "@"
    and a blank username with MalformedFieldError before touching the
    database.
"""

import logging
from typing import List, Optional

from sqlalchemy import desc, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from switchboard.config import settings
from switchboard.exceptions import DatabaseError, MalformedFieldError, NotFoundError
from switchboard.models.user import User
from switchboard.schemas.user import UserCreate, UserRead, UserUpdate

logger = logging.getLogger(__name__)


class UserService:
    """
    Business logic for user records.

    Error Handling Strategy:
        SQLAlchemy failures are logged and wrapped in DatabaseError.
        NotFoundError and MalformedFieldError propagate unchanged.
    """

    def __init__(self, strict: Optional[bool] = None):
        self.strict = settings.validate_user_fields if strict is None else strict

    def _validate(self, email: Optional[str], username: Optional[str], partial: bool) -> None:
        if email is not None and "@" not in email:
            raise MalformedFieldError(
                message=f"'{email}' is not an email address",
                field="email",
            )
        if username is not None and not username.strip():
            raise MalformedFieldError(message="username must not be blank", field="username")
        if not partial and username is None:
            raise MalformedFieldError(message="username is required", field="username")

    async def create_user(self, db: AsyncSession, payload: UserCreate) -> UserRead:
        """
        Persist a new user and return its readable form.

        `created` is only passed through when the caller set it; otherwise
        the model default stamps the insert time during flush.
        """
        if self.strict:
            self._validate(payload.email, payload.username, partial=False)

        values = payload.model_dump(exclude={"created"})
        if payload.created is not None:
            values["created"] = payload.created
        user = User(**values)
        try:
            db.add(user)
            await db.flush()
        except SQLAlchemyError as e:
            logger.error("Database error creating user: %s", str(e), exc_info=True)
            raise DatabaseError(
                message="Could not create the user. Please try again.",
                context={"error_type": type(e).__name__},
            ) from e

        logger.info("User created: %s (username=%s)", user.id, user.username)
        return UserRead.model_validate(user)

    async def _load(self, db: AsyncSession, user_id: int) -> User:
        try:
            result = await db.execute(select(User).where(User.id == user_id))
            user = result.scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.error("Database error fetching user %s: %s", user_id, str(e))
            raise DatabaseError(
                message="Could not retrieve the user. Please try again.",
                context={"user_id": user_id},
            ) from e

        if user is None:
            raise NotFoundError(resource="user", resource_id=str(user_id))
        return user

    async def get_user(self, db: AsyncSession, user_id: int) -> UserRead:
        return UserRead.model_validate(await self._load(db, user_id))

    async def get_user_by_username(self, db: AsyncSession, username: str) -> UserRead:
        try:
            result = await db.execute(
                select(User).where(User.username == username).order_by(User.id).limit(1)
            )
            user = result.scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.error("Database error fetching user '%s': %s", username, str(e))
            raise DatabaseError(
                message="Could not retrieve the user. Please try again.",
                context={"username": username},
            ) from e

        if user is None:
            raise NotFoundError(resource="user", resource_id=username)
        return UserRead.model_validate(user)

    async def list_users(
        self,
        db: AsyncSession,
        limit: int = 20,
        offset: int = 0,
    ) -> List[UserRead]:
        """Newest first; ties broken by id so paging is stable."""
        query = (
            select(User)
            .order_by(desc(User.created), desc(User.id))
            .limit(limit)
            .offset(offset)
        )
        try:
            result = await db.execute(query)
            users = list(result.scalars().all())
        except SQLAlchemyError as e:
            logger.error("Database error listing users: %s", str(e), exc_info=True)
            raise DatabaseError(
                message="Could not retrieve users. Please try again.",
                context={"error_type": type(e).__name__},
            ) from e

        return [UserRead.model_validate(user) for user in users]

    async def update_user(
        self,
        db: AsyncSession,
        user_id: int,
        payload: UserUpdate,
    ) -> UserRead:
        """Write only the fields the caller explicitly set."""
        changes = payload.model_dump(exclude_unset=True)
        if self.strict:
            self._validate(changes.get("email"), changes.get("username"), partial=True)

        user = await self._load(db, user_id)
        for name, value in changes.items():
            setattr(user, name, value)

        try:
            await db.flush()
        except SQLAlchemyError as e:
            logger.error("Database error updating user %s: %s", user_id, str(e))
            raise DatabaseError(
                message="Could not update the user. Please try again.",
                context={"user_id": user_id},
            ) from e

        logger.info("User %s updated: %s", user_id, ", ".join(sorted(changes)) or "no changes")
        return UserRead.model_validate(user)


user_service = UserService()
