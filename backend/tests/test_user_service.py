"""
Switchboard — User Service Tests
==================================

What:  UserService against a real SQLite database (aiosqlite).
How:   Each test gets a fresh database file and a session from Database.session().

What we test:
    ✅ created defaults to the insert instant
    ✅ Explicit created is kept
    ✅ Stored website is untouched; readable form is normalized
    ✅ Get / get by username / list / partial update
    ✅ NotFoundError for unknown ids
    ✅ Permissive by default, MalformedFieldError in strict mode
    ✅ SQLAlchemy failures wrapped in DatabaseError
"""

from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy import text
from sqlalchemy.exc import OperationalError

from switchboard.exceptions import DatabaseError, MalformedFieldError, NotFoundError
from switchboard.schemas.user import UserCreate, UserUpdate
from switchboard.services.user_service import UserService


class TestCreateUser:

    def setup_method(self):
        self.service = UserService(strict=False)

    @pytest.mark.asyncio
    async def test_created_defaults_to_insert_time(self, db_session):
        before = datetime.now(timezone.utc)
        user = await self.service.create_user(db_session, UserCreate(username="ada"))
        after = datetime.now(timezone.utc)

        assert user.id is not None
        assert before <= user.created <= after

    @pytest.mark.asyncio
    async def test_explicit_created_is_kept(self, db_session):
        stamp = datetime(2020, 5, 17, 8, 30, tzinfo=timezone.utc)

        user = await self.service.create_user(
            db_session, UserCreate(username="old", created=stamp)
        )

        assert user.created == stamp

    @pytest.mark.asyncio
    async def test_created_stays_utc_across_sessions(self, database):
        async with database.session() as session:
            created = await self.service.create_user(session, UserCreate(username="ada"))

        async with database.session() as session:
            fetched = await self.service.get_user(session, created.id)

        assert fetched.created.tzinfo is not None
        assert fetched.created == created.created
        assert (
            fetched.model_dump(mode="json", by_alias=True)["created"]
            == created.model_dump(mode="json", by_alias=True)["created"]
        )

    @pytest.mark.asyncio
    async def test_non_utc_offset_is_stored_as_utc(self, database):
        stamp = datetime(2020, 5, 17, 10, 30, tzinfo=timezone(timedelta(hours=2)))

        async with database.session() as session:
            created = await self.service.create_user(
                session, UserCreate(username="cet", created=stamp)
            )

        async with database.session() as session:
            fetched = await self.service.get_user(session, created.id)

        assert fetched.created == stamp
        assert fetched.created.utcoffset() == timedelta(0)

    @pytest.mark.asyncio
    async def test_website_stored_raw_and_read_normalized(self, db_session):
        user = await self.service.create_user(
            db_session,
            UserCreate(username="site", website="example.com", password="plain"),
        )

        row = (
            await db_session.execute(
                text("SELECT website, password FROM users WHERE id = :id"), {"id": user.id}
            )
        ).one()
        assert row.website == "example.com"
        assert row.password == "plain"

        readable = user.model_dump(mode="json", by_alias=True)
        assert readable["website"] == "https://example.com"
        assert "password" not in readable

    @pytest.mark.asyncio
    async def test_permissive_by_default(self, db_session):
        user = await self.service.create_user(db_session, UserCreate(email="not-an-email"))

        assert user.email == "not-an-email"
        assert user.username is None

    @pytest.mark.asyncio
    async def test_database_failure_wrapped(self):
        session = AsyncMock()
        session.add = MagicMock()
        session.flush = AsyncMock(side_effect=OperationalError("INSERT", {}, Exception("disk I/O")))

        with pytest.raises(DatabaseError, match="Could not create the user"):
            await self.service.create_user(session, UserCreate(username="x"))


class TestStrictValidation:

    def setup_method(self):
        self.service = UserService(strict=True)

    @pytest.mark.asyncio
    async def test_rejects_email_without_at(self, db_session):
        with pytest.raises(MalformedFieldError) as exc_info:
            await self.service.create_user(
                db_session, UserCreate(username="ada", email="ada.example.com")
            )
        assert exc_info.value.field == "email"

    @pytest.mark.asyncio
    async def test_requires_username(self, db_session):
        with pytest.raises(MalformedFieldError, match="username is required"):
            await self.service.create_user(db_session, UserCreate(email="a@b.c"))

    @pytest.mark.asyncio
    async def test_rejects_blank_username_on_update(self, db_session):
        created = await self.service.create_user(db_session, UserCreate(username="ada"))

        with pytest.raises(MalformedFieldError):
            await self.service.update_user(db_session, created.id, UserUpdate(username="   "))

    @pytest.mark.asyncio
    async def test_valid_record_passes(self, db_session):
        user = await self.service.create_user(
            db_session, UserCreate(username="ada", email="ada@example.com")
        )
        assert user.email == "ada@example.com"


class TestReadAndUpdate:

    def setup_method(self):
        self.service = UserService(strict=False)

    @pytest.mark.asyncio
    async def test_get_user(self, db_session):
        created = await self.service.create_user(
            db_session, UserCreate(first_name="Ada", username="ada")
        )

        fetched = await self.service.get_user(db_session, created.id)

        assert fetched.id == created.id
        assert fetched.first_name == "Ada"

    @pytest.mark.asyncio
    async def test_get_user_not_found(self, db_session):
        with pytest.raises(NotFoundError, match="user with ID '999'"):
            await self.service.get_user(db_session, 999)

    @pytest.mark.asyncio
    async def test_get_user_by_username(self, db_session):
        await self.service.create_user(db_session, UserCreate(username="grace"))

        fetched = await self.service.get_user_by_username(db_session, "grace")

        assert fetched.username == "grace"
        with pytest.raises(NotFoundError):
            await self.service.get_user_by_username(db_session, "nobody")

    @pytest.mark.asyncio
    async def test_list_users_newest_first(self, db_session):
        base = datetime(2024, 1, 1, tzinfo=timezone.utc)
        for offset, name in enumerate(["first", "second", "third"]):
            await self.service.create_user(
                db_session,
                UserCreate(username=name, created=base + timedelta(days=offset)),
            )

        users = await self.service.list_users(db_session)
        page = await self.service.list_users(db_session, limit=1, offset=1)

        assert [u.username for u in users] == ["third", "second", "first"]
        assert [u.username for u in page] == ["second"]

    @pytest.mark.asyncio
    async def test_update_writes_only_set_fields(self, db_session):
        created = await self.service.create_user(
            db_session,
            UserCreate(first_name="Ada", last_name="Byron", username="ada"),
        )

        updated = await self.service.update_user(
            db_session, created.id, UserUpdate(last_name="Lovelace", website="ada.dev")
        )

        assert updated.first_name == "Ada"
        assert updated.last_name == "Lovelace"
        assert updated.website == "ada.dev"
        assert updated.model_dump(by_alias=True)["website"] == "https://ada.dev"
        assert updated.created == created.created

    @pytest.mark.asyncio
    async def test_update_missing_user(self, db_session):
        with pytest.raises(NotFoundError):
            await self.service.update_user(db_session, 12345, UserUpdate(email="x@y.z"))
