"""
Tests for SqlAlchemyAuthStore on a throwaway SQLite database (aiosqlite).

Tests:
- User create / lookup (email is case-insensitive)
- Duplicate email maps to ConflictError
- OTP rows: newest wins, delete count, single consume
- OtpManager end to end on the SQL store
- Driver errors map to DependencyFailureError
"""

import pytest
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

from app.core.database import Base
from app.core.errors import ConflictError, DependencyFailureError, ExpiredError, OtpNotFoundError
from app.models import otp_code, profile, user  # noqa: F401
from app.models.user import AccountType
from app.repositories.auth_store import SqlAlchemyAuthStore
from app.services.otp_service import OtpManager, hash_otp

pytestmark = pytest.mark.anyio

EMAIL = "ada@example.com"


@pytest.fixture
async def engine(anyio_backend, tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'auth.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def sql_store(engine):
    return SqlAlchemyAuthStore(async_sessionmaker(engine, expire_on_commit=False))


async def _make_user(sql_store, email=EMAIL, **overrides):
    row = await sql_store.create_profile(contact_number="5550100")
    fields = dict(
        first_name="Ada",
        last_name="Lovelace",
        email=email,
        password_hash="$bcrypt-sha256$placeholder",
        account_type=AccountType.INSTRUCTOR,
        approved=False,
        image="https://example.com/avatar.svg",
        profile_id=row.id,
    )
    fields.update(overrides)
    return await sql_store.create_user(**fields)


class TestUsers:
    async def test_create_and_lookup(self, sql_store):
        created = await _make_user(sql_store)
        assert created.id is not None

        found = await sql_store.get_user_by_email("ADA@Example.com")
        assert found is not None
        assert found.id == created.id
        assert found.account_type == AccountType.INSTRUCTOR
        assert found.approved is False

        by_id = await sql_store.get_user_by_id(created.id)
        assert by_id.email == EMAIL

    async def test_unknown_user(self, sql_store):
        assert await sql_store.get_user_by_email("nobody@example.com") is None
        assert await sql_store.get_user_by_id(999) is None

    async def test_profile_created(self, sql_store):
        profile = await sql_store.create_profile()
        assert profile.id is not None
        assert profile.contact_number is None

    async def test_duplicate_email_is_conflict(self, sql_store):
        await _make_user(sql_store)
        with pytest.raises(ConflictError):
            await _make_user(sql_store)

    async def test_update_password(self, sql_store):
        created = await _make_user(sql_store)
        await sql_store.update_password(created.id, "$bcrypt-sha256$new")
        found = await sql_store.get_user_by_id(created.id)
        assert found.password_hash == "$bcrypt-sha256$new"


class TestOtpRows:
    async def test_latest_is_newest(self, sql_store, clock):
        await sql_store.create_otp(EMAIL, hash_otp("111111"), clock.now)
        clock.advance(seconds=1)
        newest = await sql_store.create_otp(EMAIL, hash_otp("222222"), clock.now)
        await sql_store.create_otp("other@example.com", hash_otp("333333"), clock.now)

        latest = await sql_store.get_latest_otp(EMAIL)
        assert latest.id == newest.id
        assert latest.code_hash == hash_otp("222222")

    async def test_delete_counts_rows(self, sql_store, clock):
        await sql_store.create_otp(EMAIL, hash_otp("111111"), clock.now)
        await sql_store.create_otp(EMAIL, hash_otp("222222"), clock.now)
        await sql_store.create_otp("other@example.com", hash_otp("333333"), clock.now)

        assert await sql_store.delete_otps(EMAIL) == 2
        assert await sql_store.get_latest_otp(EMAIL) is None
        assert await sql_store.get_latest_otp("other@example.com") is not None

    async def test_consume_once(self, sql_store, clock):
        otp = await sql_store.create_otp(EMAIL, hash_otp("111111"), clock.now)
        assert await sql_store.consume_otp(otp.id) is True
        assert await sql_store.consume_otp(otp.id) is False


class TestOtpManagerOnSql:
    async def test_issue_then_verify(self, sql_store, clock):
        manager = OtpManager(sql_store, expiry_minutes=10, clock=clock, timeout=5.0)
        code = await manager.issue(EMAIL)
        clock.advance(minutes=9)
        await manager.verify(EMAIL, code)
        with pytest.raises(OtpNotFoundError):
            await manager.verify(EMAIL, code)

    async def test_expired_code(self, sql_store, clock):
        # SQLite hands back naive timestamps
        manager = OtpManager(sql_store, expiry_minutes=10, clock=clock, timeout=5.0)
        code = await manager.issue(EMAIL)
        clock.advance(minutes=10, seconds=1)
        with pytest.raises(ExpiredError):
            await manager.verify(EMAIL, code)


class TestFailures:
    async def test_missing_tables_is_dependency_failure(self, anyio_backend, tmp_path):
        bare = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'empty.db'}")
        try:
            store = SqlAlchemyAuthStore(async_sessionmaker(bare, expire_on_commit=False))
            with pytest.raises(DependencyFailureError):
                await store.get_user_by_email(EMAIL)
            with pytest.raises(DependencyFailureError):
                await store.consume_otp(1)
        finally:
            await bare.dispose()
