"""
Tests for SessionService against a SQLite credential store.
"""

import asyncio
import uuid
from unittest.mock import AsyncMock, patch

import pytest
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from auth.errors import (
    AccountDisabledError,
    DuplicateAccountError,
    InvalidCredentialsError,
    InvalidOrExpiredTokenError,
    UserNotFoundError,
)
from auth.jwt import TokenCodec
from auth.models import User
from auth.password import verify_password
from auth.service import SessionService
from database.models import Base


async def _register(db, auth_config, email="alice@example.com", password="secret1", **names):
    service = SessionService(db, auth_config)
    result = await service.register(email, password, **names)
    await db.commit()
    return result


class TestRegister:
    @pytest.mark.asyncio
    async def test_register_returns_projection_and_token(self, db, auth_config):
        result = await _register(db, auth_config, first_name="Alice", last_name="Liddell")

        assert result.user.email == "alice@example.com"
        assert result.user.first_name == "Alice"
        assert result.user.last_name == "Liddell"
        assert result.user.is_active is True
        assert result.user.last_login is None
        assert len(result.token.split(".")) == 3

        dumped = result.user.model_dump(by_alias=True)
        assert "passwordHash" not in dumped
        assert "password_hash" not in result.user.model_dump()

    @pytest.mark.asyncio
    async def test_password_stored_hashed(self, db, auth_config):
        result = await _register(db, auth_config)
        row = await db.get(User, result.user.id)
        assert row.password_hash != "secret1"
        assert verify_password("secret1", row.password_hash)

    @pytest.mark.asyncio
    async def test_token_identifies_new_user(self, db, auth_config):
        result = await _register(db, auth_config)
        claims = TokenCodec(auth_config).verify(result.token)
        assert claims.id == str(result.user.id)
        assert claims.email == "alice@example.com"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("second_password", ["secret1", "something-else"])
    async def test_duplicate_email_rejected(self, db, auth_config, second_password):
        await _register(db, auth_config)

        with pytest.raises(DuplicateAccountError):
            await SessionService(db, auth_config).register("alice@example.com", second_password)

        rows = (await db.execute(select(User))).scalars().all()
        assert len(rows) == 1

    @pytest.mark.asyncio
    async def test_duplicate_check_ignores_case(self, db, auth_config):
        await _register(db, auth_config)
        with pytest.raises(DuplicateAccountError):
            await SessionService(db, auth_config).register("  Alice@Example.COM ", "secret1")

    @pytest.mark.asyncio
    async def test_empty_names_stored_as_none(self, db, auth_config):
        result = await _register(db, auth_config, first_name="", last_name="")
        assert result.user.first_name is None
        assert result.user.last_name is None


class TestRegisterIntegrity:
    @pytest.mark.asyncio
    async def test_concurrent_registrations_same_email(self, tmp_path, auth_config):
        engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'users.db'}")
        factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

        async def attempt(password):
            async with factory() as session:
                try:
                    await SessionService(session, auth_config).register("alice@example.com", password)
                    await session.commit()
                except DuplicateAccountError:
                    return "dup"
                return "ok"

        try:
            outcomes = await asyncio.gather(attempt("secret1"), attempt("secret2"))
            async with factory() as session:
                rows = (await session.execute(select(User))).scalars().all()
        finally:
            await engine.dispose()

        assert sorted(outcomes) == ["dup", "ok"]
        assert len(rows) == 1

    @pytest.mark.asyncio
    async def test_non_duplicate_integrity_error_propagates(self, db, auth_config):
        failure = IntegrityError(
            "INSERT INTO users", {}, Exception("NOT NULL constraint failed: users.password_hash")
        )
        with patch.object(type(db), "flush", AsyncMock(side_effect=failure)):
            with pytest.raises(IntegrityError):
                await SessionService(db, auth_config).register("alice@example.com", "secret1")

        rows = (await db.execute(select(User))).scalars().all()
        assert rows == []


class TestLogin:
    @pytest.mark.asyncio
    async def test_login_success_updates_last_login(self, db, auth_config):
        registered = await _register(db, auth_config)

        result = await SessionService(db, auth_config).login("alice@example.com", "secret1")
        await db.commit()

        assert result.user.id == registered.user.id
        assert result.user.last_login is not None
        row = await db.get(User, registered.user.id)
        assert row.last_login is not None

        claims = TokenCodec(auth_config).verify(result.token)
        assert claims.id == str(registered.user.id)
        assert claims.email == "alice@example.com"

    @pytest.mark.asyncio
    async def test_wrong_password_and_unknown_email_look_the_same(self, db, auth_config):
        await _register(db, auth_config)
        service = SessionService(db, auth_config)

        with pytest.raises(InvalidCredentialsError) as wrong_password:
            await service.login("alice@example.com", "wrongpassword")
        with pytest.raises(InvalidCredentialsError) as unknown_email:
            await service.login("nobody@example.com", "wrongpassword")

        assert type(wrong_password.value) is type(unknown_email.value)
        assert str(wrong_password.value) == str(unknown_email.value)

    @pytest.mark.asyncio
    async def test_disabled_account_rejected_even_with_correct_password(self, db, auth_config):
        registered = await _register(db, auth_config)
        row = await db.get(User, registered.user.id)
        row.is_active = False
        await db.commit()

        with pytest.raises(AccountDisabledError):
            await SessionService(db, auth_config).login("alice@example.com", "secret1")


class TestVerifySession:
    @pytest.mark.asyncio
    async def test_bad_token(self, db, auth_config):
        with pytest.raises(InvalidOrExpiredTokenError):
            SessionService(db, auth_config).verify_session("invalid.token.here")

    @pytest.mark.asyncio
    async def test_expired_token(self, db, auth_config, clock):
        codec = TokenCodec(auth_config, clock=clock)
        service = SessionService(db, auth_config, codec=codec)
        token = codec.issue(str(uuid.uuid4()), "alice@example.com")

        clock.advance(seconds=auth_config.jwt_expiry_seconds + 1)
        with pytest.raises(InvalidOrExpiredTokenError) as exc_info:
            service.verify_session(token)
        assert str(exc_info.value) == "Invalid or expired token"


class TestGetUserById:
    @pytest.mark.asyncio
    async def test_known_user(self, db, auth_config):
        registered = await _register(db, auth_config, first_name="Alice")
        profile = await SessionService(db, auth_config).get_user_by_id(str(registered.user.id))

        row = await db.get(User, registered.user.id)
        assert profile.id == row.id
        assert profile.email == row.email
        assert profile.first_name == row.first_name
        assert profile.is_active == row.is_active
        assert not hasattr(profile, "password_hash")

    @pytest.mark.asyncio
    @pytest.mark.parametrize("user_id", [str(uuid.uuid4()), "nonexistent"])
    async def test_unknown_user(self, db, auth_config, user_id):
        with pytest.raises(UserNotFoundError):
            await SessionService(db, auth_config).get_user_by_id(user_id)


class TestAuthenticate:
    @pytest.mark.asyncio
    async def test_valid_token(self, db, auth_config):
        registered = await _register(db, auth_config)
        profile = await SessionService(db, auth_config).authenticate(registered.token)
        assert profile.id == registered.user.id

    @pytest.mark.asyncio
    async def test_token_for_missing_user(self, db, auth_config):
        token = TokenCodec(auth_config).issue(str(uuid.uuid4()), "ghost@example.com")
        with pytest.raises(InvalidOrExpiredTokenError, match="User not found"):
            await SessionService(db, auth_config).authenticate(token)

    @pytest.mark.asyncio
    async def test_disabled_user(self, db, auth_config):
        registered = await _register(db, auth_config)
        row = await db.get(User, registered.user.id)
        row.is_active = False
        await db.commit()

        with pytest.raises(AccountDisabledError):
            await SessionService(db, auth_config).authenticate(registered.token)
