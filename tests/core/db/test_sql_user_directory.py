"""
Integration tests for SQLUserDirectory against in-memory SQLite.
"""

import pytest

from inkwell.core.db import create_engine, create_session_factory, init_db
from inkwell.core.enums import AuthProvider, UserStatus
from inkwell.core.exceptions.types import DatabaseException
from inkwell.core.services.users import (
    AuthProfile,
    SQLUserDirectory,
    handle_user_auth,
)


@pytest.fixture
async def engine():
    engine = create_engine("sqlite+aiosqlite://")
    await init_db(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def directory(engine):
    return SQLUserDirectory(create_session_factory(engine))


class TestSQLUserDirectory:
    @pytest.mark.asyncio
    async def test_create_and_find(self, directory):
        user_id = await directory.create_user(
            email="jane@example.com",
            username="jane",
            display_name="Jane",
            avatar_url=None,
            provider=AuthProvider.TOTP,
        )

        by_email = await directory.find_user_by_email("jane@example.com")
        by_id = await directory.find_user_by_id(user_id)

        assert by_email.id == user_id
        assert by_id.username == "jane"
        assert by_id.status == UserStatus.ACTIVE
        assert by_id.created_at is not None
        assert await directory.has_provider(user_id, AuthProvider.TOTP)
        assert not await directory.has_provider(user_id, AuthProvider.GITHUB)

    @pytest.mark.asyncio
    async def test_missing_user(self, directory):
        assert await directory.find_user_by_email("nobody@example.com") is None
        assert await directory.find_user_by_id("missing") is None

    @pytest.mark.asyncio
    async def test_create_is_atomic(self, directory):
        first = await directory.create_user(
            "jane@example.com",
            "jane",
            None,
            None,
            provider=AuthProvider.GITHUB,
            provider_account_id="42",
        )

        with pytest.raises(DatabaseException):
            await directory.create_user(
                "john@example.com",
                "john",
                None,
                None,
                provider=AuthProvider.GITHUB,
                provider_account_id="42",
            )

        assert await directory.find_user_by_email("john@example.com") is None
        assert await directory.find_user_by_id(first) is not None

    @pytest.mark.asyncio
    async def test_duplicate_email(self, directory):
        await directory.create_user("jane@example.com", "jane", None, None)

        with pytest.raises(DatabaseException):
            await directory.create_user("jane@example.com", "jane2", None, None)

    @pytest.mark.asyncio
    async def test_link_provider_and_username_exists(self, directory):
        user_id = await directory.create_user("jane@example.com", "jane", None, None)

        await directory.link_provider(user_id, AuthProvider.GOOGLE, "g-1")

        assert await directory.has_provider(user_id, AuthProvider.GOOGLE)
        assert await directory.username_exists("jane")
        assert not await directory.username_exists("john")

    @pytest.mark.asyncio
    async def test_update_profile(self, directory):
        user_id = await directory.create_user("jane@example.com", "jane", None, None)

        await directory.update_profile(user_id, "Jane Doe", "https://a/1.png")

        user = await directory.find_user_by_id(user_id)
        assert user.display_name == "Jane Doe"
        assert user.avatar_url == "https://a/1.png"

    @pytest.mark.asyncio
    async def test_delete_user_removes_accounts(self, directory):
        user_id = await directory.create_user(
            "jane@example.com", "jane", None, None, provider=AuthProvider.TOTP
        )

        await directory.delete_user(user_id)

        assert await directory.find_user_by_id(user_id) is None
        assert not await directory.has_provider(user_id, AuthProvider.TOTP)

    @pytest.mark.asyncio
    async def test_handle_user_auth_end_to_end(self, directory):
        first = await handle_user_auth(
            directory, AuthProfile(email="jane@example.com", provider=AuthProvider.TOTP)
        )
        second = await handle_user_auth(
            directory,
            AuthProfile(
                email="JANE@example.com",
                provider=AuthProvider.GITHUB,
                display_name="Jane",
                provider_account_id="42",
            ),
        )

        assert first == second
        assert await directory.has_provider(first, AuthProvider.GITHUB)
        assert (await directory.find_user_by_id(first)).display_name == "Jane"
