"""
User directory: the persistence contract the auth flows use to resolve users.

``handle_user_auth`` turns a provider profile (TOTP email or OAuth user
info) into a user id, creating the user on first login and linking new
providers to an existing user with the same email.
"""

import re
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass

from sqlalchemy.ext.asyncio import async_sessionmaker

from inkwell.core.config import auth_logger
from inkwell.core.db.crud import account_db, user_db
from inkwell.core.db.models import Account, User
from inkwell.core.enums import AuthProvider
from inkwell.core.exceptions.types import (
    AppException,
    AuthenticationException,
    DatabaseException,
    EmailRequiredException,
    UserInactiveException,
)
from inkwell.core.schemas.auth import UserProfile


__all__ = [
    "AuthProfile",
    "SQLUserDirectory",
    "UserDirectory",
    "handle_user_auth",
    "username_from_email",
]


@dataclass
class AuthProfile:
    """Identity asserted by a provider."""

    email: str | None
    provider: AuthProvider
    display_name: str | None = None
    avatar_url: str | None = None
    provider_account_id: str | None = None


class UserDirectory(ABC):
    @abstractmethod
    async def find_user_by_email(self, email: str) -> UserProfile | None:
        pass

    @abstractmethod
    async def find_user_by_id(self, user_id: str) -> UserProfile | None:
        pass

    @abstractmethod
    async def create_user(
        self,
        email: str,
        username: str,
        display_name: str | None,
        avatar_url: str | None,
        provider: AuthProvider | None = None,
        provider_account_id: str | None = None,
        user_id: str | None = None,
    ) -> str:
        """
        Create a user and, when ``provider`` is given, its first linked
        account in the same transaction.

        Returns:
            str: The new user id.
        """
        pass

    @abstractmethod
    async def link_provider(
        self, user_id: str, provider: AuthProvider, provider_account_id: str
    ) -> None:
        pass

    @abstractmethod
    async def has_provider(self, user_id: str, provider: AuthProvider) -> bool:
        pass

    @abstractmethod
    async def username_exists(self, username: str) -> bool:
        pass

    @abstractmethod
    async def update_profile(
        self, user_id: str, display_name: str | None, avatar_url: str | None
    ) -> None:
        pass

    @abstractmethod
    async def delete_user(self, user_id: str) -> None:
        pass


class SQLUserDirectory(UserDirectory):
    """
    ``UserDirectory`` over the SQLAlchemy ``users`` and ``accounts`` tables.

    Args:
        session_factory: Async session factory; one session is opened per call.
    """

    def __init__(self, session_factory: async_sessionmaker):
        self._session_factory = session_factory

    async def find_user_by_email(self, email: str) -> UserProfile | None:
        async with self._session_factory() as session:
            user = await user_db.get_one_by_conditions(session, [User.email == email])
            return UserProfile.model_validate(user) if user else None

    async def find_user_by_id(self, user_id: str) -> UserProfile | None:
        async with self._session_factory() as session:
            user = await user_db.get_by_id(session, user_id)
            return UserProfile.model_validate(user) if user else None

    async def create_user(
        self,
        email: str,
        username: str,
        display_name: str | None,
        avatar_url: str | None,
        provider: AuthProvider | None = None,
        provider_account_id: str | None = None,
        user_id: str | None = None,
    ) -> str:
        user_id = user_id or str(uuid.uuid4())
        async with self._session_factory() as session:
            try:
                await user_db.create(
                    session,
                    {
                        "id": user_id,
                        "email": email,
                        "username": username,
                        "display_name": display_name,
                        "avatar_url": avatar_url,
                    },
                    commit_self=False,
                )
                if provider is not None:
                    await account_db.create(
                        session,
                        {
                            "user_id": user_id,
                            "provider": provider,
                            "provider_account_id": provider_account_id or user_id,
                        },
                        commit_self=False,
                    )
                await session.commit()
            except DatabaseException:
                await session.rollback()
                raise
        return user_id

    async def link_provider(
        self, user_id: str, provider: AuthProvider, provider_account_id: str
    ) -> None:
        async with self._session_factory() as session:
            await account_db.create(
                session,
                {
                    "user_id": user_id,
                    "provider": provider,
                    "provider_account_id": provider_account_id,
                },
            )

    async def has_provider(self, user_id: str, provider: AuthProvider) -> bool:
        async with self._session_factory() as session:
            return await account_db.exists(
                session, [Account.user_id == user_id, Account.provider == provider]
            )

    async def username_exists(self, username: str) -> bool:
        async with self._session_factory() as session:
            return await user_db.exists(session, [User.username == username])

    async def update_profile(
        self, user_id: str, display_name: str | None, avatar_url: str | None
    ) -> None:
        async with self._session_factory() as session:
            await user_db.update(
                session,
                user_id,
                {"display_name": display_name, "avatar_url": avatar_url},
            )

    async def delete_user(self, user_id: str) -> None:
        async with self._session_factory() as session:
            await account_db.delete_by_conditions(
                session, [Account.user_id == user_id], commit_self=False
            )
            await user_db.delete_by_conditions(
                session, [User.id == user_id], commit_self=False
            )
            await session.commit()


_USERNAME_INVALID = re.compile(r"[^0-9a-z]")


def username_from_email(email: str) -> str:
    """
    Derive a username from the local part of ``email``.

    Example:
        >>> username_from_email("jane.doe@example.com")
        'jane_doe'
    """
    local = email[: email.index("@")] if "@" in email else email
    return _USERNAME_INVALID.sub("_", local.lower())


async def handle_user_auth(directory: UserDirectory, profile: AuthProfile) -> str:
    """
    Resolve ``profile`` to a user id, creating or linking as needed.

    - An existing active user with the same email is reused. OAuth logins
      refresh its display name and avatar; TOTP logins leave them untouched.
    - A provider not yet linked to that user is linked.
    - A new user gets a username derived from the email, suffixed with part
      of the new user id when the plain form is taken.

    Raises:
        EmailRequiredException: If the provider supplied no email.
        UserInactiveException: If the existing user is deleted or blocked.
        AuthenticationException: If creating the user fails.
    """
    provider = AuthProvider(profile.provider)
    if not profile.email:
        raise EmailRequiredException(
            f"Email is required for {provider.value} authentication"
        )

    email = profile.email.lower()
    username = username_from_email(email)
    display_name = profile.display_name or username

    existing = await directory.find_user_by_email(email)
    if existing is not None:
        if not existing.is_active:
            auth_logger.warning(
                f"Login rejected for inactive user={existing.id} status={existing.status.value}"
            )
            raise UserInactiveException()

        if provider != AuthProvider.TOTP:
            await directory.update_profile(existing.id, display_name, profile.avatar_url)

        if not await directory.has_provider(existing.id, provider):
            await directory.link_provider(
                existing.id, provider, profile.provider_account_id or existing.id
            )
            auth_logger.info(f"Linked provider {provider.value} to user={existing.id}")

        return existing.id

    user_id = str(uuid.uuid4())
    if await directory.username_exists(username):
        username = f"{username}_{user_id.replace('-', '')[:6]}"

    try:
        await directory.create_user(
            email=email,
            username=username,
            display_name=display_name,
            avatar_url=profile.avatar_url,
            provider=provider,
            provider_account_id=profile.provider_account_id or user_id,
            user_id=user_id,
        )
    except AppException as e:
        auth_logger.error(f"User creation failed for provider {provider.value}: {e}")
        raise AuthenticationException("Login failed, please try again") from e

    auth_logger.info(f"User created: user={user_id} provider={provider.value}")
    return user_id
