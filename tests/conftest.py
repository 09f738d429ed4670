"""
Pytest configuration and core fixtures.

Provides an injectable clock, an in-memory key-value store, an in-memory user
directory and a FastAPI client wired to them. All fixtures are
function-scoped for complete test isolation.
"""

import os
import tempfile

# Settings are read at import time, so the environment is fixed up first.
os.environ["ENVIRONMENT"] = "test"
os.environ["DEBUG"] = "false"
os.environ["KV_BACKEND"] = "memory"
os.environ["DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ["SENTRY_DSN"] = ""
os.environ["LOG_DIR"] = os.path.join(tempfile.gettempdir(), "inkwell-test-logs")

from typing import AsyncGenerator
from uuid import uuid4

import pytest
from httpx import ASGITransport, AsyncClient

from inkwell.core.config import settings
from inkwell.core.enums import AuthProvider, UserStatus
from inkwell.core.schemas.auth import UserProfile
from inkwell.core.services.auth.outcome import AuthRequest, SendCodeParams
from inkwell.core.services.email.validator import EmailValidator
from inkwell.core.services.factory import Services, create_services
from inkwell.core.services.kv import MemoryKVStore
from inkwell.core.services.users import UserDirectory


class FakeClock:
    """Controllable time source returning epoch seconds."""

    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class InMemoryUserDirectory(UserDirectory):
    """User directory over plain dicts, for tests that do not need SQL."""

    def __init__(self):
        self.users: dict[str, UserProfile] = {}
        self.accounts: set[tuple[str, AuthProvider, str]] = set()

    async def find_user_by_email(self, email: str) -> UserProfile | None:
        return next((u for u in self.users.values() if u.email == email), None)

    async def find_user_by_id(self, user_id: str) -> UserProfile | None:
        return self.users.get(user_id)

    async def create_user(
        self,
        email,
        username,
        display_name,
        avatar_url,
        provider=None,
        provider_account_id=None,
        user_id=None,
    ) -> str:
        user_id = user_id or str(uuid4())
        self.users[user_id] = UserProfile(
            id=user_id,
            email=email,
            username=username,
            display_name=display_name,
            avatar_url=avatar_url,
        )
        if provider is not None:
            self.accounts.add(
                (user_id, AuthProvider(provider), provider_account_id or user_id)
            )
        return user_id

    async def link_provider(self, user_id, provider, provider_account_id) -> None:
        self.accounts.add((user_id, AuthProvider(provider), provider_account_id))

    async def has_provider(self, user_id, provider) -> bool:
        return any(a[0] == user_id and a[1] == provider for a in self.accounts)

    async def username_exists(self, username: str) -> bool:
        return any(u.username == username for u in self.users.values())

    async def update_profile(self, user_id, display_name, avatar_url) -> None:
        self.users[user_id] = self.users[user_id].model_copy(
            update={"display_name": display_name, "avatar_url": avatar_url}
        )

    async def delete_user(self, user_id: str) -> None:
        self.users.pop(user_id, None)
        self.accounts = {a for a in self.accounts if a[0] != user_id}

    def set_status(self, user_id: str, status: UserStatus) -> None:
        self.users[user_id] = self.users[user_id].model_copy(update={"status": status})


class CodeOutbox:
    """Records every code handed to ``send_code``."""

    def __init__(self):
        self.sent: list[SendCodeParams] = []

    async def __call__(self, params: SendCodeParams) -> None:
        self.sent.append(params)

    @property
    def last_code(self) -> str:
        return self.sent[-1].code


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def kv(clock) -> MemoryKVStore:
    return MemoryKVStore(clock=clock)


@pytest.fixture
def users() -> InMemoryUserDirectory:
    return InMemoryUserDirectory()


@pytest.fixture
def outbox() -> CodeOutbox:
    return CodeOutbox()


@pytest.fixture
def validate_email():
    return EmailValidator(check_mx=False).validate


@pytest.fixture
def services(kv, users, clock, outbox, validate_email) -> Services:
    return create_services(
        settings,
        kv,
        users,
        send_code=outbox,
        validate_email=validate_email,
        clock=clock,
    )


@pytest.fixture
def make_request():
    """Build an ``AuthRequest`` with an optional cookie header and form."""

    def _make(
        cookie: str | None = None,
        form: dict | None = None,
        query: dict | None = None,
        method: str = "POST",
        headers: dict | None = None,
    ) -> AuthRequest:
        all_headers = {"user-agent": "pytest-agent", **(headers or {})}
        if cookie:
            all_headers["cookie"] = cookie
        return AuthRequest(
            method=method,
            headers=all_headers,
            form=form or {},
            query=query or {},
            client_host="10.0.0.1",
        )

    return _make


@pytest.fixture
def app(kv, users, clock, outbox, validate_email):
    from inkwell.main import create_app

    application = create_app()
    application.state.kv = kv
    application.state.users = users
    application.state.send_code = outbox
    application.state.validate_email = validate_email
    application.state.clock = clock
    return application


@pytest.fixture
async def client(app) -> AsyncGenerator[AsyncClient, None]:
    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://testserver"
    ) as ac:
        yield ac


@pytest.fixture
def login(outbox):
    """Run the email code flow on ``client`` and return the logged-in user's email."""

    async def _login(client: AsyncClient, email: str = "jane@example.com") -> str:
        response = await client.post("/auth/login", data={"email": email})
        assert response.status_code == 303
        assert response.headers["location"] == "/auth/verify"

        response = await client.post("/auth/verify", data={"code": outbox.last_code})
        assert response.status_code == 303
        assert response.headers["location"] == "/home"
        return email.lower()

    return _login
