from typing import Any, AsyncGenerator, Awaitable, Callable, Dict, Generator, List
from unittest.mock import AsyncMock, MagicMock
from uuid import UUID

import pytest
from fastapi.testclient import TestClient
from httpx import ASGITransport, AsyncClient
from sqlalchemy import update
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

import messenger.models.db  # noqa: F401
from messenger.clients.base_email_client import BaseEmailClient
from messenger.config import Settings, get_settings
from messenger.database import Base, get_db
from messenger.dependencies import get_email_client
from messenger.errors import UnavailableError
from messenger.main import app
from messenger.models.api.users import UserResponse
from messenger.models.db.user_model import UserModel
from messenger.repositories.user_repository import UserRepository


class FakeEmailClient(BaseEmailClient):
    """Records outgoing email instead of calling a provider."""

    def __init__(self) -> None:
        self.sent: List[Dict[str, str]] = []
        self.fail = False

    async def send(self, to: str, subject: str, body: str) -> None:
        if self.fail:
            raise UnavailableError("Email delivery failed")
        self.sent.append({"to": to, "subject": subject, "body": body})

    def last_code(self, to: str) -> str:
        """Return the code of the latest OTP email sent to ``to``."""
        for email in reversed(self.sent):
            if email["to"] == to:
                return email["body"].rsplit(" ", 1)[-1]
        raise AssertionError(f"No email sent to {to}")


@pytest.fixture
def test_settings() -> Settings:
    """Settings with a cheap bcrypt work factor and fixed secrets."""
    return Settings(
        env="test",
        bcrypt_rounds=4,
        jwt_access_secret="test-access-secret-with-enough-bytes",
        jwt_refresh_secret="test-refresh-secret-with-enough-bytes",
        otp_sweep_interval_seconds=0,
    )


@pytest.fixture
def email_client() -> FakeEmailClient:
    return FakeEmailClient()


@pytest.fixture(scope="function")
async def test_engine(tmp_path: Any) -> AsyncGenerator[AsyncEngine, None]:
    """Create a throwaway SQLite database with every table."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")

    # Create all tables
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    # Clean up
    await engine.dispose()


@pytest.fixture(scope="function")
def session_factory(test_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture(scope="function")
async def test_db(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession, None]:
    """Create a test database session for integration tests."""
    async with session_factory() as session:
        yield session


@pytest.fixture(scope="function")
async def mock_db() -> AsyncGenerator[AsyncMock, None]:
    """Create a mock database session for unit tests."""
    mock_session = AsyncMock()
    mock_session.commit = AsyncMock()
    mock_session.rollback = AsyncMock()
    mock_session.close = AsyncMock()
    mock_session.refresh = AsyncMock()
    mock_session.flush = AsyncMock()
    mock_session.execute = AsyncMock()
    mock_session.add = MagicMock()  # add is sync, not async

    yield mock_session


@pytest.fixture
def override_dependencies(
    session_factory: async_sessionmaker[AsyncSession],
    test_settings: Settings,
    email_client: FakeEmailClient,
) -> Generator[None, None, None]:
    """Point the app at the SQLite database, test settings and fake email."""

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_settings] = lambda: test_settings
    app.dependency_overrides[get_email_client] = lambda: email_client
    yield
    app.dependency_overrides.clear()


@pytest.fixture
def client(
    mock_db: AsyncMock, test_settings: Settings, email_client: FakeEmailClient
) -> Generator[TestClient, Any, None]:
    """Create a test client for router unit tests; services are patched."""

    async def override_get_db() -> AsyncGenerator[AsyncMock, None]:
        yield mock_db

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_settings] = lambda: test_settings
    app.dependency_overrides[get_email_client] = lambda: email_client
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
async def api_client(override_dependencies: None) -> AsyncGenerator[AsyncClient, None]:
    """Async client talking to the app in-process."""
    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test"
    ) as async_client:
        yield async_client


@pytest.fixture
def auth_headers() -> Callable[[str], Dict[str, str]]:
    def _headers(token: str) -> Dict[str, str]:
        return {"Authorization": f"Bearer {token}"}

    return _headers


@pytest.fixture
def register_user(
    api_client: AsyncClient, email_client: FakeEmailClient
) -> Callable[..., Awaitable[Dict[str, Any]]]:
    """Register an account and log in, optionally completing OTP verification.

    Returns a dict with ``id``, ``email``, ``access_token`` and
    ``refresh_token``.
    """

    async def _register(
        username: str, password: str = "s3cret-pass", verify: bool = True
    ) -> Dict[str, Any]:
        email = f"{username}@mail.com"
        response = await api_client.post(
            "/auth/register",
            json={
                "email": email,
                "username": username,
                "password": password,
                "confirmPassword": password,
            },
        )
        assert response.status_code == 201, response.text
        user_id = response.json()["id"]

        if verify:
            response = await api_client.post(
                "/auth/verify-otp",
                json={"email": email, "otp": email_client.last_code(email)},
            )
            assert response.status_code == 200, response.text

        response = await api_client.post(
            "/auth/login", json={"email": email, "password": password}
        )
        assert response.status_code == 200, response.text
        tokens = response.json()
        return {
            "id": user_id,
            "email": email,
            "access_token": tokens["accessToken"],
            "refresh_token": tokens["refreshToken"],
        }

    return _register


@pytest.fixture
def promote_to_admin(
    session_factory: async_sessionmaker[AsyncSession],
) -> Callable[[str], Awaitable[None]]:
    async def _promote(user_id: str) -> None:
        async with session_factory() as session:
            await session.execute(
                update(UserModel)
                .where(UserModel.id == UUID(user_id))
                .values(role="admin")
            )
            await session.commit()

    return _promote


@pytest.fixture
def create_user(test_db: AsyncSession) -> Callable[..., Awaitable[UserResponse]]:
    """Insert an active identity directly through the repository."""

    async def _create(username: str, role: str = "user") -> UserResponse:
        repo = UserRepository(test_db)
        user = await repo.create_user(f"{username}@mail.com", username, "not-a-hash")
        await repo.activate(user.id)
        if role != "user":
            await test_db.execute(
                update(UserModel).where(UserModel.id == user.id).values(role=role)
            )
        await test_db.commit()
        fetched = await repo.get_by_id(user.id)
        assert fetched is not None
        return fetched

    return _create
