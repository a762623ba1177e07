import os
import sys
from pathlib import Path

# Settings are read at import time; give the required ones test values first.
os.environ.setdefault("APP_ENV", "test")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("JWT_ACCESS_TOKEN_SECRET", "test-access-secret")
os.environ.setdefault("JWT_REFRESH_TOKEN_SECRET", "test-refresh-secret")
os.environ.setdefault("API_KEY", "test-static-api-key")
os.environ.setdefault("API_KEY_HASH_SECRET", "test-api-key-hash-secret")
os.environ.setdefault("RESEND_API_KEY", "")
os.environ.setdefault("AUTH_UI_REDIRECT_URL", "http://ui.test")

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

sys.path.append(str(Path(__file__).parents[1] / "src"))

from nest_auth.api.deps import get_email_service, get_oauth_client
from nest_auth.config import settings
from nest_auth.core.exceptions import Unauthenticated
from nest_auth.db.session import get_db
from nest_auth.main import app
from nest_auth.services.email import EmailService
from nest_auth.services.oauth import GoogleOAuthClient, OAuthProfile

TEST_DATABASE_URL = os.getenv("TEST_DATABASE_URL", "sqlite+aiosqlite:///:memory:")

if TEST_DATABASE_URL.startswith("sqlite"):
    # One shared in-memory database for the whole session
    test_engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    @event.listens_for(test_engine.sync_engine, "connect")
    def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

else:
    test_engine = create_async_engine(TEST_DATABASE_URL, echo=False)

TestSessionLocal = async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)

TEST_PASSWORD = "password123"


class FakeEmailService(EmailService):
    """Records outgoing mail instead of calling the provider."""

    def __init__(self):
        super().__init__(api_key="", from_email="no-reply@test")
        self.outbox: list[dict] = []

    async def send_email(self, to: str, subject: str, html_body: str) -> bool:
        self.outbox.append({"to": to, "subject": subject, "html": html_body})
        return True


class FakeGoogleOAuthClient(GoogleOAuthClient):
    """Maps authorization codes to canned profiles."""

    def __init__(self, profiles: dict[str, OAuthProfile] | None = None):
        super().__init__(client_id="client-id", client_secret="client-secret",
                         redirect_uri="http://test/api/v1/auth/google/callback")
        self.profiles = profiles or {}

    async def exchange_code(self, code: str) -> OAuthProfile:
        if code not in self.profiles:
            raise Unauthenticated("Google authentication failed")
        return self.profiles[code]


@pytest.fixture(scope="function")
async def setup_database():
    """Create tables for tests that need the database, and drop them after."""
    from nest_auth.models.base import BaseModel
    import nest_auth.models  # noqa: F401  (registers every table)

    async with test_engine.begin() as conn:
        await conn.run_sync(BaseModel.metadata.create_all)

    yield

    async with test_engine.begin() as conn:
        await conn.run_sync(BaseModel.metadata.drop_all)

    await test_engine.dispose()


@pytest.fixture
async def db_session(setup_database):
    """Provide test database session with fresh connection per test."""
    async with TestSessionLocal() as session:
        yield session
        await session.rollback()


async def _create_user(db_session: AsyncSession, email: str, role, is_active: bool = True):
    from nest_auth.core.security import hash_password
    from nest_auth.models.user import User
    from nest_auth.repositories.user import UserRepository

    repo = UserRepository(db_session)
    user = User(
        email=email,
        password=hash_password(TEST_PASSWORD),
        role=role,
        is_active=is_active,
    )
    return await repo.create(user)


@pytest.fixture
async def test_user(db_session: AsyncSession):
    """Create an active, verified USER."""
    from nest_auth.models.user import UserRole

    return await _create_user(db_session, "testuser@example.com", UserRole.USER)


@pytest.fixture
async def admin_user(db_session: AsyncSession):
    from nest_auth.models.user import UserRole

    return await _create_user(db_session, "admin@example.com", UserRole.ADMIN)


@pytest.fixture
def api_key_headers():
    """Static service key header."""
    return {settings.api_key_header: settings.api_key}


@pytest.fixture
async def auth_headers(test_user, api_key_headers):
    """Static key plus a bearer access token for ``test_user``."""
    from nest_auth.core.security import create_access_token

    token = create_access_token(user_id=test_user.id)
    return {**api_key_headers, "Authorization": f"Bearer {token}"}


@pytest.fixture
async def cookie_headers(test_user, api_key_headers):
    """Static key plus the Authentication cookie for ``test_user``."""
    from nest_auth.core.security import create_access_token

    token = create_access_token(user_id=test_user.id)
    return {**api_key_headers, "Cookie": f"Authentication={token}"}


@pytest.fixture
async def admin_cookie_headers(admin_user, api_key_headers):
    from nest_auth.core.security import create_access_token

    token = create_access_token(user_id=admin_user.id)
    return {**api_key_headers, "Cookie": f"Authentication={token}"}


@pytest.fixture
def email_service():
    return FakeEmailService()


@pytest.fixture
def oauth_client():
    return FakeGoogleOAuthClient()


@pytest.fixture
async def client(db_session: AsyncSession, email_service, oauth_client):
    """Provide test client with database and collaborator overrides."""
    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_email_service] = lambda: email_service
    app.dependency_overrides[get_oauth_client] = lambda: oauth_client

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
