import os

# Set test environment
os.environ["DEBUG"] = "true"
os.environ["SESSION_SECRET"] = "test-session-secret-for-the-suite"
os.environ["SAUTH_BASE_URL"] = "https://auth.test"
os.environ["SAUTH_CLIENT_ID"] = "trip-album-test"
os.environ["SAUTH_REDIRECT_URI"] = "http://test/auth/callback"
os.environ["R2_ACCOUNT_ID"] = "test-account"
os.environ["R2_ACCESS_KEY_ID"] = "test-access-key"
os.environ["R2_SECRET_ACCESS_KEY"] = "test-secret-key"
os.environ["R2_BUCKET_NAME"] = "trip-photos"
os.environ["R2_PUBLIC_URL"] = "https://photos.test"
os.environ["MAPBOX_ACCESS_TOKEN"] = "test-mapbox-token"

from collections.abc import AsyncGenerator
from uuid import uuid4

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from tripalbum.auth.session_codec import SessionCodec
from tripalbum.auth.session_store import SESSION_COOKIE_NAME, now_ms
from tripalbum.config import get_settings
from tripalbum.database import Base, get_db
from tripalbum.main import app
from tripalbum.models import City, Trip, User
from tripalbum.schemas.auth import SessionData
from tripalbum.services.storage_service import get_optional_storage_service

# In-memory SQLite by default; point TEST_DATABASE_URL at Postgres to run against it
TEST_DATABASE_URL = os.getenv("TEST_DATABASE_URL", "sqlite+aiosqlite:///:memory:")


class FakeStorage:
    """Records deletions instead of talking to R2."""

    def __init__(self):
        self.deleted: list[str] = []

    async def delete_objects(self, keys: list[str]) -> None:
        self.deleted.extend(keys)


@pytest_asyncio.fixture(scope="function")
async def async_engine():
    """Create async engine for each test."""
    engine_kwargs = {"echo": False}
    if TEST_DATABASE_URL.startswith("sqlite"):
        engine_kwargs["poolclass"] = StaticPool
        engine_kwargs["connect_args"] = {"check_same_thread": False}

    engine = create_async_engine(TEST_DATABASE_URL, **engine_kwargs)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def db_session(async_engine) -> AsyncGenerator[AsyncSession, None]:
    """Create a database session for each test."""
    async_session_maker = async_sessionmaker(
        async_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )

    async with async_session_maker() as session:
        yield session


@pytest.fixture
def fake_storage() -> FakeStorage:
    return FakeStorage()


@pytest_asyncio.fixture(scope="function")
async def client(
    db_session: AsyncSession, fake_storage: FakeStorage
) -> AsyncGenerator[AsyncClient, None]:
    """Create an async test client with database session override."""

    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_optional_storage_service] = lambda: fake_storage

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def test_user(db_session: AsyncSession) -> User:
    """Create a test user with a unique S-Auth subject."""
    subject = f"sauth-{uuid4()}"
    user = User(
        id=subject,
        email=f"{subject}@example.com",
        name="Test User",
    )
    db_session.add(user)
    await db_session.commit()
    await db_session.refresh(user)
    return user


def make_session(user_id: str, email: str, expires_in_ms: int = 3_600_000, **fields) -> SessionData:
    data = {
        "user_id": user_id,
        "email": email,
        "name": "Test User",
        "access_token": "access-token",
        "refresh_token": "refresh-token",
        "expires_at": now_ms() + expires_in_ms,
    }
    data.update(fields)
    return SessionData(**data)


def encode_session(session: SessionData) -> str:
    settings = get_settings()
    return SessionCodec(settings.session_secret, settings.session_key_derivation).encrypt(session)


@pytest.fixture
def session_cookie(test_user: User) -> str:
    """Encrypted session cookie value for the test user."""
    return encode_session(make_session(test_user.id, test_user.email))


@pytest_asyncio.fixture
async def auth_client(client: AsyncClient, session_cookie: str) -> AsyncClient:
    """Test client carrying a valid session cookie."""
    client.cookies.set(SESSION_COOKIE_NAME, session_cookie)
    return client


@pytest_asyncio.fixture
async def test_trip(db_session: AsyncSession, test_user: User) -> Trip:
    trip = Trip(user_id=test_user.id, title="Japan 2024", description="Spring trip")
    db_session.add(trip)
    await db_session.commit()
    await db_session.refresh(trip)
    return trip


@pytest_asyncio.fixture
async def test_city(db_session: AsyncSession, test_trip: Trip) -> City:
    city = City(trip_id=test_trip.id, name="Kyoto", country="Japan")
    db_session.add(city)
    await db_session.commit()
    await db_session.refresh(city)
    return city


@pytest.fixture
def session_cookie_factory(test_user: User):
    """Build session cookies for the test user with custom fields."""

    def _make(**fields) -> str:
        fields.setdefault("user_id", test_user.id)
        fields.setdefault("email", test_user.email)
        return encode_session(make_session(**fields))

    return _make
