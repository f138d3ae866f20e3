"""Pytest configuration and shared fixtures."""

import os


# Settings are read once at import time, so the test environment has to be
# in place before anything from shipdesk is imported.
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("SECRET_KEY", "test-secret-key-that-is-at-least-32-characters")
os.environ.setdefault("ENVIRONMENT", "testing")
os.environ.setdefault("SETTLEMENT_CURRENCY", "CAD")

from collections.abc import AsyncGenerator  # noqa: E402

import pytest  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import (  # noqa: E402
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool  # noqa: E402

from scripts.seed import seed_reference_data  # noqa: E402
from shipdesk.core.database import Base, get_db  # noqa: E402
from shipdesk.core.permissions.models import Permission, Role, RolePermission  # noqa: E402, F401
from shipdesk.main import create_app  # noqa: E402

# Import all models to ensure they're registered with Base.metadata
from shipdesk.modules.markup.models import MarkupRule  # noqa: E402, F401
from shipdesk.modules.payments.models import Payment  # noqa: E402, F401
from shipdesk.modules.users.models import User  # noqa: E402
from tests.factories.user import headers_for, make_user  # noqa: E402


TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest.fixture(scope="function")
async def engine():
    """Create a fresh in-memory database per test."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
        echo=False,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
async def db(engine) -> AsyncGenerator[AsyncSession, None]:
    """Provide a transactional database session for tests.

    Each test runs in its own transaction that is rolled back
    after the test completes.
    """
    session_factory = async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )

    async with engine.connect() as conn:
        await conn.begin()

        async with session_factory(bind=conn) as session:
            yield session

        await conn.rollback()


@pytest.fixture
async def app(db: AsyncSession):
    """Create test application instance."""
    application = create_app()

    # Override database dependency
    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        yield db

    application.dependency_overrides[get_db] = override_get_db

    yield application

    application.dependency_overrides.clear()


@pytest.fixture
async def client(app) -> AsyncGenerator[AsyncClient, None]:
    """Provide async HTTP client for API testing."""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as client:
        yield client


# ============================================================
# Reference Data and User Fixtures
# ============================================================


@pytest.fixture
async def roles(db: AsyncSession) -> dict[str, Role]:
    """Seed permissions, the default roles and markup rules.

    Returns:
        The seeded roles by name
    """
    return await seed_reference_data(db)


@pytest.fixture
async def admin_user(db: AsyncSession, roles: dict[str, Role]) -> User:
    """A user holding the super_admin role."""
    return await make_user(db, "admin@example.com", roles["super_admin"], full_name="Admin")


@pytest.fixture
async def user(db: AsyncSession, roles: dict[str, Role]) -> User:
    """A user holding the default "user" role."""
    return await make_user(db, "user@example.com", roles["user"])


@pytest.fixture
def admin_headers(admin_user: User) -> dict[str, str]:
    return headers_for(admin_user)


@pytest.fixture
def auth_headers(user: User) -> dict[str, str]:
    """Authorization headers for the regular test user."""
    return headers_for(user)


@pytest.fixture
def anyio_backend() -> str:
    """Specify the async backend for anyio."""
    return "asyncio"
