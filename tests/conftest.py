# tests/conftest.py - Shared test fixtures
import os

import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy import select
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker

# Use SQLite for tests
TEST_DB_URL = "sqlite+aiosqlite:///./test.db"
os.environ["DATABASE_URL"] = TEST_DB_URL
os.environ["JWT_SECRET_KEY"] = "test-secret-key-for-unit-tests-only-min-32-chars"
os.environ["ENVIRONMENT"] = "test"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["AGENT_API_KEY"] = "test-agent-key"

from taskboard.models import Base, Membership, MemberRole, User, utcnow
from taskboard.auth import AuthService, UserRegister
from taskboard.database import get_db_session
from taskboard.main import app

TEST_PASSWORD = "TestPassword123"


@pytest_asyncio.fixture(scope="function")
async def db_engine():
    engine = create_async_engine(TEST_DB_URL, echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def db_session(db_engine):
    session_factory = async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture(scope="function")
async def client(db_engine):
    """HTTP test client with overridden DB dependency"""
    session_factory = async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)

    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db_session] = override_get_db
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


async def register(db: AsyncSession, email: str, name: str = "") -> User:
    return await AuthService.register_user(
        UserRegister(email=email, password=TEST_PASSWORD, display_name=name), db
    )


@pytest_asyncio.fixture
async def alice(db_session):
    """Registered user with a personal organization"""
    return await register(db_session, "alice@example.com", "Alice")


@pytest_asyncio.fixture
async def bob(db_session):
    """Second registered user, not a member of alice's organization"""
    return await register(db_session, "bob@example.com", "Bob")


@pytest_asyncio.fixture
async def alice_org(db_session, alice) -> str:
    return await personal_org_id(db_session, alice)


async def personal_org_id(db: AsyncSession, user: User) -> str:
    stmt = select(Membership.organization_id).where(
        Membership.user_id == user.id, Membership.role == MemberRole.OWNER,
    )
    return (await db.execute(stmt)).scalars().first()


async def add_membership(db: AsyncSession, organization_id: str, user: User, role: MemberRole) -> None:
    db.add(Membership(user_id=user.id, organization_id=organization_id, role=role, joined_at=utcnow()))
    await db.commit()


def get_auth_headers(user: User) -> dict:
    """Generate auth headers for a user"""
    token = AuthService.create_access_token({"sub": user.id, "email": user.email})
    return {"Authorization": f"Bearer {token}"}
