"""
Pytest configuration and shared fixtures for backend tests.
"""

import os
import sys
from pathlib import Path

# Settings are read once at import time
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ["REDIS_URL"] = ""
os.environ["BOUNCER_ENABLED"] = "false"

# Add backend directory to path for imports
backend_dir = Path(__file__).parent.parent
sys.path.insert(0, str(backend_dir))

import pytest
from typing import AsyncGenerator
from uuid import uuid4

from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

# Import after path is set
from core.domain.entitlement import FeatureType, ResetType
from core.security import PasswordHasher, TokenService
from infrastructure.config import get_settings
from infrastructure.database.connection import get_db
from infrastructure.database.models import (
    Base,
    Feature,
    Package,
    PackageFeature,
    User,
    UserTier,
    Workspace,
    WorkspaceMember,
    WorkspaceRole,
    utcnow,
)
from services.cache import cache
from services.entitlements import EntitlementService

# Initialize security services
password_hasher = PasswordHasher(rounds=4)
settings = get_settings()
token_service = TokenService(
    secret_key=settings.jwt_secret_key,
    algorithm=settings.jwt_algorithm,
)

TEST_PASSWORD = "testpassword123"

# Database URL for testing (in-memory SQLite)
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest.fixture(autouse=True)
async def clear_cache():
    """Entitlement and blocklist lookups are cached per process."""
    await cache.flush()
    yield
    await cache.flush()


@pytest.fixture
async def db_engine():
    """Create a test database engine."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    # Create all tables
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    # Drop all tables
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Create a test database session."""
    async with session_factory() as session:
        yield session
        await session.rollback()


async def make_user(
    db: AsyncSession,
    email: str,
    name: str,
    tier: str = UserTier.FREE.value,
    verified: bool = True,
) -> User:
    user = User(
        id=str(uuid4()),
        email=email,
        password_hash=password_hasher.hash(TEST_PASSWORD),
        name=name,
        status="active",
        tier=tier,
        email_verified_at=utcnow() if verified else None,
    )
    db.add(user)
    await db.commit()
    await db.refresh(user)
    return user


async def make_workspace(
    db: AsyncSession,
    owner: User,
    slug: str,
    name: str,
    is_default: bool = True,
) -> Workspace:
    workspace = Workspace(id=str(uuid4()), name=name, slug=slug, domain=f"{slug}.example.com")
    db.add(workspace)
    await db.flush()
    db.add(
        WorkspaceMember(
            user_id=owner.id,
            workspace_id=workspace.id,
            role=WorkspaceRole.OWNER.value,
            is_default=is_default,
        )
    )
    await db.commit()
    await db.refresh(workspace)
    return workspace


def headers_for(user: User) -> dict:
    access_token = token_service.create_access_token(user_id=user.id, email=user.email, tier=user.tier)
    return {"Authorization": f"Bearer {access_token}"}


@pytest.fixture
async def test_user(db_session: AsyncSession) -> User:
    """Free-tier user."""
    return await make_user(db_session, "test@example.com", "Test User")


@pytest.fixture
async def apollo_user(db_session: AsyncSession) -> User:
    return await make_user(db_session, "apollo@example.com", "Apollo User", UserTier.APOLLO.value)


@pytest.fixture
async def hades_user(db_session: AsyncSession) -> User:
    """Platform operator."""
    return await make_user(db_session, "hades@example.com", "Hades User", UserTier.HADES.value)


@pytest.fixture
def auth_headers(test_user: User) -> dict:
    """Generate authentication headers for test user."""
    return headers_for(test_user)


@pytest.fixture
def apollo_headers(apollo_user: User) -> dict:
    return headers_for(apollo_user)


@pytest.fixture
def hades_headers(hades_user: User) -> dict:
    return headers_for(hades_user)


@pytest.fixture
async def workspace(db_session: AsyncSession, test_user: User) -> Workspace:
    """The test user's default workspace."""
    return await make_workspace(db_session, test_user, "main", "Main Site")


@pytest.fixture
async def hades_workspace(db_session: AsyncSession, hades_user: User) -> Workspace:
    return await make_workspace(db_session, hades_user, "host", "Host Hub")


@pytest.fixture
async def features(db_session: AsyncSession) -> dict[str, Feature]:
    """
    A small feature catalogue:

    - ``ai.credits``: monthly limit
    - ``ai.credits.images``: child drawing from the ai.credits pool
    - ``core.srv.analytics``: boolean service access
    - ``core.api``: unlimited
    """
    credits = Feature(
        code="ai.credits",
        name="AI Credits",
        category="ai",
        type=FeatureType.LIMIT.value,
        reset_type=ResetType.MONTHLY.value,
        sort_order=1,
    )
    db_session.add(credits)
    await db_session.flush()

    catalogue = {
        "ai.credits": credits,
        "ai.credits.images": Feature(
            code="ai.credits.images",
            name="Image Credits",
            category="ai",
            type=FeatureType.LIMIT.value,
            reset_type=ResetType.MONTHLY.value,
            parent=credits,
            sort_order=2,
        ),
        "core.srv.analytics": Feature(
            code="core.srv.analytics",
            name="Analytics Access",
            category="service",
            type=FeatureType.BOOLEAN.value,
            reset_type=ResetType.NONE.value,
            sort_order=1,
        ),
        "core.api": Feature(
            code="core.api",
            name="API Access",
            category="platform",
            type=FeatureType.UNLIMITED.value,
            reset_type=ResetType.NONE.value,
            sort_order=1,
        ),
    }
    for feature in catalogue.values():
        db_session.add(feature)
    await db_session.commit()
    for feature in catalogue.values():
        await db_session.refresh(feature)
    return catalogue


@pytest.fixture
async def packages(db_session: AsyncSession, features: dict[str, Feature]) -> dict[str, Package]:
    """A base plan and a stackable credit addon."""
    starter = Package(
        code="starter",
        name="Starter",
        is_base_package=True,
        is_stackable=False,
        monthly_price=9,
        sort_order=1,
    )
    starter.features = [
        PackageFeature(feature=features["ai.credits"], limit_value=100),
        PackageFeature(feature=features["core.srv.analytics"], limit_value=None),
    ]
    addon = Package(
        code="credits-pack",
        name="Credits Pack",
        is_base_package=False,
        is_stackable=True,
        monthly_price=5,
        sort_order=2,
    )
    addon.features = [PackageFeature(feature=features["ai.credits"], limit_value=50)]
    db_session.add_all([starter, addon])
    await db_session.commit()
    return {"starter": starter, "credits-pack": addon}


@pytest.fixture
async def entitled_workspace(
    db_session: AsyncSession, workspace: Workspace, packages: dict[str, Package]
) -> Workspace:
    """The test user's workspace on the Starter plan."""
    await EntitlementService(db_session).provision_package(workspace, "starter")
    return workspace


@pytest.fixture
async def async_client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """Create an async HTTP client for testing."""
    # Import app here to avoid circular imports
    from main import app

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        yield db_session

    app.dependency_overrides[get_db] = override_get_db

    # Reset rate limiter state between tests to prevent cross-test 429s
    app.state.limiter.reset()

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()
