"""Service test fixtures — async DB, FastAPI test client, fake email provider.

Invariants:
    - Every test gets a fresh in-memory SQLite database
    - get_db dependency overridden to use the test session factory
    - get_email_client overridden with FakeEmailClient (no network)
    - Rate limit budgets reset between tests

Design Decisions:
    - SQLite in-memory with StaticPool: request sessions and test_db share one
      connection, so rows seeded by a test are visible to the app
    - Assertions on rows changed by a request reload them with get_or_404
      (populate_existing): test_db's identity map would otherwise be stale
"""

from decimal import Decimal

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import (
    AsyncSession, create_async_engine, async_sessionmaker,
)
from sqlalchemy.pool import StaticPool

import courseportal.infrastructure.database as db_module
from courseportal.api.dependencies import reset_rate_limits
from courseportal.db.base import Base
import courseportal.models  # noqa: F401
from courseportal.infrastructure.database import DatabaseSessionManager, get_db
from courseportal.infrastructure.email_client import get_email_client
from courseportal.main import app
from courseportal.models.course import Course
from courseportal.models.course_category import CourseCategory
from courseportal.models.intake import Intake
from courseportal.models.profile import Profile
from tests.services.fakes import FakeEmailClient, auth_headers, future


@pytest.fixture
async def test_engine():
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:", echo=False, poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
async def test_session_factory(test_engine):
    return async_sessionmaker(
        test_engine, class_=AsyncSession, expire_on_commit=False,
    )


@pytest.fixture
async def test_db(test_session_factory):
    async with test_session_factory() as session:
        yield session


@pytest.fixture
def email_outbox():
    return FakeEmailClient()


@pytest.fixture
async def client(test_engine, test_session_factory, email_outbox):
    """FastAPI test client with DB and email dependencies overridden."""
    async def override_get_db():
        async with test_session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_email_client] = lambda: email_outbox
    reset_rate_limits()

    # Readiness probe reads db_manager directly
    original_manager = db_module.db_manager
    fake_manager = DatabaseSessionManager.__new__(DatabaseSessionManager)
    fake_manager.engine = test_engine
    fake_manager._session_factory = test_session_factory
    db_module.db_manager = fake_manager

    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test",
    ) as c:
        yield c

    app.dependency_overrides.clear()
    db_module.db_manager = original_manager
    reset_rate_limits()


# ─── Seed data ───────────────────────────────────────────────────

@pytest.fixture
async def admin(test_db):
    profile = Profile(
        full_name="Site Admin", email="admin@example.com", role="service_role",
    )
    test_db.add(profile)
    await test_db.commit()
    return profile


@pytest.fixture
async def student(test_db):
    profile = Profile(
        full_name="Asha Rai", email="asha@example.com", phone="9800000000",
    )
    test_db.add(profile)
    await test_db.commit()
    return profile


@pytest.fixture
def admin_headers(admin):
    return auth_headers(admin)


@pytest.fixture
def student_headers(student):
    return auth_headers(student)


@pytest.fixture
async def category(test_db):
    row = CourseCategory(name="Construction", description="Building trades")
    test_db.add(row)
    await test_db.commit()
    return row


@pytest.fixture
async def course(test_db, category):
    row = Course(
        title="Basic Plumbing", slug="basic-plumbing",
        category_id=category.id, level=1, duration_type="month",
        duration_value=3, price=Decimal("1500.00"),
    )
    test_db.add(row)
    await test_db.commit()
    return row


@pytest.fixture
async def intake(test_db, course):
    """Open intake a month out with two seats."""
    row = Intake(
        course_id=course.id, start_date=future(30), end_date=future(120),
        capacity=2, is_open=True, total_registered=0,
    )
    test_db.add(row)
    await test_db.commit()
    return row
