"""
Shared fixtures

Every test gets a fresh in-memory SQLite database (aiosqlite) with the full
schema, and an httpx client talking to the FastAPI app with get_db pointed
at that database.
"""
import os

os.environ["DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ["SCHEDULER_ENABLED"] = "false"
os.environ.setdefault("SECRET_KEY", "test-secret-key")

from datetime import timedelta
from types import SimpleNamespace

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.pool import StaticPool

from main import app
from mentorboard.clock import utcnow
from mentorboard.database import Base, build_engine, get_db
import mentorboard.models  # noqa: F401
from mentorboard.models.enums import UserRole
from mentorboard.services import periods, users
from mentorboard.services.security import create_access_token

PASSWORD = "secret123"


def _enable_foreign_keys(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


@pytest.fixture
async def engine():
    engine = build_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    event.listen(engine.sync_engine, "connect", _enable_foreign_keys)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
async def client(session_factory):
    """HTTP client for the app; lifespan (scheduler) is not started"""
    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest.fixture
async def people(session_factory):
    """
    A small programme with an active period:

    admin, tutor (with assistant, student, student2), other_tutor (with other_student).
    """
    async with session_factory() as s:
        async def make(username, role, **links):
            return await users.create_user(
                s, username, f"{username}@example.com", PASSWORD, role,
                first_name=username.title(), last_name="Test", **links,
            )

        admin = await make("admin", UserRole.ADMIN)
        tutor = await make("tutor", UserRole.TUTOR)
        other_tutor = await make("othertutor", UserRole.TUTOR)
        assistant = await make("assistant", UserRole.ASSISTANT, assisted_tutor_id=tutor.id)
        student = await make("student", UserRole.STUDENT, tutor_id=tutor.id)
        student2 = await make("student2", UserRole.STUDENT, tutor_id=tutor.id)
        other_student = await make("otherstudent", UserRole.STUDENT, tutor_id=other_tutor.id)

        period = await periods.create_period(
            s, "Spring Term", utcnow() - timedelta(days=7), utcnow() + timedelta(weeks=7), total_weeks=8,
        )
        period = await periods.activate_period(s, period.id)

    return SimpleNamespace(
        admin=admin,
        tutor=tutor,
        other_tutor=other_tutor,
        assistant=assistant,
        student=student,
        student2=student2,
        other_student=other_student,
        period=period,
        password=PASSWORD,
    )


@pytest.fixture
def auth():
    """Build the Authorization header for a user"""
    def headers(user) -> dict:
        return {"Authorization": f"Bearer {create_access_token(user.id, user.role)}"}
    return headers
