"""Shared pytest fixtures: in-memory database, principals and an API client."""

import os
import uuid

# Configure the app for tests before anything imports settings
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ.setdefault("SECRET_KEY", "test-secret-key-not-for-production")
os.environ["ENVIRONMENT"] = "test"
os.environ["DEBUG"] = "false"
os.environ["LOG_FORMAT"] = "text"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["R2_ACCOUNT_ID"] = ""
os.environ["STRICT_PAYLOAD_PARSING"] = "false"

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from coursework.config import settings
from coursework.core.security import create_access_token
from coursework.database import Base, get_db
from coursework.main import app
from coursework.models.enums import AssignmentKind, UserRole
from coursework.schemas.assignment import AssignmentCreate
from coursework.schemas.auth import CurrentUser
from coursework.services.assignment_service import AssignmentService


@pytest.fixture
async def engine():
    """Fresh in-memory SQLite database per test."""
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)


@pytest.fixture
async def db_session(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def api_base() -> str:
    """Base URL for API requests."""
    return f"http://test{settings.API_V1_PREFIX}"


@pytest.fixture
async def async_client(session_factory, api_base: str):
    """Async HTTP client bound to the app, with get_db pointed at the test database."""

    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test", timeout=30.0) as client:
        yield client
    app.dependency_overrides.clear()


def _principal(role: UserRole) -> CurrentUser:
    return CurrentUser(id=uuid.uuid4(), role=role)


@pytest.fixture
def teacher() -> CurrentUser:
    return _principal(UserRole.TEACHER)


@pytest.fixture
def other_teacher() -> CurrentUser:
    return _principal(UserRole.TEACHER)


@pytest.fixture
def admin() -> CurrentUser:
    return _principal(UserRole.ADMIN)


@pytest.fixture
def student() -> CurrentUser:
    return _principal(UserRole.STUDENT)


@pytest.fixture
def other_student() -> CurrentUser:
    return _principal(UserRole.STUDENT)


@pytest.fixture
def auth_headers():
    """Bearer headers for a principal, signed with the app's SECRET_KEY."""

    def _headers(user: CurrentUser) -> dict:
        token = create_access_token({"sub": str(user.id), "role": user.role.value})
        return {"Authorization": f"Bearer {token}"}

    return _headers


def sample_questions() -> list:
    """A quiz covering every question kind; 9 points in total."""
    return [
        {"id": "q-capital", "text": "Capital of France?", "kind": "multiple_choice",
         "options": ["Paris", "Lyon"], "correct_answer": "Paris", "points": 2},
        {"id": "q-element", "text": "Symbol for gold?", "kind": "identification",
         "correct_answer": "Au", "points": 1},
        {"id": "q-colors", "text": "Primary colors?", "kind": "enumeration",
         "correct_answers": ["red", "blue", "yellow"], "points": 3},
        {"id": "q-essay", "text": "Describe your summer.", "kind": "essay", "points": 2},
        {"id": "q-upload", "text": "Upload your diagram.", "kind": "file_upload", "points": 1},
    ]


@pytest.fixture
def quiz_questions() -> list:
    return sample_questions()


@pytest.fixture
def make_assignment(db_session, teacher):
    """Factory creating an assignment owned by ``teacher`` (unless ``owner`` is given)."""

    async def _make(owner: CurrentUser = None, **fields):
        fields.setdefault("title", "Unit quiz")
        fields.setdefault("kind", AssignmentKind.QUIZ)
        if fields["kind"] == AssignmentKind.QUIZ:
            fields.setdefault("questions", sample_questions())
        return await AssignmentService.create_assignment(
            db_session, owner or teacher, AssignmentCreate(**fields)
        )

    return _make
