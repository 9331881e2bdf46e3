import os

# Point the app at an in-memory database before anything imports resume_tailor.db
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")

import json
from datetime import date

import pytest
from httpx import AsyncClient, ASGITransport
from langchain_core.language_models.fake_chat_models import FakeListChatModel
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from resume_tailor import llm_providers
from resume_tailor.main import app
from resume_tailor.db import get_db, enable_sqlite_foreign_keys
from resume_tailor.dependencies import get_current_active_user
from resume_tailor.models_db import Base, User, Profile, WorkExperience, Education, UserSettings

# Use a separate in-memory SQLite database for testing; StaticPool keeps a
# single connection so every session sees the same database
DATABASE_URL = "sqlite+aiosqlite:///:memory:"

engine = create_async_engine(
    DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
enable_sqlite_foreign_keys(engine)
TestingSessionLocal = sessionmaker(
    autocommit=False, autoflush=False, bind=engine, class_=AsyncSession, expire_on_commit=False
)


def ai_payload(achievement_counts=(6, 6), title="Senior Backend Engineer | Python, FastAPI, PostgreSQL"):
    """A well-formed provider reply with the given number of achievements per role."""
    return {
        "professionalTitle": title,
        "professionalSummary": "Backend engineer with eight years building Python services.",
        "workExperiences": [
            {
                "company": f"Company {i}",
                "achievements": [f"Role {i} achievement {n}" for n in range(count)],
            }
            for i, count in enumerate(achievement_counts)
        ],
        "technicalSkills": [
            "Languages: Python, SQL",
            "Frameworks: FastAPI, Django",
            "Cloud: AWS, Docker, Kubernetes",
        ],
    }


@pytest.fixture(scope="function")
async def db_session():
    """Fixture to create a new database session for each test."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    session = TestingSessionLocal()
    try:
        yield session
    finally:
        await session.close()
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)


@pytest.fixture(scope="function")
async def client(db_session: AsyncSession):
    """Fixture to create a test client for the FastAPI app (no user signed in)."""

    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest.fixture
async def user(db_session: AsyncSession) -> User:
    user = User(external_id="user_test_1", email="jane@example.com", active=True)
    db_session.add(user)
    await db_session.commit()
    return user


@pytest.fixture
async def auth_client(client: AsyncClient, user: User):
    """Client whose requests are authenticated as ``user``."""
    app.dependency_overrides[get_current_active_user] = lambda: user
    yield client


@pytest.fixture
async def profile(db_session: AsyncSession, user: User) -> Profile:
    profile = Profile(
        user_id=user.id,
        name="Jane Doe",
        email="jane@example.com",
        phone="+1 555 0100",
        location="Berlin, Germany",
    )
    db_session.add(profile)
    await db_session.flush()
    db_session.add_all([
        WorkExperience(
            profile_id=profile.id,
            company="Acme Corp",
            position="Senior Engineer",
            start_date=date(2021, 3, 1),
            end_date=None,
            is_current=True,
        ),
        WorkExperience(
            profile_id=profile.id,
            company="Globex",
            position="Engineer",
            start_date=date(2017, 6, 1),
            end_date=date(2021, 2, 1),
            is_current=False,
        ),
        Education(
            profile_id=profile.id,
            university="TU Berlin",
            degree="BSc Computer Science",
            start_date=date(2013, 10, 1),
            end_date=date(2017, 5, 1),
        ),
    ])
    await db_session.commit()
    return profile


@pytest.fixture
def make_settings(db_session: AsyncSession, user: User):
    async def _make(openai_key=None, anthropic_key=None, preferred_ai="openai") -> UserSettings:
        settings = UserSettings(
            user_id=user.id,
            openai_key=openai_key,
            anthropic_key=anthropic_key,
            preferred_ai=preferred_ai,
        )
        db_session.add(settings)
        await db_session.commit()
        return settings
    return _make


class FakeLLM:
    """Stands in for build_chat_model and records which provider was asked."""

    def __init__(self):
        self.responses = [json.dumps(ai_payload())]
        self.calls = []

    def reply_with(self, *responses):
        self.responses = [r if isinstance(r, str) else json.dumps(r) for r in responses]

    def __call__(self, provider, api_key):
        self.calls.append((provider, api_key))
        return FakeListChatModel(responses=list(self.responses))


@pytest.fixture
def fake_llm(monkeypatch) -> FakeLLM:
    fake = FakeLLM()
    monkeypatch.setattr(llm_providers, "build_chat_model", fake)
    return fake
