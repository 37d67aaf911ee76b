"""Service test fixtures — file-backed SQLite store, wired services, test client.

Invariants:
    - Every test gets a fresh SQLite database file under tmp_path
      (several connections must see the same data, which :memory: does not allow)
    - The engine comes from infrastructure.database.create_engine, so the
      haversine math functions and foreign keys are enabled exactly as in prod wiring
    - Collaborators are fakes from fakes.py; the background runner is real
      and tests call runner.drain() before asserting on side effects
"""

from datetime import timedelta

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import update

import factsnap.infrastructure.database as db_module
from factsnap.api.dependencies import Services
from factsnap.core.domain_types import Category, UserId
from factsnap.core.entities import CreateQuestionParams
from factsnap.core.expiration import utc_now
from factsnap.core.geo import Location
from factsnap.db.base import Base
from factsnap.infrastructure.background import BackgroundTaskRunner
from factsnap.infrastructure.database import DatabaseSessionManager, create_engine
from factsnap.models.question import Question as QuestionModel
from factsnap.repositories.question_repo import QuestionRepo
from factsnap.repositories.response_repo import ResponseRepo
from factsnap.repositories.user_repo import UserRepo
from factsnap.services.question_service import QuestionService
from factsnap.services.response_service import ResponseService
from factsnap.services.user_service import UserService

from tests.services.fakes import FakeMediaStore, FakeNotifier, FakeSummarizer

ALICE = UserId("user_alice")
BOB = UserId("user_bob")
CAROL = UserId("user_carol")

# Bascom Hill, Madison WI
CAMPUS = Location(43.0753, -89.4034, name="Bascom Hall", address="500 Lincoln Dr")


@pytest.fixture
async def test_engine(tmp_path):
    engine = create_engine(f"sqlite+aiosqlite:///{tmp_path / 'factsnap.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def db(test_engine) -> DatabaseSessionManager:
    return DatabaseSessionManager.from_engine(test_engine)


@pytest.fixture
def question_repo(db) -> QuestionRepo:
    return QuestionRepo(db)


@pytest.fixture
def response_repo(db) -> ResponseRepo:
    return ResponseRepo(db)


@pytest.fixture
def user_repo(db) -> UserRepo:
    return UserRepo(db)


@pytest.fixture
def notifier() -> FakeNotifier:
    return FakeNotifier()


@pytest.fixture
def media() -> FakeMediaStore:
    return FakeMediaStore()


@pytest.fixture
def summarizer() -> FakeSummarizer:
    return FakeSummarizer()


@pytest.fixture
async def runner(test_engine):
    """Drained before the engine is disposed so no detached task outlives the store."""
    runner = BackgroundTaskRunner(timeout_seconds=5)
    yield runner
    await runner.drain()


@pytest.fixture
def question_service(question_repo, user_repo, notifier, media, runner) -> QuestionService:
    return QuestionService(
        question_repo, user_repo, notifier, media, runner,
        notification_radius_miles=25.0, feed_max_radius_miles=20.0,
    )


@pytest.fixture
def response_service(response_repo, question_service, summarizer, runner) -> ResponseService:
    return ResponseService(response_repo, question_service, summarizer, runner)


@pytest.fixture
def user_service(user_repo) -> UserService:
    return UserService(user_repo)


@pytest.fixture
async def client(db, question_service, response_service, user_service, runner):
    """FastAPI test client with services and db_manager pointed at the test store."""
    from factsnap.main import app

    app.state.services = Services(
        questions=question_service,
        responses=response_service,
        users=user_service,
        runner=runner,
    )
    original_manager = db_module.db_manager
    db_module.db_manager = db

    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test",
    ) as c:
        yield c

    await runner.drain()
    db_module.db_manager = original_manager
    del app.state.services


def question_params(
    title: str = "How long is the line?",
    location: Location = CAMPUS,
    category: Category = Category.RESTAURANT,
    duration: timedelta = timedelta(hours=2),
    image_urls: list[str] | None = None,
) -> CreateQuestionParams:
    return CreateQuestionParams(
        title=title,
        body="Thinking about grabbing lunch here.",
        category=category,
        location=location,
        duration=duration,
        image_urls=image_urls or [],
    )


async def force_expire(db: DatabaseSessionManager, question_id) -> None:
    """Move a question's window into the past, keeping expires_at > created_at."""
    now = utc_now()
    async with db.transaction() as session:
        await session.execute(
            update(QuestionModel)
            .where(QuestionModel.id == question_id)
            .values(
                created_at=now - timedelta(hours=3),
                expires_at=now - timedelta(hours=1),
            )
        )
