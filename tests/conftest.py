# tests/conftest.py
from __future__ import annotations

import os
from collections.abc import Callable, Generator, Iterator

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

os.environ["DATABASE_URL"] = "sqlite://"
os.environ.setdefault("SECRET_KEY", "test-secret-key")

from taletree.api.v1.dependencies import get_store  # noqa: E402
from taletree.core.security import create_access_token  # noqa: E402
from taletree.db.session import Base  # noqa: E402
from taletree.main import app as fastapi_app  # noqa: E402
from taletree.services.sequence import SequenceClock  # noqa: E402
from taletree.services.story_service import StoryService  # noqa: E402
from taletree.services.transactions import RetryPolicy  # noqa: E402
from taletree.store.base import NodeStore  # noqa: E402
from taletree.store.memory import MemoryNodeStore  # noqa: E402
from taletree.store.sql import SqlNodeStore  # noqa: E402

TEST_DB_URL = "sqlite://"

# Small enough that multi-page reads are exercised by ordinary tests.
TEST_PAGE_SIZE = 2


def no_sleep(_: float) -> None:
    return None


@pytest.fixture(scope="session")
def engine() -> Generator[Engine, None, None]:
    engine = create_engine(
        TEST_DB_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture()
def session_factory(engine: Engine) -> Iterator[sessionmaker[Session]]:
    factory = sessionmaker(
        bind=engine,
        autocommit=False,
        autoflush=False,
        expire_on_commit=False,
    )
    try:
        yield factory
    finally:
        # Stores commit for real; wipe every table so each test starts empty.
        with engine.begin() as cleanup_conn:
            for table in reversed(Base.metadata.sorted_tables):
                cleanup_conn.execute(table.delete())


@pytest.fixture()
def sql_store(session_factory: sessionmaker[Session]) -> SqlNodeStore:
    return SqlNodeStore(session_factory, page_size=TEST_PAGE_SIZE)


@pytest.fixture()
def memory_store() -> MemoryNodeStore:
    return MemoryNodeStore(page_size=TEST_PAGE_SIZE)


@pytest.fixture(params=["memory", "sql"])
def store(request: pytest.FixtureRequest) -> NodeStore:
    """Run the test once against each store implementation."""
    return request.getfixturevalue(f"{request.param}_store")


@pytest.fixture()
def policy() -> RetryPolicy:
    """Retry budget matching production but without waiting between attempts."""
    return RetryPolicy(max_attempts=5, base_delay=0.0, max_delay=0.0, jitter=False)


@pytest.fixture()
def clock() -> SequenceClock:
    return SequenceClock()


@pytest.fixture()
def make_service(
    policy: RetryPolicy, clock: SequenceClock
) -> Callable[[NodeStore], StoryService]:
    def _make(target: NodeStore) -> StoryService:
        return StoryService(target, policy=policy, clock=clock, sleep=no_sleep)

    return _make


@pytest.fixture()
def service(store: NodeStore, make_service: Callable[[NodeStore], StoryService]) -> StoryService:
    return make_service(store)


@pytest.fixture()
def story(service: StoryService) -> tuple[str, str]:
    """A published story owned by ``author`` with a single root unit."""
    return service.create_tree("author", "Once upon a time", title="Root")


@pytest.fixture(scope="session")
def app() -> FastAPI:
    return fastapi_app


@pytest.fixture()
def client(app: FastAPI, sql_store: SqlNodeStore) -> Iterator[TestClient]:
    app.dependency_overrides[get_store] = lambda: sql_store
    try:
        with TestClient(app, base_url="http://test") as test_client:
            yield test_client
    finally:
        app.dependency_overrides.pop(get_store, None)


@pytest.fixture()
def auth_headers() -> Callable[[str], dict[str, str]]:
    """Return a factory building bearer headers for a user id."""

    def _headers(user_id: str) -> dict[str, str]:
        token = create_access_token(user_id)
        return {"Authorization": f"Bearer {token}"}

    return _headers


@pytest.fixture()
def auth_token(auth_headers: Callable[[str], dict[str, str]]) -> dict[str, str]:
    """Authorization headers for the primary test user."""
    return auth_headers("author")


@pytest.fixture()
def other_auth_token(auth_headers: Callable[[str], dict[str, str]]) -> dict[str, str]:
    """Authorization headers for a second user."""
    return auth_headers("reader")
