# tests/conftest.py
from __future__ import annotations

import os
from collections.abc import Callable, Generator, Iterator

import pytest

os.environ.setdefault("SECRET_KEY", "test-secret-key-not-for-production")
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("BCRYPT_ROUNDS", "4")

from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from welo_stage.core.security import create_access_token, hash_password
from welo_stage.db.session import Base
from welo_stage.main import app as fastapi_app
from welo_stage.main import configure_services
from welo_stage.models import Chat, User
from welo_stage.repositories.conversation_store import ConversationStore
from welo_stage.schemas.events import OutboundEvent
from welo_stage.services.delivery import DeliveryEngine
from welo_stage.services.presence import PresenceTable

TEST_DB_URL = "sqlite://"
TEST_PASSWORD = "correct-horse"


class RecordingConnection:
    """Connection double that keeps every event it is sent."""

    def __init__(self, name: str = "conn", *, fail: bool = False) -> None:
        self.name = name
        self.fail = fail
        self.events: list[OutboundEvent] = []

    async def send_event(self, event: OutboundEvent) -> None:
        if self.fail:
            raise ConnectionError(f"{self.name} is unreachable")
        self.events.append(event)

    def of_type(self, event_type: str) -> list[OutboundEvent]:
        return [event for event in self.events if event.type == event_type]

    def __repr__(self) -> str:
        return f"RecordingConnection({self.name!r})"


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
def session_factory(engine: Engine) -> Iterator[Callable[[], Session]]:
    factory = sessionmaker(
        bind=engine,
        autocommit=False,
        autoflush=False,
        expire_on_commit=False,
    )
    try:
        yield factory
    finally:
        # Every store call commits, so wipe rows instead of rolling back.
        with engine.begin() as cleanup_conn:
            for table in reversed(Base.metadata.sorted_tables):
                cleanup_conn.execute(table.delete())


@pytest.fixture()
def store(session_factory: Callable[[], Session]) -> ConversationStore:
    return ConversationStore(session_factory)


@pytest.fixture()
def presence() -> PresenceTable:
    return PresenceTable()


@pytest.fixture()
def delivery_engine(presence: PresenceTable, store: ConversationStore) -> DeliveryEngine:
    return DeliveryEngine(presence, store)


@pytest.fixture(scope="session")
def app() -> FastAPI:
    return fastapi_app


@pytest.fixture(autouse=True)
def app_services(app: FastAPI, session_factory: Callable[[], Session]) -> DeliveryEngine:
    """Give every test a fresh presence table and a store on the test database."""
    return configure_services(app, session_factory)


@pytest.fixture()
def client(app: FastAPI) -> Iterator[TestClient]:
    with TestClient(app, base_url="http://test") as test_client:
        yield test_client


@pytest.fixture()
def make_user(store: ConversationStore) -> Callable[..., User]:
    def _make_user(username: str, nickname: str | None = None, **settings: object) -> User:
        user = store.create_user(
            username=username,
            nickname=nickname or username.title(),
            password_hash=hash_password(TEST_PASSWORD),
        )
        if settings:
            user = store.update_user(user.id, settings=settings)
        return user

    return _make_user


@pytest.fixture()
def alice(make_user: Callable[..., User]) -> User:
    return make_user("alice")


@pytest.fixture()
def bob(make_user: Callable[..., User]) -> User:
    return make_user("bob")


@pytest.fixture()
def carol(make_user: Callable[..., User]) -> User:
    return make_user("carol")


@pytest.fixture()
def chat(store: ConversationStore, alice: User, bob: User) -> Chat:
    chat, _ = store.create_chat(alice.id, bob.id)
    return chat


def auth_headers_for(user: User) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(user.id)}"}


@pytest.fixture()
def alice_headers(alice: User) -> dict[str, str]:
    return auth_headers_for(alice)


@pytest.fixture()
def bob_headers(bob: User) -> dict[str, str]:
    return auth_headers_for(bob)


@pytest.fixture()
def headers_for() -> Callable[[User], dict[str, str]]:
    return auth_headers_for


@pytest.fixture()
def make_connection() -> Callable[..., RecordingConnection]:
    return RecordingConnection
