# tests/conftest.py
from __future__ import annotations

import asyncio
import json
import os
import random
from collections.abc import Callable, Generator, Iterable, Iterator
from typing import Any

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("GENERATOR_ENABLED", "false")
os.environ.setdefault("RNG_SEED", "1234")

import httpx
import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from crash_engine.api.v1.dependencies import get_round_store
from crash_engine.db.session import Base
from crash_engine.main import app as fastapi_app
from crash_engine.services.batch_controller import (
    BatchController,
    _BatchControllerSingleton,
    get_batch_controller,
)
from crash_engine.services.generation_config import GenerationConfig
from crash_engine.services.notifier import (
    NotifierConfig,
    QueueHealth,
    SocketServerClient,
    _SocketServerClientSingleton,
    get_socket_client,
)
from crash_engine.services.round_store import SqlRoundStore

TEST_DB_URL = "sqlite://"
TEST_BATCH_SIZE = 10
TEST_QUEUE_THRESHOLD = 5
TEST_START_ROUND = 1000


class ScriptedRandom:
    """Random source replaying a fixed sequence of uniform draws."""

    def __init__(self, values: Iterable[float]) -> None:
        self._values = list(values)
        self.calls = 0

    def random(self) -> float:
        if not self._values:
            raise AssertionError("scripted random source exhausted")
        self.calls += 1
        return self._values.pop(0)

    def uniform(self, a: float, b: float) -> float:
        return a + (b - a) * self.random()

    @property
    def remaining(self) -> int:
        return len(self._values)


class FakeNotifier:
    """In-memory stand-in for the socket server."""

    def __init__(self, queue_size: int = 0, game_phase: str = "waiting") -> None:
        self.queue_size = queue_size
        self.game_phase = game_phase
        self.health_error: Exception | None = None
        self.queue_error: Exception | None = None
        self.health_calls = 0
        self.batches: list[tuple[list[dict[str, Any]], int]] = []
        self.entered: asyncio.Event | None = None
        self.release: asyncio.Event | None = None

    def hold_queue_calls(self) -> None:
        """Make queue_batch block until ``release`` is set."""
        self.entered = asyncio.Event()
        self.release = asyncio.Event()

    async def fetch_health(self) -> QueueHealth:
        self.health_calls += 1
        if self.health_error is not None:
            raise self.health_error
        return QueueHealth(queue_size=self.queue_size, game_phase=self.game_phase)

    async def queue_batch(self, multipliers: list[dict[str, Any]], start_round: int) -> None:
        if self.entered is not None:
            self.entered.set()
        if self.release is not None:
            await self.release.wait()
        if self.queue_error is not None:
            raise self.queue_error
        self.batches.append((list(multipliers), start_round))


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
    factory = sessionmaker(bind=engine, autocommit=False, autoflush=False, expire_on_commit=False)
    try:
        yield factory
    finally:
        # Ensure each test sees a clean database even if commits occurred.
        with engine.begin() as cleanup_conn:
            for table in reversed(Base.metadata.sorted_tables):
                cleanup_conn.execute(table.delete())


@pytest.fixture()
def db_session(session_factory: Callable[[], Session]) -> Iterator[Session]:
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def store(session_factory: Callable[[], Session]) -> SqlRoundStore:
    return SqlRoundStore(session_factory)


@pytest.fixture()
def generation_config() -> GenerationConfig:
    return GenerationConfig()


@pytest.fixture()
def scripted_random() -> Callable[[Iterable[float]], ScriptedRandom]:
    return ScriptedRandom


@pytest.fixture()
def fake_notifier() -> FakeNotifier:
    return FakeNotifier()


@pytest.fixture()
def controller(
    store: SqlRoundStore, fake_notifier: FakeNotifier, generation_config: GenerationConfig
) -> BatchController:
    return BatchController(
        store,
        fake_notifier,
        generation_config,
        random.Random(7),
        batch_size=TEST_BATCH_SIZE,
        queue_threshold=TEST_QUEUE_THRESHOLD,
        check_interval_seconds=0.05,
        default_start_round=TEST_START_ROUND,
    )


class SocketServerStub:
    """Request handler for httpx.MockTransport emulating the socket server."""

    def __init__(self, queue_size: int = 0, game_phase: str = "waiting") -> None:
        self.queue_size = queue_size
        self.game_phase = game_phase
        self.health_status = 200
        self.queue_status = 200
        self.requests: list[httpx.Request] = []
        self.queued: list[dict[str, Any]] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.method == "GET" and request.url.path == "/health":
            if self.health_status != 200:
                return httpx.Response(self.health_status, json={"error": "unavailable"})
            return httpx.Response(
                200,
                json={
                    "status": "ok",
                    "queueSize": self.queue_size,
                    "gamePhase": self.game_phase,
                    "currentRound": 1000,
                },
            )
        if request.method == "POST" and request.url.path == "/queue":
            if self.queue_status != 200:
                return httpx.Response(self.queue_status, json={"error": "rejected"})
            self.queued.append(json.loads(request.content))
            return httpx.Response(200, json={"success": True})
        return httpx.Response(404)


@pytest.fixture()
def socket_stub() -> SocketServerStub:
    return SocketServerStub()


@pytest.fixture()
def socket_client(socket_stub: SocketServerStub) -> SocketServerClient:
    return SocketServerClient(
        NotifierConfig(base_url="http://socket.test", secret="test-secret", timeout_seconds=1.0),
        transport=httpx.MockTransport(socket_stub),
    )


@pytest.fixture()
def api_controller(
    store: SqlRoundStore, socket_client: SocketServerClient, generation_config: GenerationConfig
) -> BatchController:
    return BatchController(
        store,
        socket_client,
        generation_config,
        random.Random(11),
        batch_size=TEST_BATCH_SIZE,
        queue_threshold=TEST_QUEUE_THRESHOLD,
        check_interval_seconds=1.0,
        default_start_round=TEST_START_ROUND,
    )


@pytest.fixture()
def app(
    store: SqlRoundStore,
    api_controller: BatchController,
    socket_client: SocketServerClient,
    monkeypatch: pytest.MonkeyPatch,
) -> Iterator[FastAPI]:
    # Startup and shutdown hooks resolve the process-wide instances directly.
    monkeypatch.setattr(_BatchControllerSingleton, "_instance", api_controller)
    monkeypatch.setattr(_SocketServerClientSingleton, "_instance", socket_client)
    fastapi_app.dependency_overrides[get_round_store] = lambda: store
    fastapi_app.dependency_overrides[get_batch_controller] = lambda: api_controller
    fastapi_app.dependency_overrides[get_socket_client] = lambda: socket_client
    try:
        yield fastapi_app
    finally:
        fastapi_app.dependency_overrides.clear()


@pytest.fixture()
def client(app: FastAPI) -> Iterator[TestClient]:
    with TestClient(app, base_url="http://test") as test_client:
        yield test_client
