from collections.abc import Generator
from contextlib import contextmanager
from datetime import datetime, timedelta

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from mediscan.config import settings
from mediscan.database import Base, get_db
from mediscan.main import app
from mediscan.services.auth import Authenticator
from mediscan.services.auth_store import InMemoryAuthRepository, SqlAuthRepository


class FakeClock:
    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock(datetime(2026, 1, 1, 12, 0, 0))


@pytest.fixture()
def memory_repository(clock) -> InMemoryAuthRepository:
    return InMemoryAuthRepository(clock=clock)


@pytest.fixture()
def authenticator(memory_repository, clock) -> Authenticator:
    return Authenticator(memory_repository, clock=clock)


@pytest.fixture()
def db_session() -> Generator:
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    Base.metadata.create_all(bind=engine)

    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture()
def client(db_session, monkeypatch) -> Generator[TestClient, None, None]:
    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    @contextmanager
    def override_auth_repository():
        yield SqlAuthRepository(db_session)

    app.dependency_overrides[get_db] = override_get_db
    monkeypatch.setattr(app.state, "auth_repository_factory", override_auth_repository)
    monkeypatch.setattr(settings, "enhancement_step_delay_seconds", 0)
    monkeypatch.setattr(settings, "email_delay_seconds", 0)
    monkeypatch.setattr(settings, "openai_api_key", None)

    # Tests use an in-memory DB via dependency override; skip app startup side effects.
    original_startup = list(app.router.on_startup)
    app.router.on_startup.clear()
    with TestClient(app) as test_client:
        yield test_client
    app.router.on_startup[:] = original_startup
    app.dependency_overrides.clear()
