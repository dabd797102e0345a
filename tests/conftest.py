# tests/conftest.py
from __future__ import annotations

import os
from collections.abc import Callable, Generator, Iterator
from typing import Any

os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("DATABASE_URL", "sqlite://")

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from carol_translations.core.security import create_access_token
from carol_translations.db.session import Base
from carol_translations.db.session import get_db as app_get_session
from carol_translations.main import app as fastapi_app
from carol_translations.models import ContributorReputation, Translation
from carol_translations.services.registry import TranslationDraft, TranslationRegistry

TEST_DB_URL = "sqlite://"


@pytest.fixture()
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
def session_factory(engine: Engine) -> sessionmaker[Session]:
    return sessionmaker(bind=engine, autocommit=False, autoflush=False, expire_on_commit=False)


@pytest.fixture()
def db_session(session_factory: sessionmaker[Session]) -> Iterator[Session]:
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture(scope="session")
def app() -> FastAPI:
    return fastapi_app


@pytest.fixture(autouse=True)
def override_session_dependency(app: FastAPI, db_session: Session) -> Iterator[None]:
    def _get_session_override() -> Generator[Session, None, None]:
        yield db_session

    app.dependency_overrides[app_get_session] = _get_session_override
    try:
        yield
    finally:
        app.dependency_overrides.pop(app_get_session, None)


@pytest.fixture()
def client(app: FastAPI) -> Iterator[TestClient]:
    with TestClient(app, base_url="http://test") as test_client:
        yield test_client


@pytest.fixture()
def auth_headers() -> Callable[[str], dict[str, str]]:
    """Return a factory building bearer headers for a user id."""

    def _headers(user_id: str) -> dict[str, str]:
        return {"Authorization": f"Bearer {create_access_token(user_id)}"}

    return _headers


@pytest.fixture()
def translation(db_session: Session) -> Translation:
    """Seed a canonical Spanish translation for a test carol."""
    created, _ = TranslationRegistry(db_session).get_or_create_translation(
        "carol-silent-night",
        "es",
        TranslationDraft(
            title="Noche de paz",
            lyrics=("Noche de paz, noche de amor", "Todo duerme en derredor"),
            created_by="seed-user",
        ),
    )
    return created


@pytest.fixture()
def set_reputation(db_session: Session) -> Callable[..., ContributorReputation]:
    """Return a helper that stores an exact reputation score for a user."""

    def _set(user_id: str, language: str, points: int, **extra: Any) -> ContributorReputation:
        row = db_session.get(ContributorReputation, (user_id, language))
        if row is None:
            row = ContributorReputation(user_id=user_id, language=language)
            db_session.add(row)
        row.rep_points = points
        for key, value in extra.items():
            setattr(row, key, value)
        db_session.commit()
        return row

    return _set
