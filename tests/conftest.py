"""
tests/conftest.py

Shared fixtures: an in-memory SQLite database with the full schema, and
helpers for building services without touching environment configuration.
"""

from __future__ import annotations

from collections.abc import Callable, Iterator
from typing import Any

import pytest
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

import db.models  # noqa: F401 (registers ORM models on Base.metadata)
from db.base import Base
from db.session import build_session_factory


PARAMETERS = {
    "metals": '["lead", "zinc"]',
    "standards": '{"lead": 10, "zinc": 5000}',
    "backgrounds": '{"lead": 0, "zinc": 0}',
    "presenceLimits": '{"lead": 0.01, "zinc": 0.05}',
}

THREE_ROW_CSV = (
    b"sample_id,latitude,longitude,lead,zinc,date\n"
    b"W-1,10.5,20.1,20,40,2024-01-01\n"
    b"W-2,11.5,21.1,200,300,2024-01-02\n"
    b"W-3,,22.1,9,10,2024-01-03\n"
)


@pytest.fixture()
def engine() -> Iterator[Engine]:
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(engine)
        engine.dispose()


@pytest.fixture()
def session_factory(engine: Engine) -> sessionmaker:
    return build_session_factory(engine)


@pytest.fixture()
def db(session_factory: sessionmaker) -> Iterator[Session]:
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


class InlineExecutor:
    """Runs submitted tasks immediately, in the caller's thread."""

    def submit(self, task: Callable[..., None], *args: Any, **kwargs: Any) -> None:
        task(*args, **kwargs)


class RecordingExecutor:
    """Holds submitted tasks until the test runs them."""

    def __init__(self) -> None:
        self.tasks: list[tuple[Callable[..., None], tuple[Any, ...], dict[str, Any]]] = []

    def submit(self, task: Callable[..., None], *args: Any, **kwargs: Any) -> None:
        self.tasks.append((task, args, kwargs))

    def run_all(self) -> None:
        pending, self.tasks = self.tasks, []
        for task, args, kwargs in pending:
            task(*args, **kwargs)


@pytest.fixture()
def inline_executor() -> InlineExecutor:
    return InlineExecutor()


@pytest.fixture()
def recording_executor() -> RecordingExecutor:
    return RecordingExecutor()


@pytest.fixture()
def upload_parameters() -> dict[str, str]:
    return dict(PARAMETERS)


@pytest.fixture()
def three_row_csv() -> bytes:
    return THREE_ROW_CSV
