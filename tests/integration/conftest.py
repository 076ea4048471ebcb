"""Integration fixtures: the real app over an in-memory SQLite database."""

from __future__ import annotations

from collections.abc import Iterator

import pytest
from fastapi.testclient import TestClient
from pydantic import SecretStr
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.pool import StaticPool

from config.settings import Settings
from edutrack.api.main import create_app
from edutrack.data.db import init_schema

from support import TEST_ROUNDS, Harness


@pytest.fixture()
def settings() -> Settings:
    return Settings(
        edutrack_env="dev",
        edutrack_jwt_secret=SecretStr("integration-test-secret"),
        bcrypt_rounds=TEST_ROUNDS,
    )


@pytest.fixture()
def harness(settings: Settings) -> Iterator[Harness]:
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    app = create_app(settings=settings, engine=engine)
    with TestClient(app) as client:
        h = Harness(client, engine)
        h.run(init_schema, engine)
        yield h
        h.run(engine.dispose)
