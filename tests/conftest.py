from __future__ import annotations

import os
from collections.abc import Iterator

import pytest
from fastapi.testclient import TestClient

from quickbite.core.config import Settings
from quickbite.db.bootstrap import init_store
from quickbite.main import create_app
from quickbite.menu.store import MenuItemStore


@pytest.fixture()
def test_settings() -> Settings:
    return Settings(
        _env_file=None,
        environment="testing",
        rate_limit_enabled=False,
        sentry_dsn=None,
        log_level="WARNING",
    )


@pytest.fixture()
def store(test_settings: Settings) -> Iterator[MenuItemStore]:
    menu_store = init_store(test_settings)
    yield menu_store
    menu_store.close()


@pytest.fixture()
def client(test_settings: Settings) -> Iterator[TestClient]:
    app = create_app(test_settings)
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture(scope="session")
def postgres_dsn() -> str:
    dsn = os.getenv("POSTGRES_DSN")
    if not dsn:
        pytest.skip("POSTGRES_DSN not set")
    if dsn.startswith("postgresql://"):
        dsn = dsn.replace("postgresql://", "postgresql+psycopg://", 1)
    return dsn
