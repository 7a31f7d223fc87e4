from __future__ import annotations

from collections.abc import Generator

import pytest
from fastapi.testclient import TestClient

from contention.config import Settings
from contention.core.context import AppContext, create_context


@pytest.fixture()
def settings() -> Settings:
    # Short lock timeout so a broken lock discipline fails fast instead of hanging.
    return Settings(lock_timeout_s=2.0)


@pytest.fixture()
def ctx(settings: Settings) -> AppContext:
    """Fresh primitives, log and orchestrator per test."""

    return create_context(settings)


@pytest.fixture()
def client(settings: Settings) -> Generator[TestClient, None, None]:
    """FastAPI TestClient over a fresh app (and therefore a fresh AppContext)."""

    from contention.main import create_app

    app = create_app(settings)
    with TestClient(app) as c:
        yield c
