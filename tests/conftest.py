"""Shared test fixtures."""

from __future__ import annotations

import pytest

from app.db.session import build_engine, build_session_factory, init_models
from helpers import FakeUsageGate


@pytest.fixture
def fake_gate() -> FakeUsageGate:
    return FakeUsageGate()


@pytest.fixture
def sample_email() -> str:
    return "Subject: Quarterly Update\n\nHi team,\n\nBody text here.\n\nBest,\nAlex"


@pytest.fixture
async def session_factory(tmp_path):
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'usage.db'}")
    await init_models(engine)
    yield build_session_factory(engine)
    await engine.dispose()
