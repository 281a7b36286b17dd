"""
Shared fixtures: a throwaway SQLite database, the FastAPI app with bearer
auth replaced, and an in-memory bin registry for protocol-level tests.
"""
import asyncio
import os
import tempfile
from pathlib import Path
from types import SimpleNamespace

# settings are read at import time, so the environment goes first
_DB_FILE = Path(tempfile.mkdtemp(prefix="ecoearn-tests-")) / "ecoearn.db"
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{_DB_FILE}"
os.environ["ENABLE_NATS"] = "false"
os.environ["RL_ENABLED"] = "false"
os.environ["QR_REQUIRE_SIGNATURE"] = "false"
os.environ.pop("QR_SECRET", None)

import pytest
from fastapi.testclient import TestClient

from ecoearn_admin.db import async_session_maker, reset_db
from ecoearn_admin.deps import get_claims
from ecoearn_admin.main import app
from ecoearn_admin.models import BinStatus
from ecoearn_admin.services.registry import Active, Inactive


ADMIN = {"sub": "admin-1", "role": "admin"}


class FakeRegistry:
    """BinRegistry kept in a dict.

    compare_and_set has no await between its read and write, so it is atomic
    on the event loop. Setting ``cas_gate`` parks every CAS until the event is
    set, which lets a test line up two scans that both saw the bin idle.
    """

    def __init__(self):
        self.bins = {}
        self.events = []
        self.cas_gate: asyncio.Event | None = None

    def add_bin(self, bin_id: str, occupant: str | None = None):
        self.bins[bin_id] = SimpleNamespace(
            id=bin_id,
            status=BinStatus.ACTIVE if occupant else BinStatus.INACTIVE,
            occupant=occupant,
        )

    def occupant(self, bin_id: str):
        return self.bins[bin_id].occupant

    async def get(self, bin_id):
        b = self.bins.get(bin_id)
        return None if b is None else SimpleNamespace(**vars(b))

    async def compare_and_set(self, bin_id, expected, new):
        if self.cas_gate is not None:
            await self.cas_gate.wait()
        b = self.bins.get(bin_id)
        if b is None:
            return False
        current = Active(b.occupant) if b.status == BinStatus.ACTIVE else Inactive()
        if current != expected:
            return False
        if isinstance(new, Active):
            b.status, b.occupant = BinStatus.ACTIVE, new.occupant
        else:
            b.status, b.occupant = BinStatus.INACTIVE, None
        return True

    async def record_event(self, bin_id, *, user_id, actor_id, transition):
        evt = SimpleNamespace(bin_id=bin_id, user_id=user_id, actor_id=actor_id, transition=transition)
        self.events.append(evt)
        return evt


@pytest.fixture
def registry():
    reg = FakeRegistry()
    reg.add_bin("B1")
    return reg


@pytest.fixture
def fresh_db():
    asyncio.run(reset_db())


@pytest.fixture
def seed(fresh_db):
    """Insert ORM rows directly (reports, users and recycling data have no write API)."""
    def _seed(*rows):
        async def _add():
            async with async_session_maker() as s:
                s.add_all(rows)
                await s.commit()
        asyncio.run(_add())
    return _seed


@pytest.fixture
def login():
    """Switch the caller the API sees: ``login("u1")`` or ``login("ops", role="admin")``."""
    current = {"claims": dict(ADMIN)}
    app.dependency_overrides[get_claims] = lambda: current["claims"]

    def _login(sub: str, role: str = "user"):
        current["claims"] = {"sub": sub, "role": role}

    yield _login
    app.dependency_overrides.clear()


@pytest.fixture
def client(fresh_db, login):
    return TestClient(app)
