"""
Shared pytest fixtures for textile_ledger tests.

Every test gets its own workspace and SQLite file; no network, no real Gemini client.
"""

import logging
from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest

from textile_ledger.db import DB, KeyValueStore
from textile_ledger.records import RecordFields
from textile_ledger.store import RecordStore

OWNER = "user_owner01"
OTHER = "user_other99"


class FakeClock:
    """Millisecond clock that only moves when told to."""

    def __init__(self, start: int = 1_729_850_000_000):
        self.now = start

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int = 1000) -> int:
        self.now += ms
        return self.now


def make_fields(n: int = 1, entry_date: str = "2024-10-25") -> RecordFields:
    return RecordFields(
        dori_detail=f"Dori lot {n}",
        warpin_detail=f"Warp beam {n}",
        bheem_detail=f"Bheem {n}",
        delivery_detail=f"Truck {n}",
        entry_date=entry_date,
    )


def fake_genai_client(text=None, error: Exception | None = None) -> MagicMock:
    client = MagicMock()
    if error is not None:
        client.models.generate_content.side_effect = error
    else:
        client.models.generate_content.return_value = SimpleNamespace(text=text)
    return client


@pytest.fixture(autouse=True)
def workspace(tmp_path, monkeypatch):
    """Point the workspace at a temp folder and drop any ambient API keys."""
    home = tmp_path / "workspace"
    monkeypatch.setenv("TEXTILE_LEDGER_HOME", str(home))
    for name in ("GEMINI_API_KEY", "GOOGLE_API_KEY", "API_KEY", "TEXTILE_LEDGER_MODEL",
                 "TEXTILE_LEDGER_TEMPERATURE", "TEXTILE_LEDGER_LOG_LEVEL"):
        # setenv first so monkeypatch restores whatever load_dotenv() may add later
        monkeypatch.setenv(name, "")
        monkeypatch.delenv(name)
    yield home

    logger = logging.getLogger("textile_ledger")
    for h in list(logger.handlers):
        logger.removeHandler(h)
        h.close()


@pytest.fixture
def db_path(tmp_path):
    return tmp_path / "ledger.sqlite"


@pytest.fixture
def kv(db_path):
    return KeyValueStore(DB(db_path))


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store(kv, clock):
    s = RecordStore(kv, OWNER, clock=clock)
    s.load_all()
    return s
