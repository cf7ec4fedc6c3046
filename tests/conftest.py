"""
Shared fixtures: fake answer sources and a throwaway SQLite database
"""

from datetime import datetime

import pytest

from modeljudge.database import Database
from modeljudge.sources import AnswerSource
from modeljudge.store import SqlThreadStore, SqlUserStore


class FakeSource(AnswerSource):
    """Answer source whose completion is scripted by the test"""

    def __init__(self, provider_id, key, label, reply="", api_key="test-key", error=None):
        super().__init__(provider_id, key, label, api_key, timeout=5.0)
        self.reply = reply
        self.error = error
        self.calls = []

    async def complete(self, system, user, model=None):
        self.calls.append({"system": system, "user": user, "model": model})
        if self.error:
            raise self.error
        return self.reply


def make_gpt(reply="", **kwargs):
    return FakeSource("gpt-4o-mini", "gpt", "GPT", reply, **kwargs)


def make_gemini(reply="", **kwargs):
    return FakeSource("gemini-2.5-flash", "gemini", "Gemini", reply, **kwargs)


@pytest.fixture
def database(tmp_path):
    db = Database(f"sqlite:///{tmp_path / 'test.db'}")
    db.create_all()
    yield db
    db.dispose()


@pytest.fixture
def thread_store(database):
    return SqlThreadStore(database)


@pytest.fixture
def user_store(database):
    return SqlUserStore(database)


@pytest.fixture
def owners(user_store):
    """Two user ids: (alice, bob)"""
    alice = user_store.create("Alice", "alice@example.com", "x", "tok-a", datetime(2100, 1, 1))
    bob = user_store.create("Bob", "bob@example.com", "x", "tok-b", datetime(2100, 1, 1))
    return alice, bob
