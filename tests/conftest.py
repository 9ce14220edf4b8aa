import copy
import random

import httpx
import pytest

from jalsetu.core.config import Settings
from jalsetu.core.monitoring import metrics_collector
from jalsetu.database.operations import FarmRepository
from jalsetu.providers.base import ChatProvider


def make_settings(**overrides) -> Settings:
    values = {
        "gemini_api_key": "gemini-test-key",
        "perplexity_api_key": "pplx-test-key",
        "eden_ai_api_key": "eden-test-key",
        "weather_api_key": None,
        "chat_provider": "gemini",
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


class ScriptedProvider(ChatProvider):
    """Provider whose ``_complete`` replays canned replies.

    A reply is either ``(text, sources)`` or an exception to raise.
    """

    def __init__(self, name="gemini", replies=None, api_key="test-key"):
        super().__init__(api_key)
        self.name = name
        self.replies = list(replies or [])
        self.calls = []

    async def _complete(self, system_prompt, history, message):
        self.calls.append({"system_prompt": system_prompt, "history": list(history), "message": message})
        reply = self.replies.pop(0) if self.replies else ("", [])
        if isinstance(reply, Exception):
            raise reply
        return reply


class FakeCollection:
    """The slice of ``pymongo.collection.Collection`` the repository uses."""

    def __init__(self):
        self.docs = []

    @staticmethod
    def _matches(doc, query):
        return all(doc.get(key) == value for key, value in query.items())

    @staticmethod
    def _sorted(docs, sort):
        for key, direction in reversed(sort or []):
            docs = sorted(docs, key=lambda doc: doc.get(key), reverse=direction < 0)
        return docs

    def insert_one(self, document):
        self.docs.append(copy.deepcopy(document))

    def find(self, query, sort=None):
        return [copy.deepcopy(doc) for doc in self._sorted([d for d in self.docs if self._matches(d, query)], sort)]

    def find_one(self, query, sort=None):
        found = self.find(query, sort=sort)
        return found[0] if found else None

    def update_one(self, query, update):
        for doc in self.docs:
            if self._matches(doc, query):
                doc.update(update.get("$set", {}))
                return

    def find_one_and_update(self, query, update, upsert=False, return_document=None):
        for doc in self.docs:
            if self._matches(doc, query):
                break
        else:
            if not upsert:
                return None
            doc = dict(query)
            self.docs.append(doc)
        for key, amount in update.get("$inc", {}).items():
            doc[key] = doc.get(key, 0) + amount
        return copy.deepcopy(doc)


class FakeDatabase:
    def __init__(self, ping_ok=True):
        self.collections = {}
        self.ping_ok = ping_ok

    def __getitem__(self, name):
        return self.collections.setdefault(name, FakeCollection())

    def command(self, name):
        assert name == "ping"
        return {"ok": 1.0 if self.ping_ok else 0.0}


def mock_client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


@pytest.fixture(autouse=True)
def reset_metrics():
    metrics_collector.reset()
    yield
    metrics_collector.reset()


@pytest.fixture
def settings():
    return make_settings()


@pytest.fixture
def fake_db():
    return FakeDatabase()


@pytest.fixture
def repository(fake_db):
    return FarmRepository(database=fake_db)


@pytest.fixture
def rng():
    return random.Random(42)
