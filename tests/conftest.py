from types import SimpleNamespace
from unittest.mock import MagicMock
from uuid import uuid4

import pytest

from chatbot_engine.schemas.chatbot_config import ChatbotConfig


class FakeRedis:
    """In-memory stand-in for the few redis-py calls the engine makes. TTLs are recorded, not enforced."""

    def __init__(self):
        self.store = {}
        self.ttls = {}

    def get(self, key):
        return self.store.get(key)

    def setex(self, key, ttl, value):
        self.store[key] = value
        self.ttls[key] = ttl

    def set(self, key, value, ex=None, nx=False):
        if nx and key in self.store:
            return None
        self.store[key] = str(value)
        if ex is not None:
            self.ttls[key] = ex
        return True

    def incr(self, key):
        self.store[key] = str(int(self.store.get(key, 0)) + 1)
        return int(self.store[key])

    def delete(self, key):
        self.ttls.pop(key, None)
        return 1 if self.store.pop(key, None) is not None else 0

    def expire_now(self, key):
        self.delete(key)

    def pipeline(self, transaction=True):
        return FakePipeline(self)


class FakePipeline:
    def __init__(self, redis):
        self.redis = redis
        self.commands = []

    def set(self, *args, **kwargs):
        self.commands.append(("set", args, kwargs))
        return self

    def incr(self, *args, **kwargs):
        self.commands.append(("incr", args, kwargs))
        return self

    def execute(self):
        results = [getattr(self.redis, name)(*args, **kwargs) for name, args, kwargs in self.commands]
        self.commands = []
        return results


@pytest.fixture
def db_session():
    """Mock database session."""
    return MagicMock()


@pytest.fixture
def fake_redis():
    return FakeRedis()


@pytest.fixture
def make_config():
    def _make(**overrides):
        data = {
            "id": uuid4(),
            "user_id": uuid4(),
            "name": "Support bot",
            "whatsapp_account_id": "1234567890",
            "menu_enabled": False,
            "human_handoff_enabled": False,
            "rate_limit_enabled": False,
            "welcome_enabled": False,
        }
        data.update(overrides)
        return ChatbotConfig.model_validate(data)

    return _make


@pytest.fixture
def make_conversation():
    def _make(**overrides):
        data = {
            "id": uuid4(),
            "sender_phone": "+15550001111",
            "status": "active",
            "message_count": 0,
            "context": {},
            "contact": SimpleNamespace(name="Alice"),
        }
        data.update(overrides)
        return SimpleNamespace(**data)

    return _make
