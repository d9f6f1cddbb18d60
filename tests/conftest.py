import pytest

from services import shared_http


class FakeRedis:
    """In-memory stand-in for the handful of Redis commands the services use."""

    def __init__(self):
        self.data = {}
        self.lists = {}

    def set(self, key, value, nx=False, ex=None):
        if nx and key in self.data:
            return None
        self.data[key] = value
        return True

    def get(self, key):
        return self.data.get(key)

    def delete(self, key):
        return 1 if self.data.pop(key, None) is not None else 0

    def lpush(self, key, value):
        self.lists.setdefault(key, []).insert(0, value)
        return len(self.lists[key])

    def blpop(self, keys, timeout=0):
        for key in keys:
            if self.lists.get(key):
                return key, self.lists[key].pop(0)
        return None


@pytest.fixture
def fake_redis():
    return FakeRedis()


@pytest.fixture
def offline(monkeypatch):
    """No Postgres, no Redis and no access-log writes."""
    monkeypatch.setattr(shared_http, "_store_access_log", lambda *args, **kwargs: None)
    monkeypatch.setattr(shared_http, "get_db", lambda: None)
    monkeypatch.setattr(shared_http, "get_redis", lambda: None)
