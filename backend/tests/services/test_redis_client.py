"""Unit tests for the shared Redis client lifecycle."""

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

import app.db.redis as redis_mod

pytestmark = pytest.mark.unit


class FlakyRedis:
    """Stands in for the pooled client; PING fails ``failures`` times first."""

    def __init__(self, failures: int):
        self.failures = failures
        self.pings = 0
        self.closed = False

    async def ping(self):
        self.pings += 1
        if self.pings <= self.failures:
            raise RedisConnectionError("Connection refused")
        return True

    async def aclose(self):
        self.closed = True


@pytest.fixture(autouse=True)
def reset_client():
    redis_mod._redis = None
    yield
    redis_mod._redis = None


async def test_init_retries_until_reachable(monkeypatch):
    client = FlakyRedis(failures=1)
    captured = {}

    def from_url(url, **kwargs):
        captured.update(kwargs, url=url)
        return client

    monkeypatch.setattr(redis_mod.redis, "from_url", from_url)

    await redis_mod.init_redis("redis://cache:6379")

    assert client.pings == 2
    assert redis_mod.get_redis() is client
    assert captured["url"] == "redis://cache:6379"
    assert captured["decode_responses"] is True
    assert captured["socket_timeout"] == 2.0


async def test_init_gives_up_and_closes(monkeypatch):
    client = FlakyRedis(failures=10)
    monkeypatch.setattr(redis_mod.redis, "from_url", lambda url, **kwargs: client)

    with pytest.raises(RedisConnectionError):
        await redis_mod.init_redis("redis://cache:6379")

    assert client.pings == 3
    assert client.closed is True
    with pytest.raises(RuntimeError):
        redis_mod.get_redis()


async def test_ping_redis(fake_redis):
    assert await redis_mod.ping_redis() is False

    redis_mod._redis = fake_redis
    assert await redis_mod.ping_redis() is True


async def test_close_is_idempotent(fake_redis):
    redis_mod._redis = fake_redis
    await redis_mod.close_redis()
    await redis_mod.close_redis()
    assert redis_mod._redis is None
