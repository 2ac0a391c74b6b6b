"""Tests for Redis-backed one-time verification codes."""

import pytest

from app.services.verification_store import KEY_PREFIX, VerificationCodeStore

pytestmark = pytest.mark.unit


@pytest.fixture
def store(fake_redis):
    return VerificationCodeStore(fake_redis, ttl_seconds=600)


async def test_issue_stores_code_with_ttl(store, fake_redis):
    code = await store.issue("Dana@Example.com")

    assert len(code) == 6 and code.isdigit()
    assert await fake_redis.get(f"{KEY_PREFIX}dana@example.com") == code
    ttl = await fake_redis.ttl(f"{KEY_PREFIX}dana@example.com")
    assert 0 < ttl <= 600


async def test_code_is_single_use(store):
    code = await store.issue("dana@example.com")

    assert await store.verify("dana@example.com", code) is True
    assert await store.verify("dana@example.com", code) is False


async def test_wrong_code_keeps_pending_code(store):
    code = await store.issue("dana@example.com")
    wrong = "000000" if code != "000000" else "111111"

    assert await store.verify("dana@example.com", wrong) is False
    assert await store.verify("dana@example.com", code) is True


async def test_reissue_replaces_previous_code(store):
    first = await store.issue("dana@example.com")
    second = await store.issue("dana@example.com")

    if first != second:
        assert await store.verify("dana@example.com", first) is False
    assert await store.verify("dana@example.com", second) is True


async def test_unknown_email(store):
    assert await store.verify("nobody@example.com", "123456") is False


async def test_codes_survive_a_new_store_instance(fake_redis):
    code = await VerificationCodeStore(fake_redis, 600).issue("dana@example.com")
    assert await VerificationCodeStore(fake_redis, 600).verify("dana@example.com", code) is True
