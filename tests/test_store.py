import time
from unittest import mock

import pytest
import redis

from queue_throttler import StoreUnavailable
from queue_throttler.store.backends import RedisBackend


def test_get_returns_none_for_absent_keys(store):
    assert store.get("missing") is None
    assert not store.exists("missing")


def test_incr_and_decr(store):
    assert store.incr("counter") == 1
    assert store.incr("counter") == 2
    assert store.get("counter") == 2

    assert store.decr("counter") == 1
    assert store.get("counter") == 1


def test_decr_never_goes_below_zero(store):
    # Given a counter at 1
    store.incr("counter")

    # When I decrement it more often than it was incremented
    results = [store.decr("counter") for _ in range(3)]

    # Then it should stop at zero
    assert results == [0, 0, 0]
    assert (store.get("counter") or 0) == 0


def test_decr_of_an_absent_key_is_zero(store):
    assert store.decr("missing") == 0
    assert (store.get("missing") or 0) == 0


def test_set_if_absent(store):
    assert store.set_if_absent("lock", "locked", 30)
    assert not store.set_if_absent("lock", "locked", 30)
    assert store.exists("lock")

    store.delete("lock")
    assert store.set_if_absent("lock", "locked", 30)


def test_delete_ignores_absent_keys(store):
    store.incr("a")

    store.delete("a", "b")
    store.delete()

    assert not store.exists("a")


def test_expire_zero_deletes_the_key(store):
    store.incr("counter")

    store.expire("counter", 0)

    assert store.get("counter") is None


def test_redis_keys_expire(redis_store):
    redis_store.incr("counter")
    redis_store.expire("counter", 1)

    assert redis_store.get("counter") == 1
    time.sleep(1.1)
    assert redis_store.get("counter") is None


def test_stub_keys_expire(stub_store, frozen_datetime):
    stub_store.incr("counter")
    stub_store.expire("counter", 10)
    stub_store.set_if_absent("lock", "locked", 30)

    frozen_datetime.tick(delta=10)
    assert stub_store.get("counter") is None
    assert stub_store.exists("lock")

    frozen_datetime.tick(delta=20)
    assert not stub_store.exists("lock")


def test_stub_incr_keeps_the_expiry(stub_store, frozen_datetime):
    stub_store.incr("counter")
    stub_store.expire("counter", 10)

    frozen_datetime.tick(delta=5)
    stub_store.incr("counter")

    frozen_datetime.tick(delta=5)
    assert stub_store.get("counter") is None


def test_stub_incr_does_not_clamp_negative_counters(stub_store):
    # Given a counter left negative by an earlier desynchronisation
    stub_store.data["counter"] = (-3, None)

    # Then incrementing it behaves like Redis INCR
    assert stub_store.incr("counter") == -2

    # And only the decrement brings it back to zero
    assert stub_store.decr("counter") == 0
    assert stub_store.get("counter") == 0


def test_redis_incr_does_not_clamp_negative_counters(redis_store):
    redis_store.client.set("counter", -3)

    assert redis_store.incr("counter") == -2
    assert redis_store.decr("counter") == 0
    assert redis_store.get("counter") == 0

def test_redis_errors_are_raised_as_store_unavailable():
    client = mock.MagicMock(spec=redis.Redis)
    client.get.side_effect = redis.exceptions.ConnectionError("connection refused")
    client.set.side_effect = redis.exceptions.TimeoutError("timed out")
    store = RedisBackend(client=client)

    with pytest.raises(StoreUnavailable, match="connection refused"):
        store.get("counter")

    with pytest.raises(StoreUnavailable, match="timed out"):
        store.set_if_absent("lock", "locked", 30)


def test_redis_backend_uses_keys_as_given():
    client = mock.MagicMock(spec=redis.Redis)
    client.incr.return_value = 1
    client.set.return_value = True
    store = RedisBackend(client=client)

    store.incr("throttler:rate_limit:emails")
    store.set_if_absent("throttler:lock:emails", "locked", 30)

    client.incr.assert_called_once_with("throttler:rate_limit:emails")
    client.set.assert_called_once_with("throttler:lock:emails", "locked", ex=30, nx=True)
