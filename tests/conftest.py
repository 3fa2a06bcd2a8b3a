import logging
import os

import freezegun
import pytest
import redis
from freezegun import freeze_time

from queue_throttler import LimitRegistry, Throttler
from queue_throttler.queues import RedisJobQueue, StubJobQueue
from queue_throttler.store import backends as st_backends

logfmt = "[%(asctime)s] [%(threadName)s] [%(name)s] [%(levelname)s] %(message)s"
logging.basicConfig(level=logging.INFO, format=logfmt)

# The default ignore list holds "queue" and "_pytest", and module names are
# matched by prefix: without this, time never moves inside queue_throttler.
freezegun.configure(default_ignore_list=["threading", "multiprocessing", "selenium", "gi", "prompt_toolkit"])

CI = os.getenv("CI") == "true"

REDIS_URL = os.getenv("THROTTLER_TEST_REDIS_URL") or "redis://localhost:6481/0"


def check_redis(client):
    try:
        client.ping()
    except redis.ConnectionError as e:
        raise e from e if CI else pytest.skip("No connection to Redis server.")
    client.flushall()


@pytest.fixture
def redis_store():
    store = st_backends.RedisBackend(url=REDIS_URL)
    check_redis(store.client)
    yield store
    store.client.flushall()


@pytest.fixture
def stub_store():
    store = st_backends.StubBackend()
    yield store
    store.flush_all()


@pytest.fixture(params=["redis", "stub"])
def store(request):
    return request.getfixturevalue(f"{request.param}_store")


@pytest.fixture
def stub_job_queue():
    job_queue = StubJobQueue()
    yield job_queue
    job_queue.flush_all()


@pytest.fixture
def redis_job_queue(redis_store):
    return RedisJobQueue(client=redis_store.client)


@pytest.fixture
def limits():
    return LimitRegistry()


@pytest.fixture
def throttler(store, stub_job_queue, limits):
    return Throttler(store, stub_job_queue, limits=limits)


@pytest.fixture
def stub_throttler(stub_store, stub_job_queue, limits):
    return Throttler(stub_store, stub_job_queue, limits=limits)


@pytest.fixture
def frozen_datetime():
    with freeze_time("2020-02-03") as frozen_datetime:
        yield frozen_datetime
