from unittest import mock

import pytest
import redis

from queue_throttler import QueueUnavailable
from queue_throttler.queues import Job, RedisJobQueue


def test_stub_job_queue_is_fifo(stub_job_queue):
    stub_job_queue.enqueue("q1", {"id": 1})
    stub_job_queue.enqueue("q1", {"id": 2})

    assert stub_job_queue.size("q1") == 2
    assert stub_job_queue.dequeue_one("q1") == Job("q1", {"id": 1})
    assert stub_job_queue.dequeue_one("q1") == Job("q1", {"id": 2})
    assert stub_job_queue.dequeue_one("q1") is None


def test_redis_job_queue_uses_the_resque_layout(redis_job_queue):
    # Given a job pushed the way Resque pushes jobs
    redis_job_queue.client.rpush("resque:queue:emails", b'{"class":"SendEmail","args":[42]}')

    # When I pop it
    job = redis_job_queue.dequeue_one("emails")

    # Then it should be decoded
    assert job == Job("emails", {"class": "SendEmail", "args": [42]})
    assert redis_job_queue.dequeue_one("emails") is None


def test_redis_job_queue_enqueue(redis_job_queue):
    redis_job_queue.enqueue("emails", {"class": "SendEmail", "args": [1]})
    redis_job_queue.enqueue("emails", {"class": "SendEmail", "args": [2]})

    assert redis_job_queue.size("emails") == 2
    assert redis_job_queue.client.smembers("resque:queues") == {b"emails"}
    assert redis_job_queue.dequeue_one("emails").payload["args"] == [1]


def test_redis_job_queue_errors_are_raised_as_queue_unavailable():
    client = mock.MagicMock(spec=redis.Redis)
    client.lpop.side_effect = redis.exceptions.ConnectionError("connection refused")
    job_queue = RedisJobQueue(client=client)

    with pytest.raises(QueueUnavailable, match="connection refused"):
        job_queue.dequeue_one("emails")


def test_redis_job_queue_rejects_invalid_payloads():
    client = mock.MagicMock(spec=redis.Redis)
    client.lpop.return_value = b"not json"
    job_queue = RedisJobQueue(client=client, namespace="jobs")

    with pytest.raises(QueueUnavailable, match="not valid JSON"):
        job_queue.dequeue_one("emails")

    client.lpop.assert_called_once_with("jobs:queue:emails")
    client.rpush.assert_called_once_with("jobs:failed", b"not json")


def test_redis_job_queue_reports_invalid_payloads_it_cannot_keep():
    client = mock.MagicMock(spec=redis.Redis)
    client.lpop.return_value = b"not json"
    client.rpush.side_effect = redis.exceptions.ConnectionError("connection refused")
    job_queue = RedisJobQueue(client=client, namespace="jobs")

    with pytest.raises(QueueUnavailable, match="invalid job"):
        job_queue.dequeue_one("emails")
