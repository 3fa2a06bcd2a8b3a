import threading
from unittest import mock

import pytest

from queue_throttler import QueueUnavailable, StoreUnavailable, Worker
from queue_throttler.queues import Job


def test_worker_runs_reserved_jobs(stub_throttler, stub_job_queue):
    # Given a worker and a job
    processed = []
    worker = Worker(stub_throttler, ["q1"], processed.append)
    stub_job_queue.enqueue("q1", {"id": 1})

    # When the worker polls twice
    first = worker.work_once()
    second = worker.work_once()

    # Then the job should have been run once
    assert first == Job("q1", {"id": 1})
    assert second is None
    assert processed == [first]
    assert worker.processed == 1


def test_worker_counts_running_jobs(stub_throttler, stub_job_queue):
    stub_throttler.set_limit("q2", at=5, per=5, concurrent=2)
    stub_job_queue.enqueue("q2", {"id": 1})
    active_counts = []

    def handler(job):
        active_counts.append(stub_throttler.active_job_count(job.queue))

    worker = Worker(stub_throttler, ["q2"], handler)
    worker.work_once()

    assert active_counts == [1]
    assert stub_throttler.active_job_count("q2") == 0


def test_failing_jobs_are_counted_as_finished(stub_throttler, stub_job_queue):
    stub_throttler.set_limit("q2", at=5, per=5, concurrent=1)
    stub_job_queue.enqueue("q2", {"id": 1})
    stub_job_queue.enqueue("q2", {"id": 2})

    def handler(job):
        raise RuntimeError("job failed")

    worker = Worker(stub_throttler, ["q2"], handler)

    assert worker.work_once() == Job("q2", {"id": 1})
    assert stub_throttler.active_job_count("q2") == 0
    assert worker.work_once() == Job("q2", {"id": 2})


def test_worker_loop_can_be_stopped(stub_throttler, stub_job_queue):
    # Given a worker whose handler stops it after 3 jobs
    for i in range(5):
        stub_job_queue.enqueue("q1", {"id": i})

    processed = []

    def handler(job):
        processed.append(job)
        if len(processed) == 3:
            worker.stop()

    worker = Worker(stub_throttler, ["q1"], handler, period=0.01)

    # When it works
    worker.work()

    # Then it should have stopped after the third job
    assert worker.stopped
    assert len(processed) == 3
    assert stub_job_queue.size("q1") == 2


def test_worker_loop_survives_queue_errors(stub_throttler):
    worker = Worker(stub_throttler, ["q1"], lambda job: None, period=0.01)
    calls = []

    def reserve():
        calls.append(1)
        if len(calls) == 3:
            worker.stop()
        raise QueueUnavailable("queue storage is down")

    with mock.patch.object(worker, "reserve", side_effect=reserve):
        thread = threading.Thread(target=worker.work)
        thread.start()
        thread.join(5)

    assert not thread.is_alive()
    assert len(calls) == 3


def test_store_errors_while_starting_a_job_propagate(stub_store, stub_throttler, stub_job_queue):
    # Given a concurrency-limited queue with a job
    stub_throttler.set_limit("q2", at=5, per=5, concurrent=2)
    stub_job_queue.enqueue("q2", {"id": 1})
    processed = []
    worker = Worker(stub_throttler, ["q2"], processed.append)

    # When the store fails to count the job as running
    with mock.patch.object(stub_store, "incr", side_effect=[1, StoreUnavailable("store is down")]):
        with pytest.raises(StoreUnavailable, match="store is down"):
            worker.work_once()

    # Then the handler should not have run and the error not be counted as a job failure
    assert processed == []
    assert worker.processed == 0
    assert stub_throttler.active_job_count("q2") == 0


def test_worker_loop_survives_store_errors_while_starting_a_job(stub_store, stub_throttler, stub_job_queue):
    stub_throttler.set_limit("q2", at=5, per=5, concurrent=2)
    stub_job_queue.enqueue("q2", {"id": 1})
    worker = Worker(stub_throttler, ["q2"], lambda job: None, period=0.01)
    calls = []

    def incr(key):
        calls.append(key)
        if len(calls) == 2:
            worker.stop()
            raise StoreUnavailable("store is down")
        return 1

    with mock.patch.object(stub_store, "incr", side_effect=incr):
        worker.work()

    assert worker.stopped
    assert calls == ["throttler:rate_limit:q2", "throttler:active_jobs:q2"]
