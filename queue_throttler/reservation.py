# This file is a part of Queue Throttler.
#
# Copyright (C) 2017,2018 WIREMIND SAS <dev@wiremind.fr>
#
# Queue Throttler is free software; you can redistribute it and/or modify it
# under the terms of the GNU Lesser General Public License as published by
# the Free Software Foundation, either version 3 of the License, or (at
# your option) any later version.
#
# Queue Throttler is distributed in the hope that it will be useful, but WITHOUT
# ANY WARRANTY; without even the implied warranty of MERCHANTABILITY or
# FITNESS FOR A PARTICULAR PURPOSE. See the GNU Lesser General Public
# License for more details.
#
# You should have received a copy of the GNU Lesser General Public License
# along with this program.  If not, see <http://www.gnu.org/licenses/>.
from contextlib import contextmanager
from typing import Iterable, Optional

from .common import normalize_queue_name
from .counters import ConcurrencyCounter, ThroughputCounter
from .limits import LimitRegistry, QueueLimit
from .lock import DEFAULT_LOCK_TTL, QueueLock
from .logging import get_logger
from .metrics import CONCURRENCY_LIMITED, EMPTY, LOCKED, RATE_LIMITED, RESERVED, ReservationMetrics
from .queues import Job, JobQueue
from .store import StoreBackend


class Throttler:
    """Decides which job, if any, a worker may start on this poll.

    Queues without limits are simply popped.  For throttled queues, the
    queue lock is taken, the throughput and concurrency counters are
    checked, and only then is a job popped and its start recorded, all
    before the lock is released.  A worker never waits: a queue that is
    locked, over one of its limits or empty is skipped until the next
    poll.

    Example:

      >>> from queue_throttler import Throttler
      >>> from queue_throttler.queues import RedisJobQueue
      >>> from queue_throttler.store.backends import RedisBackend
      >>> throttler = Throttler(RedisBackend(url="redis://localhost:6379/0"), RedisJobQueue())
      >>> throttler.set_limit("emails", at=5, per=5, concurrent=3)
      >>> job = throttler.reserve(["critical", "emails", "default"])

    Parameters:
      store(StoreBackend): The store shared by every worker.
      job_queue(JobQueue): Where jobs are pulled from.
      limits(LimitRegistry): The queue limits.  A new, empty registry is
        created if none is given.
      lock_ttl(int): The expiry of the queue locks, in seconds.
      metrics(ReservationMetrics): Optional Prometheus metrics.
    """

    def __init__(
        self,
        store: StoreBackend,
        job_queue: JobQueue,
        *,
        limits: Optional[LimitRegistry] = None,
        lock_ttl: int = DEFAULT_LOCK_TTL,
        metrics: Optional[ReservationMetrics] = None,
    ) -> None:
        self.logger = get_logger(__name__, type(self))
        self.store = store
        self.job_queue = job_queue
        self.limits = limits if limits is not None else LimitRegistry()
        self.lock = QueueLock(store, ttl=lock_ttl)
        self.throughput = ThroughputCounter(store, self.limits)
        self.concurrency = ConcurrencyCounter(store, self.limits)
        self.metrics = metrics
        if metrics is not None:
            metrics.init_labels(self.limits.throttled_queues())

    def reserve(self, queues: Iterable) -> Optional[Job]:
        """Pull at most one job, checking ``queues`` in order.

        Returns:
          Job: The reserved job, or None if no queue could give one.

        Raises:
          StoreUnavailable: If the store failed.
          QueueUnavailable: If the job queue failed.
        """
        try:
            for queue in queues:
                queue_name = normalize_queue_name(queue)
                if self.limits.is_throttled(queue_name):
                    job = self._reserve_throttled(queue_name)
                else:
                    job = self._reserve_unthrottled(queue_name)

                if job is not None:
                    return job

            return None
        except Exception as e:
            self.logger.exception("Error reserving job: %r", e)
            raise

    def _reserve_unthrottled(self, queue_name: str) -> Optional[Job]:
        self.logger.debug("Checking %s", queue_name)
        job = self.job_queue.dequeue_one(queue_name)
        if job is None:
            self._observe(queue_name, EMPTY)
            return None

        self.logger.debug("Found job on %s", queue_name)
        self._observe(queue_name, RESERVED)
        return job

    def _reserve_throttled(self, queue_name: str) -> Optional[Job]:
        self.logger.debug("Rate limit applies to %s, attempting to acquire lock", queue_name)
        with self.lock.held(queue_name) as acquired:
            if not acquired:
                self.logger.debug("Could not acquire lock for %s, skipping", queue_name)
                self._observe(queue_name, LOCKED)
                return None

            if self.throughput.is_over_limit(queue_name):
                self.logger.debug("%s is over its rate limit, skipping", queue_name)
                self._observe(queue_name, RATE_LIMITED)
                return None

            if self.concurrency.is_over_limit(queue_name):
                self.logger.debug("%s is over its concurrency limit, skipping", queue_name)
                self._observe(queue_name, CONCURRENCY_LIMITED)
                return None

            job = self.job_queue.dequeue_one(queue_name)
            if job is None:
                self.logger.debug("No job on %s", queue_name)
                self._observe(queue_name, EMPTY)
                return None

            self.logger.debug("Found job on %s", queue_name)
            self.throughput.record_start(queue_name)
            self._observe(queue_name, RESERVED)
            return job

    def _observe(self, queue_name: str, outcome: str) -> None:
        if self.metrics is not None:
            self.metrics.observe(queue_name, outcome)

    def job_started(self, queue) -> None:
        """Count a reserved job as running.  Only concurrency-limited
        queues are counted.
        """
        if not self.limits.has_concurrency_limit(queue):
            return
        queue_name = normalize_queue_name(queue)
        active = self.concurrency.on_job_start(queue_name)
        self.logger.debug("Job started on %s, %d active", queue_name, active)
        if self.metrics is not None:
            self.metrics.job_started(queue_name)

    def job_finished(self, queue) -> None:
        """Count a running job as finished, whatever its outcome."""
        if not self.limits.has_concurrency_limit(queue):
            return
        queue_name = normalize_queue_name(queue)
        active = self.concurrency.on_job_end(queue_name)
        self.logger.debug("Job finished on %s, %d active", queue_name, active)
        if self.metrics is not None:
            self.metrics.job_finished(queue_name)

    @contextmanager
    def running(self, queue):
        """Count a job as running for the duration of the block."""
        self.job_started(queue)
        try:
            yield
        finally:
            self.job_finished(queue)

    def set_limit(self, queue, *args, **kwargs) -> None:
        """Set the limits of a queue.  See :meth:`LimitRegistry.set_limit`."""
        self.limits.set_limit(queue, *args, **kwargs)
        if self.metrics is not None:
            self.metrics.init_labels([normalize_queue_name(queue)])

    def get_limit(self, queue) -> Optional[QueueLimit]:
        return self.limits.get_limit(queue)

    def is_throttled(self, queue) -> bool:
        return self.limits.is_throttled(queue)

    def throttled_queues(self):
        return self.limits.throttled_queues()

    def job_count_in_window(self, queue) -> int:
        """The number of jobs started on ``queue`` in the current window."""
        return self.throughput.current_count(queue)

    def active_job_count(self, queue) -> int:
        """The number of jobs of ``queue`` currently running."""
        return self.concurrency.active_count(queue)

    def is_over_limit(self, queue) -> bool:
        return self.throughput.is_over_limit(queue) or self.concurrency.is_over_limit(queue)

    def reset_throttling(self, queue=None) -> None:
        """Delete the lock and both counters of ``queue``, or of every
        throttled queue if no queue is given.

        Resetting is the only way to recover a concurrency counter left
        too high by a worker that died while running a job.
        """
        queue_names = [normalize_queue_name(queue)] if queue is not None else sorted(self.throttled_queues())
        for queue_name in queue_names:
            self.logger.info("Resetting throttling of %s", queue_name)
            self.lock.release(queue_name)
            self.throughput.reset(queue_name)
            self.concurrency.reset(queue_name)
