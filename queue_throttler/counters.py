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
from .common import normalize_queue_name
from .keys import active_jobs_key, rate_limit_key
from .limits import LimitRegistry
from .store import StoreBackend


class ThroughputCounter:
    """Counts the jobs started on each queue during the current window.

    Every recorded start increments the counter and pushes its expiry
    back to the full window, so the counter only goes back to zero once
    a whole window passed without any start.  This is a fixed window
    approximation: bursts around the end of a window are possible.

    Parameters:
      store(StoreBackend): The store shared by the workers.
      limits(LimitRegistry): The limits of this process.
    """

    def __init__(self, store: StoreBackend, limits: LimitRegistry) -> None:
        self.store = store
        self.limits = limits

    def current_count(self, queue) -> int:
        return self.store.get(rate_limit_key(normalize_queue_name(queue))) or 0

    def is_over_limit(self, queue) -> bool:
        limit = self.limits.get_limit(queue)
        if limit is None:
            return False
        return self.current_count(queue) >= limit.throughput.count

    def record_start(self, queue) -> None:
        """Record that a job of ``queue`` was just handed to a worker.

        Must only be called while holding the queue lock, after the
        limit check passed and a job was actually dequeued.
        """
        limit = self.limits.get_limit(queue)
        if limit is None:
            return

        key = rate_limit_key(normalize_queue_name(queue))
        self.store.incr(key)
        self.store.expire(key, limit.throughput.per)

    def reset(self, queue) -> None:
        self.store.delete(rate_limit_key(normalize_queue_name(queue)))


class ConcurrencyCounter:
    """Counts the jobs of each queue currently running.

    The worker running a job is responsible for pairing
    :meth:`on_job_start` and :meth:`on_job_end`.  A worker killed in
    between leaves the counter one too high until the queue is reset.

    Parameters:
      store(StoreBackend): The store shared by the workers.
      limits(LimitRegistry): The limits of this process.
    """

    def __init__(self, store: StoreBackend, limits: LimitRegistry) -> None:
        self.store = store
        self.limits = limits

    def active_count(self, queue) -> int:
        return max(self.store.get(active_jobs_key(normalize_queue_name(queue))) or 0, 0)

    def is_over_limit(self, queue) -> bool:
        limit = self.limits.get_limit(queue)
        if limit is None or limit.concurrency is None:
            return False
        return self.active_count(queue) >= limit.concurrency.max

    def on_job_start(self, queue) -> int:
        return self.store.incr(active_jobs_key(normalize_queue_name(queue)))

    def on_job_end(self, queue) -> int:
        return self.store.decr(active_jobs_key(normalize_queue_name(queue)))

    def reset(self, queue) -> None:
        self.store.delete(active_jobs_key(normalize_queue_name(queue)))
