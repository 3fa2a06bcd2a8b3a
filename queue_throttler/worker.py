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
import threading
from typing import Any, Callable, Iterable, List, Optional, Union

from .errors import QueueUnavailable, StoreUnavailable
from .logging import get_logger
from .queues import Job
from .reservation import Throttler

#: The default number of seconds a worker sleeps when no job was reserved.
DEFAULT_WORKER_PERIOD = 1.0

Handler = Callable[[Job], Any]


class Worker:
    """Polls a list of queues, in priority order, through a throttler and
    runs the reserved jobs one at a time.

    Parameters:
      throttler(Throttler): The throttler deciding which job may start.
      queues(list[str]): The queues to poll, highest priority first.
      handler(callable): Called with every reserved :class:`Job`.
      period(float): The number of seconds to sleep after a poll that
        did not reserve any job.
    """

    def __init__(
        self,
        throttler: Throttler,
        queues: Iterable,
        handler: Handler,
        *,
        period: Union[int, float, None] = None,
    ) -> None:
        self.logger = get_logger(__name__, type(self))
        self.throttler = throttler
        self.queues: List = list(queues)
        self.handler = handler
        self.period = period if period is not None else DEFAULT_WORKER_PERIOD
        self.processed = 0
        self._stopped = threading.Event()

    def reserve(self) -> Optional[Job]:
        return self.throttler.reserve(self.queues)

    def perform(self, job: Job) -> bool:
        """Run a job, counting it as running on its queue for as long as
        the handler runs, whether it succeeds or fails.

        Handler errors are logged.  Store errors while counting the job
        propagate: the handler is not called if the job could not be
        counted as running.

        Returns:
          bool: True if the handler succeeded.
        """
        with self.throttler.running(job.queue):
            self.logger.debug("Processing job on %s", job.queue)
            try:
                self.handler(job)
            except Exception:
                self.logger.exception("Failed to process job on %s.", job.queue)
                return False
            return True

    def work_once(self) -> Optional[Job]:
        """Reserve and run at most one job.

        Returns:
          Job: The job that was run, or None if no job was reserved.

        Raises:
          StoreUnavailable: If the store failed.
          QueueUnavailable: If the job queue failed.
        """
        job = self.reserve()
        if job is None:
            return None

        self.perform(job)
        self.processed += 1
        return job

    def work(self) -> None:
        """Poll until :meth:`stop` is called.

        Errors from the store or the job queue only end the current
        poll, the next one is attempted after ``period`` seconds.
        """
        self.logger.info("Worker polling queues %s", ", ".join(map(str, self.queues)))
        while not self._stopped.is_set():
            try:
                job = self.work_once()
            except (StoreUnavailable, QueueUnavailable) as e:
                self.logger.warning("Poll failed: %s", e)
                job = None

            if job is None:
                self._stopped.wait(self.period)
        self.logger.info("Worker stopped after processing %d job(s)", self.processed)

    def stop(self) -> None:
        self._stopped.set()

    @property
    def stopped(self) -> bool:
        return self._stopped.is_set()
