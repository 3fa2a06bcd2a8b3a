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
from typing import Iterator

from .common import normalize_queue_name
from .keys import lock_key
from .logging import get_logger
from .store import StoreBackend

#: The number of seconds after which a lock left behind by a crashed
#: worker disappears on its own.
DEFAULT_LOCK_TTL = 30

LOCK_VALUE = "locked"


class QueueLock:
    """A non-blocking lock, shared by every worker through the store,
    serialising the limit checks of one queue.

    It only protects the check-dequeue-record sequence of a reservation,
    never the execution of the job.  A worker dying while it holds the
    lock makes every worker skip the queue until ``ttl`` elapses.

    Parameters:
      store(StoreBackend): The store shared by the workers.
      ttl(int): The expiry of the lock, in seconds.
    """

    def __init__(self, store: StoreBackend, *, ttl: int = DEFAULT_LOCK_TTL) -> None:
        if ttl < 1:
            raise ValueError("Lock ttl must be at least one second.")

        self.logger = get_logger(__name__, type(self))
        self.store = store
        self.ttl = ttl

    def try_acquire(self, queue) -> bool:
        """Try to take the lock of a queue, without waiting.

        Returns:
          bool: True if the lock was free and is now held by the caller.
        """
        return self.store.set_if_absent(lock_key(normalize_queue_name(queue)), LOCK_VALUE, self.ttl)

    def release(self, queue) -> None:
        """Release the lock of a queue.  Releasing a lock that already
        expired is a no-op.
        """
        self.store.delete(lock_key(normalize_queue_name(queue)))

    def is_locked(self, queue) -> bool:
        return self.store.exists(lock_key(normalize_queue_name(queue)))

    @contextmanager
    def held(self, queue) -> Iterator[bool]:
        """Try to take the lock for the duration of the block.

        Yields whether the lock was acquired.  If it was, it is released
        on every way out of the block.  A failure to release while an
        exception is already propagating is logged and the original
        exception is re-raised, the lock will expire on its own.
        """
        acquired = self.try_acquire(queue)
        if not acquired:
            yield False
            return

        try:
            yield True
        except BaseException:
            try:
                self.release(queue)
            except Exception:
                self.logger.exception("Failed to release the lock of queue %r, it will expire on its own.", queue)
            raise
        else:
            self.release(queue)
