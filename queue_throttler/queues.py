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
import json
import threading
from collections import defaultdict, deque, namedtuple
from typing import Any, Deque, Dict, Optional

import redis

from .common import normalize_queue_name
from .errors import QueueUnavailable
from .helpers.redis_client import redis_client


class Job(namedtuple("Job", ("queue", "payload"))):
    """A job pulled off a queue.

    Parameters:
      queue(str): The name of the queue the job was pulled from.
      payload(dict): The decoded job, opaque to the throttler.
    """


class JobQueue:
    """ABC for the storage of pending jobs.

    ``dequeue_one`` may be called concurrently by any number of workers
    and must hand a given job to at most one of them.
    """

    def dequeue_one(self, queue_name: str) -> Optional[Job]:
        """Pop the oldest job of a queue, or return None if it is empty."""
        raise NotImplementedError(f"{type(self).__name__!r} does not implement dequeue_one")

    def enqueue(self, queue_name: str, payload: Dict[str, Any]) -> None:
        raise NotImplementedError(f"{type(self).__name__!r} does not implement enqueue")

    def size(self, queue_name: str) -> int:
        raise NotImplementedError(f"{type(self).__name__!r} does not implement size")


class StubJobQueue(JobQueue):
    """An in-memory job queue.  For use in unit tests."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self.queues: Dict[str, Deque[Dict[str, Any]]] = defaultdict(deque)

    def dequeue_one(self, queue_name: str) -> Optional[Job]:
        queue_name = normalize_queue_name(queue_name)
        with self._lock:
            try:
                payload = self.queues[queue_name].popleft()
            except IndexError:
                return None
        return Job(queue_name, payload)

    def enqueue(self, queue_name: str, payload: Dict[str, Any]) -> None:
        with self._lock:
            self.queues[normalize_queue_name(queue_name)].append(payload)

    def size(self, queue_name: str) -> int:
        with self._lock:
            return len(self.queues[normalize_queue_name(queue_name)])

    def flush_all(self) -> None:
        with self._lock:
            self.queues.clear()


class RedisJobQueue(JobQueue):
    """A job queue stored in Redis lists, using the Resque layout: jobs
    are JSON documents pushed to the right of ``<namespace>:queue:<name>``
    and popped from the left, and queue names are kept in the
    ``<namespace>:queues`` set.

    Parameters:
      url(str): An optional connection URL.
      client(Redis): An optional client.  If this is passed,
        then all other parameters are ignored.
      namespace(str): The prefix of every key of the queues.
      **parameters(dict): Connection parameters are passed directly
        to :class:`redis.Redis`.
    """

    def __init__(
        self,
        *,
        url: Optional[str] = None,
        client: Optional[redis.Redis] = None,
        namespace: str = "resque",
        socket_timeout: Optional[float] = 5.0,
        **parameters,
    ) -> None:
        self.client = client or redis_client(url=url, socket_timeout=socket_timeout, **parameters)
        self.namespace = namespace

    def queue_key(self, queue_name: str) -> str:
        return f"{self.namespace}:queue:{normalize_queue_name(queue_name)}"

    def dequeue_one(self, queue_name: str) -> Optional[Job]:
        """Pop the oldest job of a queue.  A job that is not valid JSON
        is moved to the ``<namespace>:failed`` list and reported as a
        :class:`QueueUnavailable` error.
        """
        try:
            data = self.client.lpop(self.queue_key(queue_name))
        except redis.exceptions.RedisError as e:
            raise QueueUnavailable(f"Failed to pop a job from queue {queue_name!r}: {e}") from e

        if data is None:
            return None

        try:
            payload = json.loads(data)
        except ValueError as e:
            self._push_failed(data)
            raise QueueUnavailable(f"Queue {queue_name!r} holds a job that is not valid JSON.") from e
        return Job(normalize_queue_name(queue_name), payload)

    def _push_failed(self, data: bytes) -> None:
        try:
            self.client.rpush(f"{self.namespace}:failed", data)
        except redis.exceptions.RedisError as e:
            raise QueueUnavailable(f"Failed to keep an invalid job: {e}") from e

    def enqueue(self, queue_name: str, payload: Dict[str, Any]) -> None:
        try:
            with self.client.pipeline() as pipe:
                pipe.sadd(f"{self.namespace}:queues", normalize_queue_name(queue_name))
                pipe.rpush(self.queue_key(queue_name), json.dumps(payload, separators=(",", ":")))
                pipe.execute()
        except redis.exceptions.RedisError as e:
            raise QueueUnavailable(f"Failed to push a job to queue {queue_name!r}: {e}") from e

    def size(self, queue_name: str) -> int:
        try:
            return int(self.client.llen(self.queue_key(queue_name)))
        except redis.exceptions.RedisError as e:
            raise QueueUnavailable(f"Failed to read the size of queue {queue_name!r}: {e}") from e
