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
from collections import namedtuple
from typing import Dict, Mapping, Optional, Set

from .common import normalize_queue_name
from .errors import ConfigurationError

#: The options accepted by :meth:`LimitRegistry.set_limit`.
LIMIT_OPTIONS = {"at", "per", "concurrent"}


def _is_int(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


class ThroughputLimit(namedtuple("ThroughputLimit", ("count", "per"))):
    """At most ``count`` job starts within a window of ``per`` seconds.

    The window is a fixed window whose expiry is pushed back on every
    recorded start, not a sliding window: a burst straddling the end of
    a window can start up to twice ``count`` jobs in ``per`` seconds.
    A window of 0 seconds never accumulates any start.

    Parameters:
      count(int): The number of job starts allowed in the window.
      per(int): The length of the window, in seconds.
    """

    def __new__(cls, count: int, per: int):
        if not _is_int(count) or count < 1:
            raise ConfigurationError(f"Throughput count must be a positive integer, got {count!r}.")
        if not _is_int(per) or per < 0:
            raise ConfigurationError(f"Throughput window must be a non-negative number of seconds, got {per!r}.")
        return super().__new__(cls, count, per)


class ConcurrencyLimit(namedtuple("ConcurrencyLimit", ("max",))):
    """At most ``max`` jobs of a queue running at the same time."""

    def __new__(cls, max: int):  # noqa: A002
        if not _is_int(max) or max < 1:
            raise ConfigurationError(f"Concurrency limit must be a positive integer, got {max!r}.")
        return super().__new__(cls, max)


class QueueLimit(namedtuple("QueueLimit", ("throughput", "concurrency"))):
    """The limits configured on a single queue.

    Parameters:
      throughput(ThroughputLimit): Always set on a configured queue.
      concurrency(Optional[ConcurrencyLimit]): None when the queue has
        no concurrency limit.
    """

    def __new__(cls, throughput: ThroughputLimit, concurrency: Optional[ConcurrencyLimit] = None):
        return super().__new__(cls, throughput, concurrency)

    def as_dict(self) -> Dict[str, int]:
        """Return the limit with the option names accepted by ``set_limit``."""
        as_dict = {"at": self.throughput.count, "per": self.throughput.per}
        if self.concurrency is not None:
            as_dict["concurrent"] = self.concurrency.max
        return as_dict


class LimitRegistry:
    """Holds the limits of every throttled queue of this process.

    The registry is plain in-memory configuration: it is meant to be
    filled once when the process boots and read afterwards.  It is not
    shared between processes, so every worker has to be configured with
    the same limits.

    Example:

      >>> limits = LimitRegistry()
      >>> limits.set_limit("emails", at=5, per=5, concurrent=3)
      >>> limits.get_limit("emails")
      QueueLimit(throughput=ThroughputLimit(count=5, per=5), concurrency=ConcurrencyLimit(max=3))
    """

    def __init__(self) -> None:
        self._limits: Dict[str, QueueLimit] = {}

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, Mapping[str, int]]) -> "LimitRegistry":
        """Build a registry from plain data, for example::

          {"emails": {"at": 5, "per": 5, "concurrent": 3}, "exports": {"at": 1, "per": 60}}

        Raises:
          ConfigurationError: If any of the limits is invalid.
        """
        registry = cls()
        for queue, options in mapping.items():
            if not isinstance(options, Mapping):
                raise ConfigurationError(f"Limits of queue {queue!r} must be a mapping, got {options!r}.")
            registry.set_limit(queue, **options)
        return registry

    def set_limit(
        self,
        queue,
        throughput: Optional[ThroughputLimit] = None,
        concurrency: Optional[ConcurrencyLimit] = None,
        **options,
    ) -> None:
        """Set the limits of a queue, replacing any previous ones.

        Limits are either given as value objects or with the ``at``,
        ``per`` and ``concurrent`` options::

          registry.set_limit("emails", ThroughputLimit(5, 5), ConcurrencyLimit(3))
          registry.set_limit("emails", at=5, per=5, concurrent=3)

        Raises:
          ConfigurationError: If the throughput limit is missing or
            malformed, or if unknown options are given.
        """
        unknown = set(options) - LIMIT_OPTIONS
        if unknown:
            raise ConfigurationError(f"Unknown limit option(s) {', '.join(sorted(unknown))} for queue {queue!r}.")

        if throughput is None:
            if not {"at", "per"} <= set(options):
                raise ConfigurationError(f"Both 'at' and 'per' are required to limit queue {queue!r}.")
            throughput = ThroughputLimit(options["at"], options["per"])
        elif "at" in options or "per" in options:
            raise ConfigurationError(f"Queue {queue!r} received both a throughput limit and 'at'/'per' options.")
        elif not isinstance(throughput, ThroughputLimit):
            raise ConfigurationError(f"Malformed throughput limit for queue {queue!r}: {throughput!r}.")

        if concurrency is None:
            if options.get("concurrent") is not None:
                concurrency = ConcurrencyLimit(options["concurrent"])
        elif "concurrent" in options:
            raise ConfigurationError(f"Queue {queue!r} received both a concurrency limit and a 'concurrent' option.")
        elif not isinstance(concurrency, ConcurrencyLimit):
            raise ConfigurationError(f"Malformed concurrency limit for queue {queue!r}: {concurrency!r}.")

        self._limits[normalize_queue_name(queue)] = QueueLimit(throughput, concurrency)

    def get_limit(self, queue) -> Optional[QueueLimit]:
        return self._limits.get(normalize_queue_name(queue))

    def is_throttled(self, queue) -> bool:
        return normalize_queue_name(queue) in self._limits

    def has_concurrency_limit(self, queue) -> bool:
        limit = self.get_limit(queue)
        return limit is not None and limit.concurrency is not None

    def throttled_queues(self) -> Set[str]:
        return set(self._limits)

    def __contains__(self, queue) -> bool:
        return self.is_throttled(queue)

    def __len__(self) -> int:
        return len(self._limits)
