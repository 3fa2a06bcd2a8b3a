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
from typing import Optional


class StoreBackend:
    """ABC for the key-value stores shared by every worker.

    Every operation works on a single key and must be atomic; the
    throttler never needs multi-key transactions.
    """

    def get(self, key: str) -> Optional[int]:
        """Return the integer stored at ``key``, or None if it is absent."""
        raise NotImplementedError(f"{type(self).__name__!r} does not implement get")

    def incr(self, key: str) -> int:
        """Atomically increment ``key`` (absent keys count as 0) and return the new value."""
        raise NotImplementedError(f"{type(self).__name__!r} does not implement incr")

    def decr(self, key: str) -> int:
        """Atomically decrement ``key`` and return the new value.  The
        value never goes below zero.
        """
        raise NotImplementedError(f"{type(self).__name__!r} does not implement decr")

    def set_if_absent(self, key: str, value: str, ttl: int) -> bool:
        """Create ``key`` with an expiry of ``ttl`` seconds unless it
        already exists.  Returns True if this call created it.
        """
        raise NotImplementedError(f"{type(self).__name__!r} does not implement set_if_absent")

    def expire(self, key: str, ttl: int) -> None:
        """Expire ``key`` in ``ttl`` seconds.  A ttl of 0 expires it right away."""
        raise NotImplementedError(f"{type(self).__name__!r} does not implement expire")

    def exists(self, key: str) -> bool:
        raise NotImplementedError(f"{type(self).__name__!r} does not implement exists")

    def delete(self, *keys: str) -> None:
        """Delete the given keys.  Absent keys are ignored."""
        raise NotImplementedError(f"{type(self).__name__!r} does not implement delete")
