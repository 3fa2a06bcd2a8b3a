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
import time
from typing import Dict, Optional, Tuple, Union

from ..backend import StoreBackend

Value = Union[int, str]


class StubBackend(StoreBackend):
    """An in-memory store backend.  For use in unit tests and
    single-process runs.

    Expiries are evaluated lazily against :func:`time.time` on every
    access, so tests can move time forward with freezegun.
    """

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self.data: Dict[str, Tuple[Value, Optional[float]]] = {}

    def get(self, key: str) -> Optional[int]:
        with self._lock:
            value = self._get(key)
        return None if value is None else int(value)

    def incr(self, key: str) -> int:
        return self._add(key, 1)

    def decr(self, key: str) -> int:
        return self._add(key, -1)

    def set_if_absent(self, key: str, value: str, ttl: int) -> bool:
        with self._lock:
            if self._get(key) is not None:
                return False
            self.data[key] = (value, time.time() + ttl)
            return True

    def expire(self, key: str, ttl: int) -> None:
        with self._lock:
            value = self._get(key)
            if value is None:
                return
            if ttl <= 0:
                del self.data[key]
            else:
                self.data[key] = (value, time.time() + ttl)

    def exists(self, key: str) -> bool:
        with self._lock:
            return self._get(key) is not None

    def delete(self, *keys: str) -> None:
        with self._lock:
            for key in keys:
                self.data.pop(key, None)

    def flush_all(self) -> None:
        with self._lock:
            self.data.clear()

    def _add(self, key: str, amount: int) -> int:
        with self._lock:
            current = self._get(key)
            if current is None and amount < 0:
                return 0
            _, expires_at = self.data.get(key, (0, None))
            value = int(current or 0) + amount
            if amount < 0:
                value = max(value, 0)
            self.data[key] = (value, expires_at)
            return value

    def _get(self, key: str) -> Optional[Value]:
        try:
            value, expires_at = self.data[key]
        except KeyError:
            return None

        if expires_at is not None and expires_at <= time.time():
            del self.data[key]
            return None
        return value
