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
from typing import Optional

import redis

from ...errors import StoreUnavailable
from ...helpers.redis_client import redis_client
from ..backend import StoreBackend

# Decrement that never goes below zero.  A counter left negative by an
# earlier desynchronisation is brought back to zero.
DECR_FLOOR_LUA = """
local key = KEYS[1]
local current = tonumber(redis.call('GET', key) or '0')
if current <= 0 then
  if current < 0 then
    redis.call('SET', key, 0)
  end
  return 0
end
return redis.call('DECR', key)
"""


@contextmanager
def _store_errors(operation: str, key: str):
    try:
        yield
    except redis.exceptions.RedisError as e:
        raise StoreUnavailable(f"Redis {operation} on {key!r} failed: {e}") from e


class RedisBackend(StoreBackend):
    """A store backend for Redis_.

    Parameters:
      url(str): An optional connection URL.  If both a URL and
        connection parameters are provided, the URL is used.
      client(Redis): An optional client.  If this is passed,
        then all other parameters are ignored.
      socket_timeout(float): Timeout, in seconds, of every socket
        operation.  A worker never waits longer than this on the store.
      **parameters(dict): Connection parameters are passed directly
        to :class:`redis.Redis`.

    .. _redis: https://redis.io
    """

    def __init__(
        self,
        *,
        url: Optional[str] = None,
        client: Optional[redis.Redis] = None,
        socket_timeout: Optional[float] = 5.0,
        **parameters,
    ) -> None:
        super().__init__()
        self.client = client or redis_client(url=url, socket_timeout=socket_timeout, **parameters)
        self._decr_floor_script = self.client.register_script(DECR_FLOOR_LUA)

    def get(self, key: str) -> Optional[int]:
        with _store_errors("GET", key):
            value = self.client.get(key)
        return None if value is None else int(value)

    def incr(self, key: str) -> int:
        with _store_errors("INCR", key):
            return int(self.client.incr(key))

    def decr(self, key: str) -> int:
        with _store_errors("DECR", key):
            return int(self._decr_floor_script(keys=[key]))

    def set_if_absent(self, key: str, value: str, ttl: int) -> bool:
        with _store_errors("SET NX", key):
            return bool(self.client.set(key, value, ex=ttl, nx=True))

    def expire(self, key: str, ttl: int) -> None:
        with _store_errors("EXPIRE", key):
            self.client.expire(key, ttl)

    def exists(self, key: str) -> bool:
        with _store_errors("EXISTS", key):
            return bool(self.client.exists(key))

    def delete(self, *keys: str) -> None:
        if not keys:
            return
        with _store_errors("DEL", ", ".join(keys)):
            self.client.delete(*keys)
