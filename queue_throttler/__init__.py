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
from .counters import ConcurrencyCounter, ThroughputCounter
from .errors import ConfigurationError, QueueUnavailable, StoreUnavailable, ThrottlerError
from .limits import ConcurrencyLimit, LimitRegistry, QueueLimit, ThroughputLimit
from .lock import QueueLock
from .logging import get_logger
from .queues import Job, JobQueue
from .reservation import Throttler
from .store import StoreBackend
from .worker import Worker

__all__ = [
    # Counters
    "ConcurrencyCounter",
    "ThroughputCounter",
    # Limits
    "ConcurrencyLimit",
    "LimitRegistry",
    "QueueLimit",
    "ThroughputLimit",
    # Errors
    "ConfigurationError",
    "QueueUnavailable",
    "StoreUnavailable",
    "ThrottlerError",
    # Queues
    "Job",
    "JobQueue",
    # Lock
    "QueueLock",
    # Stores
    "StoreBackend",
    # Reservation
    "Throttler",
    # Workers
    "Worker",
    # Logging
    "get_logger",
]

__version__ = "0.1.0"
