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


class ThrottlerError(Exception):  # pragma: no cover
    """Base class for all queue_throttler errors."""

    def __init__(self, message: str) -> None:
        self.message = message

    def __str__(self) -> str:
        return str(self.message) or repr(self.message)


class ConfigurationError(ThrottlerError):
    """Raised when a queue limit is missing, malformed or carries
    unknown options.  Only ever raised while limits are being set.
    """


class StoreUnavailable(ThrottlerError):
    """Raised when the shared key-value store cannot be reached or
    answers with an error.
    """


class QueueUnavailable(ThrottlerError):
    """Raised when a job could not be pulled off a queue because the
    queue storage failed.
    """
