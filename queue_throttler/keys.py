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

#: The namespace shared by every key written by the throttler.  Changing it
#: breaks interoperability with workers and dashboards already deployed.
KEY_PREFIX = "throttler"


def lock_key(queue_name: str) -> str:
    """Returns the key of the reservation lock of a queue."""
    return f"{KEY_PREFIX}:lock:{queue_name}"


def rate_limit_key(queue_name: str) -> str:
    """Returns the key counting job starts in the current window."""
    return f"{KEY_PREFIX}:rate_limit:{queue_name}"


def active_jobs_key(queue_name: str) -> str:
    """Returns the key counting the jobs currently running."""
    return f"{KEY_PREFIX}:active_jobs:{queue_name}"
