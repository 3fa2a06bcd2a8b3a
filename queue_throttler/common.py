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
from enum import Enum


def normalize_queue_name(queue) -> str:
    """Queue names may be given as strings, enum members or symbol-like
    objects; they are always stored and looked up as strings.
    """
    if isinstance(queue, Enum):
        return str(queue.value)
    return str(queue)
