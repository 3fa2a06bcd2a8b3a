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

import prometheus_client as prom

#: The outcomes of a queue check during a reservation cycle.
RESERVED = "reserved"
LOCKED = "locked"
RATE_LIMITED = "rate_limited"
CONCURRENCY_LIMITED = "concurrency_limited"
EMPTY = "empty"

OUTCOMES = (RESERVED, LOCKED, RATE_LIMITED, CONCURRENCY_LIMITED, EMPTY)


class ReservationMetrics:
    """Exports the outcome of every queue check via Prometheus_.

    Nothing is served from here: the embedding process exposes
    :attr:`registry`, e.g. with :func:`prometheus_client.start_http_server`.

    Parameters:
      registry(CollectorRegistry): the prometheus registry to use, if
        None, use a new registry.

    .. _Prometheus: https://prometheus.io
    """

    def __init__(self, *, registry: Optional[prom.CollectorRegistry] = None) -> None:
        self.registry = registry if registry is not None else prom.CollectorRegistry()
        self.total_checks = prom.Counter(
            "throttler_reservations_total",
            "The total number of queue checks made while reserving jobs, by outcome.",
            ["queue_name", "outcome"],
            registry=self.registry,
        )
        self.active_jobs = prom.Gauge(
            "throttler_active_jobs",
            "The number of concurrency-limited jobs this process is running.",
            ["queue_name"],
            registry=self.registry,
        )

    def init_labels(self, queue_names) -> None:
        # initialize the metrics for all queues to 0
        for queue_name in queue_names:
            for outcome in OUTCOMES:
                self.total_checks.labels(queue_name, outcome)
            self.active_jobs.labels(queue_name)

    def observe(self, queue_name: str, outcome: str) -> None:
        self.total_checks.labels(queue_name, outcome).inc()

    def job_started(self, queue_name: str) -> None:
        self.active_jobs.labels(queue_name).inc()

    def job_finished(self, queue_name: str) -> None:
        self.active_jobs.labels(queue_name).dec()
