import logging
import sys
import time

from queue_throttler import LimitRegistry, Throttler, Worker
from queue_throttler.queues import RedisJobQueue
from queue_throttler.store.backends import RedisBackend

# At most 5 jobs of "database" may start every 5 seconds, and at most 3
# of them may run at the same time.  "freshers" only has a rate limit.
limits = LimitRegistry.from_mapping(
    {
        "database": {"at": 5, "per": 5, "concurrent": 3},
        "freshers": {"at": 2, "per": 5},
    }
)

store = RedisBackend(url="redis://localhost:6379/0")
job_queue = RedisJobQueue(client=store.client)
throttler = Throttler(store, job_queue, limits=limits)


def perform(job):
    lead_id = job.payload["args"][0]
    print(f"Starting job for lead {lead_id} - Active jobs: {throttler.active_job_count(job.queue)}")
    time.sleep(10)
    print(f"Completed job for lead {lead_id}")


def main(args):
    logging.basicConfig(level=logging.INFO)
    if args and args[0] == "enqueue":
        for i in range(10):
            job_queue.enqueue("database", {"class": "DatabaseIntensiveWorker", "args": [i]})
        print("Queued 10 jobs")
        return 0

    # Run several of these processes at once: they will never start more
    # than 3 "database" jobs concurrently between them.
    worker = Worker(throttler, ["database", "freshers", "default"], perform)
    try:
        worker.work()
    except KeyboardInterrupt:
        worker.stop()
    return 0


if __name__ == "__main__":
    sys.exit(main(sys.argv[1:]))
