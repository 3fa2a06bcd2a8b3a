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

import argparse
import importlib
import logging
import os
import sys

from queue_throttler import LimitRegistry, StoreUnavailable, Throttler, __version__, get_logger
from queue_throttler.queues import RedisJobQueue
from queue_throttler.store.backends import RedisBackend

#: The exit codes of the command.
RET_OK = 0  # The command succeeded.
RET_IMPORT = 2  # The limits module could not be imported or is invalid.
RET_CONNECT = 3  # The store could not be reached.

#: The logging format.
logformat = "[%(asctime)s] [%(name)s] [%(levelname)s] %(message)s"

#: The logging verbosity levels.
verbosity = {
    0: logging.WARNING,
    1: logging.INFO,
    2: logging.DEBUG,
}

#: The default store url, also configurable with THROTTLER_REDIS_URL.
DEFAULT_REDIS_URL = os.getenv("THROTTLER_REDIS_URL", "redis://localhost:6379/0")

#: Message printed after the help text.
HELP_EPILOG = """\
examples:
  # Show the state of the queues limited in `./settings.py` (attribute `limits`).
  $ queue-throttler settings status

  # Use another attribute of the module.
  $ queue-throttler settings:QUEUE_LIMITS status

  # Reset the lock and the counters of the "emails" queue.
  $ queue-throttler settings reset emails

  # Reset every limited queue.
  $ queue-throttler settings reset
"""


def parse_arguments(argv=None):
    parser = argparse.ArgumentParser(
        prog="queue-throttler",
        description="Inspect and reset queue throttling.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=HELP_EPILOG,
    )
    parser.add_argument(
        "limits", metavar="module[:attribute]", help="the module holding the LimitRegistry (default attribute: limits)"
    )
    parser.add_argument("--path", "-P", default=".", nargs="*", type=str, help="the module import path (default: .)")
    parser.add_argument(
        "--url", default=DEFAULT_REDIS_URL, help=f"the url of the store (default: {DEFAULT_REDIS_URL})"
    )
    parser.add_argument("--version", action="version", version=__version__)
    parser.add_argument("--verbose", "-v", action="count", default=0, help="turn on verbose log output")

    commands = parser.add_subparsers(dest="command", required=True)
    commands.add_parser("status", help="show the limits, counters and lock of every limited queue")
    reset = commands.add_parser("reset", help="delete the lock and the counters of some queues")
    reset.add_argument("queues", metavar="queue", nargs="*", help="the queues to reset (default: all limited queues)")
    return parser.parse_args(argv)


def setup_logging(args, *, stream=sys.stderr):
    level = verbosity.get(args.verbose, logging.DEBUG)
    logging.basicConfig(level=level, format=logformat, stream=stream)
    return get_logger("queue_throttler")


def import_limits(path: str) -> LimitRegistry:
    """Import the registry designated by ``module[:attribute]``.

    Raises:
      ImportError: If the module cannot be imported or does not define
        a LimitRegistry under that attribute.
    """
    module_name, _, attribute = path.partition(":")
    module = importlib.import_module(module_name)
    limits = getattr(module, attribute or "limits", None)
    if not isinstance(limits, LimitRegistry):
        raise ImportError(f"{path!r} is not a LimitRegistry.")
    return limits


def print_status(throttler: Throttler, stream=None) -> None:
    stream = stream or sys.stdout
    queue_names = sorted(throttler.throttled_queues())
    if not queue_names:
        print("No limited queue.", file=stream)
        return

    for queue_name in queue_names:
        limit = throttler.get_limit(queue_name)
        concurrency = f"{throttler.active_job_count(queue_name)}/{limit.concurrency.max}" if limit.concurrency else "-"
        print(
            f"{queue_name}: "
            f"window {throttler.job_count_in_window(queue_name)}/{limit.throughput.count} per {limit.throughput.per}s, "
            f"running {concurrency}, "
            f"{'locked' if throttler.lock.is_locked(queue_name) else 'unlocked'}",
            file=stream,
        )


def main(argv=None):
    args = parse_arguments(argv)
    logger = setup_logging(args)

    for path in args.path:
        sys.path.insert(0, path)

    try:
        limits = import_limits(args.limits)
    except ImportError:
        logger.exception("Failed to import limits.")
        return RET_IMPORT

    store = RedisBackend(url=args.url)
    throttler = Throttler(store, RedisJobQueue(client=store.client), limits=limits)
    try:
        if args.command == "status":
            print_status(throttler)
        elif args.queues:
            for queue_name in args.queues:
                throttler.reset_throttling(queue_name)
        else:
            throttler.reset_throttling()
    except StoreUnavailable as e:
        logger.critical(e)
        return RET_CONNECT

    return RET_OK


if __name__ == "__main__":
    sys.exit(main())
