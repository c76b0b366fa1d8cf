"""Protean Engine runner for the storefront domain.

In production (``event_processing = "async"``) the notification dispatcher
does not run inside the request. The Engine picks up NotificationEnqueued and
NotificationRetried events and delivers the messages.

Usage:
    python src/server.py
    python src/server.py --test-mode   # Drain pending events and exit
"""

import argparse
import asyncio

from protean.server.engine import Engine

from storefront.domain import storefront
from storefront.utils.logging import configure_logging


async def run(test_mode: bool = False):
    storefront.init()
    engine = Engine(storefront, test_mode=test_mode)
    await engine.run()


def main():
    parser = argparse.ArgumentParser(description="Storefront Engine runner")
    parser.add_argument("--test-mode", action="store_true", help="Process pending events once and exit")
    args = parser.parse_args()

    configure_logging()
    asyncio.run(run(test_mode=args.test_mode))


if __name__ == "__main__":
    main()
