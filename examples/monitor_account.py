"""
Account Monitor Demo

Watches one account and prints every material position change, using an
EventQueue consumer instead of callbacks.

    TARGET_ADDRESS=0x... python examples/monitor_account.py
"""

import asyncio
import logging
import os

from polycopy import AccountMonitor, EventBus, MonitorConfig, MonitorError, PolymarketDataClient, SnapshotUpdated

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)


async def consume(queue) -> None:
    while True:
        event = await queue.get()
        if isinstance(event, SnapshotUpdated):
            diff = event.diff
            print(f"\n{event.address}: {diff!r}, total value ${event.snapshot.total_value:.2f}")
            for position in diff.added:
                print(f"  + {position.outcome} {position.quantity} @ ${position.price}  {position.market.question[:50]}")
            for update in diff.updated:
                print(f"  ~ {update.position.outcome} {update.old_quantity} -> {update.new_quantity}")
            for position in diff.removed:
                print(f"  - {position.outcome} {position.quantity}  {position.market.question[:50]}")
        elif isinstance(event, MonitorError):
            print(f"\n! poll failed: {event.error}")


async def main() -> None:
    bus = EventBus()
    queue = bus.queue(maxsize=100)

    monitor = AccountMonitor(
        PolymarketDataClient(),
        MonitorConfig(target_address=os.environ["TARGET_ADDRESS"], poll_interval_seconds=15),
        event_bus=bus,
    )

    consumer = asyncio.create_task(consume(queue))
    await monitor.start()
    try:
        await asyncio.sleep(120)
    finally:
        monitor.stop()
        await monitor.wait_idle()
        consumer.cancel()


if __name__ == "__main__":
    asyncio.run(main())
