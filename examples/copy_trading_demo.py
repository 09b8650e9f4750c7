"""
Copy Trading Demo

Runs copy trading in dry-run mode: opens and closes of the target account
are sized, guarded and logged, but no order is sent.

    TARGET_ADDRESS=0x... python examples/copy_trading_demo.py
"""

import asyncio
import logging
import os
from decimal import Decimal

from polycopy import AppConfig, CopyTradingConfig, CopyTradingMonitor, MonitorConfig, TradeExecuted, TradeFailed
from polycopy.utils.console import console, render_stats

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)


async def main() -> None:
    config = AppConfig(
        monitor=MonitorConfig(target_address=os.environ["TARGET_ADDRESS"], poll_interval_seconds=30),
        copy_trading=CopyTradingConfig(
            enabled=True,
            dry_run=True,
            position_size_multiplier=Decimal("0.1"),  # copy 10% of the target's size
            max_trade_size=Decimal("25"),
            min_trade_size=Decimal("1"),
        ),
    )

    copier = CopyTradingMonitor.from_config(config)
    copier.event_bus.subscribe(TradeExecuted, lambda e: print(f"executed: {e.result!r}"))
    copier.event_bus.subscribe(TradeFailed, lambda e: print(f"failed: {e.error}"))

    await copier.start()
    try:
        await asyncio.sleep(300)
    finally:
        copier.stop()
        await copier.wait_idle()
        console.print(render_stats(copier.get_stats(), mirrored=len(copier.mirrored)))


if __name__ == "__main__":
    asyncio.run(main())
