"""
polycopy command line.

Usage:
    polycopy monitor --address 0x...
    polycopy copy --dry-run
    polycopy positions --address 0x...
    polycopy trades --address 0x... --limit 20

Configuration comes from the environment / .env (see polycopy.config);
command line options override it.
"""

import asyncio
import logging
import os
from typing import Optional

import typer
from pydantic import ValidationError
from rich.markup import escape

from polycopy.config import AppConfig
from polycopy.events import EventBus, SnapshotUpdated
from polycopy.polymarket.data_api import DataSourceError, PolymarketDataClient
from polycopy.trading.copy_monitor import CopyTradingMonitor
from polycopy.trading.executor import ExecutorInitializationError
from polycopy.utils.alerts import AlertConfig, AlertService
from polycopy.utils.console import console, render_snapshot, render_stats, render_trades

app = typer.Typer(help="Polymarket account monitor and copy trader")

logger = logging.getLogger("polycopy")


def _setup_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def _load_config(
    address: Optional[str],
    interval: Optional[float],
    enabled: Optional[bool] = None,
    dry_run: Optional[bool] = None,
) -> AppConfig:
    # Options win over .env: load_dotenv never overrides variables already set
    if address:
        os.environ["TARGET_ADDRESS"] = address
    if interval is not None:
        os.environ["POLL_INTERVAL_SECONDS"] = str(interval)
    if enabled is not None:
        os.environ["COPY_TRADING_ENABLED"] = str(enabled).lower()
    if dry_run is not None:
        os.environ["DRY_RUN"] = str(dry_run).lower()

    try:
        return AppConfig.from_env()
    except ValidationError as e:
        console.print(f"[red]Invalid configuration:[/red]\n{escape(str(e))}")
        raise typer.Exit(code=1)


async def _run_until_stopped(copier: CopyTradingMonitor) -> None:
    await copier.start()
    try:
        while copier.is_running:
            await asyncio.sleep(1)
    finally:
        copier.stop()
        await copier.wait_idle()


def _run(config: AppConfig) -> None:
    bus = EventBus()
    bus.subscribe(SnapshotUpdated, lambda event: console.print(render_snapshot(event.snapshot)))
    AlertService(AlertConfig.from_env()).attach(bus)

    copier = CopyTradingMonitor.from_config(config, event_bus=bus)
    try:
        asyncio.run(_run_until_stopped(copier))
    except KeyboardInterrupt:
        logger.info("Interrupted, shutting down")
    except ExecutorInitializationError as e:
        console.print(f"[red]Failed to initialize trading:[/red] {escape(str(e))}")
        raise typer.Exit(code=1)

    if config.copy_trading.enabled:
        console.print(render_stats(copier.get_stats(), mirrored=len(copier.mirrored)))


@app.command()
def monitor(
    address: Optional[str] = typer.Option(None, "--address", "-a", help="Account to watch (TARGET_ADDRESS)"),
    interval: Optional[float] = typer.Option(None, "--interval", "-i", help="Poll interval in seconds"),
    log_level: str = typer.Option("INFO", "--log-level"),
) -> None:
    """
    Watch an account's positions (no trading)
    """
    _setup_logging(log_level)
    _run(_load_config(address, interval, enabled=False))


@app.command()
def copy(
    address: Optional[str] = typer.Option(None, "--address", "-a", help="Account to copy (TARGET_ADDRESS)"),
    interval: Optional[float] = typer.Option(None, "--interval", "-i", help="Poll interval in seconds"),
    dry_run: Optional[bool] = typer.Option(None, "--dry-run/--live", help="Override DRY_RUN"),
    log_level: str = typer.Option("INFO", "--log-level"),
) -> None:
    """
    Mirror an account's opens and closes
    """
    _setup_logging(log_level)
    config = _load_config(address, interval, enabled=True, dry_run=dry_run)
    if not config.copy_trading.dry_run:
        console.print("[bold red]LIVE MODE: real orders will be placed[/bold red]")
    _run(config)


@app.command()
def positions(
    address: Optional[str] = typer.Option(None, "--address", "-a"),
    log_level: str = typer.Option("WARNING", "--log-level"),
) -> None:
    """
    Print an account's current open positions
    """
    _setup_logging(log_level)
    config = _load_config(address, None)
    client = PolymarketDataClient(config.api)
    try:
        snapshot = client.fetch_positions(config.monitor.target_address)
    except DataSourceError as e:
        console.print(f"[red]{escape(str(e))}[/red]")
        raise typer.Exit(code=1)
    console.print(render_snapshot(snapshot))


@app.command()
def trades(
    address: Optional[str] = typer.Option(None, "--address", "-a"),
    limit: int = typer.Option(20, "--limit", "-n"),
    log_level: str = typer.Option("WARNING", "--log-level"),
) -> None:
    """
    Print an account's recent trades
    """
    _setup_logging(log_level)
    config = _load_config(address, None)
    client = PolymarketDataClient(config.api)
    try:
        recent = client.fetch_trades(config.monitor.target_address, limit=limit)
    except DataSourceError as e:
        console.print(f"[red]{escape(str(e))}[/red]")
        raise typer.Exit(code=1)
    console.print(render_trades(recent))


if __name__ == "__main__":
    app()
