"""Rich renderables for snapshots, trades and copy stats."""

from typing import Iterable

from rich import box
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from polycopy.monitor.snapshot import AccountSnapshot, Trade
from polycopy.trading.stats import CopyTradeStats

console = Console()

MAX_ROWS = 10
QUESTION_WIDTH = 50


def _truncate(text: str, width: int = QUESTION_WIDTH) -> str:
    text = text[:width] + "..." if len(text) > width else text
    return escape(text)


def render_snapshot(snapshot: AccountSnapshot) -> Panel:
    """Top open positions of a snapshot."""
    table = Table(
        show_header=True,
        header_style="bold cyan",
        border_style="cyan",
        box=box.ROUNDED,
        expand=True,
    )
    table.add_column("Outcome", justify="center")
    table.add_column("Shares", justify="right")
    table.add_column("Price", justify="right")
    table.add_column("Value", justify="right")
    table.add_column("Market", style="white")

    positions = snapshot.open_positions
    for position in positions[:MAX_ROWS]:
        # Resolved or illiquid positions report 0; show what was paid instead
        if position.value == 0 and position.initial_value:
            value = f"[dim]$0.00 (initial ${position.initial_value:.2f})[/dim]"
        else:
            value = f"${position.value:.2f}"
        side_style = "green" if position.outcome.lower() == "yes" else "red"
        table.add_row(
            f"[{side_style}]{position.outcome or '?'}[/{side_style}]",
            f"{position.quantity}",
            f"${position.price:.4f}",
            value,
            _truncate(position.market.question),
        )

    if not positions:
        table.add_row("[dim]No open positions[/dim]", "", "", "", "")
    elif len(positions) > MAX_ROWS:
        table.add_row(f"[dim]... and {len(positions) - MAX_ROWS} more[/dim]", "", "", "", "")

    return Panel(
        table,
        title=f"[bold cyan]OPEN POSITIONS ({len(positions)})[/bold cyan]",
        subtitle=f"Total value: ${snapshot.total_value:.2f} | {snapshot.address}",
        border_style="cyan",
    )


def render_trades(trades: Iterable[Trade]) -> Table:
    table = Table(title="Recent Trades", box=box.ROUNDED, header_style="bold cyan")
    table.add_column("Time")
    table.add_column("Side", justify="center")
    table.add_column("Outcome", justify="center")
    table.add_column("Shares", justify="right")
    table.add_column("Price", justify="right")
    table.add_column("Market")

    for trade in trades:
        side_style = "green" if trade.side == "buy" else "red"
        table.add_row(
            trade.timestamp.strftime("%Y-%m-%d %H:%M:%S"),
            f"[{side_style}]{trade.side.upper()}[/{side_style}]",
            trade.outcome or "?",
            f"{trade.quantity}",
            f"${trade.price:.4f}",
            _truncate(trade.market.question),
        )
    return table


def render_stats(stats: CopyTradeStats, mirrored: int = 0) -> Panel:
    table = Table.grid(padding=(0, 2))
    table.add_column(style="bold")
    table.add_column(justify="right")
    table.add_row("Mode", "disabled" if not stats.enabled else ("DRY-RUN" if stats.dry_run else "LIVE"))
    table.add_row("Trades executed", f"[green]{stats.total_trades_executed}[/green]")
    table.add_row("Trades failed", f"[red]{stats.total_trades_failed}[/red]")
    table.add_row("Total volume", f"${stats.total_volume}")
    table.add_row("Mirrored positions", str(mirrored))
    last = stats.last_trade_time.strftime("%Y-%m-%d %H:%M:%S") if stats.last_trade_time else "-"
    table.add_row("Last trade", last)
    return Panel(table, title="[bold yellow]COPY TRADING STATS[/bold yellow]", border_style="yellow")
