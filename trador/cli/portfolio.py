"""Portfolio commands for Trador CLI.

Handles balance, positions, monitored tokens and trade history display,
and resetting the ledger.
"""

from typing import Optional

import click
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from trador.cli.context import ensure_idle, get_config, get_data_store, get_ledger, run_lock
from trador.engine.strategy import has_scaled, position_phase
from trador.models import LedgerState, Trade

console = Console()


def calculate_pnl_from_trades(trades: list[Trade]) -> dict:
    """Calculate P&L metrics from a list of trades.

    Args:
        trades: List of Trade objects.

    Returns:
        Dictionary with P&L metrics.
    """
    if not trades:
        return {
            "realized_pnl": 0.0,
            "total_trades": 0,
            "winning_trades": 0,
            "losing_trades": 0,
            "win_rate": 0.0,
            "avg_win": 0.0,
            "avg_loss": 0.0,
        }

    realized_pnl = 0.0
    winning_trades = 0
    losing_trades = 0
    total_wins = 0.0
    total_losses = 0.0

    for trade in trades:
        if trade.pnl is not None:
            realized_pnl += trade.pnl
            if trade.pnl > 0:
                winning_trades += 1
                total_wins += trade.pnl
            elif trade.pnl < 0:
                losing_trades += 1
                total_losses += abs(trade.pnl)

    trades_with_pnl = winning_trades + losing_trades

    return {
        "realized_pnl": realized_pnl,
        "total_trades": len(trades),
        "winning_trades": winning_trades,
        "losing_trades": losing_trades,
        "win_rate": (winning_trades / trades_with_pnl * 100) if trades_with_pnl > 0 else 0.0,
        "avg_win": (total_wins / winning_trades) if winning_trades > 0 else 0.0,
        "avg_loss": (total_losses / losing_trades) if losing_trades > 0 else 0.0,
    }


def format_valuation(value: float) -> str:
    """Format a market cap compactly ($1.23M, $4.56K, $789)."""
    if value >= 1_000_000:
        return f"${value / 1_000_000:.2f}M"
    if value >= 1_000:
        return f"${value / 1_000:.2f}K"
    return f"${value:.0f}"


def _signed(value: float, fmt: str = ".4f", suffix: str = "") -> str:
    color = "green" if value >= 0 else "red"
    sign = "+" if value >= 0 else ""
    return f"[{color}]{sign}{value:{fmt}}{suffix}[/{color}]"


def render_positions(state: LedgerState) -> Table:
    """Build the open positions table."""
    table = Table(title="Open Positions", show_header=True, header_style="bold")
    table.add_column("Token", style="bold")
    table.add_column("Qty", justify="right")
    table.add_column("Avg Entry", justify="right")
    table.add_column("Entry MCAP", justify="right")
    table.add_column("Price", justify="right")
    table.add_column("P&L %", justify="right")
    table.add_column("Phase", justify="center")

    for position in state.open_positions:
        asset = state.monitored.get(position.address)
        symbol = asset.symbol if asset else position.address[:4].upper()
        current = asset.current_price if asset else 0.0
        pnl_pct = position.profit_percent(current) if current > 0 else 0.0
        phase = position_phase(position, has_scaled(state.trades, position.address))
        table.add_row(
            symbol,
            f"{position.quantity:,.2f}",
            f"{position.average_entry_price:.8f}",
            format_valuation(position.average_entry_valuation),
            f"{current:.8f}" if current else "-",
            _signed(pnl_pct, ".1f", "%"),
            phase.value,
        )
    return table


def render_monitored(state: LedgerState) -> Table:
    """Build the monitored tokens table."""
    table = Table(title="Monitored Tokens", show_header=True, header_style="bold")
    table.add_column("Token", style="bold")
    table.add_column("Address", style="dim")
    table.add_column("MCAP", justify="right")
    table.add_column("24h", justify="right")
    table.add_column("Buys/Sells", justify="right")
    table.add_column("Sentiment", justify="center")
    table.add_column("Commentary")

    colors = {"BULLISH": "green", "BEARISH": "red", "NEUTRAL": "yellow"}
    for asset in state.monitored.values():
        txns = asset.metadata.txns_24h
        color = colors[asset.sentiment]
        table.add_row(
            asset.symbol,
            f"{asset.address[:6]}...{asset.address[-4:]}",
            format_valuation(asset.current_valuation),
            _signed(asset.metadata.price_change_24h, ".2f", "%"),
            f"{txns.buys}/{txns.sells}",
            f"[{color}]{asset.sentiment}[/{color}]",
            asset.message,
        )
    return table


def render_trades(trades: list[Trade], limit: int) -> Table:
    """Build the trade history table."""
    table = Table(title="Trade History", show_header=True, header_style="bold")
    table.add_column("Time")
    table.add_column("Type", justify="center")
    table.add_column("Token", style="bold")
    table.add_column("Qty", justify="right")
    table.add_column("SOL", justify="right")
    table.add_column("MCAP", justify="right")
    table.add_column("P&L", justify="right")
    table.add_column("Note")

    kind_colors = {"BUY": "green", "SELL": "red", "PARTIAL_SELL": "yellow"}
    for trade in trades[:limit]:
        color = kind_colors[trade.kind]
        table.add_row(
            trade.timestamp.strftime("%m-%d %H:%M:%S"),
            f"[{color}]{trade.kind}[/{color}]",
            trade.symbol,
            f"{trade.quantity:,.2f}",
            f"{trade.notional:.4f}",
            format_valuation(trade.valuation),
            _signed(trade.pnl) if trade.pnl is not None else "-",
            trade.comment or "",
        )
    return table


def render_summary(
    state: LedgerState,
    starting_balance: float,
    mode: str,
    wallet_balance: Optional[float] = None,
) -> Panel:
    """Build the account summary panel.

    The wallet line is shown in live mode, where the ledger balance only
    tracks paper accounting.
    """
    metrics = calculate_pnl_from_trades(state.trades)
    mode_color = "green" if mode == "paper" else "red"
    wallet = f"Wallet:          {wallet_balance:,.4f} SOL\n" if wallet_balance is not None else ""
    summary = (
        f"Mode:            [{mode_color}]{mode.upper()}[/{mode_color}]\n"
        f"Status:          {state.status}\n"
        f"Balance:         {state.balance:,.4f} SOL\n"
        f"Starting:        {starting_balance:,.4f} SOL\n"
        f"{wallet}"
        f"{'─' * 35}\n"
        f"Realized P&L:    {_signed(metrics['realized_pnl'])} SOL\n"
        f"Win Rate:        {metrics['win_rate']:.1f}% "
        f"({metrics['winning_trades']}W / {metrics['losing_trades']}L)"
    )
    return Panel(summary, title="[bold]Account[/bold]", border_style="cyan")


@click.command()
def status() -> None:
    """View balance, open positions and monitored tokens.

    \b
    Examples:
      trador status
    """
    config = get_config()
    state = get_ledger(config).state

    console.print(render_summary(state, config.trading.starting_balance, config.trading.mode))

    if state.open_positions:
        console.print(render_positions(state))
    else:
        console.print("\n[dim]No open positions.[/dim]")

    if state.monitored:
        console.print(render_monitored(state))
    else:
        console.print("[dim]No monitored tokens. Run [cyan]trador run[/cyan] or [cyan]trador watch ADDRESS[/cyan].[/dim]")


@click.command()
@click.option(
    "-n", "--limit",
    type=int,
    default=20,
    show_default=True,
    help="Number of trades to show.",
)
def trades(limit: int) -> None:
    """View trade history, most recent first.

    \b
    Examples:
      trador trades
      trador trades -n 50
    """
    config = get_config()
    state = get_ledger(config).state

    if not state.trades:
        console.print("[dim]No trades yet.[/dim]")
        return

    console.print(render_trades(state.trades, limit))
    metrics = calculate_pnl_from_trades(state.trades)
    console.print(f"\nTotal Realized P&L: {_signed(metrics['realized_pnl'])} SOL")


@click.command()
@click.option(
    "--confirm",
    is_flag=True,
    help="Skip confirmation prompt.",
)
def reset(confirm: bool) -> None:
    """Reset the ledger to its initial state.

    Resets the balance to the configured starting amount, clears trade
    history, closes all positions and stops monitoring every token.

    \b
    Examples:
      trador reset           # Reset with confirmation
      trador reset --confirm # Reset without confirmation
    """
    config = get_config()
    store = get_data_store()
    ensure_idle(store)
    ledger = get_ledger(config, store)
    state = ledger.state

    console.print("[bold cyan]System Reset[/bold cyan]\n")
    console.print(f"Current Balance:  [yellow]{state.balance:,.4f} SOL[/yellow]")
    console.print(f"Open Positions:   [yellow]{len(state.open_positions)}[/yellow]")
    console.print(f"Trades:           [yellow]{len(state.trades)}[/yellow]")
    console.print(f"Starting Balance: [green]{ledger.starting_balance:,.4f} SOL[/green]\n")

    if not confirm:
        if not click.confirm("Are you sure you want to reset?"):
            console.print("[dim]Reset cancelled.[/dim]")
            return

    with run_lock(store):
        ledger.reset()

    console.print(Panel(
        f"[green]Ledger has been reset![/green]\n\n"
        f"Balance: {ledger.starting_balance:,.4f} SOL\n"
        f"Positions: 0",
        title="[bold green]Reset Complete[/bold green]",
        border_style="green",
    ))
