"""Monitored set commands for Trador CLI.

Handles manually adding and removing tokens and scanning for
candidates.
"""

import asyncio

import click
from rich.console import Console
from rich.table import Table

from trador.cli.context import get_config, get_data_store, get_ledger, run_lock
from trador.cli.portfolio import format_valuation

console = Console()


def _get_engine(config, store):
    from trador.engine.recorder import TradeRecorder
    from trador.engine.scheduler import TradingEngine
    from trador.market.dexscreener import DexScreenerProvider

    messages: list[str] = []
    ledger = get_ledger(config, store)
    engine = TradingEngine(
        ledger=ledger,
        recorder=TradeRecorder(ledger),
        market=DexScreenerProvider(config.market),
        config=config,
        on_message=messages.append,
    )
    return engine, messages


@click.command()
@click.argument("address")
def watch(address: str) -> None:
    """Start monitoring a token by its mint address.

    \b
    Examples:
      trador watch <ADDRESS>
    """
    config = get_config()

    with run_lock(get_data_store()) as store:
        engine, messages = _get_engine(config, store)

        async def deploy():
            try:
                return await engine.deploy_asset(address)
            finally:
                await engine.aclose()

        asset = asyncio.run(deploy())

    if asset is None:
        for message in messages:
            console.print(f"[red]{message}[/red]")
        raise SystemExit(1)

    console.print(
        f"[green]Monitoring {asset.symbol}[/green] "
        f"(price {asset.current_price:.8f} SOL, MCAP {format_valuation(asset.current_valuation)})"
    )


@click.command()
@click.argument("address")
def unwatch(address: str) -> None:
    """Stop monitoring a token. Open positions are kept.

    \b
    Examples:
      trador unwatch <ADDRESS>
    """
    config = get_config()

    with run_lock(get_data_store()) as store:
        removed = get_ledger(config, store).remove_asset(address.strip())

    if removed:
        console.print(f"[green]Stopped monitoring {address}[/green]")
    else:
        console.print(f"[yellow]{address} is not monitored[/yellow]")


@click.command()
@click.option(
    "-n", "--limit",
    type=int,
    default=10,
    show_default=True,
    help="Number of candidates to show.",
)
def scan(limit: int) -> None:
    """Scan trending tokens and show how the agent scores them.

    \b
    Examples:
      trador scan
      trador scan -n 20
    """
    from trador.engine.scorer import MIN_ACCEPT_SCORE, rank_candidates
    from trador.market.dexscreener import DexScreenerProvider

    config = get_config()
    monitored = get_ledger(config).state.monitored

    async def fetch():
        market = DexScreenerProvider(config.market)
        try:
            return await market.fetch_candidates()
        finally:
            await market.aclose()

    with console.status("[bold green]Scanning markets..."):
        candidates = asyncio.run(fetch())

    available = [c for c in candidates if c.address not in monitored]
    if not available:
        console.print("[dim]No new candidates found.[/dim]")
        return

    table = Table(title="Trending Candidates", show_header=True, header_style="bold cyan")
    table.add_column("#", justify="right", style="dim")
    table.add_column("Token", style="bold")
    table.add_column("Address", style="dim")
    table.add_column("1h %", justify="right")
    table.add_column("Buys/Sells", justify="right")
    table.add_column("Age", justify="right")
    table.add_column("MCAP", justify="right")
    table.add_column("Score", justify="right")

    for rank, scored in enumerate(rank_candidates(available)[:limit], start=1):
        snap = scored.snapshot
        change = snap.price_change_1h or 0.0
        change_color = "green" if change >= 0 else "red"
        score_color = "green" if scored.score > MIN_ACCEPT_SCORE else "red"
        table.add_row(
            str(rank),
            snap.symbol,
            snap.address,
            f"[{change_color}]{change:+.2f}%[/{change_color}]",
            f"{snap.txns_24h.buys}/{snap.txns_24h.sells}",
            f"{snap.age_hours:.1f}h" if snap.age_hours is not None else "-",
            format_valuation(snap.valuation),
            f"[{score_color}]{scored.score}[/{score_color}]",
        )

    console.print(table)
