"""Engine runner command for Trador CLI."""

import asyncio
from typing import Optional

import click
from rich.console import Console, Group
from rich.live import Live
from rich.panel import Panel

from trador.cli.context import get_config, get_data_store, get_ledger, get_settlement, run_lock
from trador.cli.portfolio import render_monitored, render_positions, render_summary
from trador.db.store import RUN_LOCK_TTL

console = Console()


def build_engine(config, live: bool, on_message, store=None):
    """Wire the ledger, recorder, market data and commentary together."""
    from trador.agents.base import get_api_key
    from trador.agents.commentator import Commentator
    from trador.engine.recorder import TradeRecorder
    from trador.engine.scheduler import TradingEngine
    from trador.market.dexscreener import DexScreenerProvider

    ledger = get_ledger(config, store)
    settlement = get_settlement(config) if live else None
    recorder = TradeRecorder(ledger, settlement=settlement, live=live, on_message=on_message)

    commentator = None
    if config.ai.enabled and get_api_key():
        commentator = Commentator(model=config.ai.model)

    engine = TradingEngine(
        ledger=ledger,
        recorder=recorder,
        market=DexScreenerProvider(config.market),
        config=config,
        commentator=commentator,
        on_message=on_message,
    )
    return engine


@click.command()
@click.option("--live", "live_mode", is_flag=True, help="Settle trades on chain through Jupiter.")
@click.option("--budget", type=float, default=None, help="SOL the agent may allocate across positions.")
@click.option(
    "--autopilot/--no-autopilot",
    default=True,
    show_default=True,
    help="Trade and pick tokens autonomously, or only monitor.",
)
@click.option("-w", "--watch", "watch", multiple=True, help="Token address to monitor from the start.")
def run(live_mode: bool, budget: Optional[float], autopilot: bool, watch: tuple[str, ...]) -> None:
    """Start the trading agent.

    Runs the token scanner and the strategy loop until Ctrl+C. State is
    saved after every change, so the agent resumes where it stopped.

    \b
    Examples:
      trador run                      # Paper trading on autopilot
      trador run --no-autopilot -w <ADDRESS>
      trador run --live --budget 1.0  # Real swaps, 1 SOL budget
    """
    config = get_config()
    updates = {}
    if live_mode:
        updates["mode"] = "live"
    if budget is not None:
        if budget <= 0:
            raise click.BadParameter("Budget must be positive", param_hint="--budget")
        updates["trade_budget"] = budget
    if updates:
        config = config.model_copy(update={"trading": config.trading.model_copy(update=updates)})

    live = config.trading.mode == "live"
    if live:
        console.print(Panel(
            "[bold red]LIVE MODE[/bold red]: swaps are signed and sent on chain.\n"
            f"Budget: {config.trading.budget():.4f} SOL across {config.trading.max_active_tokens} positions",
            border_style="red",
        ))
        if not click.confirm("Start live trading?"):
            return

    store = get_data_store()
    # held for the whole run and refreshed every tick
    lock_ttl = max(RUN_LOCK_TTL, 3 * config.scheduler.refresh_interval)

    def render(engine):
        state = engine.ledger.state
        return Group(
            render_summary(
                state, engine.ledger.starting_balance, config.trading.mode, engine.wallet_balance
            ),
            render_positions(state),
            render_monitored(state),
        )

    async def main(engine) -> None:
        try:
            engine.set_autonomous(autopilot)
            for address in watch:
                await engine.deploy_asset(address)
            await engine.refresh_wallet_balance()

            with Live(render(engine), console=console, refresh_per_second=1) as live_view:

                def on_tick():
                    store.refresh_run_lock(lock_ttl)
                    live_view.update(render(engine))

                await engine.run(on_tick=on_tick)
        finally:
            await engine.aclose()

    with run_lock(store, lock_ttl):
        engine = build_engine(config, live, on_message=lambda message: console.log(message), store=store)
        try:
            asyncio.run(main(engine))
        except KeyboardInterrupt:
            console.print("\n[dim]Agent stopped. State saved.[/dim]")
