"""Shared wiring for CLI commands."""

import importlib
from contextlib import contextmanager

import click

from trador.config import TradorConfig, get_db_path, load_config
from trador.errors import ConfigError


def get_config() -> TradorConfig:
    """Load configuration, turning invalid files into a CLI error."""
    try:
        return load_config()
    except ConfigError as e:
        raise click.ClickException(str(e)) from e


def get_data_store():
    """Get the data store instance."""
    from trador.db.store import DataStore

    return DataStore(get_db_path())


def get_ledger(config: TradorConfig, store=None):
    """Get a ledger loaded from the data store."""
    from trador.engine.ledger import Ledger

    return Ledger(
        store=store if store is not None else get_data_store(),
        starting_balance=config.trading.starting_balance,
        history_limit=config.trading.trade_history_limit,
    )


def load_signer(path: str):
    """Load a wallet signer from a ``module:factory`` path."""
    module_path, _, attr = path.partition(":")
    if not module_path or not attr:
        raise click.ClickException(f"Wallet signer must look like 'module:factory', got {path!r}")
    try:
        factory = getattr(importlib.import_module(module_path), attr)
    except (ImportError, AttributeError) as e:
        raise click.ClickException(f"Could not load wallet signer {path!r}: {e}") from e
    return factory()


def get_settlement(config: TradorConfig):
    """Get Jupiter settlement for live mode."""
    from trador.brokers.jupiter import JupiterSettlement

    if not config.wallet.signer:
        raise click.ClickException(
            "Live mode needs a wallet. Set [wallet] signer = 'module:factory' in config.toml."
        )
    return JupiterSettlement(
        signer=load_signer(config.wallet.signer),
        slippage_bps=config.wallet.slippage_bps,
        confirm_timeout=config.wallet.confirm_timeout,
    )


def ensure_idle(store) -> None:
    """Fail if a running engine holds the store's run lock."""
    pid = store.run_lock_holder()
    if pid is not None:
        raise click.ClickException(
            f"Trador is running (pid {pid}). Stop it before changing the ledger."
        )


@contextmanager
def run_lock(store, ttl=None):
    """Hold the store's run lock, or fail if another process has it.

    Commands that change the ledger run inside this block so they never
    overwrite the state of a running engine.
    """
    from trador.db.store import RUN_LOCK_TTL

    if not store.acquire_run_lock(ttl or RUN_LOCK_TTL):
        ensure_idle(store)
        raise click.ClickException("Another Trador process is changing the ledger. Try again.")
    try:
        yield store
    finally:
        store.release_run_lock()
