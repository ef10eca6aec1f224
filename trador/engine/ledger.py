"""Portfolio ledger: pure state transitions and the single state holder.

Every transition is a pure function of ``(previous state, event)`` and
never awaits. The ``Ledger`` holder swaps its reference synchronously and
persists immediately, so any coroutine that reads ``ledger.state`` after
an await sees the latest portfolio.
"""

import logging
import uuid
from datetime import datetime
from typing import Callable, Optional

from trador.models import (
    LedgerState,
    MonitoredAsset,
    PricePoint,
    Position,
    TokenSnapshot,
    Trade,
    TradeKind,
)

logger = logging.getLogger(__name__)

DEFAULT_STARTING_BALANCE = 10.0
DEFAULT_TRADE_HISTORY_LIMIT = 100


def default_state(starting_balance: float = DEFAULT_STARTING_BALANCE) -> LedgerState:
    """Get a fresh ledger with no positions, trades or monitored assets."""
    return LedgerState(balance=starting_balance)


def build_trade(
    state: LedgerState,
    kind: TradeKind,
    snapshot: TokenSnapshot,
    quantity: float,
    notional: float,
    comment: Optional[str] = None,
    is_paper: bool = True,
) -> Trade:
    """Build a trade record against the given ledger state.

    Realized P&L for exits is ``notional - quantity * avg_entry`` using the
    cost basis in ``state``. When no cost basis exists the execution price
    is used, which books zero P&L.

    Raises:
        ValueError: If quantity or notional is negative.
    """
    if quantity < 0:
        raise ValueError(f"Trade quantity must be >= 0, got {quantity}")
    if notional < 0:
        raise ValueError(f"Trade notional must be >= 0, got {notional}")

    pnl = None
    if kind != "BUY":
        average_entry = state.position(snapshot.address).average_entry_price or snapshot.price
        pnl = notional - quantity * average_entry

    return Trade(
        id=uuid.uuid4().hex[:12],
        kind=kind,
        symbol=snapshot.symbol,
        address=snapshot.address,
        price=snapshot.price,
        valuation=snapshot.valuation,
        quantity=quantity,
        notional=notional,
        timestamp=datetime.now(),
        pnl=pnl,
        comment=comment,
        is_paper=is_paper,
    )


def apply_trade(
    state: LedgerState,
    trade: Trade,
    history_limit: int = DEFAULT_TRADE_HISTORY_LIMIT,
) -> LedgerState:
    """Apply a trade to the ledger.

    Args:
        state: Current ledger state.
        trade: Trade to apply.
        history_limit: Number of trades retained.

    Returns:
        The next ledger state.
    """
    current = state.position(trade.address)

    if trade.kind == "BUY":
        total_qty = current.quantity + trade.quantity
        if total_qty > 0:
            avg_price = (
                current.quantity * current.average_entry_price + trade.quantity * trade.price
            ) / total_qty
            avg_valuation = (
                current.quantity * current.average_entry_valuation
                + trade.quantity * trade.valuation
            ) / total_qty
        else:
            avg_price = 0.0
            avg_valuation = 0.0
        position = Position(
            address=trade.address,
            quantity=total_qty,
            average_entry_price=avg_price,
            average_entry_valuation=avg_valuation,
        )
        balance = state.balance - trade.notional
    else:
        remaining = max(0.0, current.quantity - trade.quantity)
        if remaining <= 0:
            # Closing fully clears the cost basis
            position = Position(address=trade.address)
        else:
            position = current.model_copy(update={"quantity": remaining})
        balance = state.balance + trade.notional

    return state.model_copy(
        update={
            "balance": balance,
            "positions": {**state.positions, trade.address: position},
            "trades": [trade, *state.trades][:history_limit],
        }
    )


def seed_monitored(snapshot: TokenSnapshot) -> MonitoredAsset:
    """Create a monitored asset with histories seeded from one snapshot."""
    return MonitoredAsset(
        metadata=snapshot,
        current_price=snapshot.price,
        current_valuation=snapshot.valuation,
        valuation_history=[snapshot.valuation],
        price_history=[PricePoint(time=datetime.now(), price=snapshot.price)],
    )


def add_monitored(state: LedgerState, asset: MonitoredAsset) -> LedgerState:
    """Add an asset to the monitored set. No-op if already monitored."""
    if asset.address in state.monitored:
        return state
    return state.model_copy(update={"monitored": {**state.monitored, asset.address: asset}})


def remove_monitored(state: LedgerState, address: str) -> LedgerState:
    """Remove an asset from the monitored set. No-op if absent."""
    if address not in state.monitored:
        return state
    monitored = {k: v for k, v in state.monitored.items() if k != address}
    return state.model_copy(update={"monitored": monitored})


def update_monitored(state: LedgerState, address: str, **changes) -> LedgerState:
    """Update fields of a monitored asset. No-op if it was removed meanwhile."""
    asset = state.monitored.get(address)
    if asset is None:
        return state
    updated = asset.model_copy(update=changes)
    return state.model_copy(update={"monitored": {**state.monitored, address: updated}})


class Ledger:
    """Owner of the current ``LedgerState``.

    Components hold a reference to the ledger, never to a state value, and
    read ``state`` each time they decide something.
    """

    def __init__(
        self,
        state: Optional[LedgerState] = None,
        store=None,
        starting_balance: float = DEFAULT_STARTING_BALANCE,
        history_limit: int = DEFAULT_TRADE_HISTORY_LIMIT,
    ):
        """Initialize the ledger.

        Args:
            state: Initial state. Loaded from ``store`` when omitted.
            store: Optional DataStore the ledger persists to on every change.
            starting_balance: Balance used for default and reset states.
            history_limit: Number of trades retained.
        """
        self._store = store
        self._starting_balance = starting_balance
        self._history_limit = history_limit
        self._listeners: list[Callable[[LedgerState], None]] = []

        if state is None and store is not None:
            state = store.load_state()
        self._state = state if state is not None else default_state(starting_balance)

    @property
    def state(self) -> LedgerState:
        """The latest ledger state."""
        return self._state

    @property
    def starting_balance(self) -> float:
        return self._starting_balance

    def subscribe(self, listener: Callable[[LedgerState], None]) -> None:
        """Register a callback invoked after every change."""
        self._listeners.append(listener)

    def _commit(self, next_state: LedgerState) -> LedgerState:
        if next_state is self._state:
            return next_state
        if self._store is not None:
            self._store.save_state(next_state)
        self._state = next_state
        for listener in self._listeners:
            listener(next_state)
        return next_state

    def record_trade(
        self,
        kind: TradeKind,
        snapshot: TokenSnapshot,
        quantity: float,
        notional: float,
        comment: Optional[str] = None,
        is_paper: bool = True,
    ) -> Trade:
        """Build a trade from the latest state and apply it in one step."""
        trade = build_trade(self._state, kind, snapshot, quantity, notional, comment, is_paper)
        self._commit(apply_trade(self._state, trade, self._history_limit))
        logger.info(
            "%s %s qty=%.6f notional=%.4f pnl=%s",
            trade.kind, trade.symbol, trade.quantity, trade.notional,
            f"{trade.pnl:.4f}" if trade.pnl is not None else "-",
        )
        return trade

    def add_asset(self, asset: MonitoredAsset) -> bool:
        """Add an asset to the monitored set.

        Returns:
            True if the asset was added, False if it was already monitored.
        """
        before = self._state
        return self._commit(add_monitored(before, asset)) is not before

    def remove_asset(self, address: str) -> bool:
        """Remove an asset from the monitored set.

        Returns:
            True if the asset was removed.
        """
        before = self._state
        return self._commit(remove_monitored(before, address)) is not before

    def update_asset(self, address: str, **changes) -> None:
        self._commit(update_monitored(self._state, address, **changes))

    def reset(self) -> LedgerState:
        """Reset to the default state and persist it."""
        logger.info("Ledger reset to %.4f", self._starting_balance)
        return self._commit(default_state(self._starting_balance))
