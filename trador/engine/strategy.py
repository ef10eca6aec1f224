"""Per-asset position strategy.

Each asset moves through three phases::

    FLAT --BUY--> OPEN --PARTIAL_SELL--> SCALED
      ^             |                      |
      +----SELL-----+----------SELL--------+

The evaluator is a pure function of the position, the latest price, the
rolling valuation history and the asset's trade history. It never reads
the ledger itself; the scheduler passes in values read at decision time.
"""

from enum import Enum
from typing import Literal, Optional

from pydantic import BaseModel, Field

from trador.config import StrategyConfig
from trador.models import Position, Trade


class PositionPhase(str, Enum):
    FLAT = "FLAT"
    OPEN = "OPEN"
    SCALED = "SCALED"


class Decision(BaseModel):
    """Outcome of evaluating one asset for one cycle."""

    action: Literal["HOLD", "BUY", "PARTIAL_SELL", "SELL"] = Field(..., description="Action to take")
    quantity: float = Field(default=0.0, ge=0, description="Units to trade")
    notional: float = Field(default=0.0, ge=0, description="Value in the funding currency")
    reason: str = Field(default="", description="Human readable rationale")

    model_config = {"frozen": True}

    @property
    def is_trade(self) -> bool:
        return self.action != "HOLD"


HOLD = Decision(action="HOLD")


def short_term_delta(valuation_history: list[float]) -> float:
    """Percent change of the latest valuation against the sample two steps
    before it.

    Returns 0 until the history holds more than three samples, or when
    the reference sample is not positive.
    """
    if len(valuation_history) <= 3:
        return 0.0
    reference = valuation_history[-3]
    if reference <= 0:
        return 0.0
    return (valuation_history[-1] - reference) / reference * 100


def has_scaled(trades: list[Trade], address: str) -> bool:
    """Check whether the current position on ``address`` was already scaled.

    Scans the most-recent-first trade history for a PARTIAL_SELL on the
    asset, stopping at its last full SELL since that closed the previous
    position.
    """
    for trade in trades:
        if trade.address != address:
            continue
        if trade.kind == "SELL":
            return False
        if trade.kind == "PARTIAL_SELL":
            return True
    return False


def position_phase(position: Position, scaled: bool) -> PositionPhase:
    if not position.is_open:
        return PositionPhase.FLAT
    return PositionPhase.SCALED if scaled else PositionPhase.OPEN


def entry_size(available_capital: float, position_cap: float, min_trade_size: float) -> float:
    """Notional for a new entry, 0 when it would be a dust trade."""
    size = min(available_capital, position_cap)
    return size if size > min_trade_size else 0.0


def evaluate(
    position: Position,
    current_price: float,
    valuation_history: list[float],
    trades: list[Trade],
    available_capital: float,
    position_cap: float,
    min_trade_size: float,
    autonomous: bool = True,
    config: Optional[StrategyConfig] = None,
) -> Decision:
    """Decide what to do with one asset this cycle.

    Args:
        position: Current position in the asset.
        current_price: Latest price in the funding currency.
        valuation_history: Rolling valuation samples including the latest.
        trades: Ledger trade history, most recent first.
        available_capital: Capital that may fund a new entry.
        position_cap: Maximum notional for a single position.
        min_trade_size: Entries below this notional are skipped.
        autonomous: Whether autonomous trading is enabled.
        config: Strategy thresholds.

    Returns:
        The decision. At most one action fires per cycle.
    """
    cfg = config or StrategyConfig()
    if not autonomous:
        return HOLD

    delta = short_term_delta(valuation_history)

    if not position.is_open:
        if delta <= cfg.entry_delta_pct or current_price <= 0:
            return HOLD
        notional = entry_size(available_capital, position_cap, min_trade_size)
        if notional <= 0:
            return HOLD
        return Decision(
            action="BUY",
            quantity=notional / current_price,
            notional=notional,
            reason="Momentum ignition detected.",
        )

    profit = position.profit_percent(current_price)
    scaled = has_scaled(trades, position.address)
    held = position.quantity

    if profit >= cfg.first_target_pct and not scaled:
        quantity = held * cfg.scale_out_fraction
        return Decision(
            action="PARTIAL_SELL",
            quantity=quantity,
            notional=quantity * current_price,
            reason=f"Target 1 reached. Securing {cfg.scale_out_fraction:.0%}.",
        )
    if profit >= cfg.second_target_pct or (scaled and delta < cfg.reversal_delta_pct):
        return Decision(
            action="SELL",
            quantity=held,
            notional=held * current_price,
            reason="Trend exhausted. Full exit.",
        )
    if profit <= cfg.stop_loss_pct:
        return Decision(
            action="SELL",
            quantity=held,
            notional=held * current_price,
            reason=f"Stop loss hit ({cfg.stop_loss_pct:.0f}%). Preserving capital.",
        )
    return HOLD
