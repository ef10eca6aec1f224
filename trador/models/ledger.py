"""Ledger aggregate data model."""

from typing import Literal
from pydantic import BaseModel, Field

from trador.models.monitored import MonitoredAsset
from trador.models.position import Position
from trador.models.trade import Trade


class LedgerState(BaseModel):
    """Immutable snapshot of the whole portfolio.

    Every change produces a new instance; see ``trador.engine.ledger``
    for the transition functions.
    """

    balance: float = Field(..., description="Funding currency balance")
    positions: dict[str, Position] = Field(default_factory=dict, description="Positions by address")
    trades: list[Trade] = Field(default_factory=list, description="Trade history, most recent first")
    monitored: dict[str, MonitoredAsset] = Field(
        default_factory=dict, description="Monitored assets by address"
    )

    model_config = {"frozen": True}

    @property
    def status(self) -> Literal["IDLE", "TRADING"]:
        return "TRADING" if self.monitored else "IDLE"

    def position(self, address: str) -> Position:
        """Get the position for an address, empty when none exists."""
        return self.positions.get(address) or Position(address=address)

    def trades_for(self, address: str) -> list[Trade]:
        """Get the trades for one asset, most recent first."""
        return [t for t in self.trades if t.address == address]

    @property
    def open_positions(self) -> list[Position]:
        return [p for p in self.positions.values() if p.is_open]
