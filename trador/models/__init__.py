"""Data models for Trador."""

from trador.models.snapshot import TokenSnapshot, TxnCounts
from trador.models.position import Position
from trador.models.trade import Trade, TradeKind
from trador.models.monitored import MonitoredAsset, PricePoint, Sentiment
from trador.models.ledger import LedgerState

__all__ = [
    "TokenSnapshot",
    "TxnCounts",
    "Position",
    "Trade",
    "TradeKind",
    "MonitoredAsset",
    "PricePoint",
    "Sentiment",
    "LedgerState",
]
