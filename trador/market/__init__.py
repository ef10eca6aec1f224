"""Market data providers for Trador."""

from trador.market.base import MarketDataProvider
from trador.market.dexscreener import DexScreenerProvider, parse_pair

__all__ = ["MarketDataProvider", "DexScreenerProvider", "parse_pair"]
