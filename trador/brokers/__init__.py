"""Settlement implementations for Trador."""

from trador.brokers.base import BaseSettlement, SettlementResult, WalletSigner
from trador.brokers.jupiter import JupiterSettlement

__all__ = ["BaseSettlement", "SettlementResult", "WalletSigner", "JupiterSettlement"]
