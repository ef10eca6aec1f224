"""Base settlement and wallet interfaces for Trador."""

from abc import ABC, abstractmethod
from typing import Literal, Optional

from pydantic import BaseModel, Field

Direction = Literal["BUY", "SELL"]


class SettlementResult(BaseModel):
    """Represents the outcome of a settlement attempt."""

    status: Literal["CONFIRMED", "FAILED", "UNCONFIRMED"] = Field(..., description="Settlement status")
    signature: Optional[str] = Field(default=None, description="Transaction reference")
    message: str = Field(default="", description="Status message")

    model_config = {"frozen": True}

    @property
    def ok(self) -> bool:
        return self.status == "CONFIRMED"

    @classmethod
    def failed(cls, message: str) -> "SettlementResult":
        return cls(status="FAILED", message=message)


class BaseSettlement(ABC):
    """Abstract base class for real trade execution.

    Implementations report failures through ``SettlementResult`` instead
    of raising. Callers still guard against unexpected exceptions.
    """

    @abstractmethod
    async def get_balance(self) -> float:
        """Get the wallet's funding currency balance.

        Returns:
            Spendable balance in the funding currency.
        """
        pass

    @abstractmethod
    async def execute(self, direction: Direction, address: str, amount: float) -> SettlementResult:
        """Execute a swap.

        Args:
            direction: BUY spends ``amount`` of the funding currency on the
                asset, SELL sells ``amount`` units of the asset.
            address: Asset mint address.
            amount: Funding notional for BUY, asset quantity for SELL.

        Returns:
            SettlementResult with the transaction reference on success.
        """
        pass

    async def aclose(self) -> None:
        """Release network resources held by the settlement."""


class WalletSigner(ABC):
    """Abstract wallet used by on-chain settlement.

    Connecting the wallet and holding keys is the integrator's concern;
    Trador only needs these operations.
    """

    @property
    @abstractmethod
    def public_key(self) -> str:
        """Base58 public key of the wallet."""
        pass

    @abstractmethod
    async def get_balance(self) -> float:
        """Get the native balance in whole units."""
        pass

    @abstractmethod
    async def get_token_decimals(self, mint: str) -> Optional[int]:
        """Get the decimals of a token mint, None when unknown."""
        pass

    @abstractmethod
    async def send_transaction(self, transaction_b64: str) -> str:
        """Sign and submit a serialized transaction.

        Returns:
            The transaction signature.
        """
        pass

    @abstractmethod
    async def confirm_transaction(self, signature: str) -> bool:
        """Wait until the transaction is confirmed.

        Returns:
            True once confirmed, False if it failed on chain.
        """
        pass
