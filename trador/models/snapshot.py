"""Market snapshot data model."""

from typing import Optional
from pydantic import BaseModel, Field


class TxnCounts(BaseModel):
    """Buy/sell transaction counts over a window."""

    buys: int = Field(default=0, ge=0, description="Number of buy transactions")
    sells: int = Field(default=0, ge=0, description="Number of sell transactions")

    model_config = {"frozen": True}

    @property
    def total(self) -> int:
        return self.buys + self.sells


class TokenSnapshot(BaseModel):
    """Point-in-time read of an asset's market metrics."""

    name: str = Field(default="", description="Token name")
    symbol: str = Field(..., min_length=1, description="Token symbol")
    address: str = Field(..., min_length=1, description="Token mint address")
    price: float = Field(..., ge=0, description="Price in the funding currency")
    price_usd: float = Field(default=0.0, ge=0, description="Price in USD")
    fdv: float = Field(default=0.0, ge=0, description="Fully diluted valuation")
    valuation: float = Field(default=0.0, ge=0, description="Market capitalization")
    liquidity: float = Field(default=0.0, ge=0, description="Pool liquidity in USD")
    volume_24h: float = Field(default=0.0, ge=0, description="24h volume in USD")
    price_change_24h: float = Field(default=0.0, description="24h price change %")
    price_change_1h: Optional[float] = Field(default=None, description="1h price change %")
    age_hours: Optional[float] = Field(default=None, ge=0, description="Pair age in hours")
    txns_24h: TxnCounts = Field(default_factory=TxnCounts, description="24h transaction counts")

    model_config = {"frozen": True}
