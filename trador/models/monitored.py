"""Monitored asset data model."""

from datetime import datetime
from typing import Literal
from pydantic import BaseModel, Field

from trador.models.snapshot import TokenSnapshot

Sentiment = Literal["BULLISH", "NEUTRAL", "BEARISH"]


class PricePoint(BaseModel):
    """A timestamped price sample for display."""

    time: datetime = Field(..., description="Sample timestamp")
    price: float = Field(..., ge=0, description="Price at sample time")

    model_config = {"frozen": True}


class MonitoredAsset(BaseModel):
    """An asset under active strategy evaluation."""

    metadata: TokenSnapshot = Field(..., description="Latest market snapshot")
    current_price: float = Field(..., ge=0, description="Latest price")
    current_valuation: float = Field(..., ge=0, description="Latest market cap")
    valuation_history: list[float] = Field(
        default_factory=list, description="Rolling market cap samples, oldest first"
    )
    price_history: list[PricePoint] = Field(
        default_factory=list, description="Rolling price samples for charts"
    )
    message: str = Field(default="Initiating tactical monitoring...", description="Latest commentary")
    sentiment: Sentiment = Field(default="NEUTRAL", description="Latest sentiment")

    model_config = {"frozen": True}

    @property
    def address(self) -> str:
        return self.metadata.address

    @property
    def symbol(self) -> str:
        return self.metadata.symbol
