"""Trade data model."""

from datetime import datetime
from typing import Literal, Optional
from pydantic import BaseModel, Field

TradeKind = Literal["BUY", "SELL", "PARTIAL_SELL"]


class Trade(BaseModel):
    """Represents an executed (or simulated) trade."""

    id: str = Field(..., min_length=1, description="Unique trade identifier")
    kind: TradeKind = Field(..., description="Trade kind")
    symbol: str = Field(..., min_length=1, description="Token symbol")
    address: str = Field(..., min_length=1, description="Token mint address")
    price: float = Field(..., ge=0, description="Execution price")
    valuation: float = Field(default=0.0, ge=0, description="Market cap at execution")
    quantity: float = Field(..., ge=0, description="Units traded")
    notional: float = Field(..., ge=0, description="Value in the funding currency")
    timestamp: datetime = Field(default_factory=datetime.now, description="Execution timestamp")
    pnl: Optional[float] = Field(default=None, description="Realized P&L (sells only)")
    comment: Optional[str] = Field(default=None, description="Trade rationale")
    is_paper: bool = Field(default=True, description="Paper trade flag")

    model_config = {"frozen": True}

    @property
    def is_exit(self) -> bool:
        return self.kind != "BUY"
