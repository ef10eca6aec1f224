"""Position data model."""

from pydantic import BaseModel, Field


class Position(BaseModel):
    """Holdings and cost basis for one asset."""

    address: str = Field(..., min_length=1, description="Token mint address")
    quantity: float = Field(default=0.0, ge=0, description="Units held")
    average_entry_price: float = Field(default=0.0, ge=0, description="Weighted average entry price")
    average_entry_valuation: float = Field(
        default=0.0, ge=0, description="Weighted average market cap at entry"
    )

    model_config = {"frozen": True}

    @property
    def is_open(self) -> bool:
        return self.quantity > 0

    def profit_percent(self, current_price: float) -> float:
        """Unrealized profit in percent, 0 when there is no cost basis."""
        if self.average_entry_price <= 0:
            return 0.0
        return (current_price - self.average_entry_price) / self.average_entry_price * 100
