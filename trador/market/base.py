"""Market data provider interface."""

from abc import ABC, abstractmethod
from typing import Optional

from trador.models import TokenSnapshot


class MarketDataProvider(ABC):
    """Abstract source of market snapshots."""

    @abstractmethod
    async def fetch_snapshot(self, address: str) -> Optional[TokenSnapshot]:
        """Get the current snapshot for an asset.

        Args:
            address: Token mint address.

        Returns:
            The snapshot, or None if the asset is unknown or the data is
            temporarily unavailable.
        """
        pass

    @abstractmethod
    async def fetch_candidates(self) -> list[TokenSnapshot]:
        """Get trending assets worth considering.

        Returns:
            Pre-filtered snapshots. Order is significant: earlier entries
            win score ties.
        """
        pass

    async def aclose(self) -> None:
        """Release network resources held by the provider."""
