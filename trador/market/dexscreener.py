"""DexScreener market data provider."""

import logging
import time
from typing import Any, Optional

import httpx
from pydantic import ValidationError

from trador.config import MarketConfig
from trador.market.base import MarketDataProvider
from trador.models import TokenSnapshot, TxnCounts

logger = logging.getLogger(__name__)

DEXSCREENER_BASE = "https://api.dexscreener.com"

# The tokens endpoint accepts at most this many addresses per request
BATCH_SIZE = 30


def _float(value: Any) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0.0


def parse_pair(pair: dict, now_ms: Optional[float] = None) -> Optional[TokenSnapshot]:
    """Convert a DexScreener pair object to a snapshot.

    Args:
        pair: Pair object from the DexScreener API.
        now_ms: Current time in epoch milliseconds, used for the age.

    Returns:
        The snapshot, or None when required fields are missing.
    """
    base = pair.get("baseToken") or {}
    if not base.get("address") or not base.get("symbol"):
        return None

    txns = (pair.get("txns") or {}).get("h24") or {}
    price_change = pair.get("priceChange") or {}
    fdv = _float(pair.get("fdv"))

    age_hours = None
    created_at = pair.get("pairCreatedAt")
    if created_at:
        now_ms = now_ms if now_ms is not None else time.time() * 1000
        age_hours = max(0.0, (now_ms - _float(created_at)) / 3_600_000)

    change_1h = price_change.get("h1")
    try:
        return TokenSnapshot(
            name=base.get("name") or "",
            symbol=base["symbol"],
            address=base["address"],
            price=_float(pair.get("priceNative")),
            price_usd=_float(pair.get("priceUsd")),
            fdv=fdv,
            valuation=_float(pair.get("marketCap")) or fdv,
            liquidity=_float((pair.get("liquidity") or {}).get("usd")),
            volume_24h=_float((pair.get("volume") or {}).get("h24")),
            price_change_24h=_float(price_change.get("h24")),
            price_change_1h=_float(change_1h) if change_1h is not None else None,
            age_hours=age_hours,
            txns_24h=TxnCounts(buys=int(txns.get("buys") or 0), sells=int(txns.get("sells") or 0)),
        )
    except ValidationError as e:
        logger.debug("Skipping malformed pair for %s: %s", base.get("address"), e)
        return None


class DexScreenerProvider(MarketDataProvider):
    """Market data from the public DexScreener API.

    Trending candidates are the most recently boosted tokens on the
    configured chain, filtered by liquidity, volume, activity and age.
    """

    def __init__(
        self,
        config: Optional[MarketConfig] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        """Initialize the provider.

        Args:
            config: Chain and upstream filter thresholds.
            client: HTTP client. A new one is created when omitted.
        """
        self._config = config or MarketConfig()
        self._client = client or httpx.AsyncClient(base_url=DEXSCREENER_BASE, timeout=self._config.timeout)

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _get_json(self, path: str) -> Any:
        response = await self._client.get(path)
        response.raise_for_status()
        return response.json()

    async def fetch_snapshot(self, address: str) -> Optional[TokenSnapshot]:
        try:
            data = await self._get_json(f"/latest/dex/tokens/{address}")
        except (httpx.HTTPError, ValueError) as e:
            logger.warning("Error fetching token data for %s: %s", address, e)
            return None

        pairs = (data or {}).get("pairs") or []
        if not pairs:
            return None
        return parse_pair(pairs[0])

    def passes_filters(self, snapshot: TokenSnapshot) -> bool:
        """Check a snapshot against the upstream quality thresholds."""
        cfg = self._config
        if snapshot.price <= 0:
            return False
        if snapshot.liquidity < cfg.min_liquidity:
            return False
        if snapshot.volume_24h < cfg.min_volume_24h:
            return False
        if snapshot.txns_24h.total < cfg.min_txns_24h:
            return False
        if snapshot.age_hours is not None and snapshot.age_hours < cfg.min_age_hours:
            return False
        return True

    async def _boosted_addresses(self) -> list[str]:
        data = await self._get_json("/token-boosts/latest/v1")
        addresses: list[str] = []
        for item in data or []:
            address = item.get("tokenAddress")
            if item.get("chainId") == self._config.chain and address and address not in addresses:
                addresses.append(address)
        return addresses

    async def fetch_candidates(self) -> list[TokenSnapshot]:
        try:
            addresses = await self._boosted_addresses()
        except (httpx.HTTPError, ValueError) as e:
            logger.warning("Error fetching trending tokens: %s", e)
            return []

        by_address: dict[str, TokenSnapshot] = {}
        for start in range(0, len(addresses), BATCH_SIZE):
            batch = addresses[start:start + BATCH_SIZE]
            try:
                pairs = await self._get_json(f"/tokens/v1/{self._config.chain}/{','.join(batch)}")
            except (httpx.HTTPError, ValueError) as e:
                logger.warning("Error fetching token batch: %s", e)
                continue
            for pair in pairs or []:
                snapshot = parse_pair(pair)
                # First pair listed for a token is its primary pool
                if snapshot is not None and snapshot.address not in by_address:
                    by_address[snapshot.address] = snapshot

        candidates = [
            by_address[a] for a in addresses
            if a in by_address and self.passes_filters(by_address[a])
        ]
        logger.debug("%d of %d trending tokens passed filters", len(candidates), len(addresses))
        return candidates
