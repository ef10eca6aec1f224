"""Tests for the DexScreener market data provider."""

import asyncio
import time

import httpx
import pytest

from trador.config import MarketConfig
from trador.market.dexscreener import DEXSCREENER_BASE, DexScreenerProvider, parse_pair

ALPHA = "AAAA1111111111111111111111111111111111111"
BRAVO = "BBBB1111111111111111111111111111111111111"
CHARLIE = "CCCC1111111111111111111111111111111111111"

NOW_MS = 1_700_000_000_000


def make_pair(address: str = ALPHA, symbol: str = "ALPHA", **overrides) -> dict:
    pair = {
        "chainId": "solana",
        "baseToken": {"address": address, "name": f"{symbol} Token", "symbol": symbol},
        "priceNative": "0.00042",
        "priceUsd": "0.063",
        "txns": {"h24": {"buys": 900, "sells": 400}},
        "volume": {"h24": 250000},
        "priceChange": {"h1": 7.5, "h24": 42.0},
        "liquidity": {"usd": 80000},
        "fdv": 630000,
        "marketCap": 600000,
        "pairCreatedAt": NOW_MS - 5 * 3_600_000,
    }
    pair.update(overrides)
    return pair


def make_provider(handler, config=None) -> DexScreenerProvider:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler), base_url=DEXSCREENER_BASE)
    return DexScreenerProvider(config=config, client=client)


class TestParsePair:
    def test_full_pair(self):
        snapshot = parse_pair(make_pair(), now_ms=NOW_MS)

        assert snapshot.symbol == "ALPHA"
        assert snapshot.address == ALPHA
        assert snapshot.price == pytest.approx(0.00042)
        assert snapshot.price_usd == pytest.approx(0.063)
        assert snapshot.valuation == 600000
        assert snapshot.fdv == 630000
        assert snapshot.liquidity == 80000
        assert snapshot.volume_24h == 250000
        assert snapshot.price_change_1h == 7.5
        assert snapshot.price_change_24h == 42.0
        assert snapshot.age_hours == pytest.approx(5.0)
        assert snapshot.txns_24h.total == 1300

    def test_valuation_falls_back_to_fdv(self):
        snapshot = parse_pair(make_pair(marketCap=None), now_ms=NOW_MS)

        assert snapshot.valuation == 630000

    def test_optional_fields_missing(self):
        pair = make_pair(priceChange={}, pairCreatedAt=None, txns=None)

        snapshot = parse_pair(pair, now_ms=NOW_MS)

        assert snapshot.price_change_1h is None
        assert snapshot.age_hours is None
        assert snapshot.txns_24h.total == 0

    def test_missing_base_token(self):
        assert parse_pair({"priceNative": "1"}) is None
        assert parse_pair(make_pair(baseToken={"address": ALPHA})) is None


class TestFetchSnapshot:
    def test_uses_first_pair(self):
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.path == f"/latest/dex/tokens/{ALPHA}"
            return httpx.Response(200, json={"pairs": [make_pair(), make_pair(priceNative="9")]})

        snapshot = asyncio.run(make_provider(handler).fetch_snapshot(ALPHA))

        assert snapshot.price == pytest.approx(0.00042)

    @pytest.mark.parametrize(
        "response",
        [
            httpx.Response(200, json={"pairs": None}),
            httpx.Response(200, json={"pairs": []}),
            httpx.Response(500, text="boom"),
            httpx.Response(200, text="<html>"),
        ],
        ids=["null", "empty", "server-error", "not-json"],
    )
    def test_absent_or_error_is_none(self, response):
        provider = make_provider(lambda request: response)

        assert asyncio.run(provider.fetch_snapshot(ALPHA)) is None

    def test_transport_error_is_none(self):
        def handler(request):
            raise httpx.ConnectError("unreachable", request=request)

        assert asyncio.run(make_provider(handler).fetch_snapshot(ALPHA)) is None


class TestFetchCandidates:
    def test_filters_and_preserves_boost_order(self):
        boosts = [
            {"chainId": "solana", "tokenAddress": CHARLIE},
            {"chainId": "ethereum", "tokenAddress": "0xdead"},
            {"chainId": "solana", "tokenAddress": ALPHA},
            {"chainId": "solana", "tokenAddress": CHARLIE},
            {"chainId": "solana", "tokenAddress": BRAVO},
        ]
        pairs = [
            make_pair(ALPHA, "ALPHA"),
            make_pair(ALPHA, "ALPHA", priceNative="1"),
            make_pair(BRAVO, "BRAVO", liquidity={"usd": 500}),
            make_pair(CHARLIE, "CHARLIE"),
        ]
        requested = []

        def handler(request: httpx.Request) -> httpx.Response:
            requested.append(request.url.path)
            if request.url.path == "/token-boosts/latest/v1":
                return httpx.Response(200, json=boosts)
            return httpx.Response(200, json=pairs)

        candidates = asyncio.run(make_provider(handler).fetch_candidates())

        assert [c.symbol for c in candidates] == ["CHARLIE", "ALPHA"]
        assert candidates[1].price == pytest.approx(0.00042)
        assert requested[1] == f"/tokens/v1/solana/{CHARLIE},{ALPHA},{BRAVO}"

    def test_young_and_inactive_tokens_filtered(self):
        boosts = [{"chainId": "solana", "tokenAddress": a} for a in (ALPHA, BRAVO, CHARLIE)]
        pairs = [
            make_pair(ALPHA, "ALPHA", txns={"h24": {"buys": 10, "sells": 5}}),
            make_pair(BRAVO, "BRAVO", volume={"h24": 100}),
            make_pair(CHARLIE, "CHARLIE", pairCreatedAt=time.time() * 1000),
        ]

        def handler(request):
            if request.url.path == "/token-boosts/latest/v1":
                return httpx.Response(200, json=boosts)
            return httpx.Response(200, json=pairs)

        assert asyncio.run(make_provider(handler).fetch_candidates()) == []

    def test_custom_thresholds(self):
        boosts = [{"chainId": "solana", "tokenAddress": BRAVO}]
        pairs = [make_pair(BRAVO, "BRAVO", liquidity={"usd": 500}, pairCreatedAt=None)]

        def handler(request):
            if request.url.path == "/token-boosts/latest/v1":
                return httpx.Response(200, json=boosts)
            return httpx.Response(200, json=pairs)

        config = MarketConfig(min_liquidity=100)
        candidates = asyncio.run(make_provider(handler, config=config).fetch_candidates())

        assert [c.symbol for c in candidates] == ["BRAVO"]

    def test_upstream_error_gives_empty_list(self):
        provider = make_provider(lambda request: httpx.Response(503))

        assert asyncio.run(provider.fetch_candidates()) == []
