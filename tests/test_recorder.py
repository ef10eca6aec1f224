"""Tests for the trade recorder in paper and live mode.

**Feature: trade-recorder**
"""

import asyncio

import pytest

from trador.brokers.base import BaseSettlement, SettlementResult
from trador.engine.ledger import Ledger
from trador.engine.recorder import TradeRecorder
from trador.models import TokenSnapshot

ADDRESS = "AAAA1111111111111111111111111111111111111"


def make_snapshot(price: float = 1.0) -> TokenSnapshot:
    return TokenSnapshot(name="Alpha", symbol="ALPHA", address=ADDRESS, price=price, valuation=1000.0)


class FakeSettlement(BaseSettlement):
    """Settlement double returning a scripted result."""

    def __init__(self, result=None, balance: float = 100.0, raises: Exception = None):
        self.result = result or SettlementResult(
            status="CONFIRMED", signature="5xSignatureABCDEF", message="Swap confirmed"
        )
        self.balance = balance
        self.raises = raises
        self.calls = []

    async def get_balance(self) -> float:
        return self.balance

    async def execute(self, direction, address, amount):
        self.calls.append((direction, address, amount))
        if self.raises is not None:
            raise self.raises
        return self.result


def seeded_ledger() -> Ledger:
    ledger = Ledger(starting_balance=10.0)
    ledger.record_trade("BUY", make_snapshot(1.0), 4.0, 4.0)
    return ledger


class TestPaperMode:
    """Paper trades go straight to the ledger."""

    def test_records_trade(self):
        ledger = Ledger()
        recorder = TradeRecorder(ledger)

        trade = asyncio.run(recorder.record_trade("BUY", make_snapshot(), 2.0, 2.0, "Momentum ignition detected."))

        assert trade.is_paper is True
        assert trade.comment == "Momentum ignition detected."
        assert ledger.state.balance == pytest.approx(8.0)
        assert ledger.state.trades == [trade]

    def test_rejects_negative_sizes(self):
        ledger = Ledger()
        recorder = TradeRecorder(ledger)

        with pytest.raises(ValueError):
            asyncio.run(recorder.record_trade("BUY", make_snapshot(), -1.0, 1.0))
        assert ledger.state.trades == []

    def test_live_requires_settlement(self):
        with pytest.raises(ValueError):
            TradeRecorder(Ledger(), live=True)

    def test_wallet_balance_none_in_paper_mode(self):
        recorder = TradeRecorder(Ledger())

        assert asyncio.run(recorder.available_wallet_balance()) is None


class TestLiveSuccess:
    """Confirmed swaps are recorded with their transaction reference."""

    def test_confirmed_buy(self):
        ledger = Ledger()
        settlement = FakeSettlement()
        messages = []
        recorder = TradeRecorder(ledger, settlement, live=True, on_message=messages.append)

        trade = asyncio.run(recorder.record_trade("BUY", make_snapshot(), 2.0, 2.0, "Momentum ignition detected."))

        assert settlement.calls == [("BUY", ADDRESS, 2.0)]
        assert trade.is_paper is False
        assert trade.comment == "Momentum ignition detected. [TX: 5xSign...]"
        assert ledger.state.balance == pytest.approx(8.0)
        assert messages[0] == "EXECUTING LIVE BUY on ALPHA..."
        assert messages[-1] == "LIVE TRADE SUCCESS: 5xSignat"

    def test_sell_settles_quantity(self):
        ledger = seeded_ledger()
        settlement = FakeSettlement()
        recorder = TradeRecorder(ledger, settlement, live=True)

        asyncio.run(recorder.record_trade("PARTIAL_SELL", make_snapshot(1.5), 2.0, 3.0))

        assert settlement.calls == [("SELL", ADDRESS, 2.0)]
        assert ledger.state.position(ADDRESS).quantity == pytest.approx(2.0)


class TestScenarioE:
    """
    **Feature: trade-recorder, Scenario E: Live Failure Leaves Ledger Untouched**

    *For any* live trade whose settlement does not confirm, the ledger
    state is identical before and after.
    """

    @pytest.mark.parametrize(
        "settlement",
        [
            FakeSettlement(SettlementResult.failed("Transaction failed on chain")),
            FakeSettlement(SettlementResult(status="UNCONFIRMED", signature="sig123", message="reconcile manually")),
            FakeSettlement(raises=RuntimeError("RPC down")),
        ],
        ids=["failed", "unconfirmed", "raised"],
    )
    def test_state_unchanged(self, settlement):
        ledger = seeded_ledger()
        before = ledger.state.model_dump_json()
        messages = []
        recorder = TradeRecorder(ledger, settlement, live=True, on_message=messages.append)

        result = asyncio.run(recorder.record_trade("SELL", make_snapshot(2.0), 4.0, 8.0, "Trend exhausted. Full exit."))

        assert result is None
        assert ledger.state.model_dump_json() == before
        assert messages[-1].startswith("LIVE TRADE")

    def test_failure_message(self):
        ledger = seeded_ledger()
        messages = []
        recorder = TradeRecorder(
            ledger, FakeSettlement(SettlementResult.failed("User rejected request")), live=True,
            on_message=messages.append,
        )

        asyncio.run(recorder.record_trade("SELL", make_snapshot(2.0), 4.0, 8.0))

        assert messages[-1] == "LIVE TRADE FAILED: User rejected request"

    def test_unconfirmed_message_asks_for_reconciliation(self):
        ledger = seeded_ledger()
        messages = []
        settlement = FakeSettlement(
            SettlementResult(status="UNCONFIRMED", signature="sig123", message="reconcile manually")
        )
        recorder = TradeRecorder(ledger, settlement, live=True, on_message=messages.append)

        asyncio.run(recorder.record_trade("SELL", make_snapshot(2.0), 4.0, 8.0))

        assert "UNCONFIRMED" in messages[-1]
        assert "sig123" in messages[-1]
        assert "reconcile manually" in messages[-1]

    def test_buy_above_wallet_balance_rejected(self):
        ledger = Ledger()
        before = ledger.state.model_dump_json()
        settlement = FakeSettlement(balance=1.0)
        messages = []
        recorder = TradeRecorder(ledger, settlement, live=True, on_message=messages.append)

        result = asyncio.run(recorder.record_trade("BUY", make_snapshot(), 2.0, 2.0))

        assert result is None
        assert settlement.calls == []
        assert ledger.state.model_dump_json() == before
        assert messages == ["LIVE TRADE FAILED: Insufficient wallet balance for trade"]
