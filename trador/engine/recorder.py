"""Trade recorder: the single path through which trades reach the ledger."""

import logging
from typing import Callable, Optional

from trador.brokers.base import BaseSettlement, SettlementResult
from trador.engine.ledger import Ledger
from trador.models import TokenSnapshot, Trade, TradeKind

logger = logging.getLogger(__name__)


def _noop(message: str) -> None:
    pass


class TradeRecorder:
    """Executes trades and applies them to the ledger.

    In paper mode trades are applied directly. In live mode the settlement
    collaborator runs first and the ledger is only touched once it
    confirms, so a failed swap never leaves the local books out of step
    with the wallet.
    """

    def __init__(
        self,
        ledger: Ledger,
        settlement: Optional[BaseSettlement] = None,
        live: bool = False,
        on_message: Optional[Callable[[str], None]] = None,
    ):
        """Initialize the recorder.

        Args:
            ledger: Ledger to record into.
            settlement: Settlement used in live mode.
            live: Whether trades are settled for real.
            on_message: Callback for operator-facing messages.

        Raises:
            ValueError: If live mode is requested without settlement.
        """
        if live and settlement is None:
            raise ValueError("Live mode requires a settlement implementation")
        self._ledger = ledger
        self._settlement = settlement
        self._live = live
        self._notify = on_message or _noop

    @property
    def live(self) -> bool:
        return self._live

    async def aclose(self) -> None:
        if self._settlement is not None:
            await self._settlement.aclose()

    async def available_wallet_balance(self) -> Optional[float]:
        """Wallet balance in live mode, None in paper mode or on error."""
        if not self._live:
            return None
        try:
            return await self._settlement.get_balance()
        except Exception as e:
            logger.warning("Could not read wallet balance: %s", e)
            return None

    async def _settle(self, kind: TradeKind, snapshot: TokenSnapshot, quantity: float, notional: float) -> SettlementResult:
        if kind == "BUY":
            wallet_balance = await self.available_wallet_balance()
            if wallet_balance is None:
                return SettlementResult.failed("Wallet balance unavailable")
            if notional > wallet_balance:
                return SettlementResult.failed("Insufficient wallet balance for trade")

        self._notify(f"EXECUTING LIVE {kind} on {snapshot.symbol}...")
        direction = "BUY" if kind == "BUY" else "SELL"
        amount = notional if kind == "BUY" else quantity
        try:
            return await self._settlement.execute(direction, snapshot.address, amount)
        except Exception as e:
            logger.exception("Settlement raised for %s %s", kind, snapshot.symbol)
            return SettlementResult.failed(str(e) or type(e).__name__)

    async def record_trade(
        self,
        kind: TradeKind,
        snapshot: TokenSnapshot,
        quantity: float,
        notional: float,
        rationale: Optional[str] = None,
    ) -> Optional[Trade]:
        """Execute (in live mode) and record a trade.

        Args:
            kind: BUY, SELL or PARTIAL_SELL.
            snapshot: Snapshot the trade executes against.
            quantity: Units bought or sold.
            notional: Value in the funding currency.
            rationale: Human readable reason for the trade.

        Returns:
            The recorded trade, or None if settlement did not confirm.

        Raises:
            ValueError: If quantity or notional is negative.
        """
        if quantity < 0 or notional < 0:
            raise ValueError(f"Invalid trade size: quantity={quantity}, notional={notional}")

        comment = rationale
        if self._live:
            result = await self._settle(kind, snapshot, quantity, notional)
            if result.status == "UNCONFIRMED":
                self._notify(
                    f"LIVE TRADE UNCONFIRMED: {kind} {snapshot.symbol} "
                    f"[TX: {result.signature}] {result.message}"
                )
                return None
            if not result.ok:
                self._notify(f"LIVE TRADE FAILED: {result.message}")
                return None
            signature = result.signature or ""
            comment = f"{rationale or ''} [TX: {signature[:6]}...]".strip()
            self._notify(f"LIVE TRADE SUCCESS: {signature[:8]}")

        # No awaits from here on: the trade is built and applied against
        # the latest ledger state in one step.
        return self._ledger.record_trade(
            kind, snapshot, quantity, notional, comment=comment, is_paper=not self._live
        )
