"""Trading engine: acquisition and evaluation loops.

Both loops share one asyncio event loop and one ``Ledger``. Any await
(market data, settlement, commentary) may let the other loop run, so
every decision re-reads ``ledger.state`` right before it is made instead
of using values captured when the tick started.
"""

import asyncio
import logging
import random
import re
from datetime import datetime
from typing import Callable, Optional

from trador.agents.commentator import Commentator
from trador.config import TradorConfig
from trador.engine.ledger import Ledger, seed_monitored
from trador.engine.recorder import TradeRecorder
from trador.engine.scorer import select_candidate
from trador.engine.strategy import evaluate
from trador.errors import InvalidAssetError
from trador.market.base import MarketDataProvider
from trador.models import MonitoredAsset, PricePoint, TokenSnapshot

logger = logging.getLogger(__name__)

# Solana addresses are base58 encoded 32 byte keys
_ADDRESS_RE = re.compile(r"^[1-9A-HJ-NP-Za-km-z]{32,44}$")


def validate_address(address: str) -> str:
    """Validate and normalize an asset address.

    Args:
        address: Raw user input.

    Returns:
        The stripped address.

    Raises:
        InvalidAssetError: If the input is not a plausible mint address.
    """
    candidate = (address or "").strip()
    if not _ADDRESS_RE.match(candidate):
        raise InvalidAssetError(f"Invalid token address: {address!r}")
    return candidate


class TradingEngine:
    """Runs the acquisition and evaluation loops over a shared ledger."""

    def __init__(
        self,
        ledger: Ledger,
        recorder: TradeRecorder,
        market: MarketDataProvider,
        config: Optional[TradorConfig] = None,
        commentator: Optional[Commentator] = None,
        on_message: Optional[Callable[[str], None]] = None,
        rng: Optional[random.Random] = None,
    ):
        """Initialize the engine.

        Args:
            ledger: Shared portfolio ledger.
            recorder: Trade recorder bound to the same ledger.
            market: Market data provider.
            config: Engine configuration.
            commentator: Optional commentary generator.
            on_message: Callback for operator-facing messages.
            rng: Random source for commentary sampling.
        """
        self._ledger = ledger
        self._recorder = recorder
        self._market = market
        self._config = config or TradorConfig()
        self._commentator = commentator
        self._notify = on_message or (lambda message: None)
        self._rng = rng or random.Random()
        self._autonomous = False
        self._running = False
        self._wallet_balance: Optional[float] = None
        self._background: set[asyncio.Task] = set()

    @property
    def ledger(self) -> Ledger:
        return self._ledger

    @property
    def wallet_balance(self) -> Optional[float]:
        """Last wallet balance read in live mode, None until one is read."""
        return self._wallet_balance

    @property
    def autonomous(self) -> bool:
        return self._autonomous

    def set_autonomous(self, enabled: bool) -> None:
        """Enable or disable autonomous trading.

        Disabling stops new trades and acquisitions from the next decision
        on; in-flight calls are allowed to finish.
        """
        self._autonomous = enabled
        logger.info("Autonomous trading %s", "enabled" if enabled else "disabled")

    # ==================== Capital ====================

    def available_capital(self) -> float:
        """Capital that may fund a new entry, read at decision time."""
        if self._recorder.live:
            return self._config.trading.budget()
        return self._ledger.state.balance

    def position_cap(self) -> float:
        return self._config.trading.position_cap()

    async def refresh_wallet_balance(self) -> Optional[float]:
        """Read the wallet balance in live mode.

        A failed read keeps the last known value.
        """
        if not self._recorder.live:
            return None
        balance = await self._recorder.available_wallet_balance()
        if balance is not None:
            self._wallet_balance = balance
        return self._wallet_balance

    # ==================== Monitored set ====================

    async def deploy_asset(
        self,
        address: str,
        candidates: Optional[list[TokenSnapshot]] = None,
    ) -> Optional[MonitoredAsset]:
        """Start monitoring an asset.

        Args:
            address: Token mint address.
            candidates: Recently scanned snapshots to reuse instead of
                fetching again.

        Returns:
            The monitored asset, or None if the input was rejected or no
            data could be found.
        """
        try:
            address = validate_address(address)
        except InvalidAssetError as e:
            if not self._autonomous:
                self._notify(str(e))
            return None

        existing = self._ledger.state.monitored.get(address)
        if existing is not None:
            return existing

        snapshot = next((c for c in candidates or [] if c.address == address), None)
        if snapshot is None:
            try:
                snapshot = await self._market.fetch_snapshot(address)
            except Exception as e:
                logger.warning("Snapshot fetch failed for %s: %s", address, e)
                snapshot = None

        if snapshot is None:
            if not self._autonomous:
                self._notify("Token not found")
            return None

        asset = seed_monitored(snapshot)
        if self._ledger.add_asset(asset):
            logger.info("Monitoring %s (%s)", snapshot.symbol, address)
        return self._ledger.state.monitored.get(address)

    def remove_asset(self, address: str) -> bool:
        return self._ledger.remove_asset(address)

    # ==================== Acquisition ====================

    async def acquisition_tick(self) -> Optional[MonitoredAsset]:
        """Pick and deploy the best new candidate, if there is room.

        Returns:
            The newly monitored asset, if any.
        """
        if not self._autonomous:
            return None
        if len(self._ledger.state.monitored) >= self._config.trading.max_active_tokens:
            return None

        try:
            candidates = await self._market.fetch_candidates()
        except Exception as e:
            logger.warning("Candidate fetch failed: %s", e)
            return None

        # the set may have filled while the fetch was in flight
        monitored = self._ledger.state.monitored
        if len(monitored) >= self._config.trading.max_active_tokens:
            return None
        available = [c for c in candidates if c.address not in monitored]
        best = select_candidate(available)
        if best is None:
            logger.debug("No candidate above the score floor (%d scanned)", len(available))
            return None

        logger.info("Selected %s with score %d", best.snapshot.symbol, best.score)
        return await self.deploy_asset(best.snapshot.address, candidates=available)

    # ==================== Evaluation ====================

    async def evaluation_tick(self) -> None:
        """Evaluate every monitored asset once, in order."""
        for address in list(self._ledger.state.monitored):
            try:
                await self.evaluate_asset(address)
            except Exception:
                logger.exception("Evaluation failed for %s", address)

    async def evaluate_asset(self, address: str) -> None:
        """Refresh one asset and apply the strategy to it."""
        try:
            snapshot = await self._market.fetch_snapshot(address)
        except Exception as e:
            logger.warning("Snapshot fetch failed for %s: %s", address, e)
            return
        if snapshot is None:
            return

        asset = self._ledger.state.monitored.get(address)
        if asset is None:
            return

        strategy_cfg = self._config.strategy
        valuation_history = [*asset.valuation_history, snapshot.valuation][-strategy_cfg.valuation_history_limit:]
        price_history = [
            *asset.price_history,
            PricePoint(time=datetime.now(), price=snapshot.price),
        ][-strategy_cfg.price_history_limit:]

        state = self._ledger.state
        decision = evaluate(
            position=state.position(address),
            current_price=snapshot.price,
            valuation_history=valuation_history,
            trades=state.trades,
            available_capital=self.available_capital(),
            position_cap=self.position_cap(),
            min_trade_size=self._config.trading.min_trade_size,
            autonomous=self._autonomous,
            config=strategy_cfg,
        )

        trade = None
        if decision.is_trade:
            trade = await self._recorder.record_trade(
                decision.action, snapshot, decision.quantity, decision.notional, decision.reason
            )

        self._ledger.update_asset(
            address,
            metadata=snapshot,
            current_price=snapshot.price,
            current_valuation=snapshot.valuation,
            valuation_history=valuation_history,
            price_history=price_history,
        )

        did_buy = trade is not None and trade.kind == "BUY"
        did_sell = trade is not None and trade.kind != "BUY"
        if did_buy or did_sell or self._rng.random() < self._config.scheduler.commentary_probability:
            self._request_commentary(address, snapshot.symbol, valuation_history, did_buy, did_sell)

    def _request_commentary(
        self,
        address: str,
        symbol: str,
        valuation_history: list[float],
        did_buy: bool,
        did_sell: bool,
    ) -> None:
        if self._commentator is None:
            return
        task = asyncio.create_task(
            self._apply_commentary(address, symbol, valuation_history, did_buy, did_sell)
        )
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    async def _apply_commentary(
        self,
        address: str,
        symbol: str,
        valuation_history: list[float],
        did_buy: bool,
        did_sell: bool,
    ) -> None:
        if self._recorder.live:
            balance = await self.refresh_wallet_balance()
            if balance is None:
                balance = self.available_capital()
        else:
            balance = self._ledger.state.balance
        commentary = await self._commentator.generate(
            symbol, valuation_history, did_buy, did_sell, balance
        )
        self._ledger.update_asset(address, message=commentary.text, sentiment=commentary.sentiment)

    # ==================== Loops ====================

    async def _acquisition_loop(self) -> None:
        interval = self._config.scheduler.autopilot_interval
        while self._running:
            if self._autonomous:
                try:
                    await self.acquisition_tick()
                except Exception:
                    logger.exception("Acquisition tick failed")
            await asyncio.sleep(interval)

    async def _evaluation_loop(self, on_tick: Optional[Callable[[], None]]) -> None:
        interval = self._config.scheduler.refresh_interval
        while self._running:
            await asyncio.sleep(interval)
            if self._ledger.state.monitored:
                await self.evaluation_tick()
            await self.refresh_wallet_balance()
            if on_tick is not None:
                try:
                    on_tick()
                except Exception:
                    logger.exception("Tick callback failed")

    async def run(self, on_tick: Optional[Callable[[], None]] = None) -> None:
        """Run both loops until ``stop()`` is called.

        Args:
            on_tick: Optional callback after every evaluation tick.
        """
        self._running = True
        logger.info("Engine started (autonomous=%s, live=%s)", self._autonomous, self._recorder.live)
        try:
            await asyncio.gather(self._acquisition_loop(), self._evaluation_loop(on_tick))
        finally:
            self._running = False
            for task in list(self._background):
                task.cancel()
            logger.info("Engine stopped")

    async def aclose(self) -> None:
        """Close the market data and settlement clients."""
        await self._market.aclose()
        await self._recorder.aclose()

    def stop(self) -> None:
        """Ask both loops to exit after their current iteration."""
        self._running = False

    def reset(self) -> None:
        """Stop autonomous trading and return the ledger to defaults."""
        self.set_autonomous(False)
        self._ledger.reset()
