"""Per-trade lifecycle monitoring.

One ``TradeLifecycleMonitor`` owns one ``ActiveTrade`` from acceptance to
finalization. Each tick it pulls a price, checks the stop-loss, then the
duration, and finalizes the trade at most once:

    active -> won | lost_duration | lost_stoploss

Outcomes at duration expiry come from a win-probability draw. This is a
simulation mode: there is no execution venue, so the draw stands in for a real
fill and settlement.
"""

import asyncio
import logging
import time
from decimal import Decimal
from typing import Callable, Protocol

import numpy as np

from tradesim.engine.collaborators import PriceSource
from tradesim.engine.types import ActiveTrade, TradeStatus, quantize_price
from tradesim.utils.constants import instrument_decimals

logger = logging.getLogger(__name__)

MANUAL_STOP_NOTE = "Manually stopped."

WinDraw = Callable[[], bool]


class ProbabilisticWinDraw:
    """Simulated settlement: a trade reaching expiry wins with ``probability``."""

    def __init__(self, probability: float = 0.70, rng: np.random.Generator | None = None):
        if not 0.0 <= probability <= 1.0:
            raise ValueError("probability must be within [0, 1]")
        self.probability = probability
        self._rng = rng or np.random.default_rng()

    def __call__(self) -> bool:
        return bool(self._rng.random() < self.probability)


class PriceFeed(Protocol):
    async def next_price(self, trade: ActiveTrade) -> Decimal | None: ...


def simulate_step(rng: np.random.Generator, instrument: str, price: Decimal) -> Decimal:
    """One random-walk move.

    Volatility indices move by a relative factor, other instruments by an
    absolute step sized to their precision.
    """
    u = rng.random() - 0.5
    current = float(price)
    if instrument.startswith("Volatility"):
        factor = u * (0.005 if "100" in instrument else 0.0005)
        moved = current + factor * current
    else:
        moved = current + u * (20 if instrument_decimals(instrument) == 2 else 0.0005)
    return quantize_price(Decimal(repr(moved)), instrument)


class SimulatedPriceFeed:
    """Random-walk price movement from the trade's last price."""

    def __init__(self, rng: np.random.Generator | None = None):
        self._rng = rng or np.random.default_rng()

    async def next_price(self, trade: ActiveTrade) -> Decimal | None:
        return simulate_step(self._rng, trade.instrument, trade.current_price)


class PriceSourceFeed:
    """Latest tick from a price source; an empty tick list means no update."""

    def __init__(self, source: PriceSource):
        self.source = source

    async def next_price(self, trade: ActiveTrade) -> Decimal | None:
        ticks = await self.source.latest_ticks(trade.instrument)
        if not ticks:
            return None
        return ticks[-1].price


class TradeLifecycleMonitor:
    def __init__(
        self,
        trade: ActiveTrade,
        price_feed: PriceFeed,
        on_finalized: Callable[[ActiveTrade], None],
        *,
        tick_interval: float = 2.0,
        payout_multiplier: Decimal = Decimal("0.85"),
        win_draw: WinDraw | None = None,
        clock: Callable[[], float] = time.monotonic,
        price_timeout: float = 15.0,
        on_tick: Callable[[ActiveTrade], None] | None = None,
    ):
        self.trade = trade
        self.price_feed = price_feed
        self.tick_interval = tick_interval
        self.payout_multiplier = payout_multiplier
        self.win_draw = win_draw or ProbabilisticWinDraw()
        self.clock = clock
        self.price_timeout = price_timeout
        self.task: asyncio.Task | None = None
        self._on_finalized = on_finalized
        self._on_tick = on_tick

    @property
    def is_active(self) -> bool:
        return self.trade.is_active

    async def run(self):
        """Tick until the trade leaves ``active``."""
        logger.debug(f"[{self.trade.id[:8]}] Monitoring {self.trade.instrument} every {self.tick_interval}s")
        while self.trade.is_active:
            await asyncio.sleep(self.tick_interval)
            try:
                await self.tick()
            except Exception as e:
                logger.error(f"[{self.trade.id[:8]}] Tick error: {e}", exc_info=True)

    async def tick(self) -> bool:
        """Run one monitoring step. Returns True if the trade finalized."""
        if not self.trade.is_active:
            return False
        price = await self._fetch_price()
        # a manual stop may have landed while the price was in flight
        if not self.trade.is_active:
            return False
        if price is not None:
            self.trade.update_price(price)
            if self._on_tick:
                self._on_tick(self.trade)
        return self._evaluate()

    async def _fetch_price(self) -> Decimal | None:
        try:
            async with asyncio.timeout(self.price_timeout):
                return await self.price_feed.next_price(self.trade)
        except TimeoutError:
            logger.warning(
                f"[{self.trade.id[:8]}] Price fetch for {self.trade.instrument} timed out; "
                f"holding {self.trade.current_price}"
            )
        except Exception as e:
            logger.warning(
                f"[{self.trade.id[:8]}] Price fetch for {self.trade.instrument} failed: {e}; "
                f"holding {self.trade.current_price}"
            )
        return None

    def _evaluate(self) -> bool:
        trade = self.trade
        if trade.stop_loss_breached(trade.current_price):
            return self._finalize(TradeStatus.LOST_STOPLOSS, -trade.stake)
        if self.clock() - trade.start_time >= trade.duration_seconds:
            if self.win_draw():
                return self._finalize(TradeStatus.WON, trade.stake * self.payout_multiplier)
            return self._finalize(TradeStatus.LOST_DURATION, -trade.stake)
        return False

    def _finalize(self, status: TradeStatus, pnl: Decimal, note: str = "") -> bool:
        if not self.trade.is_active:
            return False
        self.trade.finalize(status, pnl, note)
        logger.info(
            f"[{self.trade.id[:8]}] {self.trade.instrument} {self.trade.direction.value} "
            f"finalized {status.value} pnl={pnl:+.2f} at {self.trade.current_price}"
        )
        self._on_finalized(self.trade)
        return True

    def force_stop(self) -> bool:
        """Finalize as a manual-stop loss, then cancel the tick loop.

        Returns False if the trade had already finalized.
        """
        finalized = self._finalize(TradeStatus.LOST_DURATION, -self.trade.stake, MANUAL_STOP_NOTE)
        self.cancel()
        return finalized

    def cancel(self):
        if self.task is not None and not self.task.done():
            self.task.cancel()
