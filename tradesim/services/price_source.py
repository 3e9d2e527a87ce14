"""Simulated market data.

Stands in for the brokerage tick feed: every instrument gets a random walk
seeded from its base price. Each ``latest_ticks`` call advances the walk by one
tick and returns the recent window, oldest first.
"""

import logging
import time
from collections import deque
from datetime import datetime, timezone
from decimal import Decimal

import numpy as np

from tradesim.engine.errors import PriceSourceError
from tradesim.engine.monitor import simulate_step
from tradesim.engine.types import PriceTick, quantize_price
from tradesim.utils.constants import BASE_PRICES

logger = logging.getLogger(__name__)


def _display_time(epoch: float) -> str:
    return datetime.fromtimestamp(epoch, tz=timezone.utc).strftime("%H:%M:%S")


class SimulatedPriceSource:
    def __init__(
        self,
        window: int = 20,
        tick_seconds: float = 1.0,
        rng: np.random.Generator | None = None,
        base_prices: dict[str, float] | None = None,
    ):
        self.window = window
        self.tick_seconds = tick_seconds
        self._rng = rng or np.random.default_rng()
        self._base_prices = dict(base_prices or BASE_PRICES)
        self._series: dict[str, deque[PriceTick]] = {}

    def _seed(self, instrument: str) -> deque[PriceTick]:
        base = self._base_prices.get(instrument)
        if base is None:
            raise PriceSourceError(instrument, "unknown instrument")
        now = time.time()
        price = quantize_price(Decimal(repr(base)), instrument)
        series: deque[PriceTick] = deque(maxlen=self.window)
        for i in range(self.window):
            epoch = now - (self.window - 1 - i) * self.tick_seconds
            series.append(PriceTick(epoch=epoch, price=price, display_time=_display_time(epoch)))
            price = simulate_step(self._rng, instrument, price)
        logger.debug(f"Seeded simulated series for {instrument} at {base}")
        return series

    async def latest_ticks(self, instrument: str) -> list[PriceTick]:
        series = self._series.get(instrument)
        if series is None:
            series = self._series[instrument] = self._seed(instrument)
        else:
            epoch = time.time()
            price = simulate_step(self._rng, instrument, series[-1].price)
            series.append(PriceTick(epoch=epoch, price=price, display_time=_display_time(epoch)))
        return list(series)
