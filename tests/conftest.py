"""Pytest fixtures.

Settings are read at import time, so the environment is prepared before any
``tradesim`` module is imported.
"""

import os

os.environ.setdefault("TSIM_DATABASE_URL", "sqlite://")
os.environ.setdefault("TSIM_TICK_INTERVAL", "0.01")
os.environ.setdefault("TSIM_VOLATILITY_TICK_INTERVAL", "0.01")
os.environ.setdefault("TSIM_STRATEGY_TIMEOUT", "2")
os.environ.setdefault("TSIM_PRICE_FETCH_TIMEOUT", "2")
os.environ.setdefault("TSIM_TELEGRAM_BOT_TOKEN", "")

import pytest

from tradesim.config import Settings
from tradesim.engine.events import EventBus
from tradesim.engine.session import SessionController
from tests.fakes import (
    FakeClock,
    FakePriceSource,
    FixedWinDraw,
    HoldPriceFeed,
    InMemoryBalanceStore,
    InMemoryHistoryStore,
    InMemoryStatisticsStore,
)


@pytest.fixture
def engine_settings():
    return Settings(
        tick_interval=0.01,
        volatility_tick_interval=0.01,
        price_fetch_timeout=0.5,
        strategy_timeout=0.5,
        telegram_bot_token="",
    )


@pytest.fixture
def make_controller(engine_settings):
    """Factory for a controller wired to in-memory fakes."""

    def _make(**overrides):
        kwargs = dict(
            price_source=FakePriceSource(),
            balance_store=InMemoryBalanceStore(),
            statistics_store=InMemoryStatisticsStore(),
            history_store=InMemoryHistoryStore(),
            event_bus=EventBus(),
            settings=engine_settings,
            price_feed=HoldPriceFeed(),
            win_draw=FixedWinDraw(True),
            clock=FakeClock(),
        )
        kwargs.update(overrides)
        return SessionController(**kwargs)

    return _make
