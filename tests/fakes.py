"""In-memory collaborators and builders shared by the engine tests."""

import asyncio
from decimal import Decimal

from tradesim.engine.collaborators import StrategyResult
from tradesim.engine.statistics import SessionStatistics
from tradesim.engine.types import Direction, PriceTick, TradeProposal


def proposal(
    instrument: str = "Volatility 100 Index",
    stake="10",
    duration: int = 60,
    direction: Direction = Direction.CALL,
    rationale: str = "test",
) -> TradeProposal:
    return TradeProposal(
        instrument=instrument,
        direction=direction,
        stake=Decimal(stake),
        duration_seconds=duration,
        rationale=rationale,
    )


def ticks(*prices) -> list[PriceTick]:
    return [PriceTick(epoch=1700000000 + i, price=Decimal(str(p)), display_time="") for i, p in enumerate(prices)]


class FakeClock:
    def __init__(self, now: float = 0.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


class FixedWinDraw:
    def __init__(self, win: bool):
        self.win = win
        self.calls = 0

    def __call__(self) -> bool:
        self.calls += 1
        return self.win


class HoldPriceFeed:
    """Never moves the price."""

    async def next_price(self, trade):
        return None


class ScriptedPriceFeed:
    """Plays back a list of prices (or exceptions), then holds."""

    def __init__(self, *prices):
        self.prices = list(prices)
        self.calls = 0

    async def next_price(self, trade):
        self.calls += 1
        if not self.prices:
            return None
        item = self.prices.pop(0)
        if isinstance(item, Exception):
            raise item
        return Decimal(str(item))


class FakePriceSource:
    """Tick lists per instrument; an Exception value raises on fetch."""

    def __init__(self, data: dict | None = None, default=None):
        self.data = dict(data or {})
        self.default = default if default is not None else ticks(100, 100)
        self.calls: list[str] = []

    async def latest_ticks(self, instrument):
        self.calls.append(instrument)
        value = self.data.get(instrument, self.default)
        if isinstance(value, Exception):
            raise value
        return list(value)


class FakeStrategyProvider:
    def __init__(self, proposals=None, reasoning="fake strategy", error: Exception | None = None, delay: float = 0):
        self.proposals = list(proposals or [])
        self.reasoning = reasoning
        self.error = error
        self.delay = delay
        self.calls = []

    async def generate(self, total_stake, instruments, risk_mode, recent_ticks):
        self.calls.append((total_stake, list(instruments), risk_mode, dict(recent_ticks)))
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error:
            raise self.error
        return StrategyResult(list(self.proposals), self.reasoning)


class InMemoryBalanceStore:
    def __init__(self, balances: dict | None = None):
        self.balances = {k: Decimal(str(v)) for k, v in (balances or {"paper": 10000, "live": 0}).items()}
        self.applied: list[tuple[str, Decimal]] = []

    def get(self, account_mode):
        return self.balances.get(account_mode, Decimal(0))

    def apply(self, account_mode, delta):
        self.applied.append((account_mode, delta))
        self.balances[account_mode] = self.get(account_mode) + delta
        return self.balances[account_mode]


class InMemoryStatisticsStore:
    def __init__(self):
        self.records: dict[tuple[str, str], SessionStatistics] = {}
        self.saves = 0

    def load(self, account_mode, trade_category):
        return self.records.get((account_mode, trade_category), SessionStatistics())

    def save(self, account_mode, trade_category, stats):
        self.saves += 1
        self.records[(account_mode, trade_category)] = stats


class InMemoryHistoryStore:
    def __init__(self):
        self.records = []

    def add(self, trade, session_id, account_mode, trade_category):
        self.records.append((trade.id, trade.status, trade.pnl, session_id, account_mode, trade_category))


