"""Simulated automated-trade lifecycle engine."""

from tradesim.engine.allocator import StakeAllocator
from tradesim.engine.errors import (
    AllocationError,
    InsufficientBalanceError,
    InvalidBudgetError,
    SessionStartError,
    StrategyGenerationError,
    TradingEngineError,
)
from tradesim.engine.monitor import TradeLifecycleMonitor
from tradesim.engine.session import SessionController, SessionHandle
from tradesim.engine.statistics import SessionStatistics, StatisticsAggregator
from tradesim.engine.types import ActiveTrade, Direction, PriceTick, TradeProposal, TradeStatus

__all__ = [
    "ActiveTrade",
    "AllocationError",
    "Direction",
    "InsufficientBalanceError",
    "InvalidBudgetError",
    "PriceTick",
    "SessionController",
    "SessionHandle",
    "SessionStartError",
    "SessionStatistics",
    "StakeAllocator",
    "StatisticsAggregator",
    "StrategyGenerationError",
    "TradeLifecycleMonitor",
    "TradeProposal",
    "TradeStatus",
    "TradingEngineError",
]
