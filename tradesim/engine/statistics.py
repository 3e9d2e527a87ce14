"""Running P/L and win/loss counters for a session scope."""

import threading
from dataclasses import dataclass, replace
from decimal import Decimal

from tradesim.engine.types import TradeStatus


@dataclass(frozen=True)
class SessionStatistics:
    total_net_profit: Decimal = Decimal(0)
    trade_count: int = 0
    winning_trades: int = 0
    losing_trades: int = 0

    @property
    def win_rate(self) -> float:
        return self.winning_trades / self.trade_count if self.trade_count else 0.0


class StatisticsAggregator:
    """Accumulates finalized trades.

    All four fields change together under one lock, so a reader never sees a
    trade counted without its P/L.
    """

    def __init__(self, initial: SessionStatistics | None = None):
        self._stats = initial or SessionStatistics()
        self._lock = threading.Lock()

    def record(self, pnl: Decimal, outcome: TradeStatus) -> SessionStatistics:
        if not outcome.is_terminal:
            raise ValueError("cannot record an active trade")
        won = outcome is TradeStatus.WON
        with self._lock:
            current = self._stats
            self._stats = replace(
                current,
                total_net_profit=current.total_net_profit + pnl,
                trade_count=current.trade_count + 1,
                winning_trades=current.winning_trades + (1 if won else 0),
                losing_trades=current.losing_trades + (0 if won else 1),
            )
            return self._stats

    def reset(self) -> SessionStatistics:
        with self._lock:
            self._stats = SessionStatistics()
            return self._stats

    def snapshot(self) -> SessionStatistics:
        return self._stats
