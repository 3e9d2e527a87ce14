"""Statistics persistence keyed by (account mode, trade category)."""

from datetime import datetime, timezone
from decimal import Decimal

from sqlmodel import Session

from tradesim.engine.statistics import SessionStatistics
from tradesim.models.statistics import StatisticsRecord


class SqlStatisticsStore:
    def __init__(self, engine=None):
        if engine is None:
            from tradesim.database import engine as default_engine
            engine = default_engine
        self.engine = engine

    def load(self, account_mode: str, trade_category: str) -> SessionStatistics:
        with Session(self.engine) as session:
            row = session.get(StatisticsRecord, (account_mode, trade_category))
            if row is None:
                return SessionStatistics()
            return SessionStatistics(
                total_net_profit=Decimal(str(round(row.total_net_profit, 2))),
                trade_count=row.trade_count,
                winning_trades=row.winning_trades,
                losing_trades=row.losing_trades,
            )

    def save(self, account_mode: str, trade_category: str, stats: SessionStatistics) -> None:
        with Session(self.engine) as session:
            row = session.get(StatisticsRecord, (account_mode, trade_category))
            if row is None:
                row = StatisticsRecord(account_mode=account_mode, trade_category=trade_category)
            row.total_net_profit = round(float(stats.total_net_profit), 2)
            row.trade_count = stats.trade_count
            row.winning_trades = stats.winning_trades
            row.losing_trades = stats.losing_trades
            row.updated_at = datetime.now(timezone.utc)
            session.add(row)
            session.commit()
