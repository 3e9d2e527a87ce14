"""StatisticsRecord model: running session statistics per account mode and category."""

from datetime import datetime, timezone
from sqlmodel import SQLModel, Field


class StatisticsRecord(SQLModel, table=True):
    __tablename__ = "statistics"

    account_mode: str = Field(primary_key=True)
    trade_category: str = Field(primary_key=True)
    total_net_profit: float = 0.0
    trade_count: int = 0
    winning_trades: int = 0
    losing_trades: int = 0
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
