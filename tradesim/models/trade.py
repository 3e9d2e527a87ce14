"""Trade model: immutable record of every finalized trade."""

from datetime import datetime, timezone
from sqlmodel import SQLModel, Field


class Trade(SQLModel, table=True):
    __tablename__ = "trade"

    id: str = Field(primary_key=True)  # ActiveTrade id (uuid4)
    session_id: str = Field(index=True)
    account_mode: str = Field(index=True)  # "paper" or "live"
    trade_category: str  # "forex_crypto_commodity" or "volatility"
    instrument: str
    action: str  # "CALL" or "PUT"
    stake: float
    duration_seconds: int
    entry_price: float
    exit_price: float
    stop_loss_price: float
    pnl: float
    status: str  # "won", "lost_duration", "lost_stoploss"
    reasoning: str = ""
    opened_at: datetime
    closed_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc), index=True)
