"""AccountBalance model: simulated balance per account mode."""

from datetime import datetime, timezone
from sqlmodel import SQLModel, Field


class AccountBalance(SQLModel, table=True):
    __tablename__ = "account_balance"

    account_mode: str = Field(primary_key=True)  # "paper" or "live"
    balance: float = 0.0
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
