"""Database models."""

from tradesim.models.balance import AccountBalance
from tradesim.models.statistics import StatisticsRecord
from tradesim.models.trade import Trade

__all__ = [
    "AccountBalance",
    "StatisticsRecord",
    "Trade",
]
