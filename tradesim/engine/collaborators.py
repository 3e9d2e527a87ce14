"""Interfaces of the external collaborators the engine depends on."""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Protocol

from tradesim.engine.statistics import SessionStatistics
from tradesim.engine.types import ActiveTrade, PriceTick, TradeProposal


@dataclass
class StrategyResult:
    trades_to_execute: list[TradeProposal] = field(default_factory=list)
    overall_reasoning: str = ""


class StrategyProvider(Protocol):
    async def generate(
        self,
        total_stake: Decimal,
        instruments: list[str],
        risk_mode: str,
        recent_ticks: dict[str, list[PriceTick]],
    ) -> StrategyResult: ...


class PriceSource(Protocol):
    async def latest_ticks(self, instrument: str) -> list[PriceTick]: ...


class BalanceStore(Protocol):
    def get(self, account_mode: str) -> Decimal: ...

    def apply(self, account_mode: str, delta: Decimal) -> Decimal: ...


class StatisticsStore(Protocol):
    def load(self, account_mode: str, trade_category: str) -> SessionStatistics: ...

    def save(self, account_mode: str, trade_category: str, stats: SessionStatistics) -> None: ...


class TradeHistoryStore(Protocol):
    def add(self, trade: ActiveTrade, session_id: str, account_mode: str, trade_category: str) -> None: ...
