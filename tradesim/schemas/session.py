"""Pydantic schemas for the session API."""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, Field, field_validator

from tradesim.engine.session import SessionHandle
from tradesim.engine.statistics import SessionStatistics
from tradesim.engine.types import TradeSnapshot
from tradesim.schemas.strategy import TradeProposalIn
from tradesim.utils.constants import ACCOUNT_MODES, RISK_MODES, TRADE_CATEGORIES, VOLATILITY


def _one_of(value: str, allowed) -> str:
    if value not in allowed:
        raise ValueError(f"must be one of: {', '.join(allowed)}")
    return value


class SessionStartRequest(BaseModel):
    budget: Decimal
    risk_mode: str = "balanced"
    account_mode: str = "paper"
    trade_category: str = VOLATILITY
    instruments: list[str] | None = Field(default=None, min_length=1)
    proposals: list[TradeProposalIn] | None = None  # bypasses the default strategy provider

    @field_validator("risk_mode")
    @classmethod
    def _validate_risk_mode(cls, value: str) -> str:
        return _one_of(value, RISK_MODES)

    @field_validator("account_mode")
    @classmethod
    def _validate_account_mode(cls, value: str) -> str:
        return _one_of(value, ACCOUNT_MODES)

    @field_validator("trade_category")
    @classmethod
    def _validate_trade_category(cls, value: str) -> str:
        return _one_of(value, list(TRADE_CATEGORIES))


class TradeRead(BaseModel):
    id: str
    instrument: str
    direction: str
    stake: float
    duration_seconds: int
    rationale: str
    entry_price: float
    stop_loss_price: float
    current_price: float
    status: str
    pnl: float | None

    @classmethod
    def from_snapshot(cls, snap: TradeSnapshot) -> "TradeRead":
        return cls(
            id=snap.id,
            instrument=snap.instrument,
            direction=snap.direction.value,
            stake=float(snap.stake),
            duration_seconds=snap.duration_seconds,
            rationale=snap.rationale,
            entry_price=float(snap.entry_price),
            stop_loss_price=float(snap.stop_loss_price),
            current_price=float(snap.current_price),
            status=snap.status.value,
            pnl=float(snap.pnl) if snap.pnl is not None else None,
        )


class SessionRead(BaseModel):
    id: str
    account_mode: str
    trade_category: str
    risk_mode: str
    budget: float
    reasoning: str
    diagnostics: list[str]
    is_complete: bool
    completion_reason: str | None
    started_at: datetime
    completed_at: datetime | None
    net_pnl: float
    trades: list[TradeRead]

    @classmethod
    def from_handle(cls, handle: SessionHandle) -> "SessionRead":
        return cls(
            id=handle.id,
            account_mode=handle.account_mode,
            trade_category=handle.trade_category,
            risk_mode=handle.risk_mode,
            budget=float(handle.budget),
            reasoning=handle.reasoning,
            diagnostics=list(handle.diagnostics),
            is_complete=handle.is_complete,
            completion_reason=handle.completion_reason,
            started_at=handle.started_at,
            completed_at=handle.completed_at,
            net_pnl=round(float(handle.net_pnl), 2),
            trades=[TradeRead.from_snapshot(s) for s in handle.snapshot()],
        )


class StatisticsRead(BaseModel):
    account_mode: str
    trade_category: str
    total_net_profit: float
    trade_count: int
    winning_trades: int
    losing_trades: int
    win_rate: float

    @classmethod
    def build(cls, account_mode: str, trade_category: str, stats: SessionStatistics) -> "StatisticsRead":
        return cls(
            account_mode=account_mode,
            trade_category=trade_category,
            total_net_profit=round(float(stats.total_net_profit), 2),
            trade_count=stats.trade_count,
            winning_trades=stats.winning_trades,
            losing_trades=stats.losing_trades,
            win_rate=round(stats.win_rate, 4),
        )


class BalanceRead(BaseModel):
    account_mode: str
    balance: float
