"""Pydantic schemas for strategy provider output."""

from decimal import Decimal

from pydantic import AliasChoices, BaseModel, Field, field_validator

from tradesim.engine.collaborators import StrategyResult
from tradesim.engine.types import Direction, TradeProposal


class TradeProposalIn(BaseModel):
    """One proposed trade.

    Stake and duration are not range-checked here; the stake allocator drops
    proposals that break the structural rules.
    """

    instrument: str = Field(min_length=1, max_length=64)
    direction: Direction = Field(validation_alias=AliasChoices("direction", "action"))
    stake: Decimal
    duration_seconds: float = Field(validation_alias=AliasChoices("duration_seconds", "durationSeconds"))
    reasoning: str = Field(default="", validation_alias=AliasChoices("reasoning", "rationale"))

    @field_validator("instrument")
    @classmethod
    def _trim_instrument(cls, value: str) -> str:
        text = value.strip()
        if not text:
            raise ValueError("must not be empty")
        return text

    @field_validator("direction", mode="before")
    @classmethod
    def _upper_direction(cls, value):
        return value.upper() if isinstance(value, str) else value

    def to_proposal(self) -> TradeProposal:
        duration = self.duration_seconds
        if float(duration).is_integer():
            duration = int(duration)
        return TradeProposal(
            instrument=self.instrument,
            direction=self.direction,
            stake=self.stake,
            duration_seconds=duration,
            rationale=self.reasoning,
        )


class StrategyOutput(BaseModel):
    trades_to_execute: list[TradeProposalIn] = Field(
        default_factory=list, validation_alias=AliasChoices("trades_to_execute", "tradesToExecute")
    )
    overall_reasoning: str = Field(
        default="", validation_alias=AliasChoices("overall_reasoning", "overallReasoning")
    )

    def to_result(self) -> StrategyResult:
        return StrategyResult(
            trades_to_execute=[t.to_proposal() for t in self.trades_to_execute],
            overall_reasoning=self.overall_reasoning,
        )
