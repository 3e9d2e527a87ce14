"""Strategy providers.

The real strategy comes from an external AI flow. These providers cover the
other cases: fixed proposals supplied by a caller, a local trend heuristic used
as the default simulation strategy, and an adapter that validates JSON returned
by any async callable (e.g. an LLM client).
"""

import json
import logging
from dataclasses import dataclass
from decimal import Decimal, ROUND_FLOOR
from typing import Any, Awaitable, Callable

import numpy as np

from tradesim.engine.collaborators import StrategyResult
from tradesim.engine.types import Direction, PriceTick, TradeProposal
from tradesim.schemas.strategy import StrategyOutput

logger = logging.getLogger(__name__)


class StaticStrategyProvider:
    """Returns the same proposals on every call."""

    def __init__(self, proposals: list[TradeProposal], reasoning: str = "Manually supplied trades."):
        self.proposals = list(proposals)
        self.reasoning = reasoning

    async def generate(self, total_stake, instruments, risk_mode, recent_ticks) -> StrategyResult:
        return StrategyResult(trades_to_execute=list(self.proposals), overall_reasoning=self.reasoning)


def parse_strategy_output(payload: str | bytes | dict[str, Any]) -> StrategyResult:
    """Validate a provider's JSON output into a StrategyResult."""
    if isinstance(payload, (str, bytes)):
        payload = json.loads(payload)
    return StrategyOutput.model_validate(payload).to_result()


class CallableStrategyProvider:
    """Wraps an async callable returning strategy JSON."""

    def __init__(self, fn: Callable[[dict[str, Any]], Awaitable[str | dict[str, Any]]]):
        self.fn = fn

    async def generate(self, total_stake, instruments, risk_mode, recent_ticks) -> StrategyResult:
        request = {
            "totalStake": float(total_stake),
            "instruments": list(instruments),
            "tradingMode": risk_mode,
            "instrumentTicks": {
                name: [
                    {"epoch": t.epoch, "price": float(t.price), "time": t.display_time}
                    for t in ticks
                ]
                for name, ticks in recent_ticks.items()
            },
        }
        return parse_strategy_output(await self.fn(request))


@dataclass(frozen=True)
class RiskProfile:
    max_trades: int
    stake_fraction: Decimal  # share of the total stake put to work
    duration_seconds: int


RISK_PROFILES: dict[str, RiskProfile] = {
    "conservative": RiskProfile(max_trades=1, stake_fraction=Decimal("0.5"), duration_seconds=300),
    "balanced": RiskProfile(max_trades=2, stake_fraction=Decimal("0.8"), duration_seconds=120),
    "aggressive": RiskProfile(max_trades=3, stake_fraction=Decimal("1"), duration_seconds=60),
}


def trend_strength(ticks: list[PriceTick]) -> float:
    """Least-squares slope of the tick prices, normalised by their mean."""
    if len(ticks) < 2:
        return 0.0
    prices = np.array([float(t.price) for t in ticks])
    mean = float(np.mean(prices))
    if mean == 0:
        return 0.0
    slope = float(np.polyfit(np.arange(len(prices)), prices, 1)[0])
    return slope / mean


class TrendStrategyProvider:
    """Local stand-in for the AI strategist.

    Trades the instruments with the strongest recent trend in the trend's
    direction. The risk mode picks how many trades, how much of the stake and
    how long each trade runs.
    """

    def __init__(self, min_strength: float = 0.0):
        self.min_strength = min_strength

    async def generate(
        self,
        total_stake: Decimal,
        instruments: list[str],
        risk_mode: str,
        recent_ticks: dict[str, list[PriceTick]],
    ) -> StrategyResult:
        profile = RISK_PROFILES.get(risk_mode, RISK_PROFILES["balanced"])
        scored = []
        for instrument in instruments:
            ticks = recent_ticks.get(instrument) or []
            if len(ticks) < 2:
                continue
            strength = trend_strength(ticks)
            if abs(strength) > self.min_strength:
                scored.append((abs(strength), instrument, strength))

        if not scored:
            return StrategyResult([], "No instrument shows a usable trend right now.")

        scored.sort(reverse=True)
        picked = scored[: profile.max_trades]
        per_trade = (Decimal(total_stake) * profile.stake_fraction / len(picked)).quantize(
            Decimal("0.01"), rounding=ROUND_FLOOR
        )
        if per_trade <= 0:
            return StrategyResult([], f"Total stake {total_stake} is too small to split.")

        proposals = []
        for _, instrument, strength in picked:
            direction = Direction.CALL if strength >= 0 else Direction.PUT
            proposals.append(
                TradeProposal(
                    instrument=instrument,
                    direction=direction,
                    stake=per_trade,
                    duration_seconds=profile.duration_seconds,
                    rationale=f"{'Uptrend' if strength >= 0 else 'Downtrend'} ({strength:+.5%} per tick).",
                )
            )
        logger.info(f"Trend strategy ({risk_mode}) picked {[p.instrument for p in proposals]}")
        return StrategyResult(
            proposals,
            f"{risk_mode.capitalize()} mode: following the {len(proposals)} strongest trend(s) "
            f"with {per_trade} each.",
        )
