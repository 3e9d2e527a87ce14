"""Stake allocation under a session budget.

Pure computation, no I/O. Proposals that break structural rules are dropped;
if the remaining stakes overshoot the budget they are scaled down
proportionally and floored to the stake granularity.
"""

import logging
from decimal import Decimal, ROUND_FLOOR

from tradesim.engine.errors import AllocationError
from tradesim.engine.types import TradeProposal

logger = logging.getLogger(__name__)


def floor_to_granularity(value: Decimal, granularity: Decimal) -> Decimal:
    steps = (value / granularity).to_integral_value(rounding=ROUND_FLOOR)
    return (steps * granularity).quantize(granularity)


def is_structurally_valid(proposal: TradeProposal) -> bool:
    """Positive stake and a positive whole number of seconds."""
    stake = proposal.stake
    duration = proposal.duration_seconds
    if not isinstance(stake, Decimal) or not stake.is_finite() or stake <= 0:
        return False
    if isinstance(duration, bool) or not isinstance(duration, int) or duration <= 0:
        return False
    return True


class StakeAllocator:
    """Fit a batch of proposals under a budget.

    ``granularity`` is the default minimum stake increment; per-instrument
    overrides can be passed in ``instrument_granularity``.
    """

    def __init__(
        self,
        granularity: Decimal = Decimal("0.01"),
        instrument_granularity: dict[str, Decimal] | None = None,
    ):
        if granularity <= 0:
            raise ValueError("granularity must be positive")
        self.granularity = granularity
        self.instrument_granularity = dict(instrument_granularity or {})

    def granularity_for(self, instrument: str) -> Decimal:
        return self.instrument_granularity.get(instrument, self.granularity)

    def normalize(self, proposals: list[TradeProposal], budget: Decimal) -> list[TradeProposal]:
        valid = [p for p in proposals if is_structurally_valid(p)]
        dropped = len(proposals) - len(valid)
        if dropped:
            logger.warning(f"Dropped {dropped} structurally invalid proposal(s)")

        total = sum((p.stake for p in valid), Decimal(0))
        if total <= budget:
            return valid

        logger.info(f"Proposed stake {total} exceeds budget {budget}; scaling down")
        scaled = []
        for proposal in valid:
            step = self.granularity_for(proposal.instrument)
            # multiply before dividing so exact ratios stay exact
            stake = floor_to_granularity(proposal.stake * budget / total, step)
            if stake <= 0 and proposal.stake >= step:
                stake = step
            if stake <= 0:
                logger.warning(f"Dropping {proposal.instrument} proposal: stake {proposal.stake} rounds to zero")
                continue
            scaled.append(proposal.with_stake(stake))

        revised = sum((p.stake for p in scaled), Decimal(0))
        if revised > budget:
            raise AllocationError(shortfall=revised - budget, total=revised, budget=budget)
        return scaled
