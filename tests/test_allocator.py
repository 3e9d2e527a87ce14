"""Tests for stake validation and proportional budget fitting."""

from decimal import Decimal

import pytest

from tradesim.engine.allocator import StakeAllocator, floor_to_granularity, is_structurally_valid
from tradesim.engine.errors import AllocationError, SessionStartError
from tradesim.engine.types import Direction, TradeProposal
from tests.fakes import proposal


# ---------------------------------------------------------------------------
# 1. Structural validation
# ---------------------------------------------------------------------------

class TestStructuralValidation:
    def test_valid_proposal(self):
        assert is_structurally_valid(proposal(stake="10", duration=60))

    @pytest.mark.parametrize("stake", ["0", "-1", "NaN", "Infinity"])
    def test_non_positive_or_non_finite_stake_rejected(self, stake):
        assert not is_structurally_valid(proposal(stake=stake))

    @pytest.mark.parametrize("duration", [0, -30, 30.5, True])
    def test_duration_must_be_positive_whole_seconds(self, duration):
        assert not is_structurally_valid(proposal(duration=duration))

    def test_floor_to_granularity(self):
        assert floor_to_granularity(Decimal("9.999"), Decimal("0.01")) == Decimal("9.99")
        assert floor_to_granularity(Decimal("7"), Decimal("5")) == Decimal("5")


# ---------------------------------------------------------------------------
# 2. Budget fitting
# ---------------------------------------------------------------------------

class TestNormalize:
    def test_within_budget_unchanged(self):
        proposals = [proposal(stake="30"), proposal(stake="20")]
        result = StakeAllocator().normalize(proposals, Decimal("100"))
        assert result == proposals

    def test_whole_number_stakes_scaled(self):
        proposals = [TradeProposal("EUR/USD", Direction.CALL, 60, 300), TradeProposal("GBP/USD", Direction.PUT, 60, 300)]
        result = StakeAllocator().normalize(proposals, Decimal("100"))
        assert [p.stake for p in result] == [Decimal("50.00"), Decimal("50.00")]

    def test_exact_budget_unchanged(self):
        proposals = [proposal(stake="50"), proposal(stake="50")]
        result = StakeAllocator().normalize(proposals, Decimal("100"))
        assert [p.stake for p in result] == [Decimal("50"), Decimal("50")]

    def test_scaled_proportionally(self):
        proposals = [proposal(stake="60"), proposal(stake="60")]
        result = StakeAllocator().normalize(proposals, Decimal("100"))
        assert [p.stake for p in result] == [Decimal("50.00"), Decimal("50.00")]

    def test_scaled_floors_to_granularity(self):
        proposals = [proposal(stake="33.33"), proposal(stake="33.33"), proposal(stake="33.34")]
        result = StakeAllocator().normalize(proposals, Decimal("50"))
        stakes = [p.stake for p in result]
        assert sum(stakes) <= Decimal("50")
        assert all(s == s.quantize(Decimal("0.01")) for s in stakes)
        assert stakes[0] == Decimal("16.66")

    @pytest.mark.parametrize(
        "stakes, budget",
        [
            (["10", "20", "30"], "17"),
            (["0.07", "0.05", "100.01"], "10"),
            (["999.99", "1", "1", "1"], "250"),
        ],
    )
    def test_sum_never_exceeds_budget(self, stakes, budget):
        result = StakeAllocator().normalize([proposal(stake=s) for s in stakes], Decimal(budget))
        assert sum(p.stake for p in result) <= Decimal(budget)
        assert all(p.stake > 0 for p in result)

    def test_invalid_proposals_dropped_before_scaling(self):
        proposals = [proposal(stake="60"), proposal(stake="0"), proposal(stake="60", duration=0)]
        result = StakeAllocator().normalize(proposals, Decimal("100"))
        assert [p.stake for p in result] == [Decimal("60")]

    def test_other_fields_preserved(self):
        original = proposal(instrument="BTC/USD", stake="200", duration=120, rationale="trend")
        (scaled,) = StakeAllocator().normalize([original], Decimal("100"))
        assert scaled.instrument == "BTC/USD"
        assert scaled.duration_seconds == 120
        assert scaled.rationale == "trend"
        assert scaled.stake == Decimal("100.00")

    def test_input_not_mutated(self):
        proposals = [proposal(stake="60"), proposal(stake="60")]
        StakeAllocator().normalize(proposals, Decimal("100"))
        assert [p.stake for p in proposals] == [Decimal("60"), Decimal("60")]

    def test_deterministic(self):
        proposals = [proposal(stake="12.34"), proposal(stake="56.78"), proposal(stake="9.1")]
        allocator = StakeAllocator()
        assert allocator.normalize(proposals, Decimal("40")) == allocator.normalize(proposals, Decimal("40"))

    def test_empty(self):
        assert StakeAllocator().normalize([], Decimal("10")) == []


# ---------------------------------------------------------------------------
# 3. Rounding edge cases
# ---------------------------------------------------------------------------

class TestRoundingEdges:
    def test_tiny_stake_bumped_to_minimum(self):
        proposals = [proposal(stake="0.01"), proposal(stake="1000")]
        result = StakeAllocator().normalize(proposals, Decimal("10"))
        assert [p.stake for p in result] == [Decimal("0.01"), Decimal("9.99")]

    def test_sub_granularity_stake_dropped(self, caplog):
        proposals = [proposal(stake="0.005"), proposal(stake="1000")]
        with caplog.at_level("WARNING"):
            result = StakeAllocator().normalize(proposals, Decimal("10"))
        assert [p.stake for p in result] == [Decimal("9.99")]
        assert "rounds to zero" in caplog.text

    def test_minimum_bumps_overshoot_budget(self):
        proposals = [proposal(stake="0.01") for _ in range(3)]
        with pytest.raises(AllocationError) as exc:
            StakeAllocator().normalize(proposals, Decimal("0.02"))
        assert exc.value.shortfall == Decimal("0.01")
        assert isinstance(exc.value, SessionStartError)

    def test_per_instrument_granularity(self):
        allocator = StakeAllocator(instrument_granularity={"BTC/USD": Decimal("1")})
        proposals = [proposal(instrument="BTC/USD", stake="75"), proposal(stake="75")]
        result = allocator.normalize(proposals, Decimal("99"))
        assert [p.stake for p in result] == [Decimal("49"), Decimal("49.50")]

    def test_granularity_must_be_positive(self):
        with pytest.raises(ValueError):
            StakeAllocator(granularity=Decimal("0"))
