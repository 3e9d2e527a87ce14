"""Tests for strategy output parsing and the bundled strategy providers."""

from decimal import Decimal
from unittest.mock import AsyncMock

import pytest
from pydantic import ValidationError

from tradesim.engine.allocator import StakeAllocator
from tradesim.engine.types import Direction
from tradesim.services.strategy_provider import (
    CallableStrategyProvider,
    StaticStrategyProvider,
    TrendStrategyProvider,
    parse_strategy_output,
    trend_strength,
)
from tests.fakes import proposal, ticks


# ---------------------------------------------------------------------------
# 1. Output parsing
# ---------------------------------------------------------------------------

class TestParseStrategyOutput:
    def test_camel_case_json(self):
        payload = """
        {
          "tradesToExecute": [
            {"instrument": " EUR/USD ", "action": "call", "stake": 25.5,
             "durationSeconds": 120, "reasoning": "RSI oversold"}
          ],
          "overallReasoning": "One clear setup."
        }
        """
        result = parse_strategy_output(payload)
        (trade,) = result.trades_to_execute
        assert trade.instrument == "EUR/USD"
        assert trade.direction is Direction.CALL
        assert trade.stake == Decimal("25.5")
        assert trade.duration_seconds == 120
        assert isinstance(trade.duration_seconds, int)
        assert trade.rationale == "RSI oversold"
        assert result.overall_reasoning == "One clear setup."

    def test_snake_case_dict(self):
        result = parse_strategy_output(
            {
                "trades_to_execute": [
                    {"instrument": "BTC/USD", "direction": "PUT", "stake": "10", "duration_seconds": 60}
                ]
            }
        )
        assert result.trades_to_execute[0].direction is Direction.PUT
        assert result.overall_reasoning == ""

    def test_empty_output(self):
        result = parse_strategy_output("{}")
        assert result.trades_to_execute == []

    def test_fractional_duration_left_for_allocator(self):
        result = parse_strategy_output(
            {"tradesToExecute": [{"instrument": "EUR/USD", "action": "CALL", "stake": 5, "durationSeconds": 30.5}]}
        )
        assert result.trades_to_execute[0].duration_seconds == 30.5
        assert StakeAllocator().normalize(result.trades_to_execute, Decimal("100")) == []

    @pytest.mark.parametrize(
        "trade",
        [
            {"instrument": "EUR/USD", "action": "HOLD", "stake": 5, "durationSeconds": 30},
            {"instrument": "   ", "action": "CALL", "stake": 5, "durationSeconds": 30},
            {"instrument": "EUR/USD", "action": "CALL", "stake": "lots", "durationSeconds": 30},
        ],
    )
    def test_malformed_trade_rejected(self, trade):
        with pytest.raises(ValidationError):
            parse_strategy_output({"tradesToExecute": [trade]})


# ---------------------------------------------------------------------------
# 2. Static and callable providers
# ---------------------------------------------------------------------------

class TestSimpleProviders:
    @pytest.mark.asyncio
    async def test_static_provider(self):
        provider = StaticStrategyProvider([proposal()], reasoning="fixed")
        result = await provider.generate(Decimal("100"), [], "balanced", {})
        assert result.trades_to_execute == [proposal()]
        assert result.overall_reasoning == "fixed"

    @pytest.mark.asyncio
    async def test_callable_provider_builds_request(self):
        fn = AsyncMock(
            return_value='{"tradesToExecute": [{"instrument": "EUR/USD", "action": "PUT", '
            '"stake": 10, "durationSeconds": 60}], "overallReasoning": "ok"}'
        )
        provider = CallableStrategyProvider(fn)

        result = await provider.generate(Decimal("50"), ["EUR/USD"], "conservative", {"EUR/USD": ticks(1.1, 1.2)})

        request = fn.call_args.args[0]
        assert request["totalStake"] == 50.0
        assert request["tradingMode"] == "conservative"
        assert [t["price"] for t in request["instrumentTicks"]["EUR/USD"]] == [1.1, 1.2]
        assert result.trades_to_execute[0].direction is Direction.PUT


# ---------------------------------------------------------------------------
# 3. Trend provider
# ---------------------------------------------------------------------------

class TestTrendProvider:
    def test_trend_strength_sign(self):
        assert trend_strength(ticks(100, 101, 102, 103)) > 0
        assert trend_strength(ticks(103, 102, 101, 100)) < 0
        assert trend_strength(ticks(100, 100, 100)) == pytest.approx(0.0)
        assert trend_strength(ticks(100)) == 0.0

    @pytest.mark.asyncio
    async def test_follows_trend_direction(self):
        recent = {"A": ticks(100, 101, 102, 103), "B": ticks(50, 48, 46, 44)}
        result = await TrendStrategyProvider().generate(Decimal("100"), ["A", "B"], "balanced", recent)

        directions = {p.instrument: p.direction for p in result.trades_to_execute}
        assert directions == {"A": Direction.CALL, "B": Direction.PUT}
        assert all(p.stake == Decimal("40.00") for p in result.trades_to_execute)
        assert all(p.duration_seconds == 120 for p in result.trades_to_execute)

    @pytest.mark.asyncio
    async def test_risk_mode_limits_trade_count(self):
        recent = {
            "A": ticks(100, 101, 102),
            "B": ticks(100, 105, 110),
            "C": ticks(100, 99, 98),
            "D": ticks(100, 100.5, 101),
        }
        conservative = await TrendStrategyProvider().generate(Decimal("100"), list(recent), "conservative", recent)
        aggressive = await TrendStrategyProvider().generate(Decimal("100"), list(recent), "aggressive", recent)

        assert [p.instrument for p in conservative.trades_to_execute] == ["B"]
        assert conservative.trades_to_execute[0].stake == Decimal("50.00")
        assert len(aggressive.trades_to_execute) == 3
        assert sum(p.stake for p in aggressive.trades_to_execute) <= Decimal("100")

    @pytest.mark.asyncio
    async def test_no_usable_ticks(self):
        result = await TrendStrategyProvider(min_strength=0.001).generate(
            Decimal("100"), ["A", "B"], "balanced", {"A": ticks(100, 100, 100)}
        )
        assert result.trades_to_execute == []
        assert "No instrument" in result.overall_reasoning
