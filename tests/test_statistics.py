"""Tests for statistics aggregation and the event bus."""

import asyncio
import threading
from decimal import Decimal
from unittest.mock import MagicMock

import pytest

from tradesim.engine.events import EventBus, SessionCompleted, TradeFinalized
from tradesim.engine.statistics import SessionStatistics, StatisticsAggregator
from tradesim.engine.types import TradeStatus


# ---------------------------------------------------------------------------
# 1. StatisticsAggregator
# ---------------------------------------------------------------------------

class TestStatisticsAggregator:
    def test_starts_empty(self):
        stats = StatisticsAggregator().snapshot()
        assert stats == SessionStatistics()
        assert stats.win_rate == 0.0

    def test_record_win_and_losses(self):
        agg = StatisticsAggregator()
        agg.record(Decimal("8.50"), TradeStatus.WON)
        agg.record(Decimal("-10"), TradeStatus.LOST_STOPLOSS)
        stats = agg.record(Decimal("-5"), TradeStatus.LOST_DURATION)

        assert stats.total_net_profit == Decimal("-6.50")
        assert stats.trade_count == 3
        assert stats.winning_trades == 1
        assert stats.losing_trades == 2
        assert stats.win_rate == pytest.approx(1 / 3)

    def test_seeded_from_initial(self):
        agg = StatisticsAggregator(SessionStatistics(Decimal("100"), 4, 3, 1))
        stats = agg.record(Decimal("-10"), TradeStatus.LOST_DURATION)
        assert stats == SessionStatistics(Decimal("90"), 5, 3, 2)

    def test_active_outcome_rejected(self):
        with pytest.raises(ValueError):
            StatisticsAggregator().record(Decimal("1"), TradeStatus.ACTIVE)

    def test_snapshot_not_affected_by_later_records(self):
        agg = StatisticsAggregator()
        before = agg.snapshot()
        agg.record(Decimal("1"), TradeStatus.WON)
        assert before.trade_count == 0

    def test_reset(self):
        agg = StatisticsAggregator(SessionStatistics(Decimal("5"), 1, 1, 0))
        assert agg.reset() == SessionStatistics()
        assert agg.snapshot().trade_count == 0

    def test_concurrent_records_all_counted(self):
        agg = StatisticsAggregator()

        def worker():
            for _ in range(500):
                agg.record(Decimal("1"), TradeStatus.WON)
                agg.record(Decimal("-1"), TradeStatus.LOST_DURATION)

        threads = [threading.Thread(target=worker) for _ in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        stats = agg.snapshot()
        assert stats.trade_count == 4000
        assert stats.winning_trades + stats.losing_trades == stats.trade_count
        assert stats.total_net_profit == Decimal(0)


# ---------------------------------------------------------------------------
# 2. EventBus
# ---------------------------------------------------------------------------

class TestEventBus:
    @pytest.mark.asyncio
    async def test_subscribers_receive_events(self):
        bus = EventBus()
        queue = bus.subscribe()
        event = TradeFinalized("s1", "t1", "EUR/USD", "won", Decimal("8.5"))
        bus.publish(event)
        assert await asyncio.wait_for(queue.get(), timeout=1) is event

    def test_unsubscribed_queue_gets_nothing(self):
        bus = EventBus()
        queue = bus.subscribe()
        bus.unsubscribe(queue)
        bus.publish(SessionCompleted("s1", "done", 0, Decimal(0)))
        assert queue.empty()

    def test_full_queue_drops_event(self, caplog):
        bus = EventBus(max_queue=1)
        queue = bus.subscribe()
        bus.publish(SessionCompleted("s1", "a", 0, Decimal(0)))
        with caplog.at_level("WARNING"):
            bus.publish(SessionCompleted("s1", "b", 0, Decimal(0)))
        assert queue.qsize() == 1
        assert "queue full" in caplog.text

    def test_listener_errors_isolated(self):
        bus = EventBus()
        good = MagicMock()
        bus.add_listener(MagicMock(side_effect=RuntimeError("boom")))
        bus.add_listener(good)
        bus.publish(SessionCompleted("s1", "done", 0, Decimal(0)))
        good.assert_called_once()

    def test_remove_listener(self):
        bus = EventBus()
        listener = MagicMock()
        bus.add_listener(listener)
        bus.remove_listener(listener)
        bus.publish(SessionCompleted("s1", "done", 0, Decimal(0)))
        listener.assert_not_called()

    def test_to_dict(self):
        data = TradeFinalized("s1", "t1", "EUR/USD", "won", Decimal("8.5")).to_dict()
        assert data["kind"] == "TradeFinalized"
        assert data["pnl"] == 8.5
        assert data["session_id"] == "s1"
        assert isinstance(data["timestamp"], str)
