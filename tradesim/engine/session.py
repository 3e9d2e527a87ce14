"""Session orchestration.

``SessionController.start`` turns an externally produced strategy into a set of
monitored trades: validate the budget, collect recent ticks, ask the strategy
provider for proposals, fit them under the budget, price them and spawn one
``TradeLifecycleMonitor`` per accepted trade. Each session runs its monitors in
its own ``asyncio.TaskGroup`` so no monitor outlives the session.

Everything up to spawning is all-or-nothing; once trades are running each one
is on its own and finalizes exactly once, feeding the shared statistics,
balance and history stores from the completion handler.
"""

import asyncio
import logging
import time
import uuid
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from functools import partial
from typing import Callable

from tradesim.config import Settings, settings as default_settings
from tradesim.engine.allocator import StakeAllocator, is_structurally_valid
from tradesim.engine.collaborators import (
    BalanceStore,
    PriceSource,
    StatisticsStore,
    StrategyProvider,
    TradeHistoryStore,
)
from tradesim.engine.errors import (
    InsufficientBalanceError,
    InvalidBudgetError,
    PriceSourceError,
    PriceSourceTimeoutError,
    StrategyGenerationError,
)
from tradesim.engine.events import (
    EventBus,
    SessionCompleted,
    SessionDiagnostic,
    TradeFinalized,
    TradeTicked,
)
from tradesim.engine.monitor import (
    PriceFeed,
    ProbabilisticWinDraw,
    SimulatedPriceFeed,
    TradeLifecycleMonitor,
    WinDraw,
)
from tradesim.engine.statistics import SessionStatistics, StatisticsAggregator
from tradesim.engine.types import ActiveTrade, PriceTick, TradeProposal, TradeSnapshot
from tradesim.utils.constants import TRADE_CATEGORIES, VOLATILITY

logger = logging.getLogger(__name__)

NO_TRADES_REASON = "No trades to execute"
ALL_CONCLUDED_REASON = "All trades concluded"
STOPPED_REASON = "Stopped manually"


class SessionHandle:
    """One batch of concurrently monitored trades."""

    def __init__(
        self,
        session_id: str,
        account_mode: str,
        trade_category: str,
        budget: Decimal,
        risk_mode: str,
        reasoning: str = "",
    ):
        self.id = session_id
        self.account_mode = account_mode
        self.trade_category = trade_category
        self.budget = budget
        self.risk_mode = risk_mode
        self.reasoning = reasoning
        self.diagnostics: list[str] = []
        self.trades: dict[str, ActiveTrade] = {}
        self.monitors: dict[str, TradeLifecycleMonitor] = {}
        self.aggregator: StatisticsAggregator | None = None
        self.started_at = datetime.now(timezone.utc)
        self.completed_at: datetime | None = None
        self.completion_reason: str | None = None
        self.stop_requested = False
        self._supervisor: asyncio.Task | None = None
        self._done = asyncio.Event()

    @property
    def is_complete(self) -> bool:
        return self.completion_reason is not None

    @property
    def active_trades(self) -> list[ActiveTrade]:
        return [t for t in self.trades.values() if t.is_active]

    @property
    def net_pnl(self) -> Decimal:
        return sum((t.pnl for t in self.trades.values() if t.pnl is not None), Decimal(0))

    @property
    def statistics(self) -> SessionStatistics | None:
        return self.aggregator.snapshot() if self.aggregator else None

    def snapshot(self) -> list[TradeSnapshot]:
        return [trade.snapshot() for trade in self.trades.values()]

    async def wait(self, timeout: float | None = None):
        """Wait until every trade of the session has finalized."""
        async with asyncio.timeout(timeout):
            await self._done.wait()


class SessionController:
    def __init__(
        self,
        price_source: PriceSource,
        balance_store: BalanceStore,
        statistics_store: StatisticsStore,
        *,
        history_store: TradeHistoryStore | None = None,
        event_bus: EventBus | None = None,
        settings: Settings | None = None,
        allocator: StakeAllocator | None = None,
        price_feed: PriceFeed | None = None,
        win_draw: WinDraw | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.settings = settings or default_settings
        self.price_source = price_source
        self.balance_store = balance_store
        self.statistics_store = statistics_store
        self.history_store = history_store
        self.events = event_bus or EventBus()
        self.allocator = allocator or StakeAllocator(self.settings.min_stake_granularity)
        self.price_feed = price_feed or SimulatedPriceFeed()
        self.win_draw = win_draw or ProbabilisticWinDraw(self.settings.win_probability)
        self.clock = clock
        self.sessions: dict[str, SessionHandle] = {}
        self._aggregators: dict[tuple[str, str], StatisticsAggregator] = {}

    # ------------------------------------------------------------------
    # Start
    # ------------------------------------------------------------------

    async def start(
        self,
        strategy_provider: StrategyProvider,
        budget,
        risk_mode: str = "balanced",
        *,
        account_mode: str = "paper",
        trade_category: str = VOLATILITY,
        instruments: list[str] | None = None,
    ) -> SessionHandle:
        budget = _to_budget(budget)
        balance = self.balance_store.get(account_mode)
        if budget > balance:
            raise InsufficientBalanceError(budget, balance)

        instruments = list(instruments or TRADE_CATEGORIES.get(trade_category, []))
        session_id = str(uuid.uuid4())
        diagnostics: list[tuple[str, str | None]] = []

        recent_ticks = await self._collect_ticks(instruments, diagnostics)
        result = await self._generate(strategy_provider, budget, instruments, risk_mode, recent_ticks)
        accepted = self.allocator.normalize(result.trades_to_execute, budget)

        reasoning = result.overall_reasoning
        proposed = sum(
            (p.stake for p in result.trades_to_execute if is_structurally_valid(p)), Decimal(0)
        )
        if proposed > budget:
            reasoning += f" (Note: stakes were adjusted proportionally to fit the total budget of {budget}.)"

        handle = SessionHandle(session_id, account_mode, trade_category, budget, risk_mode, reasoning.strip())
        self.sessions[session_id] = handle
        for message, instrument in diagnostics:
            self._diagnose(handle, message, instrument)

        opened_at = time.time()
        for proposal in accepted:
            entry_price = await self._entry_price(handle, proposal, recent_ticks)
            if entry_price is None:
                continue
            trade = ActiveTrade.accept(
                proposal,
                entry_price=entry_price,
                stop_loss_fraction=self.settings.stop_loss_fraction,
                start_time=self.clock(),
                opened_at=opened_at,
            )
            handle.trades[trade.id] = trade

        if not handle.trades:
            overall = result.overall_reasoning.strip()
            reason = f"{NO_TRADES_REASON}: {overall}" if overall else NO_TRADES_REASON
            logger.info(f"[session {session_id[:8]}] {reason}")
            self._complete(handle, reason)
            return handle

        handle.aggregator = self._aggregator_for(account_mode, trade_category)
        interval = self._tick_interval(trade_category)
        for trade in handle.trades.values():
            handle.monitors[trade.id] = TradeLifecycleMonitor(
                trade,
                self.price_feed,
                partial(self._on_trade_finalized, handle),
                tick_interval=interval,
                payout_multiplier=self.settings.payout_multiplier,
                win_draw=self.win_draw,
                clock=self.clock,
                price_timeout=self.settings.price_fetch_timeout,
                on_tick=partial(self._on_trade_tick, handle),
            )

        # a stop can land while entry prices are still being fetched
        if handle.stop_requested:
            forced = sum(1 for monitor in handle.monitors.values() if monitor.force_stop())
            logger.info(f"[session {session_id[:8]}] Stopped during start; {forced} trade(s) closed at a loss")
            return handle

        handle._supervisor = asyncio.create_task(
            self._supervise(handle), name=f"session-{session_id[:8]}"
        )
        logger.info(
            f"[session {session_id[:8]}] Started {len(handle.trades)} trade(s) on "
            f"{account_mode}/{trade_category} with budget {budget}"
        )
        return handle

    async def _collect_ticks(
        self, instruments: list[str], diagnostics: list[tuple[str, str | None]]
    ) -> dict[str, list[PriceTick]]:
        async def fetch(instrument: str):
            try:
                return instrument, await self._fetch_ticks(instrument)
            except PriceSourceError as e:
                diagnostics.append((f"Could not fetch price data: {e}", instrument))
                return instrument, []

        results = await asyncio.gather(*(fetch(i) for i in instruments))
        return dict(results)

    async def _fetch_ticks(self, instrument: str) -> list[PriceTick]:
        timeout = self.settings.price_fetch_timeout
        try:
            async with asyncio.timeout(timeout):
                return list(await self.price_source.latest_ticks(instrument))
        except TimeoutError as e:
            raise PriceSourceTimeoutError(instrument, timeout) from e
        except PriceSourceError:
            raise
        except Exception as e:
            raise PriceSourceError(instrument, str(e)) from e

    async def _generate(self, provider, budget, instruments, risk_mode, recent_ticks):
        timeout = self.settings.strategy_timeout
        try:
            async with asyncio.timeout(timeout):
                result = await provider.generate(budget, instruments, risk_mode, recent_ticks)
        except TimeoutError as e:
            raise StrategyGenerationError(f"Strategy provider timed out after {timeout:g}s") from e
        except Exception as e:
            raise StrategyGenerationError(f"Strategy provider failed: {e}") from e
        if result is None:
            raise StrategyGenerationError("Strategy provider returned no result")
        return result

    async def _entry_price(
        self,
        handle: SessionHandle,
        proposal: TradeProposal,
        recent_ticks: dict[str, list[PriceTick]],
    ) -> Decimal | None:
        ticks = recent_ticks.get(proposal.instrument)
        if ticks is None:
            try:
                ticks = await self._fetch_ticks(proposal.instrument)
            except PriceSourceError as e:
                self._diagnose(handle, f"Trade skipped, price source failed: {e}", proposal.instrument)
                return None
            recent_ticks[proposal.instrument] = ticks
        if not ticks:
            self._diagnose(handle, f"Trade skipped, no price data for {proposal.instrument}", proposal.instrument)
            return None
        return ticks[-1].price

    # ------------------------------------------------------------------
    # Running
    # ------------------------------------------------------------------

    async def _supervise(self, handle: SessionHandle):
        async with asyncio.TaskGroup() as group:
            for trade_id, monitor in handle.monitors.items():
                monitor.task = group.create_task(monitor.run(), name=f"trade-{trade_id[:8]}")

    def _on_trade_tick(self, handle: SessionHandle, trade: ActiveTrade):
        self.events.publish(TradeTicked(handle.id, trade.id, trade.instrument, trade.current_price))

    def _on_trade_finalized(self, handle: SessionHandle, trade: ActiveTrade):
        if handle.is_complete:
            logger.warning(f"[session {handle.id[:8]}] Ignoring finalization of {trade.id} after completion")
            return

        stats = handle.aggregator.record(trade.pnl, trade.status)
        try:
            self.balance_store.apply(handle.account_mode, trade.pnl)
            self.statistics_store.save(handle.account_mode, handle.trade_category, stats)
            if self.history_store is not None:
                self.history_store.add(trade, handle.id, handle.account_mode, handle.trade_category)
        except Exception as e:
            logger.error(f"[session {handle.id[:8]}] Failed to persist trade {trade.id}: {e}", exc_info=True)
            self._diagnose(handle, f"Failed to persist trade result: {e}", trade.instrument)

        self.events.publish(
            TradeFinalized(handle.id, trade.id, trade.instrument, trade.status.value, trade.pnl)
        )
        if not handle.active_trades:
            self._complete(handle, STOPPED_REASON if handle.stop_requested else ALL_CONCLUDED_REASON)

    def _complete(self, handle: SessionHandle, reason: str):
        if handle.is_complete:
            return
        handle.completion_reason = reason
        handle.completed_at = datetime.now(timezone.utc)
        logger.info(
            f"[session {handle.id[:8]}] Complete: {reason} "
            f"({len(handle.trades)} trade(s), net {handle.net_pnl:+.2f})"
        )
        self.events.publish(SessionCompleted(handle.id, reason, len(handle.trades), handle.net_pnl))
        handle._done.set()

    def _diagnose(self, handle: SessionHandle, message: str, instrument: str | None = None):
        logger.warning(f"[session {handle.id[:8]}] {message}")
        handle.diagnostics.append(message)
        self.events.publish(SessionDiagnostic(handle.id, message, instrument))

    # ------------------------------------------------------------------
    # Stop / teardown
    # ------------------------------------------------------------------

    async def stop(self, handle: SessionHandle) -> int:
        """Force every active trade to a manual-stop loss.

        Returns the number of trades finalized by this call; 0 when the session
        had already completed.
        """
        if handle.is_complete:
            logger.info(f"[session {handle.id[:8]}] Stop requested after completion; nothing to do")
            return 0

        handle.stop_requested = True
        forced = 0
        for monitor in list(handle.monitors.values()):
            if monitor.force_stop():
                forced += 1
        if handle._supervisor is not None:
            await asyncio.gather(handle._supervisor, return_exceptions=True)
        logger.info(f"[session {handle.id[:8]}] Stopped manually; {forced} trade(s) closed at a loss")
        return forced

    async def stop_all(self) -> int:
        total = 0
        for handle in list(self.sessions.values()):
            total += await self.stop(handle)
        return total

    async def shutdown(self):
        """Cancel all monitoring without settling trades (process exit)."""
        supervisors = [h._supervisor for h in self.sessions.values() if h._supervisor and not h._supervisor.done()]
        for task in supervisors:
            task.cancel()
        if supervisors:
            await asyncio.gather(*supervisors, return_exceptions=True)
            logger.warning(f"Shutdown cancelled {len(supervisors)} running session(s)")

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def get(self, session_id: str) -> SessionHandle:
        return self.sessions[session_id]

    def statistics(self, account_mode: str, trade_category: str) -> SessionStatistics:
        return self._aggregator_for(account_mode, trade_category).snapshot()

    def reset_statistics(self, account_mode: str, trade_category: str) -> SessionStatistics:
        stats = self._aggregator_for(account_mode, trade_category).reset()
        self.statistics_store.save(account_mode, trade_category, stats)
        logger.info(f"Statistics reset for {account_mode}/{trade_category}")
        return stats

    def _aggregator_for(self, account_mode: str, trade_category: str) -> StatisticsAggregator:
        """One aggregator per key, seeded from the store on first use."""
        key = (account_mode, trade_category)
        if key not in self._aggregators:
            self._aggregators[key] = StatisticsAggregator(self.statistics_store.load(account_mode, trade_category))
        return self._aggregators[key]

    def _tick_interval(self, trade_category: str) -> float:
        if trade_category == VOLATILITY:
            return self.settings.volatility_tick_interval
        return self.settings.tick_interval


def _to_budget(budget) -> Decimal:
    try:
        value = budget if isinstance(budget, Decimal) else Decimal(str(budget))
    except (InvalidOperation, ValueError) as e:
        raise InvalidBudgetError(budget) from e
    if not value.is_finite() or value <= 0:
        raise InvalidBudgetError(budget)
    return value
