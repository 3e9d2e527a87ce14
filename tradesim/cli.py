"""CLI tool for simulation and admin operations.

Usage:
    python -m tradesim.cli run-session <budget> [risk_mode] [trade_category]
    python -m tradesim.cli balance <account_mode>
    python -m tradesim.cli set-balance <account_mode> <amount>
    python -m tradesim.cli reset-stats <account_mode> <trade_category>
"""

import asyncio
import sys
from decimal import Decimal, InvalidOperation

from tradesim.database import create_db_and_tables
from tradesim.engine.errors import SessionStartError
from tradesim.engine.events import Event, SessionCompleted, SessionDiagnostic, TradeFinalized
from tradesim.engine.statistics import SessionStatistics
from tradesim.services.balance_store import SqlBalanceStore
from tradesim.services.statistics_store import SqlStatisticsStore
from tradesim.services.strategy_provider import TrendStrategyProvider
from tradesim.utils.constants import ACCOUNT_MODES, RISK_MODES, TRADE_CATEGORIES, VOLATILITY
from tradesim.utils.logging import setup_logging


def _print_event(event: Event):
    if isinstance(event, TradeFinalized):
        print(f"  {event.instrument:<22} {event.status:<14} P/L {float(event.pnl):+9.2f}")
    elif isinstance(event, SessionDiagnostic):
        print(f"  ! {event.message}")
    elif isinstance(event, SessionCompleted):
        print(f"Session complete: {event.reason} (net {float(event.net_pnl):+.2f})")


async def _run_session(budget: str, risk_mode: str, trade_category: str) -> int:
    from tradesim.main import build_controller

    controller = build_controller()
    controller.events.add_listener(_print_event)
    try:
        handle = await controller.start(
            TrendStrategyProvider(), budget, risk_mode, account_mode="paper", trade_category=trade_category
        )
    except SessionStartError as e:
        print(f"Could not start session: {e}")
        return 1

    print(f"Session {handle.id[:8]}: {handle.reasoning}")
    for snap in handle.snapshot():
        print(
            f"  {snap.instrument:<22} {snap.direction.value:<4} stake {snap.stake} "
            f"entry {snap.entry_price} stop {snap.stop_loss_price} for {snap.duration_seconds}s"
        )
    try:
        await handle.wait()
    except (KeyboardInterrupt, asyncio.CancelledError):
        await controller.stop(handle)
    stats = controller.statistics("paper", trade_category)
    print(
        f"Totals: {stats.trade_count} trades, {stats.winning_trades} won, "
        f"{stats.losing_trades} lost, net {stats.total_net_profit:+.2f}"
    )
    return 0


def run_session(args: list[str]):
    if not args:
        print("Usage: python -m tradesim.cli run-session <budget> [risk_mode] [trade_category]")
        sys.exit(1)
    budget = args[0]
    risk_mode = args[1] if len(args) > 1 else "balanced"
    trade_category = args[2] if len(args) > 2 else VOLATILITY
    if risk_mode not in RISK_MODES:
        print(f"Unknown risk mode '{risk_mode}'. Choose from: {', '.join(RISK_MODES)}")
        sys.exit(1)
    if trade_category not in TRADE_CATEGORIES:
        print(f"Unknown trade category '{trade_category}'. Choose from: {', '.join(TRADE_CATEGORIES)}")
        sys.exit(1)

    create_db_and_tables()
    sys.exit(asyncio.run(_run_session(budget, risk_mode, trade_category)))


def show_balance(args: list[str]):
    account_mode = args[0] if args else "paper"
    if account_mode not in ACCOUNT_MODES:
        print(f"Unknown account mode '{account_mode}'.")
        sys.exit(1)
    create_db_and_tables()
    print(f"{account_mode}: {SqlBalanceStore().get(account_mode):.2f}")


def set_balance(args: list[str]):
    if len(args) < 2:
        print("Usage: python -m tradesim.cli set-balance <account_mode> <amount>")
        sys.exit(1)
    account_mode = args[0]
    if account_mode not in ACCOUNT_MODES:
        print(f"Unknown account mode '{account_mode}'.")
        sys.exit(1)
    try:
        amount = Decimal(args[1])
    except InvalidOperation:
        print(f"Invalid amount '{args[1]}'.")
        sys.exit(1)
    create_db_and_tables()
    print(f"{account_mode}: {SqlBalanceStore().set(account_mode, amount):.2f}")


def reset_stats(args: list[str]):
    if len(args) < 2:
        print("Usage: python -m tradesim.cli reset-stats <account_mode> <trade_category>")
        sys.exit(1)
    account_mode, trade_category = args[0], args[1]
    create_db_and_tables()
    store = SqlStatisticsStore()
    previous = store.load(account_mode, trade_category)
    store.save(account_mode, trade_category, SessionStatistics())
    print(f"Reset {account_mode}/{trade_category} (was {previous.trade_count} trades, net {previous.total_net_profit:+.2f})")


COMMANDS = {
    "run-session": run_session,
    "balance": show_balance,
    "set-balance": set_balance,
    "reset-stats": reset_stats,
}


def main():
    if len(sys.argv) < 2:
        print("Usage: python -m tradesim.cli <command>")
        print(f"Commands: {', '.join(COMMANDS)}")
        sys.exit(1)

    setup_logging()
    command = sys.argv[1]
    handler = COMMANDS.get(command)
    if handler is None:
        print(f"Unknown command: {command}")
        sys.exit(1)
    handler(sys.argv[2:])


if __name__ == "__main__":
    main()
