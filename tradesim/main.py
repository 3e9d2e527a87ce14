"""FastAPI application entry point."""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from tradesim.config import settings
from tradesim.database import create_db_and_tables
from tradesim.engine.events import EventBus
from tradesim.engine.session import SessionController
from tradesim.services.balance_store import SqlBalanceStore
from tradesim.services.price_source import SimulatedPriceSource
from tradesim.services.statistics_store import SqlStatisticsStore
from tradesim.services.strategy_provider import TrendStrategyProvider
from tradesim.services.trade_history import SqlTradeHistoryStore
from tradesim.utils.logging import setup_logging
from tradesim.api import balances, markets, sessions, statistics, system, trades


def build_controller() -> SessionController:
    """Controller wired to the SQL stores and the simulated price source."""
    return SessionController(
        price_source=SimulatedPriceSource(),
        balance_store=SqlBalanceStore(),
        statistics_store=SqlStatisticsStore(),
        history_store=SqlTradeHistoryStore(),
        event_bus=EventBus(),
        settings=settings,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events."""
    setup_logging()
    create_db_and_tables()
    controller = build_controller()
    app.state.controller = controller
    app.state.strategy_provider = TrendStrategyProvider()

    # Start Telegram bot if configured
    telegram_bot = None
    if settings.telegram_bot_token:
        from tradesim.services.telegram_bot import init_bot
        telegram_bot = init_bot(controller)
        telegram_bot.start()

    yield

    if telegram_bot:
        telegram_bot.stop()
    await controller.shutdown()


app = FastAPI(
    title="Trade Simulator",
    description="Simulated automated-trade lifecycle engine",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Mount routers
app.include_router(sessions.router)
app.include_router(statistics.router)
app.include_router(balances.router)
app.include_router(trades.router)
app.include_router(markets.router)
app.include_router(system.router)
