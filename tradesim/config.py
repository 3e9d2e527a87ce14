"""Application configuration via environment variables."""

from decimal import Decimal

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    database_url: str = "sqlite:///tradesim.db"
    log_level: str = "INFO"
    cors_origins: list[str] = ["http://localhost:5173"]  # Vite dev server

    # Trade lifecycle
    stop_loss_fraction: Decimal = Decimal("0.05")
    payout_multiplier: Decimal = Decimal("0.85")
    win_probability: float = 0.70  # simulated outcome draw at duration expiry
    min_stake_granularity: Decimal = Decimal("0.01")
    tick_interval: float = 2.0  # forex / crypto / commodities
    volatility_tick_interval: float = 1.0

    # External collaborators
    price_fetch_timeout: float = 15.0
    strategy_timeout: float = 60.0

    # Accounts
    default_paper_balance: float = 10000.0
    default_live_balance: float = 0.0
    max_history_length: int = 100  # closed trades kept per account mode

    # Telegram
    telegram_bot_token: str = ""
    telegram_chat_ids: list[int] = []

    model_config = {"env_prefix": "TSIM_", "env_file": ".env"}


settings = Settings()
