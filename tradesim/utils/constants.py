"""Instrument catalogue, trade categories and account modes."""

import logging

logger = logging.getLogger(__name__)

ACCOUNT_MODES = ["paper", "live"]
RISK_MODES = ["conservative", "balanced", "aggressive"]

FOREX_CRYPTO_COMMODITY = "forex_crypto_commodity"
VOLATILITY = "volatility"

TRADE_CATEGORIES: dict[str, list[str]] = {
    FOREX_CRYPTO_COMMODITY: ["EUR/USD", "GBP/USD", "BTC/USD", "XAU/USD", "ETH/USD"],
    VOLATILITY: [
        "Volatility 10 Index",
        "Volatility 25 Index",
        "Volatility 50 Index",
        "Volatility 75 Index",
        "Volatility 100 Index",
    ],
}

INSTRUMENT_DECIMALS: dict[str, int] = {
    "EUR/USD": 5,
    "GBP/USD": 5,
    "BTC/USD": 2,
    "ETH/USD": 2,
    "XAU/USD": 2,
    "Volatility 10 Index": 3,
    "Volatility 25 Index": 3,
    "Volatility 50 Index": 2,
    "Volatility 75 Index": 4,
    "Volatility 100 Index": 2,
}

# Seed prices for the simulated price source
BASE_PRICES: dict[str, float] = {
    "EUR/USD": 1.08540,
    "GBP/USD": 1.27120,
    "BTC/USD": 67250.00,
    "ETH/USD": 3480.00,
    "XAU/USD": 2345.00,
    "Volatility 10 Index": 6523.456,
    "Volatility 25 Index": 2890.125,
    "Volatility 50 Index": 410.55,
    "Volatility 75 Index": 512345.6789,
    "Volatility 100 Index": 1875.42,
}

DEFAULT_DECIMALS = 2


def instrument_decimals(instrument: str) -> int:
    """Price precision for an instrument, falling back to 2 places."""
    places = INSTRUMENT_DECIMALS.get(instrument)
    if places is None:
        logger.warning(f"Unknown instrument {instrument!r}; defaulting to {DEFAULT_DECIMALS} decimal places")
        return DEFAULT_DECIMALS
    return places
