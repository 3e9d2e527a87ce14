"""Error taxonomy for the trade lifecycle engine."""

from decimal import Decimal


class TradingEngineError(Exception):
    """Base class for engine errors."""


class SessionStartError(TradingEngineError):
    """Raised before any trade is spawned; the session is not created."""


class InvalidBudgetError(SessionStartError):
    def __init__(self, budget):
        super().__init__(f"Budget must be positive, got {budget}")
        self.budget = budget


class InsufficientBalanceError(SessionStartError):
    def __init__(self, budget, balance):
        super().__init__(f"Budget {budget} exceeds available balance of {balance:.2f}")
        self.budget = budget
        self.balance = balance


class StrategyGenerationError(SessionStartError):
    """The strategy provider failed or timed out."""


class AllocationError(SessionStartError):
    """Rescaled stakes still exceed the budget after rounding."""

    def __init__(self, shortfall: Decimal, total: Decimal, budget: Decimal):
        super().__init__(
            f"Allocated stake {total} exceeds budget {budget} by {shortfall} after rounding"
        )
        self.shortfall = shortfall
        self.total = total
        self.budget = budget


class PriceSourceError(TradingEngineError):
    """Price data for one instrument could not be fetched."""

    def __init__(self, instrument: str, message: str):
        super().__init__(f"{instrument}: {message}")
        self.instrument = instrument


class PriceSourceTimeoutError(PriceSourceError):
    def __init__(self, instrument: str, timeout: float):
        super().__init__(instrument, f"price fetch timed out after {timeout:g}s")
        self.timeout = timeout


class TradeAlreadyFinalizedError(TradingEngineError):
    def __init__(self, trade_id: str, status: str):
        super().__init__(f"Trade {trade_id} already finalized as {status}")
        self.trade_id = trade_id
        self.status = status
