"""Core trade entities.

Monetary and price values are ``Decimal``; persistence layers convert to float
at their boundary.
"""

import uuid
from dataclasses import dataclass, field, replace
from decimal import Decimal, ROUND_HALF_UP
from enum import Enum

from tradesim.engine.errors import TradeAlreadyFinalizedError
from tradesim.utils.constants import instrument_decimals


class Direction(str, Enum):
    CALL = "CALL"
    PUT = "PUT"


class TradeStatus(str, Enum):
    ACTIVE = "active"
    WON = "won"
    LOST_DURATION = "lost_duration"
    LOST_STOPLOSS = "lost_stoploss"

    @property
    def is_terminal(self) -> bool:
        return self is not TradeStatus.ACTIVE


@dataclass(frozen=True)
class PriceTick:
    epoch: float
    price: Decimal
    display_time: str = ""


@dataclass(frozen=True)
class TradeProposal:
    instrument: str
    direction: Direction
    stake: Decimal
    duration_seconds: int
    rationale: str = ""

    def __post_init__(self):
        # whole-number and float stakes are accepted as amounts
        if isinstance(self.stake, (int, float)) and not isinstance(self.stake, bool):
            object.__setattr__(self, "stake", Decimal(str(self.stake)))

    def with_stake(self, stake: Decimal) -> "TradeProposal":
        return replace(self, stake=stake)


def quantize_price(value: Decimal, instrument: str) -> Decimal:
    places = instrument_decimals(instrument)
    return value.quantize(Decimal(1).scaleb(-places), rounding=ROUND_HALF_UP)


def stop_loss_price(entry_price: Decimal, direction: Direction, fraction: Decimal, instrument: str) -> Decimal:
    """Stop-loss level a fixed fraction away from entry, against the trade direction."""
    if direction is Direction.CALL:
        raw = entry_price * (1 - fraction)
    else:
        raw = entry_price * (1 + fraction)
    return quantize_price(raw, instrument)


@dataclass
class ActiveTrade:
    """An accepted proposal under live monitoring.

    ``status`` and ``pnl`` are written once, through :meth:`finalize`. Only
    ``current_price`` changes while the trade is active.
    """

    proposal: TradeProposal
    entry_price: Decimal
    stop_loss_price: Decimal
    start_time: float
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    current_price: Decimal | None = None
    opened_at: float | None = None  # wall-clock epoch, for history records
    _status: TradeStatus = field(default=TradeStatus.ACTIVE, init=False)
    _pnl: Decimal | None = field(default=None, init=False)
    _note: str = field(default="", init=False)

    def __post_init__(self):
        if self.current_price is None:
            self.current_price = self.entry_price

    @classmethod
    def accept(
        cls,
        proposal: TradeProposal,
        entry_price: Decimal,
        stop_loss_fraction: Decimal,
        start_time: float,
        opened_at: float | None = None,
    ) -> "ActiveTrade":
        return cls(
            proposal=proposal,
            entry_price=entry_price,
            stop_loss_price=stop_loss_price(
                entry_price, proposal.direction, stop_loss_fraction, proposal.instrument
            ),
            start_time=start_time,
            opened_at=opened_at,
        )

    # Proposal fields
    @property
    def instrument(self) -> str:
        return self.proposal.instrument

    @property
    def direction(self) -> Direction:
        return self.proposal.direction

    @property
    def stake(self) -> Decimal:
        return self.proposal.stake

    @property
    def duration_seconds(self) -> int:
        return self.proposal.duration_seconds

    @property
    def rationale(self) -> str:
        if self._note:
            return f"{self.proposal.rationale} {self._note}".strip()
        return self.proposal.rationale

    # Lifecycle fields
    @property
    def status(self) -> TradeStatus:
        return self._status

    @property
    def pnl(self) -> Decimal | None:
        return self._pnl

    @property
    def is_active(self) -> bool:
        return self._status is TradeStatus.ACTIVE

    def update_price(self, price: Decimal):
        if self.is_active:
            self.current_price = price

    def stop_loss_breached(self, price: Decimal) -> bool:
        if self.direction is Direction.CALL:
            return price <= self.stop_loss_price
        return price >= self.stop_loss_price

    def finalize(self, status: TradeStatus, pnl: Decimal, note: str = ""):
        """Move out of ``active`` exactly once."""
        if not self.is_active:
            raise TradeAlreadyFinalizedError(self.id, self._status.value)
        if not status.is_terminal:
            raise ValueError("finalize() requires a terminal status")
        self._status = status
        self._pnl = pnl
        self._note = note

    def snapshot(self) -> "TradeSnapshot":
        return TradeSnapshot(
            id=self.id,
            instrument=self.instrument,
            direction=self.direction,
            stake=self.stake,
            duration_seconds=self.duration_seconds,
            rationale=self.rationale,
            entry_price=self.entry_price,
            stop_loss_price=self.stop_loss_price,
            current_price=self.current_price,
            start_time=self.start_time,
            status=self.status,
            pnl=self.pnl,
        )


@dataclass(frozen=True)
class TradeSnapshot:
    """Read-only view of an ActiveTrade at one point in time."""

    id: str
    instrument: str
    direction: Direction
    stake: Decimal
    duration_seconds: int
    rationale: str
    entry_price: Decimal
    stop_loss_price: Decimal
    current_price: Decimal
    start_time: float
    status: TradeStatus
    pnl: Decimal | None
