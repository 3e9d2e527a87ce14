"""Closed-trade history, newest first, trimmed per account mode."""

import logging
from datetime import datetime, timezone

from sqlmodel import Session, select

from tradesim.config import Settings, settings as default_settings
from tradesim.engine.types import ActiveTrade
from tradesim.models.trade import Trade

logger = logging.getLogger(__name__)


class SqlTradeHistoryStore:
    def __init__(self, engine=None, settings: Settings | None = None):
        if engine is None:
            from tradesim.database import engine as default_engine
            engine = default_engine
        self.engine = engine
        self.settings = settings or default_settings

    def add(self, trade: ActiveTrade, session_id: str, account_mode: str, trade_category: str) -> None:
        if trade.is_active:
            raise ValueError(f"Trade {trade.id} is still active")
        opened_at = (
            datetime.fromtimestamp(trade.opened_at, tz=timezone.utc)
            if trade.opened_at is not None
            else datetime.now(timezone.utc)
        )
        record = Trade(
            id=trade.id,
            session_id=session_id,
            account_mode=account_mode,
            trade_category=trade_category,
            instrument=trade.instrument,
            action=trade.direction.value,
            stake=float(trade.stake),
            duration_seconds=trade.duration_seconds,
            entry_price=float(trade.entry_price),
            exit_price=float(trade.current_price),
            stop_loss_price=float(trade.stop_loss_price),
            pnl=round(float(trade.pnl), 2),
            status=trade.status.value,
            reasoning=trade.rationale,
            opened_at=opened_at,
        )
        with Session(self.engine) as session:
            # merge keeps ids unique if the same trade is recorded twice
            session.merge(record)
            session.commit()
            self._trim(session, account_mode)

    def _trim(self, session: Session, account_mode: str):
        stale = session.exec(
            select(Trade)
            .where(Trade.account_mode == account_mode)
            .order_by(Trade.closed_at.desc())
            .offset(self.settings.max_history_length)
        ).all()
        if not stale:
            return
        for row in stale:
            session.delete(row)
        session.commit()
        logger.debug(f"Trimmed {len(stale)} old {account_mode} trade(s) from history")

    def list(
        self,
        account_mode: str | None = None,
        session_id: str | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> list[Trade]:
        with Session(self.engine) as session:
            stmt = select(Trade).order_by(Trade.closed_at.desc())
            if account_mode is not None:
                stmt = stmt.where(Trade.account_mode == account_mode)
            if session_id is not None:
                stmt = stmt.where(Trade.session_id == session_id)
            return list(session.exec(stmt.offset(offset).limit(limit)).all())
