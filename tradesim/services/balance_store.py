"""Simulated account balances, one row per account mode."""

import logging
from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import update
from sqlmodel import Session

from tradesim.config import Settings, settings as default_settings
from tradesim.models.balance import AccountBalance

logger = logging.getLogger(__name__)


def _to_decimal(value: float) -> Decimal:
    """Balances are stored as plain floats and rounded to cents on read."""
    return Decimal(str(round(value, 2)))


class SqlBalanceStore:
    def __init__(self, engine=None, settings: Settings | None = None):
        if engine is None:
            from tradesim.database import engine as default_engine
            engine = default_engine
        self.engine = engine
        self.settings = settings or default_settings

    def _default_for(self, account_mode: str) -> float:
        if account_mode == "paper":
            return self.settings.default_paper_balance
        return self.settings.default_live_balance

    def _ensure(self, session: Session, account_mode: str) -> AccountBalance:
        row = session.get(AccountBalance, account_mode)
        if row is None:
            row = AccountBalance(account_mode=account_mode, balance=self._default_for(account_mode))
            session.add(row)
            session.commit()
            session.refresh(row)
        return row

    def get(self, account_mode: str) -> Decimal:
        with Session(self.engine) as session:
            return _to_decimal(self._ensure(session, account_mode).balance)

    def apply(self, account_mode: str, delta: Decimal) -> Decimal:
        """Add ``delta`` in a single UPDATE so concurrent finalizations never lose a write."""
        with Session(self.engine) as session:
            self._ensure(session, account_mode)
            session.exec(
                update(AccountBalance)
                .where(AccountBalance.account_mode == account_mode)
                .values(
                    balance=AccountBalance.balance + float(delta),
                    updated_at=datetime.now(timezone.utc),
                )
            )
            session.commit()
            row = session.get(AccountBalance, account_mode)
            session.refresh(row)
            logger.debug(f"Balance {account_mode} {delta:+.2f} -> {row.balance:.2f}")
            return _to_decimal(row.balance)

    def set(self, account_mode: str, balance: Decimal) -> Decimal:
        with Session(self.engine) as session:
            row = self._ensure(session, account_mode)
            row.balance = round(float(balance), 2)
            row.updated_at = datetime.now(timezone.utc)
            session.add(row)
            session.commit()
            return _to_decimal(row.balance)
