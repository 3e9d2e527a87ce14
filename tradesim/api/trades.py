"""Trade history API."""

from fastapi import APIRouter, Depends, HTTPException
from sqlmodel import Session

from tradesim.api.deps import get_controller
from tradesim.database import get_session
from tradesim.engine.session import SessionController
from tradesim.models.trade import Trade

router = APIRouter(prefix="/api/trades", tags=["trades"])


@router.get("")
def list_trades(
    account_mode: str | None = None,
    session_id: str | None = None,
    limit: int = 50,
    offset: int = 0,
    controller: SessionController = Depends(get_controller),
):
    return controller.history_store.list(account_mode, session_id, limit=limit, offset=offset)


@router.get("/{trade_id}")
def get_trade(trade_id: str, session: Session = Depends(get_session)):
    trade = session.get(Trade, trade_id)
    if not trade:
        raise HTTPException(status_code=404, detail="Trade not found")
    return trade
