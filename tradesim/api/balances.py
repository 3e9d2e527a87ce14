"""Balance API: simulated account balances."""

from fastapi import APIRouter, Depends

from tradesim.api.deps import check_account_mode, get_controller
from tradesim.engine.session import SessionController
from tradesim.schemas.session import BalanceRead

router = APIRouter(prefix="/api/balances", tags=["balances"])


@router.get("/{account_mode}", response_model=BalanceRead)
async def get_balance(account_mode: str, controller: SessionController = Depends(get_controller)):
    check_account_mode(account_mode)
    balance = controller.balance_store.get(account_mode)
    return BalanceRead(account_mode=account_mode, balance=float(balance))
