"""Statistics API: running P/L per account mode and trade category."""

from fastapi import APIRouter, Depends

from tradesim.api.deps import check_account_mode, check_trade_category, get_controller
from tradesim.engine.session import SessionController
from tradesim.schemas.session import StatisticsRead

router = APIRouter(prefix="/api/statistics", tags=["statistics"])


@router.get("/{account_mode}/{trade_category}", response_model=StatisticsRead)
async def get_statistics(
    account_mode: str,
    trade_category: str,
    controller: SessionController = Depends(get_controller),
):
    check_account_mode(account_mode)
    check_trade_category(trade_category)
    stats = controller.statistics(account_mode, trade_category)
    return StatisticsRead.build(account_mode, trade_category, stats)


@router.post("/{account_mode}/{trade_category}/claim")
async def claim_profits(
    account_mode: str,
    trade_category: str,
    controller: SessionController = Depends(get_controller),
):
    """Zero the counters. Profits are already reflected in the balance."""
    check_account_mode(account_mode)
    check_trade_category(trade_category)
    claimed = controller.statistics(account_mode, trade_category).total_net_profit
    stats = controller.reset_statistics(account_mode, trade_category)
    return {
        "claimed": round(float(claimed), 2),
        "statistics": StatisticsRead.build(account_mode, trade_category, stats),
    }
