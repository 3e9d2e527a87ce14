"""Shared API dependencies."""

from fastapi import HTTPException, Request, status

from tradesim.engine.collaborators import StrategyProvider
from tradesim.engine.session import SessionController, SessionHandle
from tradesim.utils.constants import ACCOUNT_MODES, TRADE_CATEGORIES


def get_controller(request: Request) -> SessionController:
    return request.app.state.controller


def get_strategy_provider(request: Request) -> StrategyProvider:
    return request.app.state.strategy_provider


def get_handle(controller: SessionController, session_id: str) -> SessionHandle:
    try:
        return controller.get(session_id)
    except KeyError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Session not found")


def check_account_mode(account_mode: str):
    if account_mode not in ACCOUNT_MODES:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Unknown account mode {account_mode!r}")


def check_trade_category(trade_category: str):
    if trade_category not in TRADE_CATEGORIES:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Unknown trade category {trade_category!r}")
