"""Markets API: tradable instruments per category."""

from fastapi import APIRouter

from tradesim.utils.constants import TRADE_CATEGORIES, instrument_decimals

router = APIRouter(prefix="/api/markets", tags=["markets"])


@router.get("")
def list_markets():
    return {
        category: [
            {"instrument": name, "decimal_places": instrument_decimals(name)}
            for name in instruments
        ]
        for category, instruments in TRADE_CATEGORIES.items()
    }
