"""System API: health check and emergency stop."""

from fastapi import APIRouter, Depends

from tradesim.api.deps import get_controller
from tradesim.engine.session import SessionController

router = APIRouter(prefix="/api/system", tags=["system"])


@router.get("/health")
def health_check():
    return {"status": "ok"}


@router.post("/emergency-stop")
async def emergency_stop(controller: SessionController = Depends(get_controller)):
    """Stop every running session."""
    forced = await controller.stop_all()
    return {"trades_closed": forced}
