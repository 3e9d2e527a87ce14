"""Session API: start, stop, inspect and follow trading sessions."""

import json
import logging

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import StreamingResponse

from tradesim.api.deps import get_controller, get_handle, get_strategy_provider
from tradesim.engine.errors import SessionStartError
from tradesim.engine.events import SessionCompleted
from tradesim.engine.session import SessionController, SessionHandle
from tradesim.schemas.session import SessionRead, SessionStartRequest
from tradesim.services.strategy_provider import StaticStrategyProvider

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/sessions", tags=["sessions"])


@router.post("", response_model=SessionRead, status_code=status.HTTP_201_CREATED)
async def start_session(
    body: SessionStartRequest,
    controller: SessionController = Depends(get_controller),
    default_provider=Depends(get_strategy_provider),
):
    if body.proposals is not None:
        provider = StaticStrategyProvider([p.to_proposal() for p in body.proposals])
    else:
        provider = default_provider

    try:
        handle = await controller.start(
            provider,
            body.budget,
            body.risk_mode,
            account_mode=body.account_mode,
            trade_category=body.trade_category,
            instruments=body.instruments,
        )
    except SessionStartError as e:
        logger.warning(f"Session start failed: {e}")
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    return SessionRead.from_handle(handle)


@router.get("", response_model=list[SessionRead])
async def list_sessions(
    running: bool | None = None,
    controller: SessionController = Depends(get_controller),
):
    handles = list(controller.sessions.values())
    if running is not None:
        handles = [h for h in handles if (not h.is_complete) == running]
    handles.sort(key=lambda h: h.started_at, reverse=True)
    return [SessionRead.from_handle(h) for h in handles]


@router.get("/{session_id}", response_model=SessionRead)
async def get_session_snapshot(session_id: str, controller: SessionController = Depends(get_controller)):
    return SessionRead.from_handle(get_handle(controller, session_id))


@router.post("/{session_id}/stop")
async def stop_session(session_id: str, controller: SessionController = Depends(get_controller)):
    """Close every active trade at a loss of its full stake."""
    handle = get_handle(controller, session_id)
    forced = await controller.stop(handle)
    return {"forced": forced, "session": SessionRead.from_handle(handle)}


def _sse(kind: str, data: dict) -> str:
    return f"event: {kind}\ndata: {json.dumps(data)}\n\n"


def _completed_sse(handle: SessionHandle) -> str:
    event = SessionCompleted(handle.id, handle.completion_reason, len(handle.trades), handle.net_pnl)
    return _sse(event.kind, event.to_dict())


async def _event_stream(controller: SessionController, handle: SessionHandle):
    queue = controller.events.subscribe()
    try:
        if handle.is_complete:
            yield _completed_sse(handle)
            return
        while True:
            event = await queue.get()
            if event.session_id == handle.id:
                yield _sse(event.kind, event.to_dict())
                if isinstance(event, SessionCompleted):
                    return
            # the completion event was dropped from a full queue
            if handle.is_complete and queue.empty():
                yield _completed_sse(handle)
                return
    finally:
        controller.events.unsubscribe(queue)


@router.get("/{session_id}/events")
async def session_events(session_id: str, controller: SessionController = Depends(get_controller)):
    """Server-sent events for one session; the stream ends when the session completes."""
    handle = get_handle(controller, session_id)
    return StreamingResponse(_event_stream(controller, handle), media_type="text/event-stream")
