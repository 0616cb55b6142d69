"""Realtime API routes: session bookkeeping and the workflow status socket."""

import json
from typing import List, Optional

import structlog
from fastapi import APIRouter, Depends, Query, WebSocket, WebSocketDisconnect, status
from sqlalchemy.ext.asyncio import AsyncSession

from pumpflix.auth.dependencies import get_current_user
from pumpflix.auth.models import User
from pumpflix.auth.security import token_manager
from pumpflix.auth.service import UserService
from pumpflix.database import get_postgres_session
from pumpflix.realtime.manager import StatusEvent, StatusEventType, StatusRelay, get_status_relay
from pumpflix.realtime.schemas import SessionEnd, SessionResponse, SessionStart
from pumpflix.realtime.service import SessionService
from pumpflix.workflows.exceptions import WorkflowNotFoundError
from pumpflix.workflows.service import WorkflowService

logger = structlog.get_logger()

router = APIRouter(prefix="/ws", tags=["Realtime"])


def get_session_service(db: AsyncSession = Depends(get_postgres_session)) -> SessionService:
    """Get WebSocket session service instance."""
    return SessionService(db)


@router.post("/sessions/start", response_model=SessionResponse, status_code=status.HTTP_201_CREATED)
async def start_session(
    data: SessionStart,
    current_user: User = Depends(get_current_user),
    service: SessionService = Depends(get_session_service),
):
    """Register a WebSocket session for a workflow."""
    return await service.start_session(current_user, data)


@router.post("/sessions/end", response_model=SessionResponse)
async def end_session(
    data: SessionEnd,
    current_user: User = Depends(get_current_user),
    service: SessionService = Depends(get_session_service),
):
    """Mark a WebSocket session as disconnected."""
    return await service.end_session(current_user, data.session_id)


@router.get("/sessions/active", response_model=List[SessionResponse])
async def list_active_sessions(
    current_user: User = Depends(get_current_user),
    service: SessionService = Depends(get_session_service),
):
    """List connected sessions of the current user."""
    return await service.list_active_sessions(current_user)


async def _authenticate(token: Optional[str], db: AsyncSession) -> Optional[User]:
    payload = token_manager.verify_token(token, "access") if token else None
    if not payload or not payload.get("user_id"):
        return None
    user = await UserService(db).get_user_by_id(payload["user_id"])
    if not user or not user.is_active:
        return None
    return user


@router.websocket("/workflows/{workflow_id}")
async def workflow_status_socket(
    websocket: WebSocket,
    workflow_id: int,
    token: Optional[str] = Query(None),
    db: AsyncSession = Depends(get_postgres_session),
    relay: StatusRelay = Depends(get_status_relay),
):
    """Stream status events of a workflow. Clients may send "ping" to keep the socket alive."""
    user = await _authenticate(token, db)
    allowed = user is not None
    if user:
        try:
            await WorkflowService(db).get_workflow(workflow_id, user)
        except WorkflowNotFoundError:
            allowed = False
    user_id = user.id if user else None
    # No database connection is held for the lifetime of the socket.
    await db.close()

    if not allowed:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    await websocket.accept()
    subscription = relay.subscribe(websocket, workflow_id, user_id)
    await websocket.send_text(
        json.dumps(StatusEvent(workflow_id=workflow_id, event_type=StatusEventType.CONNECTED).to_dict())
    )

    try:
        while True:
            message = await websocket.receive_text()
            subscription.update_activity()
            if message == "ping":
                await websocket.send_text("pong")
    except WebSocketDisconnect as e:
        logger.info("Status socket closed", workflow_id=workflow_id, code=e.code)
    finally:
        relay.unsubscribe(websocket)
