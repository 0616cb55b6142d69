"""WebSocket session bookkeeping."""

import uuid
from typing import List

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from pumpflix.auth.models import User
from pumpflix.db_types import utcnow
from pumpflix.exceptions import NotFoundError
from pumpflix.realtime.models import SessionStatus, WebSocketSession
from pumpflix.realtime.schemas import SessionStart
from pumpflix.workflows.service import WorkflowService

logger = structlog.get_logger()


class SessionNotFoundError(NotFoundError):
    """Raised when a WebSocket session is unknown."""
    error = "Session not found"


class SessionService:
    """Record WebSocket sessions of the user's workflows."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def start_session(self, user: User, data: SessionStart) -> WebSocketSession:
        """Register a connected session for a workflow of the organization."""
        workflow = await WorkflowService(self.db).get_workflow(data.workflow_id, user)

        session = WebSocketSession(
            session_id=uuid.uuid4(),
            workflow_id=workflow.id,
            client_id=data.client_id,
            status=SessionStatus.CONNECTED,
            meta=data.metadata,
            user_id=user.id,
            org_id=user.org_id,
        )
        self.db.add(session)
        await self.db.commit()

        logger.info(
            "WebSocket session started",
            session_id=str(session.session_id),
            workflow_id=workflow.id,
            client_id=data.client_id,
        )
        return session

    async def end_session(self, user: User, session_id: uuid.UUID) -> WebSocketSession:
        """Mark a session of the user as disconnected."""
        session = await self.db.scalar(
            select(WebSocketSession).where(
                WebSocketSession.session_id == session_id,
                WebSocketSession.user_id == user.id,
            )
        )
        if not session:
            raise SessionNotFoundError()

        if session.status == SessionStatus.CONNECTED:
            session.status = SessionStatus.DISCONNECTED
            session.disconnected_at = utcnow()
            await self.db.commit()

        logger.info("WebSocket session ended", session_id=str(session_id))
        return session

    async def list_active_sessions(self, user: User) -> List[WebSocketSession]:
        """Connected sessions of the user."""
        result = await self.db.execute(
            select(WebSocketSession)
            .where(
                WebSocketSession.user_id == user.id,
                WebSocketSession.status == SessionStatus.CONNECTED,
            )
            .order_by(WebSocketSession.connected_at.desc(), WebSocketSession.id.desc())
        )
        return list(result.scalars().all())
