"""In-process relay of workflow status events to WebSocket subscribers."""

import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional
from uuid import uuid4

import structlog

logger = structlog.get_logger()


class StatusEventType(str, Enum):
    """Types of workflow status events."""
    CONNECTED = "connected"
    EXECUTION_STARTED = "execution_started"
    EXECUTION_COMPLETED = "execution_completed"
    EXECUTION_FAILED = "execution_failed"
    EXECUTION_CANCELLED = "execution_cancelled"


@dataclass
class StatusEvent:
    """A status change of a workflow or one of its executions."""
    workflow_id: int
    event_type: StatusEventType
    execution_id: Optional[int] = None
    data: Dict[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    event_id: str = field(default_factory=lambda: str(uuid4()))

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "event_id": self.event_id,
            "workflow_id": self.workflow_id,
            "execution_id": self.execution_id,
            "event_type": self.event_type.value,
            "timestamp": self.timestamp.isoformat(),
            "data": self.data,
        }


@dataclass
class StatusSubscription:
    """A WebSocket subscribed to one workflow's status channel."""
    workflow_id: int
    user_id: int
    websocket: Any
    connected_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    last_activity: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def update_activity(self):
        """Update last activity timestamp."""
        self.last_activity = datetime.now(timezone.utc)


class StatusRelay:
    """Fan out status events to every socket subscribed to a workflow."""

    def __init__(self):
        self._subscriptions: Dict[int, List[StatusSubscription]] = {}
        self._websocket_to_subscription: Dict[Any, StatusSubscription] = {}

    def subscribe(self, websocket: Any, workflow_id: int, user_id: int) -> StatusSubscription:
        """Register an accepted socket for a workflow's events."""
        subscription = StatusSubscription(
            workflow_id=workflow_id, user_id=user_id, websocket=websocket
        )
        self._subscriptions.setdefault(workflow_id, []).append(subscription)
        self._websocket_to_subscription[websocket] = subscription

        logger.info("Status subscriber connected", workflow_id=workflow_id, user_id=user_id)
        return subscription

    def unsubscribe(self, websocket: Any) -> None:
        """Forget a socket. Safe to call more than once."""
        subscription = self._websocket_to_subscription.pop(websocket, None)
        if not subscription:
            return

        workflow_id = subscription.workflow_id
        remaining = [
            sub for sub in self._subscriptions.get(workflow_id, [])
            if sub.websocket is not websocket
        ]
        if remaining:
            self._subscriptions[workflow_id] = remaining
        else:
            self._subscriptions.pop(workflow_id, None)

        logger.info("Status subscriber disconnected", workflow_id=workflow_id)

    async def publish(self, event: StatusEvent) -> int:
        """Send an event to all subscribers of its workflow.

        Returns the number of sockets that received it. Sockets that fail to
        receive are dropped.
        """
        subscriptions = list(self._subscriptions.get(event.workflow_id, []))
        if not subscriptions:
            return 0

        message = json.dumps(event.to_dict(), default=str)
        delivered = 0
        broken = []

        for subscription in subscriptions:
            try:
                await subscription.websocket.send_text(message)
                subscription.update_activity()
                delivered += 1
            except Exception as e:
                logger.warning(
                    "Dropping broken status subscriber",
                    workflow_id=event.workflow_id,
                    error=str(e),
                )
                broken.append(subscription.websocket)

        for websocket in broken:
            self.unsubscribe(websocket)

        return delivered

    def subscriber_count(self, workflow_id: int) -> int:
        """Number of sockets subscribed to a workflow."""
        return len(self._subscriptions.get(workflow_id, []))


# Global relay for the API process
status_relay = StatusRelay()


def get_status_relay() -> StatusRelay:
    """FastAPI dependency for the status relay."""
    return status_relay
