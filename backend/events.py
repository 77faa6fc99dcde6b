# events.py - Task change events published after each mutation
import json
import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Protocol

from models import utcnow

logger = logging.getLogger("taskshare.events")


class TaskEventType(str, Enum):
    TASK_CREATED = "TASK_CREATED"
    TASK_UPDATED = "TASK_UPDATED"
    TASK_DELETED = "TASK_DELETED"
    TASK_SHARED = "TASK_SHARED"
    TASK_UNSHARED = "TASK_UNSHARED"


@dataclass
class TaskEvent:
    type: TaskEventType
    actor_id: int
    task_id: int
    payload: Dict[str, Any] = field(default_factory=dict)
    occurred_at: datetime = field(default_factory=utcnow)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type.value,
            "userId": self.actor_id,
            "taskId": self.task_id,
            "payload": self.payload,
            "occurredAt": self.occurred_at.isoformat(),
        }


class EventPublisher(Protocol):
    async def publish(self, event: TaskEvent) -> None:
        ...


class LoggingEventPublisher:
    """Writes events to the log; client delivery is handled elsewhere."""

    async def publish(self, event: TaskEvent) -> None:
        logger.info(f"Real-time update: {json.dumps(event.to_dict(), default=str)}")

