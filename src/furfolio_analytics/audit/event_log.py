import json
import logging
from collections import deque
from datetime import datetime
from typing import Any, Deque, Dict, List, Optional

logger = logging.getLogger(__name__)

ESCALATION_KEYWORDS = ('danger', 'critical', 'delete')


class AuditEvent:
    """A single recorded analytics event."""

    def __init__(self,
                 name: str,
                 metadata: Optional[Dict[str, Any]] = None,
                 timestamp: Optional[datetime] = None):
        self.name = name
        self.metadata = metadata or {}
        self.timestamp = timestamp or datetime.now()
        self.escalate = self._should_escalate(name, self.metadata)

    @staticmethod
    def _should_escalate(name: str, metadata: Dict[str, Any]) -> bool:
        texts = [name.lower()] + [str(value).lower() for value in metadata.values()]
        return any(keyword in text for text in texts for keyword in ESCALATION_KEYWORDS)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'timestamp': self.timestamp.isoformat(),
            'name': self.name,
            'metadata': self.metadata,
            'escalate': self.escalate
        }

    def __str__(self) -> str:
        params = ', '.join(f"{k}: {v}" for k, v in self.metadata.items())
        return f"{self.timestamp.isoformat()}: {self.name} {params} | escalate:{'YES' if self.escalate else 'NO'}"


class AuditLog:
    """
    Bounded in-memory buffer of audit events.

    Once ``max_entries`` is reached the oldest events are dropped.
    """

    def __init__(self, max_entries: int = 100):
        if max_entries <= 0:
            raise ValueError("max_entries must be positive")
        self.max_entries = max_entries
        self._events: Deque[AuditEvent] = deque(maxlen=max_entries)

    def record(self, name: str, metadata: Optional[Dict[str, Any]] = None,
               timestamp: Optional[datetime] = None) -> AuditEvent:
        """
        Append an event to the buffer.

        Args:
            name: Event name
            metadata: Optional event parameters
            timestamp: Event time, defaults to now

        Returns:
            The recorded event
        """
        event = AuditEvent(name, metadata, timestamp)
        self._events.append(event)
        if event.escalate:
            logger.warning(f"Escalated audit event: {event}")
        else:
            logger.debug(f"Audit event: {event}")
        return event

    def recent(self, limit: int = 20) -> List[AuditEvent]:
        """Most recent events, oldest first."""
        if limit <= 0:
            return []
        return list(self._events)[-limit:]

    def export_json(self) -> str:
        return json.dumps([event.to_dict() for event in self._events], indent=2, default=str)

    def clear(self) -> None:
        self._events.clear()

    def __len__(self) -> int:
        return len(self._events)

    def __iter__(self):
        return iter(self._events)
