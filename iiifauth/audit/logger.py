"""
Audit trail of negotiation steps.

Records each fetch, remediation and token write made while negotiating
access, so callers can reconstruct why a login prompt appeared.
"""

import asyncio
import json
import logging
from abc import ABC, abstractmethod
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from ..common.utils import generate_id, get_current_time


logger = logging.getLogger(__name__)


@dataclass
class NegotiationEvent:
    """Audit event emitted by the negotiation engine"""
    event_type: str  # "fetch", "remediation", "token_stored", "deferred", "completed"
    resource_id: str
    details: Dict[str, Any] = field(default_factory=dict)
    event_id: str = field(default_factory=generate_id)
    timestamp: datetime = field(default_factory=get_current_time)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event_id": self.event_id,
            "event_type": self.event_type,
            "resource_id": self.resource_id,
            "timestamp": self.timestamp.isoformat(),
            "details": self.details,
        }


class AuditLogger(ABC):
    """Abstract base class for audit logging"""

    @abstractmethod
    async def log(self, event: NegotiationEvent) -> None:
        """Log an audit event"""
        pass

    @abstractmethod
    async def get_events(
        self,
        resource_id: Optional[str] = None,
        event_type: Optional[str] = None,
        start_time: Optional[datetime] = None,
    ) -> List[NegotiationEvent]:
        """Retrieve audit events with optional filtering"""
        pass

    async def close(self) -> None:
        """Close the audit logger and release resources"""
        pass


def _matches(event: NegotiationEvent, resource_id: Optional[str],
             event_type: Optional[str], start_time: Optional[datetime]) -> bool:
    if resource_id and event.resource_id != resource_id:
        return False
    if event_type and event.event_type != event_type:
        return False
    if start_time and event.timestamp < start_time:
        return False
    return True


class MemoryAuditLogger(AuditLogger):
    """In-memory audit logger for development and testing"""

    def __init__(self, max_entries: int = 1000):
        self.max_entries = max_entries
        self.events: deque = deque(maxlen=max_entries)
        self._lock = asyncio.Lock()

    async def log(self, event: NegotiationEvent) -> None:
        async with self._lock:
            self.events.append(event)

    async def get_events(
        self,
        resource_id: Optional[str] = None,
        event_type: Optional[str] = None,
        start_time: Optional[datetime] = None,
    ) -> List[NegotiationEvent]:
        async with self._lock:
            return [
                event for event in self.events
                if _matches(event, resource_id, event_type, start_time)
            ]


class FileAuditLogger(AuditLogger):
    """Append-only JSON-lines audit logger"""

    def __init__(self, file_path: str):
        self.file_path = file_path
        self._lock = asyncio.Lock()

    async def log(self, event: NegotiationEvent) -> None:
        async with self._lock:
            with open(self.file_path, "a", encoding="utf-8") as f:
                f.write(json.dumps(event.to_dict()) + "\n")

    async def get_events(
        self,
        resource_id: Optional[str] = None,
        event_type: Optional[str] = None,
        start_time: Optional[datetime] = None,
    ) -> List[NegotiationEvent]:
        events = []

        try:
            with open(self.file_path, "r", encoding="utf-8") as f:
                for line in f:
                    try:
                        data = json.loads(line)
                        event = NegotiationEvent(
                            event_type=data["event_type"],
                            resource_id=data["resource_id"],
                            details=data.get("details", {}),
                            event_id=data["event_id"],
                            timestamp=datetime.fromisoformat(data["timestamp"]),
                        )
                    except (json.JSONDecodeError, KeyError) as e:
                        logger.warning(f"Skipping malformed audit line: {e}")
                        continue

                    if _matches(event, resource_id, event_type, start_time):
                        events.append(event)
        except FileNotFoundError:
            pass

        return events


def create_audit_logger(logger_type: str = "memory", **kwargs) -> AuditLogger:
    """
    Factory function to create audit loggers

    Args:
        logger_type: Type of logger ("memory" or "file")
        **kwargs: Additional arguments for the logger

    Returns:
        AuditLogger instance
    """
    if logger_type == "memory":
        return MemoryAuditLogger(kwargs.get("max_entries", 1000))
    elif logger_type == "file":
        return FileAuditLogger(kwargs.get("file_path", "negotiation-audit.log"))
    else:
        raise ValueError(f"Unknown logger type: {logger_type}")
