"""
Diagnostics channel shared by the registry and rule materializers.
"""
from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import List, Optional, Protocol

from .logger import get_logger
from .models import Location

log = get_logger(__name__)


class EventKind(str, enum.Enum):
    ERROR = "error"
    WARNING = "warning"
    INFO = "info"
    DEBUG = "debug"


@dataclass(frozen=True)
class Event:
    kind: EventKind
    message: str
    location: Optional[Location] = None

    def __str__(self) -> str:
        prefix = self.kind.value.upper()
        if self.location is not None:
            return f"{prefix}: {self.location}: {self.message}"
        return f"{prefix}: {self.message}"


class EventHandler(Protocol):
    def handle(self, event: Event) -> None:
        ...


class LoggingEventHandler:
    """Forwards events to the structlog logger."""

    def handle(self, event: Event) -> None:
        method = getattr(log, event.kind.value)
        method(
            "evaluation_event",
            message=event.message,
            location=str(event.location) if event.location else None,
        )


class StoredEventHandler:
    """Keeps every event in memory, optionally forwarding to another handler."""

    def __init__(self, delegate: Optional[EventHandler] = None) -> None:
        self.events: List[Event] = []
        self._delegate = delegate

    def handle(self, event: Event) -> None:
        self.events.append(event)
        if self._delegate is not None:
            self._delegate.handle(event)

    def has_errors(self) -> bool:
        return any(event.kind is EventKind.ERROR for event in self.events)

    def clear(self) -> None:
        self.events.clear()
