"""
Case activity journal.

Relation edits, traversals and searches are journaled as ``CaseEvent``
entries tagged with the ``kind:id`` refs they touched, so an analyst can
pull the recent history of one entity. Warnings logged anywhere under the
``casegraph`` logger are mirrored into the same journal.
"""

import logging
import threading
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional

logger = logging.getLogger(__name__)

JOURNAL_LIMIT = 1000


@dataclass
class CaseEvent:
    step: str
    message: str
    level: str = "info"
    entities: List[str] = field(default_factory=list)
    payload: Dict[str, Any] = field(default_factory=dict)
    ts: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())

    def touches(self, ref: str) -> bool:
        return ref in self.entities

    def to_dict(self) -> Dict[str, Any]:
        return {
            "ts": self.ts,
            "level": self.level,
            "step": self.step,
            "message": self.message,
            "entities": list(self.entities),
            "payload": dict(self.payload),
        }


class ActivityJournal:
    """Bounded, thread-safe journal of case events, oldest first."""

    def __init__(self, limit: int = JOURNAL_LIMIT):
        self._events: deque = deque(maxlen=limit)
        self._lock = threading.Lock()

    def append(self, event: CaseEvent) -> CaseEvent:
        with self._lock:
            self._events.append(event)
        return event

    def recent(self, limit: int = 100, level: Optional[str] = None, step: Optional[str] = None,
               entity: Optional[str] = None) -> List[CaseEvent]:
        with self._lock:
            events = list(self._events)
        if level:
            events = [e for e in events if e.level == level.lower()]
        if step:
            events = [e for e in events if e.step == step]
        if entity:
            events = [e for e in events if e.touches(entity)]
        if limit > 0:
            events = events[-limit:]
        return events

    def clear(self):
        with self._lock:
            self._events.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._events)


journal = ActivityJournal()


def entity_ref(kind, entity_id) -> str:
    """``kind:id`` tag used to index journal entries."""
    return f"{getattr(kind, 'value', kind)}:{int(entity_id)}"


def emit_event(step: str, message: str, level: str = "info", payload=None,
               entities: Iterable[str] = ()) -> CaseEvent:
    """Journal a case event and echo it to the module logger."""
    event = journal.append(CaseEvent(
        step=step,
        message=message,
        level=level,
        entities=list(entities),
        payload=payload or {},
    ))
    logger.log(getattr(logging, level.upper(), logging.INFO), f"[{step}] {message}")
    return event


class JournalHandler(logging.Handler):
    """Mirror ``casegraph`` log records into the journal under the logger's name."""

    def emit(self, record: logging.LogRecord):
        if record.name == __name__:
            return
        try:
            journal.append(CaseEvent(
                step=record.name,
                message=self.format(record),
                level=record.levelname.lower(),
            ))
        except Exception:
            self.handleError(record)


_handler: Optional[JournalHandler] = None


def init_event_logging(level: int = logging.WARNING) -> JournalHandler:
    """Attach the journal handler to the ``casegraph`` logger once."""
    global _handler
    if _handler is None:
        _handler = JournalHandler(level=level)
        _handler.setFormatter(logging.Formatter("%(message)s"))
        logging.getLogger("casegraph").addHandler(_handler)
        logging.getLogger("werkzeug").setLevel(logging.WARNING)
    return _handler


def recent_events(limit: int = 100, level: Optional[str] = None, step: Optional[str] = None,
                  entity: Optional[str] = None) -> List[dict]:
    return [e.to_dict() for e in journal.recent(limit=limit, level=level, step=step, entity=entity)]


def clear_events():
    journal.clear()
