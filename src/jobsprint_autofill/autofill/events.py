"""Per-session progress and log channel."""

from collections import deque
from typing import Any, Callable, Deque, List, Optional

from jobsprint_autofill.config import settings
from jobsprint_autofill.core.models import SessionEvent
from jobsprint_autofill.utils.logging import get_logger

logger = get_logger(__name__)

EventSubscriber = Callable[[SessionEvent], None]

_LOG_METHODS = {
    "debug": "debug",
    "info": "info",
    "success": "info",
    "warning": "warning",
    "error": "error",
}


class SessionEventLog:
    """Structured events for one session.

    Every event goes to the structlog logger, a bounded history and any
    subscribers. The channel is informational; a failing subscriber never
    affects the session.
    """

    def __init__(self, session_id: str, surface_id: str, history_size: Optional[int] = None):
        self.session_id = session_id
        self.surface_id = surface_id
        self.history: Deque[SessionEvent] = deque(maxlen=history_size or settings.event_history_size)
        self._subscribers: List[EventSubscriber] = []
        self.logger = logger.bind(component="session", session_id=session_id, surface_id=surface_id)

    def subscribe(self, callback: EventSubscriber) -> None:
        self._subscribers.append(callback)

    def unsubscribe(self, callback: EventSubscriber) -> None:
        if callback in self._subscribers:
            self._subscribers.remove(callback)

    def emit(self, level: str, message: str, **data: Any) -> SessionEvent:
        event = SessionEvent(level=level, message=message, session_id=self.session_id, data=data)
        self.history.append(event)

        log_method = getattr(self.logger, _LOG_METHODS.get(level, "info"))
        log_method(message, level_tag=level, **data)

        for callback in list(self._subscribers):
            try:
                callback(event)
            except Exception as e:
                self.logger.warning("Event subscriber failed", error=str(e), error_type=type(e).__name__)
        return event

    def info(self, message: str, **data: Any) -> SessionEvent:
        return self.emit("info", message, **data)

    def success(self, message: str, **data: Any) -> SessionEvent:
        return self.emit("success", message, **data)

    def warning(self, message: str, **data: Any) -> SessionEvent:
        return self.emit("warning", message, **data)

    def error(self, message: str, **data: Any) -> SessionEvent:
        return self.emit("error", message, **data)

    def events(self, level: Optional[str] = None) -> List[SessionEvent]:
        if level is None:
            return list(self.history)
        return [event for event in self.history if event.level == level]
