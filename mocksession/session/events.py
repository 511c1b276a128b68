"""
Event-driven notifications for the surrounding page.
"""
import logging
from abc import ABC
from typing import Dict, Any, List, Callable, Optional
from dataclasses import dataclass
from enum import Enum

logger = logging.getLogger("events")


class EventType(str, Enum):
    """Types of session events."""
    SESSION_STARTED = "session_started"
    STATE_CHANGED = "state_changed"
    SEGMENT_STARTED = "segment_started"
    CAPTURE_STARTED = "capture_started"
    CAPTURE_SKIPPED = "capture_skipped"
    ANSWER_SUBMITTED = "answer_submitted"
    RETRY_SCHEDULED = "retry_scheduled"
    TOKENS_DEDUCTED = "tokens_deducted"
    SESSION_COMPLETED = "session_completed"
    SESSION_FAILED = "session_failed"
    ERROR_OCCURRED = "error_occurred"


@dataclass
class SessionEvent(ABC):
    """Base class for all session events."""
    event_type: EventType
    session_id: str
    timestamp: float
    data: Dict[str, Any]


@dataclass
class SessionStartedEvent(SessionEvent):
    """Event fired when playback begins."""
    def __init__(self, session_id: str, timestamp: float, segment_count: int,
                 question_count: int, remaining_seconds: int):
        super().__init__(
            event_type=EventType.SESSION_STARTED,
            session_id=session_id,
            timestamp=timestamp,
            data={
                "segment_count": segment_count,
                "question_count": question_count,
                "remaining_seconds": remaining_seconds
            }
        )


@dataclass
class StateChangedEvent(SessionEvent):
    """Event fired on every orchestrator state transition."""
    def __init__(self, session_id: str, timestamp: float, state: Dict[str, Any]):
        super().__init__(
            event_type=EventType.STATE_CHANGED,
            session_id=session_id,
            timestamp=timestamp,
            data=dict(state)
        )


@dataclass
class SegmentStartedEvent(SessionEvent):
    """Event fired when a segment is handed to the renderer."""
    def __init__(self, session_id: str, timestamp: float, index: int, kind: str, texts: List[str]):
        super().__init__(
            event_type=EventType.SEGMENT_STARTED,
            session_id=session_id,
            timestamp=timestamp,
            data={"index": index, "kind": kind, "texts": texts}
        )


@dataclass
class CaptureStartedEvent(SessionEvent):
    """Event fired when the microphone starts recording an answer."""
    def __init__(self, session_id: str, timestamp: float, index: int, question_id: str):
        super().__init__(
            event_type=EventType.CAPTURE_STARTED,
            session_id=session_id,
            timestamp=timestamp,
            data={"index": index, "question_id": question_id}
        )


@dataclass
class CaptureSkippedEvent(SessionEvent):
    """Event fired when a question is skipped because capture was impossible."""
    def __init__(self, session_id: str, timestamp: float, index: int, question_id: str, reason: str):
        super().__init__(
            event_type=EventType.CAPTURE_SKIPPED,
            session_id=session_id,
            timestamp=timestamp,
            data={"index": index, "question_id": question_id, "reason": reason}
        )


@dataclass
class AnswerSubmittedEvent(SessionEvent):
    """Event fired when validation of an answer finishes."""
    def __init__(self, session_id: str, timestamp: float, index: int, question_id: str,
                 success: bool, reason: str):
        super().__init__(
            event_type=EventType.ANSWER_SUBMITTED,
            session_id=session_id,
            timestamp=timestamp,
            data={
                "index": index,
                "question_id": question_id,
                "success": success,
                "reason": reason
            }
        )


@dataclass
class RetryScheduledEvent(SessionEvent):
    """Event fired when a question is queued to be asked again."""
    def __init__(self, session_id: str, timestamp: float, question_id: str,
                 inserted_index: int, retry_count: int):
        super().__init__(
            event_type=EventType.RETRY_SCHEDULED,
            session_id=session_id,
            timestamp=timestamp,
            data={
                "question_id": question_id,
                "inserted_index": inserted_index,
                "retry_count": retry_count
            }
        )


@dataclass
class TokensDeductedEvent(SessionEvent):
    """Event fired when a backend call is charged to the user's balance."""
    def __init__(self, session_id: str, timestamp: float, amount: int, reason: str,
                 balance: Optional[int]):
        super().__init__(
            event_type=EventType.TOKENS_DEDUCTED,
            session_id=session_id,
            timestamp=timestamp,
            data={"amount": amount, "reason": reason, "balance": balance}
        )


@dataclass
class SessionCompletedEvent(SessionEvent):
    """Event fired when the session was finalized."""
    def __init__(self, session_id: str, timestamp: float, answered_questions: int, retries: int):
        super().__init__(
            event_type=EventType.SESSION_COMPLETED,
            session_id=session_id,
            timestamp=timestamp,
            data={"answered_questions": answered_questions, "retries": retries}
        )


@dataclass
class SessionFailedEvent(SessionEvent):
    """Event fired when a fatal error ends the session."""
    def __init__(self, session_id: str, timestamp: float, message: str):
        super().__init__(
            event_type=EventType.SESSION_FAILED,
            session_id=session_id,
            timestamp=timestamp,
            data={"message": message}
        )


@dataclass
class ErrorOccurredEvent(SessionEvent):
    """Event fired when an error occurs, recovered or not."""
    def __init__(self, session_id: str, timestamp: float, error_type: str,
                 error_message: str, component: str):
        super().__init__(
            event_type=EventType.ERROR_OCCURRED,
            session_id=session_id,
            timestamp=timestamp,
            data={
                "error_type": error_type,
                "error_message": error_message,
                "component": component
            }
        )


EventHandler = Callable[[SessionEvent], None]


class SessionEventBus:
    """Event bus between the orchestrator and its observers."""

    def __init__(self):
        self._handlers: Dict[EventType, List[EventHandler]] = {}
        self._global_handlers: List[EventHandler] = []

    def subscribe(self, event_type: EventType, handler: EventHandler) -> None:
        """
        Subscribe to specific event type.

        Args:
            event_type: Type of event to listen for
            handler: Function to call when event occurs
        """
        self._handlers.setdefault(event_type, []).append(handler)
        logger.debug(f"Subscribed handler to {event_type}")

    def subscribe_all(self, handler: EventHandler) -> None:
        """Subscribe to all events."""
        self._global_handlers.append(handler)
        logger.debug("Subscribed global handler")

    def unsubscribe(self, event_type: EventType, handler: EventHandler) -> None:
        if event_type in self._handlers:
            try:
                self._handlers[event_type].remove(handler)
                logger.debug(f"Unsubscribed handler from {event_type}")
            except ValueError:
                logger.warning(f"Handler not found for {event_type}")

    def emit(self, event: SessionEvent) -> None:
        """
        Emit an event to all subscribers.

        A failing handler is logged and never interrupts the session.
        """
        logger.debug(f"Emitting event: {event.event_type} for session {event.session_id}")

        for handler in self._handlers.get(event.event_type, []):
            try:
                handler(event)
            except Exception as e:
                logger.error(f"Error in event handler for {event.event_type}: {e}")

        for handler in self._global_handlers:
            try:
                handler(event)
            except Exception as e:
                logger.error(f"Error in global event handler: {e}")

    def clear_handlers(self) -> None:
        self._handlers.clear()
        self._global_handlers.clear()


class EventLogger:
    """Logs all events for debugging and analysis."""

    def __init__(self, log_level: int = logging.INFO):
        self.logger = logging.getLogger("event_logger")
        self.logger.setLevel(log_level)

    def handle_event(self, event: SessionEvent) -> None:
        self.logger.info(f"Event: {event.event_type.value} | Session: {event.session_id} | Data: {event.data}")


class SessionMetrics:
    """Collects counters from session events."""

    def __init__(self):
        self.reset()

    def handle_event(self, event: SessionEvent) -> None:
        if event.event_type == EventType.SEGMENT_STARTED:
            self.segments_played += 1
        elif event.event_type == EventType.CAPTURE_STARTED:
            self.captures_started += 1
        elif event.event_type == EventType.CAPTURE_SKIPPED:
            self.captures_skipped += 1
        elif event.event_type == EventType.ANSWER_SUBMITTED:
            if event.data.get("success"):
                self.answers_accepted += 1
            else:
                self.answers_rejected += 1
        elif event.event_type == EventType.TOKENS_DEDUCTED:
            self.tokens_deducted += event.data.get("amount", 0)
        elif event.event_type == EventType.RETRY_SCHEDULED:
            self.retries_scheduled += 1
        elif event.event_type == EventType.ERROR_OCCURRED:
            self.errors_occurred += 1

    def get_metrics(self) -> Dict[str, int]:
        """Get current metrics snapshot."""
        return {
            "segments_played": self.segments_played,
            "captures_started": self.captures_started,
            "captures_skipped": self.captures_skipped,
            "answers_accepted": self.answers_accepted,
            "answers_rejected": self.answers_rejected,
            "retries_scheduled": self.retries_scheduled,
            "tokens_deducted": self.tokens_deducted,
            "errors_occurred": self.errors_occurred
        }

    def reset(self) -> None:
        self.segments_played = 0
        self.captures_started = 0
        self.captures_skipped = 0
        self.answers_accepted = 0
        self.answers_rejected = 0
        self.retries_scheduled = 0
        self.tokens_deducted = 0
        self.errors_occurred = 0
