"""
Session orchestration: playback queue, capture, answer validation and
finalization for one spoken mock interview or training.
"""

from .models import AudioPhrase, Question, PhraseBank, Segment, SegmentKind, SessionData, SessionResult
from .schemas import (
    SessionPhase, AwaitingWelcome, PlayingSegment, AwaitingCapture, Validating,
    Completed, Failed, SessionState, SessionCriteria, ValidateAnswerRequest,
    ValidateAnswerResponse, FinalizeResponse
)
from .queue import SegmentQueue
from .builder import build_segments, build_segment_queue, check_session_inputs
from .capture import CaptureController, RecordingBuffer
from .services import AvatarRenderer, MicrophoneSource, TokenAccount, SessionLoader
from .submitter import (
    AnswerSubmitter, RetryPolicy, RandomPhraseSource, interview_success, training_success
)
from .timer import SessionTimer
from .finalizer import Finalizer
from .events import SessionEventBus, EventType, EventLogger, SessionMetrics
from .orchestrator import SessionOrchestrator

__all__ = [
    # Models
    "AudioPhrase", "Question", "PhraseBank", "Segment", "SegmentKind",
    "SessionData", "SessionResult",

    # States and schemas
    "SessionPhase", "AwaitingWelcome", "PlayingSegment", "AwaitingCapture",
    "Validating", "Completed", "Failed", "SessionState", "SessionCriteria",
    "ValidateAnswerRequest", "ValidateAnswerResponse", "FinalizeResponse",

    # Components
    "SegmentQueue", "build_segments", "build_segment_queue", "check_session_inputs",
    "CaptureController", "RecordingBuffer", "AvatarRenderer", "MicrophoneSource",
    "TokenAccount", "SessionLoader", "AnswerSubmitter", "RetryPolicy",
    "RandomPhraseSource", "interview_success", "training_success",
    "SessionTimer", "Finalizer",

    # Events
    "SessionEventBus", "EventType", "EventLogger", "SessionMetrics",

    # Orchestrator
    "SessionOrchestrator"
]
