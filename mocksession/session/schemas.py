"""
Session state machine states and backend request/response schemas.
"""
from dataclasses import dataclass, asdict
from typing import Any, ClassVar, Dict, List, Optional, Union
from enum import Enum

from .models import Question


class SessionPhase(str, Enum):
    """Names of the orchestrator states, for display and events."""
    AWAITING_WELCOME = "awaiting_welcome"
    PLAYING_SEGMENT = "playing_segment"
    AWAITING_CAPTURE = "awaiting_capture"
    VALIDATING = "validating"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass(frozen=True)
class AwaitingWelcome:
    phase: ClassVar[SessionPhase] = SessionPhase.AWAITING_WELCOME


@dataclass(frozen=True)
class PlayingSegment:
    index: int
    phase: ClassVar[SessionPhase] = SessionPhase.PLAYING_SEGMENT


@dataclass(frozen=True)
class AwaitingCapture:
    index: int
    phase: ClassVar[SessionPhase] = SessionPhase.AWAITING_CAPTURE


@dataclass(frozen=True)
class Validating:
    index: int
    phase: ClassVar[SessionPhase] = SessionPhase.VALIDATING


@dataclass(frozen=True)
class Completed:
    phase: ClassVar[SessionPhase] = SessionPhase.COMPLETED


@dataclass(frozen=True)
class Failed:
    index: int
    message: str
    phase: ClassVar[SessionPhase] = SessionPhase.FAILED


SessionState = Union[AwaitingWelcome, PlayingSegment, AwaitingCapture, Validating, Completed, Failed]

TERMINAL_STATES = (Completed, Failed)


def is_terminal(state: SessionState) -> bool:
    return isinstance(state, TERMINAL_STATES)


@dataclass
class SessionCriteria:
    """Parameters for generating a session."""
    job_name: str
    duration: int
    soft_skills_percentage: int = 0
    tags: Optional[List[str]] = None
    difficulty: Optional[str] = None
    language: Optional[str] = None
    interviewer_id: Optional[str] = None
    voice_id: Optional[str] = None
    job_description: Optional[str] = None

    def to_payload(self) -> Dict[str, Any]:
        payload = {
            "jobName": self.job_name,
            "duration": self.duration,
            "softSkillsPercentage": self.soft_skills_percentage,
            "tags": list(self.tags or []),
            "difficulty": self.difficulty,
            "language": self.language,
            "interviewerId": self.interviewer_id,
            "voiceId": self.voice_id,
            "jobDescription": self.job_description,
        }
        return {k: v for k, v in payload.items() if v is not None}


@dataclass
class ValidateAnswerRequest:
    """Answer submission sent to the backend."""
    question: Question
    answer: str
    session_id: Optional[str] = None
    job_name: Optional[str] = None
    language: Optional[str] = None

    def to_payload(self) -> Dict[str, Any]:
        payload = {
            "questionId": self.question.id or None,
            "question": self.question.question,
            "answer": self.answer,
            "sessionId": self.session_id,
            "jobName": self.job_name,
            "language": self.language,
            "tag": self.question.tag or None,
            "softSkill": self.question.soft_skill,
        }
        return {k: v for k, v in payload.items() if v is not None}


@dataclass
class ValidateAnswerResponse:
    success: bool
    answer_type: Optional[str] = None
    message: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> 'ValidateAnswerResponse':
        data = data or {}
        return cls(
            success=bool(data.get("success", False)),
            answer_type=data.get("answerType"),
            message=data.get("message"),
        )


@dataclass
class FinalizeResponse:
    success: bool
    message: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> 'FinalizeResponse':
        data = data or {}
        return cls(success=bool(data.get("success", False)), message=data.get("message"))


def state_as_dict(state: SessionState) -> Dict[str, Any]:
    """Flatten a state for the surrounding page."""
    out = asdict(state)
    out["phase"] = state.phase.value
    return out
