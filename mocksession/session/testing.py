"""
Testing infrastructure with mock services for the session orchestrator.
"""
import asyncio
import random
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

import numpy as np

from .events import EventType, SessionEvent, SessionEventBus
from .models import AudioPhrase, PhraseBank, Question, Segment, SessionData
from .schemas import FinalizeResponse, SessionCriteria, ValidateAnswerRequest, ValidateAnswerResponse
from .services import AvatarRenderer, MicrophoneSource
from ..errors import CaptureAcquisitionError, TransportError


class MockBackendClient:
    """
    Scripted stand-in for BackendClient.

    Validation responses are consumed in order; once the script runs out
    every answer is accepted. A scripted entry that is an exception
    instance is raised instead of returned.
    """

    def __init__(self,
                 questions: Optional[List[Question]] = None,
                 phrases: Optional[PhraseBank] = None,
                 session_id: Optional[str] = "session-123",
                 validate_responses: Optional[Sequence[Any]] = None,
                 finalize_success: bool = True,
                 finalize_error: Optional[Exception] = None):
        self.questions = questions if questions is not None else create_test_questions()
        self.phrases = phrases if phrases is not None else create_test_phrase_bank()
        self.session_id = session_id
        self.validate_responses = list(validate_responses or [])
        self.finalize_success = finalize_success
        self.finalize_error = finalize_error

        self.generate_calls: List[SessionCriteria] = []
        self.phrase_calls: List[Tuple[str, str]] = []
        self.validate_calls: List[ValidateAnswerRequest] = []
        self.finalize_calls: List[str] = []

    def generate_session(self, criteria: SessionCriteria) -> Tuple[List[Question], Optional[str]]:
        self.generate_calls.append(criteria)
        return list(self.questions), self.session_id

    def get_audio_phrases(self, language: str, voice_id: str) -> PhraseBank:
        self.phrase_calls.append((language, voice_id))
        return self.phrases

    def validate_answer(self, request: ValidateAnswerRequest) -> ValidateAnswerResponse:
        self.validate_calls.append(request)
        if not self.validate_responses:
            return ValidateAnswerResponse(success=True, answer_type="SUCCESS")
        response = self.validate_responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response

    def finalize_session(self, session_id: str) -> FinalizeResponse:
        self.finalize_calls.append(session_id)
        if self.finalize_error is not None:
            raise self.finalize_error
        if self.finalize_success:
            return FinalizeResponse(success=True)
        return FinalizeResponse(success=False, message="Mock finalize failure")

    def close(self) -> None:
        pass


class MockRenderer(AvatarRenderer):
    """Records every segment it is asked to play and finishes immediately."""

    def __init__(self, on_play: Optional[Callable[[Segment], None]] = None):
        self.played: List[Segment] = []
        self.on_play = on_play

    async def play(self, segment: Segment) -> None:
        self.played.append(segment)
        if self.on_play is not None:
            self.on_play(segment)

    @property
    def played_texts(self) -> List[List[str]]:
        return [[entry.text for entry in segment.entries] for segment in self.played]


class MockMicrophone(MicrophoneSource):
    """
    Microphone that delivers canned chunks as soon as it is opened.

    `chunks_per_open` is consumed one list per open; an empty list produces
    an empty recording. Opens beyond the script reuse `default_chunks`.
    """

    def __init__(self,
                 chunks_per_open: Optional[List[List[np.ndarray]]] = None,
                 fail_to_open: bool = False,
                 sample_rate: int = 16000,
                 channels: int = 1):
        self.sample_rate = sample_rate
        self.channels = channels
        self.fail_to_open = fail_to_open
        self.chunks_per_open = list(chunks_per_open or [])
        self.default_chunks = [create_test_chunk(sample_rate)]
        self.open_count = 0
        self.close_count = 0
        self.is_open = False

    def open(self, on_chunk: Callable[[np.ndarray], None]) -> None:
        if self.fail_to_open:
            raise CaptureAcquisitionError("Mock microphone unavailable")
        self.open_count += 1
        self.is_open = True
        chunks = self.chunks_per_open.pop(0) if self.chunks_per_open else self.default_chunks
        for chunk in chunks:
            on_chunk(chunk)

    def close(self) -> None:
        if self.is_open:
            self.close_count += 1
        self.is_open = False


class AutoResponder:
    """
    Plays the candidate: stops every recording right after it starts.

    Stops are scheduled on the loop so the orchestrator is already waiting
    for the recording when they run.
    """

    def __init__(self, orchestrator, event_bus: SessionEventBus):
        self.orchestrator = orchestrator
        self.stops = 0
        event_bus.subscribe(EventType.CAPTURE_STARTED, self._on_capture_started)

    def _on_capture_started(self, event: SessionEvent) -> None:
        asyncio.get_running_loop().call_soon(self._stop)

    def _stop(self) -> None:
        if self.orchestrator.stop_recording():
            self.stops += 1


class EventRecorder:
    """Collects every emitted event."""

    def __init__(self, event_bus: SessionEventBus):
        self.events: List[SessionEvent] = []
        event_bus.subscribe_all(self.events.append)

    def of_type(self, event_type: EventType) -> List[SessionEvent]:
        return [e for e in self.events if e.event_type == event_type]


async def no_sleep(seconds: float) -> None:
    """Instant replacement for asyncio.sleep."""
    return None


def create_test_chunk(sample_rate: int = 16000, seconds: float = 0.1) -> np.ndarray:
    """A short sine tone shaped like a sounddevice input block."""
    t = np.arange(int(sample_rate * seconds), dtype=np.float32) / sample_rate
    return (0.1 * np.sin(2 * np.pi * 220.0 * t)).astype(np.float32).reshape(-1, 1)


def phrase(text: str) -> AudioPhrase:
    return AudioPhrase(text=text, audio=f"audio:{text}")


def create_test_questions(tags: Sequence[str] = ("python", "python", "sql")) -> List[Question]:
    """Questions with the given tags, ids q1..qN."""
    return [
        Question(
            id=f"q{i}",
            question=f"Question {i} about {tag}?",
            tags=(tag,),
            audio=f"audio:q{i}",
        )
        for i, tag in enumerate(tags, start=1)
    ]


def create_test_phrase_bank() -> PhraseBank:
    return PhraseBank(
        welcome=phrase("Welcome to your mock interview."),
        outro=phrase("Thanks, that's all for today."),
        transition_phrases=(phrase("Next question."), phrase("Moving on.")),
        section_changer_phrases=(phrase("Let's change topic."),),
        repeat_question_phrases=(phrase("Let me ask that again."), phrase("Could you try once more?")),
    )


def create_test_session_data(tags: Sequence[str] = ("python", "python", "sql"),
                             mode: str = "interview",
                             session_id: Optional[str] = "session-123",
                             duration_minutes: int = 0) -> SessionData:
    return SessionData(
        session_id=session_id,
        questions=create_test_questions(tags),
        phrases=create_test_phrase_bank(),
        job_name="Backend Engineer",
        language="en-US",
        duration_minutes=duration_minutes,
        mode=mode,
    )


def create_mock_session_setup(tags: Sequence[str] = ("python", "python", "sql"),
                              mode: str = "interview",
                              validate_responses: Optional[Sequence[Any]] = None,
                              finalize_success: bool = True,
                              microphone: Optional[MockMicrophone] = None,
                              seed: int = 7,
                              **orchestrator_kwargs) -> Dict[str, Any]:
    """
    Create a complete mock session: orchestrator, collaborators and observers.
    """
    from .capture import CaptureController
    from .orchestrator import SessionOrchestrator
    from .services import TokenAccount

    data = create_test_session_data(tags, mode=mode)
    backend = MockBackendClient(
        questions=data.questions,
        phrases=data.phrases,
        session_id=data.session_id,
        validate_responses=validate_responses,
        finalize_success=finalize_success,
    )
    renderer = MockRenderer()
    microphone = microphone or MockMicrophone()
    capture = CaptureController(microphone)
    event_bus = SessionEventBus()
    account = TokenAccount(balance=100)

    orchestrator_kwargs.setdefault("welcome_delay", 0)
    orchestrator_kwargs.setdefault("sleep", no_sleep)
    orchestrator = SessionOrchestrator(
        data,
        backend,
        renderer,
        capture,
        account=account,
        event_bus=event_bus,
        rng=random.Random(seed),
        **orchestrator_kwargs
    )

    return {
        "data": data,
        "backend": backend,
        "renderer": renderer,
        "microphone": microphone,
        "capture": capture,
        "event_bus": event_bus,
        "account": account,
        "orchestrator": orchestrator,
        "responder": AutoResponder(orchestrator, event_bus),
        "recorder": EventRecorder(event_bus),
    }


def rejected(message: str = "Please answer the question", answer_type: str = "FAILED") -> ValidateAnswerResponse:
    return ValidateAnswerResponse(success=False, answer_type=answer_type, message=message)


def accepted(answer_type: str = "SUCCESS") -> ValidateAnswerResponse:
    return ValidateAnswerResponse(success=True, answer_type=answer_type)


def transport_failure(status_code: Optional[int] = 500) -> TransportError:
    return TransportError("Mock transport failure", status_code=status_code)
