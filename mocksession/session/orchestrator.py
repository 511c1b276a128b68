"""
Session orchestrator: plays the segment queue, records answers, re-asks
rejected questions and closes the session.
"""
import asyncio
import logging
import random
import time
from typing import Awaitable, Callable, Optional

from .builder import build_segment_queue
from .capture import CaptureController
from .events import (
    SessionEventBus, EventLogger, SessionMetrics,
    SessionStartedEvent, StateChangedEvent, SegmentStartedEvent,
    CaptureStartedEvent, CaptureSkippedEvent, AnswerSubmittedEvent,
    RetryScheduledEvent, SessionCompletedEvent, SessionFailedEvent,
    ErrorOccurredEvent, TokensDeductedEvent
)
from .finalizer import Finalizer
from .models import Question, SessionData, SessionResult
from .schemas import (
    AwaitingWelcome, PlayingSegment, AwaitingCapture, Validating,
    Completed, Failed, SessionState, is_terminal, state_as_dict
)
from .services import AvatarRenderer, TokenAccount
from .submitter import (
    AnswerSubmitter, RandomPhraseSource, RetryPhraseSource, RetryPolicy,
    SuccessPredicate, interview_success, training_success
)
from .timer import SessionTimer
from ..config import TRAINING_MODE, VALIDATION_TOKEN_COST, WELCOME_DELAY_SECONDS
from ..errors import FinalizeError
from ..infrastructure.audio.processing import encode_answer

logger = logging.getLogger("orchestrator")


class SessionOrchestrator:
    """
    Drives one session from welcome to outro.

    One instance per session. All collaborators are injected: the backend
    client, the avatar renderer, the capture controller and the clock
    (`sleep`). `run()` is the only coroutine that mutates the queue and its
    cursor; it awaits each suspension point in turn, so at most one
    segment, capture or backend call is ever in flight.
    """

    def __init__(self,
                 data: SessionData,
                 backend,
                 renderer: AvatarRenderer,
                 capture: CaptureController,
                 success_predicate: Optional[SuccessPredicate] = None,
                 retry_phrase_source: Optional[RetryPhraseSource] = None,
                 account: Optional[TokenAccount] = None,
                 event_bus: Optional[SessionEventBus] = None,
                 rng: Optional[random.Random] = None,
                 sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
                 welcome_delay: float = WELCOME_DELAY_SECONDS,
                 per_turn_seconds: Optional[float] = None,
                 max_retries_per_question: Optional[int] = None,
                 validation_token_cost: int = VALIDATION_TOKEN_COST,
                 encoder=encode_answer):
        # Raises MissingSessionDataError before anything plays
        self.queue = build_segment_queue(data, rng)
        self.data = data
        self.renderer = renderer
        self.capture = capture
        self.account = account
        self.welcome_delay = welcome_delay
        self.per_turn_seconds = per_turn_seconds or None
        self._sleep = sleep

        if success_predicate is None:
            success_predicate = training_success if data.mode == TRAINING_MODE else interview_success
        if retry_phrase_source is None:
            retry_phrase_source = RandomPhraseSource(data.phrases.repeat_question_phrases, rng)

        self.retry_policy = RetryPolicy(retry_phrase_source, max_retries_per_question or None)
        self.submitter = AnswerSubmitter(
            backend,
            success_predicate=success_predicate,
            account=account,
            token_cost=validation_token_cost,
            session_id=data.session_id,
            job_name=data.job_name,
            language=data.language,
            encoder=encoder,
        )
        self.finalizer = Finalizer(backend, data.session_id)
        self.timer = SessionTimer.for_minutes(data.duration_minutes, sleep=sleep)

        self.event_bus = event_bus or SessionEventBus()
        self.metrics = SessionMetrics()
        self.event_bus.subscribe_all(EventLogger().handle_event)
        self.event_bus.subscribe_all(self.metrics.handle_event)
        if account is not None and account.on_deduct is None:
            account.on_deduct = self._on_tokens_deducted

        self._state: SessionState = AwaitingWelcome()
        self._running = False
        self.answered_questions = 0
        self.skipped_questions = 0
        self.error_message: Optional[str] = None

    # ------------------------------------------------------------------
    # Outputs for the surrounding page
    # ------------------------------------------------------------------

    @property
    def session_id(self) -> str:
        return self.data.session_id or "unknown"

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def cursor(self) -> int:
        return self.queue.cursor

    @property
    def remaining_seconds(self) -> int:
        return self.timer.remaining_seconds

    @property
    def is_recording(self) -> bool:
        return self.capture.is_recording

    @property
    def is_validating(self) -> bool:
        return isinstance(self._state, Validating)

    @property
    def is_completed(self) -> bool:
        return isinstance(self._state, Completed)

    def stop_recording(self) -> bool:
        """User action: end the current answer."""
        return self.capture.stop()

    # ------------------------------------------------------------------
    # Session coroutine
    # ------------------------------------------------------------------

    async def run(self) -> SessionResult:
        """
        Run the session to its terminal state.

        Returns:
            SessionResult; a failed finalize is reported there, not raised
        """
        if self._running or is_terminal(self._state):
            raise RuntimeError("A session orchestrator can only run once")
        self._running = True

        self.timer.start()
        self.event_bus.emit(SessionStartedEvent(
            self.session_id, time.time(), len(self.queue),
            len(self.data.questions), self.timer.remaining_seconds
        ))
        logger.info(f"Starting session {self.session_id}: {len(self.queue)} segments")

        try:
            if self.welcome_delay > 0:
                await self._sleep(self.welcome_delay)
            while not is_terminal(self._state):
                await self._play_current()
        except Exception as e:
            self.event_bus.emit(ErrorOccurredEvent(
                self.session_id, time.time(), type(e).__name__, str(e), "orchestrator"
            ))
            logger.error("Session failed with error: %s", e)
            raise
        finally:
            self.capture.release()
            self.timer.cancel()
            self._running = False

        return self.result()

    async def _play_current(self) -> None:
        index = self.queue.cursor
        segment = self.queue.current
        self._set_state(PlayingSegment(index))
        self.event_bus.emit(SegmentStartedEvent(
            self.session_id, time.time(), index, segment.kind.value,
            [entry.text for entry in segment.entries]
        ))

        await self.renderer.play(segment)

        if self.queue.is_last(index):
            await self._finish(index)
        elif segment.is_question:
            await self._collect_answer(index, segment.question)
        else:
            self.queue.advance()

    async def _collect_answer(self, index: int, question: Question) -> None:
        self._set_state(AwaitingCapture(index))

        if not await self.capture.start():
            # No microphone: move on without an answer and without a retry
            self.skipped_questions += 1
            self.event_bus.emit(CaptureSkippedEvent(
                self.session_id, time.time(), index, question.id, "microphone unavailable"
            ))
            self.queue.advance()
            return

        self.event_bus.emit(CaptureStartedEvent(self.session_id, time.time(), index, question.id))

        auto_stop = None
        if self.per_turn_seconds:
            auto_stop = asyncio.get_running_loop().call_later(self.per_turn_seconds, self.capture.stop)
        try:
            recording = await self.capture.wait_for_recording()
        finally:
            if auto_stop is not None:
                auto_stop.cancel()

        self._set_state(Validating(index))
        outcome = await self.submitter.submit(question, recording)
        self.event_bus.emit(AnswerSubmittedEvent(
            self.session_id, time.time(), index, question.id, outcome.success, outcome.reason
        ))

        if outcome.success:
            self.answered_questions += 1
            self.queue.advance()
            return

        inserted = self.retry_policy.schedule(self.queue, question)
        if inserted is None:
            self.skipped_questions += 1
            self.queue.advance()
            return

        self.event_bus.emit(RetryScheduledEvent(
            self.session_id, time.time(), question.id, self.queue.cursor,
            self.retry_policy.retries_for(question)
        ))

    async def _finish(self, index: int) -> None:
        try:
            await self.finalizer.finalize()
        except FinalizeError as e:
            # Queue and cursor stay as they are; nothing else plays
            self.error_message = str(e)
            self._set_state(Failed(index, self.error_message))
            self.event_bus.emit(ErrorOccurredEvent(
                self.session_id, time.time(), type(e).__name__, str(e), "finalizer"
            ))
            self.event_bus.emit(SessionFailedEvent(self.session_id, time.time(), self.error_message))
            return

        self.queue.clear()
        self._set_state(Completed())
        self.event_bus.emit(SessionCompletedEvent(
            self.session_id, time.time(), self.answered_questions, self.retry_policy.total_retries
        ))

    def _on_tokens_deducted(self, amount: int, reason: str, balance: Optional[int]) -> None:
        self.event_bus.emit(TokensDeductedEvent(self.session_id, time.time(), amount, reason, balance))

    def _set_state(self, state: SessionState) -> None:
        self._state = state
        logger.debug(f"State: {state}")
        self.event_bus.emit(StateChangedEvent(self.session_id, time.time(), state_as_dict(state)))

    def result(self) -> SessionResult:
        return SessionResult(
            session_id=self.data.session_id,
            phase=self._state.phase.value,
            completed=self.is_completed,
            answered_questions=self.answered_questions,
            skipped_questions=self.skipped_questions,
            retries=self.retry_policy.total_retries,
            tokens_spent=self.account.spent if self.account else 0,
            remaining_seconds=self.timer.remaining_seconds,
            error_message=self.error_message,
        )
