"""
Answer submission and the retry policy for rejected answers.
"""
import random
import asyncio
import logging
from dataclasses import dataclass
from typing import Callable, Dict, Optional, Sequence

from .capture import RecordingBuffer
from .models import AudioPhrase, Question, Segment
from .queue import SegmentQueue
from .schemas import ValidateAnswerRequest, ValidateAnswerResponse
from .services import TokenAccount
from ..config import SUCCESS_ANSWER_TYPE, VALIDATION_TOKEN_COST
from ..errors import SessionError, TransportError, ValidationFailure
from ..infrastructure.audio.processing import encode_answer

logger = logging.getLogger("submitter")

SuccessPredicate = Callable[[ValidateAnswerResponse], bool]
RetryPhraseSource = Callable[[], AudioPhrase]


def interview_success(response: ValidateAnswerResponse) -> bool:
    """Interviews accept any answer the backend validated."""
    return response.success


def training_success(response: ValidateAnswerResponse) -> bool:
    """Training also needs the backend to mark the answer as adequate."""
    return response.success and response.answer_type == SUCCESS_ANSWER_TYPE


class RandomPhraseSource:
    """Uniform pick, with replacement, from a phrase pool."""

    def __init__(self, pool: Sequence[AudioPhrase], rng: Optional[random.Random] = None):
        if not pool:
            raise ValueError("Phrase pool is empty")
        self.pool = tuple(pool)
        self.rng = rng or random.Random()

    def __call__(self) -> AudioPhrase:
        return self.rng.choice(self.pool)


class RetryPolicy:
    """
    Re-asks a question by splicing {repeat phrase, question} in after the cursor.

    `max_retries` of None means a question can be re-asked indefinitely.
    """

    def __init__(self, phrase_source: RetryPhraseSource, max_retries: Optional[int] = None):
        self.phrase_source = phrase_source
        self.max_retries = max_retries
        self._retries: Dict[str, int] = {}

    @staticmethod
    def _key(question: Question) -> str:
        return question.id or f"obj-{id(question)}"

    def retries_for(self, question: Question) -> int:
        return self._retries.get(self._key(question), 0)

    @property
    def total_retries(self) -> int:
        return sum(self._retries.values())

    def can_retry(self, question: Question) -> bool:
        return self.max_retries is None or self.retries_for(question) < self.max_retries

    def schedule(self, queue: SegmentQueue, question: Question) -> Optional[Segment]:
        """
        Insert the repeat segment and repoint the cursor at it.

        Returns:
            The inserted segment, or None when the retry cap is reached
        """
        if not self.can_retry(question):
            logger.info(f"Retry limit reached for question {question.id}, moving on")
            return None
        segment = Segment.for_question(question, self.phrase_source())
        queue.insert_after_cursor(segment)
        key = self._key(question)
        self._retries[key] = self._retries.get(key, 0) + 1
        logger.info(f"Re-asking question {question.id} (retry {self._retries[key]})")
        return segment


@dataclass
class SubmissionOutcome:
    """Result of encoding and validating one answer."""
    success: bool
    response: Optional[ValidateAnswerResponse] = None
    error: Optional[SessionError] = None

    @property
    def reason(self) -> str:
        if self.success:
            return "accepted"
        return str(self.error) if self.error else "rejected"


class AnswerSubmitter:
    """Encodes a recording, validates it and judges the response."""

    def __init__(self,
                 backend,
                 success_predicate: SuccessPredicate = interview_success,
                 account: Optional[TokenAccount] = None,
                 token_cost: int = VALIDATION_TOKEN_COST,
                 session_id: Optional[str] = None,
                 job_name: Optional[str] = None,
                 language: Optional[str] = None,
                 encoder=encode_answer):
        self.backend = backend
        self.success_predicate = success_predicate
        self.account = account
        self.token_cost = token_cost
        self.session_id = session_id
        self.job_name = job_name
        self.language = language
        self.encoder = encoder

    async def encode(self, buffer: RecordingBuffer) -> str:
        """Recording to base64 payload; runs off the event loop."""
        if buffer is None or buffer.is_empty:
            return ""
        return await asyncio.to_thread(self.encoder, buffer.frames(), buffer.sample_rate)

    async def submit(self, question: Question, buffer: RecordingBuffer) -> SubmissionOutcome:
        payload = await self.encode(buffer)

        if not payload:
            logger.info(f"Empty answer for question {question.id}")
            return SubmissionOutcome(False, error=ValidationFailure("empty answer"))

        request = ValidateAnswerRequest(
            question=question,
            answer=payload,
            session_id=self.session_id,
            job_name=self.job_name,
            language=self.language,
        )
        try:
            response = await asyncio.to_thread(self.backend.validate_answer, request)
        except TransportError as e:
            logger.warning(f"Validation transport failure for question {question.id}: {e}")
            return SubmissionOutcome(False, error=e)

        # Charged once the backend answered, whether or not it accepted
        if self.account is not None:
            self.account.deduct(self.token_cost, "answer validation")

        if self.success_predicate(response):
            logger.info(f"Answer accepted for question {question.id}")
            return SubmissionOutcome(True, response=response)

        logger.info(f"Answer rejected for question {question.id}: {response.message or response.answer_type}")
        return SubmissionOutcome(
            False, response=response,
            error=ValidationFailure(response.message or f"answer type {response.answer_type}"),
        )
