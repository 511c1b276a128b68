"""
Collaborator interfaces and supporting services for a session.
"""
import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Callable, Optional

import numpy as np

from .models import Segment, SessionData
from .schemas import SessionCriteria
from ..errors import SetupError, TransportError

logger = logging.getLogger("services")


class AvatarRenderer(ABC):
    """Presents a segment and returns once it has finished playing."""

    @abstractmethod
    async def play(self, segment: Segment) -> None:
        """
        Play the segment's entries in order.

        Returning signals "segment finished"; each call finishes exactly once.
        """


class MicrophoneSource(ABC):
    """Hardware audio input used by the capture controller."""

    sample_rate: int
    channels: int

    @abstractmethod
    def open(self, on_chunk: Callable[[np.ndarray], None]) -> None:
        """
        Start delivering audio chunks, possibly from another thread.

        Raises:
            CaptureAcquisitionError: If the device cannot be acquired
        """

    @abstractmethod
    def close(self) -> None:
        """Release the device. Must be safe to call when already closed."""


class TokenAccount:
    """Local view of the user's token balance."""

    def __init__(self, balance: Optional[int] = None,
                 on_deduct: Optional[Callable[[int, str, Optional[int]], None]] = None):
        self.balance = balance
        self.spent = 0
        self.on_deduct = on_deduct

    def deduct(self, amount: int, reason: str = "") -> Optional[int]:
        """
        Deduct a fixed cost. The balance floors at zero; an unknown
        balance only accumulates the amount spent.
        """
        if amount <= 0:
            return self.balance
        self.spent += amount
        if self.balance is not None:
            self.balance = max(0, self.balance - amount)
        logger.info(f"Deducted {amount} tokens ({reason or 'unspecified'}), balance: {self.balance}")
        if self.on_deduct is not None:
            self.on_deduct(amount, reason, self.balance)
        return self.balance


class SessionLoader:
    """Fetches questions and phrase banks for a new session in parallel."""

    def __init__(self, backend, account: Optional[TokenAccount] = None, generation_cost: int = 0):
        self.backend = backend
        self.account = account
        self.generation_cost = generation_cost

    async def load(self, criteria: SessionCriteria, language: str, voice_id: str,
                   duration_minutes: int = 0, mode: str = "interview") -> SessionData:
        """
        Generate questions and fetch audio phrases.

        Raises:
            SetupError: If either request fails
        """
        if not language or not voice_id:
            raise SetupError("A language and an interviewer voice are required to load a session")

        try:
            (questions, session_id), phrases = await asyncio.gather(
                asyncio.to_thread(self.backend.generate_session, criteria),
                asyncio.to_thread(self.backend.get_audio_phrases, language, voice_id),
            )
        except TransportError as e:
            logger.error(f"Session setup failed: {e}")
            raise SetupError(f"We couldn't load the session: {e}") from e

        if self.account is not None:
            self.account.deduct(self.generation_cost, "session generation")

        logger.info(f"Loaded session {session_id} with {len(questions)} questions")
        return SessionData(
            session_id=session_id,
            questions=questions,
            phrases=phrases,
            job_name=criteria.job_name,
            language=language,
            duration_minutes=duration_minutes,
            mode=mode,
        )
