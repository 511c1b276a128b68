"""
Closes the session on the backend once the outro has played.
"""
import asyncio
import logging
from typing import Optional

from .schemas import FinalizeResponse
from ..errors import FinalizeError, TransportError

logger = logging.getLogger("finalizer")


class Finalizer:
    """Calls the finalize endpoint exactly once; failures are not retried."""

    def __init__(self, backend, session_id: Optional[str]):
        self.backend = backend
        self.session_id = session_id
        self.called = False

    async def finalize(self) -> FinalizeResponse:
        """
        Raises:
            FinalizeError: On missing session id, transport failure or a
                reported failure
        """
        if self.called:
            raise FinalizeError("Session was already finalized")
        self.called = True

        if not self.session_id:
            raise FinalizeError("No session ID found. Cannot finalize session.")

        try:
            response = await asyncio.to_thread(self.backend.finalize_session, self.session_id)
        except TransportError as e:
            logger.error(f"Finalize failed for session {self.session_id}: {e}")
            raise FinalizeError(f"Failed to finalize session: {e}") from e

        if not response.success:
            logger.error(f"Backend refused to finalize session {self.session_id}: {response.message}")
            raise FinalizeError(f"Failed to finalize session: {response.message or 'unknown error'}")

        logger.info(f"Session {self.session_id} finalized")
        return response
