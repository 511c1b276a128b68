"""
Microphone capture around question playback.
"""
import asyncio
import logging
from enum import Enum
from typing import List, Optional

import numpy as np

from .services import MicrophoneSource
from ..errors import CaptureAcquisitionError

logger = logging.getLogger("capture")


class RecordingBuffer:
    """Audio chunks collected during one capture."""

    def __init__(self, sample_rate: int = 0, channels: int = 1):
        self.sample_rate = sample_rate
        self.channels = channels
        self._chunks: List[np.ndarray] = []

    def append(self, chunk: np.ndarray) -> None:
        if chunk is not None and chunk.size:
            self._chunks.append(chunk)

    def __len__(self) -> int:
        return len(self._chunks)

    @property
    def is_empty(self) -> bool:
        return not self._chunks

    @property
    def num_frames(self) -> int:
        return sum(chunk.shape[0] for chunk in self._chunks)

    @property
    def duration_seconds(self) -> float:
        return self.num_frames / self.sample_rate if self.sample_rate else 0.0

    def frames(self) -> np.ndarray:
        """All captured frames as one array."""
        if not self._chunks:
            return np.zeros(0, dtype=np.float32)
        return np.concatenate(self._chunks, axis=0)


class CaptureState(str, Enum):
    IDLE = "idle"
    OPENING = "opening"
    RECORDING = "recording"


class CaptureController:
    """
    Owns the microphone and the buffer of the capture in progress.

    At most one capture is active. `start()` while active is a no-op;
    `stop()` releases the device and hands the buffer to whoever awaits
    `wait_for_recording()`, exactly once.
    """

    def __init__(self, source: MicrophoneSource):
        self.source = source
        self._state = CaptureState.IDLE
        self._buffer: Optional[RecordingBuffer] = None
        self._handoff: Optional[asyncio.Future] = None

    @property
    def state(self) -> CaptureState:
        return self._state

    @property
    def is_recording(self) -> bool:
        return self._state == CaptureState.RECORDING

    @property
    def is_active(self) -> bool:
        return self._state != CaptureState.IDLE

    async def start(self) -> bool:
        """
        Acquire the microphone and begin collecting audio.

        Returns:
            False if the microphone could not be acquired; True otherwise,
            including when a capture was already active.
        """
        if self.is_active:
            logger.debug("Capture already active, ignoring start")
            return True

        loop = asyncio.get_running_loop()
        buffer = RecordingBuffer()
        self._state = CaptureState.OPENING

        def on_chunk(chunk: np.ndarray) -> None:
            # Called from the audio thread
            loop.call_soon_threadsafe(buffer.append, chunk)

        try:
            await asyncio.to_thread(self.source.open, on_chunk)
        except CaptureAcquisitionError as e:
            logger.warning(f"Microphone unavailable, skipping capture: {e}")
            self._state = CaptureState.IDLE
            return False
        except Exception:
            self._state = CaptureState.IDLE
            raise

        if self._state != CaptureState.OPENING:
            # Released while the device was opening
            self.source.close()
            return False

        buffer.sample_rate = self.source.sample_rate
        buffer.channels = self.source.channels
        self._buffer = buffer
        self._handoff = loop.create_future()
        self._state = CaptureState.RECORDING
        logger.info("Recording started")
        return True

    def stop(self) -> bool:
        """
        End the capture in progress.

        Returns:
            True if a capture was stopped, False if nothing was recording
        """
        if not self.is_recording:
            return False

        buffer, self._buffer = self._buffer, None
        try:
            self.source.close()
        finally:
            self._state = CaptureState.IDLE
            if self._handoff is not None and not self._handoff.done():
                self._handoff.set_result(buffer)
        logger.info(f"Recording stopped ({len(buffer)} chunks)")
        return True

    async def wait_for_recording(self) -> RecordingBuffer:
        """Wait for `stop()` and take ownership of the recorded buffer."""
        if self._handoff is None:
            raise RuntimeError("No capture in progress")
        handoff = self._handoff
        try:
            return await handoff
        finally:
            if self._handoff is handoff:
                self._handoff = None

    def release(self) -> None:
        """Teardown: free the microphone whether or not a capture finished."""
        was_active = self.is_active
        self._state = CaptureState.IDLE
        self._buffer = None
        if was_active:
            self.source.close()
            logger.info("Microphone released on teardown")
        if self._handoff is not None and not self._handoff.done():
            self._handoff.cancel()
        self._handoff = None
