"""
Microphone input through PortAudio (sounddevice).
"""
import time
import logging
from typing import Callable, Optional, Tuple

import numpy as np

from ....config import CHANNELS, SAMPLE_RATE_CAPTURE, FRAME_MS
from ....errors import CaptureAcquisitionError
from ....session.services import MicrophoneSource
from ....utils import load_sounddevice, with_suppressed_audio_warnings

logger = logging.getLogger("microphone")

ChunkCallback = Callable[[np.ndarray], None]


@with_suppressed_audio_warnings
def get_best_microphone_config(sd) -> Tuple[Optional[int], int, int]:
    """
    Pick the default input device and its preferred parameters.
    Returns (device_index, channels, sample_rate).
    """
    try:
        info = sd.query_devices(kind="input")
    except Exception as e:
        logger.warning(f"Input device query failed: {e}")
        return None, CHANNELS, SAMPLE_RATE_CAPTURE

    max_input_channels = int(info.get("max_input_channels", 0) or 0)
    if max_input_channels <= 0:
        raise CaptureAcquisitionError(f"Device '{info.get('name', '?')}' has no input channels")

    channels = min(CHANNELS, max_input_channels)
    sample_rate = int(info.get("default_samplerate") or SAMPLE_RATE_CAPTURE)
    logger.info(f"Using input device '{info.get('name', '?')}': {channels} channel(s) at {sample_rate} Hz")
    return info.get("index"), channels, sample_rate


class SoundDeviceMicrophone(MicrophoneSource):
    """
    A microphone source for the capture controller.

    `open()` starts an input stream whose PortAudio callback hands float32
    chunks to `on_chunk`; `close()` stops it and releases the device.
    """

    def __init__(self,
                 input_device: Optional[int] = None,
                 num_channels: Optional[int] = None,
                 sample_rate: Optional[int] = None,
                 frame_ms: int = FRAME_MS,
                 open_retries: int = 3):
        self.input_device = input_device
        self.channels = num_channels or CHANNELS
        self.sample_rate = sample_rate or SAMPLE_RATE_CAPTURE
        self.frame_ms = frame_ms
        self.open_retries = open_retries
        self._stream = None

    @property
    def is_open(self) -> bool:
        return self._stream is not None

    def open(self, on_chunk: ChunkCallback) -> None:
        """
        Open the input stream.

        Raises:
            CaptureAcquisitionError: If no device could be opened
        """
        if self._stream is not None:
            return

        sd = load_sounddevice()
        if self.input_device is None:
            self.input_device, self.channels, self.sample_rate = get_best_microphone_config(sd)

        def audio_callback(indata, frames, time_info, status):
            if status:
                logger.debug(f"Input stream status: {status}")
            on_chunk(np.array(indata, dtype=np.float32, copy=True))

        last_error: Optional[Exception] = None
        for attempt in range(self.open_retries):
            if attempt > 0:
                logger.info(f"Retry attempt {attempt + 1}/{self.open_retries}")
                time.sleep(0.5)
            stream = None
            try:
                stream = sd.InputStream(
                    samplerate=self.sample_rate,
                    device=self.input_device,
                    channels=self.channels,
                    dtype="float32",
                    blocksize=int(self.sample_rate * self.frame_ms / 1000),
                    callback=audio_callback,
                )
                stream.start()
                self._stream = stream
                logger.info("Microphone opened successfully")
                return
            except Exception as e:
                last_error = e
                logger.error(f"Attempt {attempt + 1} failed to open microphone: {e}")
                if stream is not None:
                    # Created but not started: release it before the next attempt
                    try:
                        stream.close()
                    except Exception as close_error:
                        logger.debug(f"Closing failed stream raised: {close_error}")

        raise CaptureAcquisitionError(f"Failed to open microphone: {last_error}")

    def close(self) -> None:
        """Stop the stream and release the device. Safe to call twice."""
        stream, self._stream = self._stream, None
        if stream is None:
            return
        try:
            stream.stop()
        finally:
            stream.close()
            logger.info("Microphone released")
