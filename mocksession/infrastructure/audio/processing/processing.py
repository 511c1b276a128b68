"""
Audio conditioning and encoding for recorded answers.
"""
import io
import math
import wave
import base64

import numpy as np
from scipy.signal import resample_poly

from ....config import SAMPLE_RATE_TARGET, TARGET_RMS


def stereo_to_mono(x: np.ndarray) -> np.ndarray:
    """Convert multi-channel audio to mono by averaging channels."""
    if x.ndim == 1:
        return x
    return np.mean(x, axis=1)


def remove_dc(x: np.ndarray) -> np.ndarray:
    """Remove DC offset from audio signal."""
    return x - np.mean(x)


def resample(mono: np.ndarray, sr_in: int, sr_out: int = SAMPLE_RATE_TARGET) -> np.ndarray:
    """Resample mono audio between arbitrary integer rates."""
    if sr_in == sr_out:
        return mono.astype(np.float32)
    g = math.gcd(int(sr_in), int(sr_out))
    return resample_poly(mono, up=sr_out // g, down=sr_in // g).astype(np.float32)


def normalize_audio(audio: np.ndarray, target_rms: float = TARGET_RMS) -> np.ndarray:
    """Normalize audio to target RMS level."""
    rms = float(np.sqrt(np.mean(audio**2)) + 1e-9)
    gain = min(20.0, target_rms / rms) if rms > 0 else 1.0
    return audio * gain


def to_pcm16(audio: np.ndarray) -> np.ndarray:
    """Convert float audio in [-1, 1] to PCM16."""
    return np.clip(audio * 32767, -32768, 32767).astype(np.int16)


def wav_bytes(pcm16: np.ndarray, sr: int, channels: int = 1) -> bytes:
    """Write PCM16 audio data to an in-memory WAV file."""
    out = io.BytesIO()
    with wave.open(out, "wb") as wf:
        wf.setnchannels(channels)
        wf.setsampwidth(2)
        wf.setframerate(sr)
        wf.writeframes(pcm16.tobytes())
    return out.getvalue()


def encode_answer(frames: np.ndarray,
                  sample_rate: int,
                  sr_target: int = SAMPLE_RATE_TARGET,
                  target_rms: float = TARGET_RMS) -> str:
    """
    Turn captured float frames into the base64 WAV payload the backend expects.
    Returns an empty string when nothing was captured.
    """
    if frames.size == 0:
        return ""
    mono = remove_dc(stereo_to_mono(frames.astype(np.float32)))
    y = normalize_audio(resample(mono, sample_rate, sr_target), target_rms)
    return base64.b64encode(wav_bytes(to_pcm16(y), sr_target)).decode("ascii")
