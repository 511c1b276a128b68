"""Audio processing and capture modules."""

# Import processing functions immediately (numpy/scipy only)
from .processing import (
    stereo_to_mono,
    remove_dc,
    resample,
    normalize_audio,
    to_pcm16,
    wav_bytes,
    encode_answer
)


# Lazy imports for capture (avoid loading sounddevice unless needed)
def _get_microphone():
    from .capture import SoundDeviceMicrophone
    return SoundDeviceMicrophone


def __getattr__(name):
    if name == "SoundDeviceMicrophone":
        return _get_microphone()
    raise AttributeError(f"module '{__name__}' has no attribute '{name}'")


__all__ = [
    "SoundDeviceMicrophone",
    "stereo_to_mono",
    "remove_dc",
    "resample",
    "normalize_audio",
    "to_pcm16",
    "wav_bytes",
    "encode_answer"
]
