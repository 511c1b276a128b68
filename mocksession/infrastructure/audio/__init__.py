"""
Audio handling for mock sessions.

- processing: answer conditioning, WAV/base64 encoding and microphone capture
- speech: avatar playback of pre-rendered phrase audio
"""

from .processing import encode_answer


def __getattr__(name):
    if name == "SoundDeviceMicrophone":
        from .processing.capture import SoundDeviceMicrophone
        return SoundDeviceMicrophone
    if name == "ConsoleAvatarRenderer":
        from .speech import ConsoleAvatarRenderer
        return ConsoleAvatarRenderer
    raise AttributeError(f"module '{__name__}' has no attribute '{name}'")


__all__ = ["encode_answer", "SoundDeviceMicrophone", "ConsoleAvatarRenderer"]
