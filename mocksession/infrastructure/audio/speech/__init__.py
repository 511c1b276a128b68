"""Avatar playback of pre-rendered phrase audio."""

from .playback import ConsoleAvatarRenderer, decode_audio, estimate_speech_seconds, play_audio_file

__all__ = ["ConsoleAvatarRenderer", "decode_audio", "estimate_speech_seconds", "play_audio_file"]
