"""
Terminal stand-in for the avatar: prints each line and plays its audio.
"""
import os
import asyncio
import base64
import binascii
import logging
import subprocess
import tempfile
from typing import Awaitable, Callable, Optional, Sequence, Tuple

from ....config import AUDIO_PLAYER_COMMANDS, SPEECH_RATE_WPM
from ....session.models import AudioPhrase, Segment
from ....session.services import AvatarRenderer
from ....utils import with_suppressed_audio_warnings

logger = logging.getLogger("playback")


def guess_audio_suffix(data: bytes) -> str:
    """File suffix for an encoded audio blob, so players pick the right decoder."""
    if data.startswith(b"RIFF"):
        return ".wav"
    if data.startswith(b"OggS"):
        return ".ogg"
    if data.startswith(b"ID3") or data[:2] in (b"\xff\xfb", b"\xff\xf3", b"\xff\xf2"):
        return ".mp3"
    return ".bin"


def decode_audio(audio: str) -> bytes:
    """Decode a base64 payload, tolerating a data-URL prefix."""
    if not audio:
        return b""
    if audio.startswith("data:") and "," in audio:
        audio = audio.split(",", 1)[1]
    try:
        return base64.b64decode(audio, validate=False)
    except (binascii.Error, ValueError) as e:
        logger.warning(f"Could not decode phrase audio: {e}")
        return b""


def estimate_speech_seconds(text: str, rate_wpm: int = SPEECH_RATE_WPM) -> float:
    """How long it takes to say `text` at a conversational pace."""
    words = len(text.split())
    return max(0.5, words * 60.0 / rate_wpm)


@with_suppressed_audio_warnings
def play_audio_file(path: str, players: Sequence[Tuple[str, ...]] = AUDIO_PLAYER_COMMANDS) -> bool:
    """
    Play an audio file with the first available system player.
    Returns False if no player could handle it.
    """
    for command in players:
        try:
            subprocess.run([*command, path], check=True, capture_output=True)
            return True
        except FileNotFoundError:
            continue
        except subprocess.CalledProcessError as e:
            logger.debug(f"{command[0]} failed on {path}: exit {e.returncode}")
            continue
    return False


class ConsoleAvatarRenderer(AvatarRenderer):
    """
    Plays segments sequentially in the terminal.

    Each entry's text is printed; its audio is played through a system
    player. When audio is disabled or cannot be played, the renderer waits
    roughly as long as the line takes to say so pacing stays realistic.
    """

    def __init__(self,
                 play_audio: bool = True,
                 rate_wpm: int = SPEECH_RATE_WPM,
                 sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
                 output: Callable[[str], None] = print):
        self.play_audio = play_audio
        self.rate_wpm = rate_wpm
        self._sleep = sleep
        self._output = output

    async def play(self, segment: Segment) -> None:
        for entry in segment.entries:
            await self._play_entry(entry)

    async def _play_entry(self, entry: AudioPhrase) -> None:
        self._output(f"🤖 {entry.text}")
        played = False
        if self.play_audio:
            data = decode_audio(entry.audio)
            if data:
                played = await asyncio.to_thread(self._play_bytes, data)
        if not played:
            await self._sleep(estimate_speech_seconds(entry.text, self.rate_wpm))

    @staticmethod
    def _play_bytes(data: bytes) -> bool:
        path: Optional[str] = None
        try:
            with tempfile.NamedTemporaryFile(suffix=guess_audio_suffix(data), delete=False) as tmp_file:
                path = tmp_file.name
                tmp_file.write(data)
            return play_audio_file(path)
        finally:
            if path:
                try:
                    os.unlink(path)
                except OSError:
                    pass
