"""
Tests for answer encoding and console playback.
"""
import asyncio
import base64
import io
import wave

import numpy as np
import pytest

from mocksession.infrastructure.audio.processing import encode_answer, resample, stereo_to_mono
from mocksession.infrastructure.audio.speech.playback import (
    ConsoleAvatarRenderer, decode_audio, estimate_speech_seconds, guess_audio_suffix
)
from mocksession.session.models import Segment
from mocksession.session.testing import create_test_questions, phrase


def test_encode_empty_recording():
    assert encode_answer(np.zeros(0, dtype=np.float32), 48000) == ""


def test_encode_produces_mono_16k_wav():
    t = np.arange(48000, dtype=np.float32) / 48000
    tone = 0.2 * np.sin(2 * np.pi * 440.0 * t)
    stereo = np.stack([tone, tone], axis=1).astype(np.float32)

    payload = encode_answer(stereo, 48000)

    with wave.open(io.BytesIO(base64.b64decode(payload)), "rb") as wf:
        assert wf.getnchannels() == 1
        assert wf.getsampwidth() == 2
        assert wf.getframerate() == 16000
        assert wf.getnframes() == 16000


def test_stereo_to_mono_passes_mono_through():
    mono = np.ones(10, dtype=np.float32)
    assert stereo_to_mono(mono) is mono
    assert stereo_to_mono(np.ones((10, 2))).shape == (10,)


def test_resample_same_rate_is_identity():
    x = np.linspace(-1, 1, 100).astype(np.float32)
    np.testing.assert_allclose(resample(x, 16000, 16000), x)


def test_decode_audio_accepts_data_urls():
    raw = b"RIFF1234WAVE"
    encoded = base64.b64encode(raw).decode()

    assert decode_audio(encoded) == raw
    assert decode_audio(f"data:audio/wav;base64,{encoded}") == raw
    assert decode_audio("") == b""


def test_guess_audio_suffix():
    assert guess_audio_suffix(b"RIFFxxxxWAVE") == ".wav"
    assert guess_audio_suffix(b"ID3\x03") == ".mp3"
    assert guess_audio_suffix(b"OggS") == ".ogg"


def test_speech_estimate_has_a_floor():
    assert estimate_speech_seconds("Hi") == pytest.approx(0.5)
    assert estimate_speech_seconds(" ".join(["word"] * 180), rate_wpm=180) == pytest.approx(60.0)


def test_console_renderer_prints_entries_in_order():
    lines = []
    slept = []

    async def fake_sleep(seconds):
        slept.append(seconds)

    question = create_test_questions(("python",))[0]
    segment = Segment.for_question(question, phrase("Next question."))
    renderer = ConsoleAvatarRenderer(play_audio=False, sleep=fake_sleep, output=lines.append)

    asyncio.run(renderer.play(segment))

    assert lines == ["🤖 Next question.", f"🤖 {question.question}"]
    assert len(slept) == 2
