"""
Tests for the capture controller and recording handoff.
"""
import asyncio

import numpy as np
import pytest

from mocksession.session.capture import CaptureController, CaptureState, RecordingBuffer
from mocksession.session.testing import MockMicrophone, create_test_chunk


def test_recording_buffer_tracks_frames():
    buffer = RecordingBuffer(sample_rate=16000)
    assert buffer.is_empty
    assert buffer.frames().size == 0

    buffer.append(create_test_chunk(16000, 0.5))
    buffer.append(create_test_chunk(16000, 0.5))
    buffer.append(np.zeros((0, 1), dtype=np.float32))

    assert len(buffer) == 2
    assert buffer.num_frames == 16000
    assert buffer.duration_seconds == pytest.approx(1.0)
    assert buffer.frames().shape == (16000, 1)


def test_start_then_stop_hands_over_recording():
    microphone = MockMicrophone()
    capture = CaptureController(microphone)

    async def scenario():
        assert await capture.start()
        assert capture.is_recording
        await asyncio.sleep(0)
        assert capture.stop()
        return await capture.wait_for_recording()

    recording = asyncio.run(scenario())

    assert len(recording) == 1
    assert recording.sample_rate == 16000
    assert capture.state == CaptureState.IDLE
    assert microphone.open_count == 1
    assert microphone.close_count == 1


def test_second_start_leaves_active_capture_untouched():
    microphone = MockMicrophone()
    capture = CaptureController(microphone)

    async def scenario():
        await capture.start()
        buffer_before = capture._buffer
        assert await capture.start()
        assert capture._buffer is buffer_before
        capture.stop()

    asyncio.run(scenario())

    assert microphone.open_count == 1
    assert microphone.close_count == 1


def test_stop_without_capture_is_a_no_op():
    microphone = MockMicrophone()
    capture = CaptureController(microphone)

    assert capture.stop() is False
    assert microphone.close_count == 0


def test_stop_twice_hands_over_once():
    capture = CaptureController(MockMicrophone())

    async def scenario():
        await capture.start()
        first = capture.stop()
        second = capture.stop()
        recording = await capture.wait_for_recording()
        return first, second, recording

    first, second, recording = asyncio.run(scenario())

    assert first is True
    assert second is False
    assert recording is not None


def test_acquisition_failure_returns_false():
    capture = CaptureController(MockMicrophone(fail_to_open=True))

    started = asyncio.run(capture.start())

    assert started is False
    assert capture.state == CaptureState.IDLE


def test_release_frees_microphone_and_cancels_waiter():
    microphone = MockMicrophone()
    capture = CaptureController(microphone)

    async def scenario():
        await capture.start()
        waiter = asyncio.ensure_future(capture.wait_for_recording())
        await asyncio.sleep(0)
        capture.release()
        with pytest.raises(asyncio.CancelledError):
            await waiter

    asyncio.run(scenario())

    assert not capture.is_active
    assert microphone.close_count == 1
    assert not microphone.is_open


def test_wait_without_capture_raises():
    capture = CaptureController(MockMicrophone())

    with pytest.raises(RuntimeError):
        asyncio.run(capture.wait_for_recording())


def test_unexpected_open_error_resets_state():
    class BrokenMicrophone(MockMicrophone):
        def open(self, on_chunk):
            raise OSError("device vanished")

    capture = CaptureController(BrokenMicrophone())

    with pytest.raises(OSError):
        asyncio.run(capture.start())

    assert capture.state == CaptureState.IDLE
    assert not capture.is_active
