"""
Tests for the microphone capture session and shared audio ownership.
"""

import asyncio
import io
import threading
import wave

import numpy as np
import pytest

from voicegpt.utils.audio_capture import (
    AudioCaptureSession,
    CaptureBuffer,
    CaptureConfig,
    CaptureEvent
)
from voicegpt.utils.audio_manager import SharedAudioManager
from voicegpt.utils.error_handling import DeviceUnavailable


class FakeStream:
    """Stand-in for a sounddevice.InputStream."""

    def __init__(self, callback, fail_start=False):
        self.callback = callback
        self.fail_start = fail_start
        self.started = False
        self.closed = False

    def start(self):
        if self.fail_start:
            raise OSError("PortAudio error")
        self.started = True

    def stop(self):
        self.started = False

    def close(self):
        self.closed = True

    def push(self, samples):
        self.callback(np.asarray(samples, dtype=np.int16).reshape(-1, 1), len(samples), None, None)


@pytest.fixture
def manager():
    return SharedAudioManager()


@pytest.fixture
def streams():
    return []


@pytest.fixture
def session(manager, streams):
    def factory(config, callback):
        stream = FakeStream(callback)
        streams.append(stream)
        return stream
    return AudioCaptureSession(CaptureConfig(), audio_manager=manager, stream_factory=factory)


async def _settle():
    for _ in range(5):
        await asyncio.sleep(0)


class TestCaptureSession:

    @pytest.mark.asyncio
    async def test_start_opens_stream_and_acquires_device(self, session, manager, streams):
        events = []
        session.add_listener(lambda event, payload: events.append(event))

        await session.start()

        assert session.is_capturing
        assert streams[0].started
        assert manager.current_owner == "capture"
        assert events == [CaptureEvent.STARTED]

    @pytest.mark.asyncio
    async def test_start_is_idempotent(self, session, streams):
        await session.start()
        await session.start()

        assert len(streams) == 1

    @pytest.mark.asyncio
    async def test_chunks_from_driver_thread_reach_buffer(self, session, streams):
        await session.start()

        thread = threading.Thread(target=streams[0].push, args=([100] * 1600,))
        thread.start()
        thread.join()
        await _settle()

        assert session.buffered_bytes == 3200
        assert session.latest_frame == np.full(1600, 100, dtype=np.int16).tobytes()

    @pytest.mark.asyncio
    async def test_stop_flushes_pending_chunks(self, session, streams):
        await session.start()
        streams[0].push([1] * 10)

        await session.stop()

        assert session.take_buffer().size_bytes == 20

    @pytest.mark.asyncio
    async def test_chunks_after_stop_are_dropped(self, session, streams):
        await session.start()
        stream = streams[0]
        await session.stop()

        stream.push([1] * 10)
        await _settle()

        assert session.buffered_bytes == 0
        assert session.latest_frame is None

    @pytest.mark.asyncio
    async def test_stop_releases_device_and_closes_stream(self, session, manager, streams):
        events = []
        session.add_listener(lambda event, payload: events.append(event))
        await session.start()

        await session.stop()

        assert not session.is_capturing
        assert streams[0].closed
        assert manager.current_owner is None
        assert events == [CaptureEvent.STARTED, CaptureEvent.STOPPED]

    @pytest.mark.asyncio
    async def test_stop_is_idempotent(self, session):
        events = []
        session.add_listener(lambda event, payload: events.append(event))

        await session.stop()
        await session.start()
        await session.stop()
        await session.stop()

        assert events == [CaptureEvent.STARTED, CaptureEvent.STOPPED]

    @pytest.mark.asyncio
    async def test_take_buffer_leaves_empty_buffer(self, session, streams):
        await session.start()
        streams[0].push([5] * 4)
        await _settle()

        taken = session.take_buffer()

        assert taken.size_bytes == 8
        assert session.buffered_bytes == 0

    @pytest.mark.asyncio
    async def test_restart_begins_fresh_buffer(self, session, streams):
        await session.start()
        streams[0].push([5] * 4)
        await session.stop()

        await session.start()

        assert session.buffered_bytes == 0

    @pytest.mark.asyncio
    async def test_busy_device(self, session, manager):
        manager.acquire_audio("other")

        with pytest.raises(DeviceUnavailable):
            await session.start()
        assert not session.is_capturing
        assert manager.current_owner == "other"

    @pytest.mark.asyncio
    async def test_stream_failure_releases_device(self, manager):
        def factory(config, callback):
            return FakeStream(callback, fail_start=True)

        session = AudioCaptureSession(audio_manager=manager, stream_factory=factory)

        with pytest.raises(DeviceUnavailable):
            await session.start()
        assert manager.current_owner is None
        assert not session.is_capturing

    @pytest.mark.asyncio
    async def test_factory_failure(self, manager):
        def factory(config, callback):
            raise RuntimeError("no default input device")

        session = AudioCaptureSession(audio_manager=manager, stream_factory=factory)

        with pytest.raises(DeviceUnavailable):
            await session.start()
        assert manager.current_owner is None


class TestCaptureBuffer:

    def test_to_wav(self):
        buffer = CaptureBuffer(sample_rate=16000)
        buffer.append(b'\x01\x00' * 800)
        buffer.append(b'\x02\x00' * 800)

        with wave.open(io.BytesIO(buffer.to_wav()), 'rb') as wav:
            assert wav.getnchannels() == 1
            assert wav.getsampwidth() == 2
            assert wav.getframerate() == 16000
            assert wav.getnframes() == 1600
            assert wav.readframes(1600) == buffer.to_pcm()

    def test_duration(self):
        buffer = CaptureBuffer(sample_rate=16000)
        buffer.append(b'\x00' * 32000)

        assert buffer.duration_seconds == pytest.approx(1.0)
        assert len(buffer) == 1

    def test_empty_buffer_still_yields_header(self):
        wav = CaptureBuffer().to_wav()

        assert wav[:4] == b'RIFF'
        assert len(wav) == 44


class TestSharedAudioManager:

    def test_same_owner_can_reacquire(self, manager):
        assert manager.acquire_audio("capture")
        assert manager.acquire_audio("capture")

    def test_other_owner_refused(self, manager):
        manager.acquire_audio("capture")

        assert not manager.acquire_audio("other")

    def test_release_by_non_owner_is_ignored(self, manager):
        manager.acquire_audio("capture")

        manager.release_audio("other")

        assert manager.current_owner == "capture"

    def test_force_cleanup(self, manager):
        manager.acquire_audio("capture")
        manager.acquire_audio("capture")

        manager.force_cleanup()

        assert manager.current_owner is None
