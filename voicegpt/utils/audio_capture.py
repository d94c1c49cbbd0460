"""
Microphone capture session.

Owns one open input stream and the active recording buffer. Audio arrives on
the driver's callback thread and is handed to the event loop with
``call_soon_threadsafe``; the buffer itself is only touched on the loop.
"""

import asyncio
import io
import wave
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Callable, List, Any

import numpy as np

from .audio_manager import SharedAudioManager, get_audio_manager
from .error_handling import DeviceUnavailable
from .events import EventEmitter
from .logging_config import get_logger


logger = get_logger("capture")


OWNER_NAME = "capture"


@dataclass
class CaptureConfig:
    """Configuration for microphone capture."""
    sample_rate: int = 16000
    channels: int = 1
    blocksize: int = 1600  # 100ms at 16kHz
    dtype: str = 'int16'
    device_index: Optional[int] = None
    latency: Optional[str] = None


class CaptureEvent(Enum):
    """Lifecycle events emitted by AudioCaptureSession."""
    STARTED = "started"
    STOPPED = "stopped"


class CaptureBuffer:
    """Ordered raw PCM chunks collected since the last recording start."""

    def __init__(self, sample_rate: int = 16000, channels: int = 1, sample_width: int = 2):
        self.sample_rate = sample_rate
        self.channels = channels
        self.sample_width = sample_width
        self._chunks: List[bytes] = []

    def append(self, chunk: bytes) -> None:
        self._chunks.append(chunk)

    @property
    def size_bytes(self) -> int:
        return sum(len(c) for c in self._chunks)

    @property
    def duration_seconds(self) -> float:
        frame_bytes = self.sample_width * self.channels
        return self.size_bytes / frame_bytes / self.sample_rate

    def __len__(self) -> int:
        return len(self._chunks)

    def to_pcm(self) -> bytes:
        return b''.join(self._chunks)

    def to_wav(self) -> bytes:
        """Finalize the chunks into a WAV container."""
        out = io.BytesIO()
        with wave.open(out, 'wb') as wav:
            wav.setnchannels(self.channels)
            wav.setsampwidth(self.sample_width)
            wav.setframerate(self.sample_rate)
            wav.writeframes(self.to_pcm())
        return out.getvalue()


def _default_stream_factory(config: CaptureConfig, callback: Callable) -> Any:
    # Imported here so the package loads on machines without PortAudio
    import sounddevice as sd

    return sd.InputStream(
        samplerate=config.sample_rate,
        channels=config.channels,
        dtype=config.dtype,
        blocksize=config.blocksize,
        device=config.device_index,
        latency=config.latency,
        callback=callback
    )


class AudioCaptureSession(EventEmitter):
    """
    Exclusive owner of the microphone stream and the CaptureBuffer.

    ``start()`` and ``stop()`` are idempotent. ``take_buffer()`` moves the
    accumulated buffer out and leaves an empty one behind.
    """

    def __init__(
        self,
        config: Optional[CaptureConfig] = None,
        audio_manager: Optional[SharedAudioManager] = None,
        stream_factory: Optional[Callable[[CaptureConfig, Callable], Any]] = None
    ):
        super().__init__()
        self.config = config or CaptureConfig()
        self._audio_manager = audio_manager or get_audio_manager()
        self._stream_factory = stream_factory or _default_stream_factory

        self._stream = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._capturing = False
        self._accepting = False
        self._buffer = self._new_buffer()
        self._latest_frame: Optional[bytes] = None

    def _new_buffer(self) -> CaptureBuffer:
        sample_width = np.dtype(self.config.dtype).itemsize
        return CaptureBuffer(self.config.sample_rate, self.config.channels, sample_width)

    @property
    def is_capturing(self) -> bool:
        return self._capturing

    @property
    def latest_frame(self) -> Optional[bytes]:
        """Most recent chunk, used as the level meter's frame source."""
        return self._latest_frame

    @property
    def buffered_bytes(self) -> int:
        return self._buffer.size_bytes

    async def start(self) -> None:
        """
        Open the microphone and begin filling a fresh buffer.

        Raises:
            DeviceUnavailable: If the device is owned elsewhere or fails to open
        """
        if self._capturing:
            return

        if not self._audio_manager.acquire_audio(OWNER_NAME):
            raise DeviceUnavailable(
                f"Microphone is in use by {self._audio_manager.current_owner}"
            )

        self._loop = asyncio.get_running_loop()
        self._buffer = self._new_buffer()
        self._latest_frame = None
        self._accepting = True

        try:
            stream = self._stream_factory(self.config, self._audio_callback)
            stream.start()
        except Exception as e:
            self._accepting = False
            self._audio_manager.release_audio(OWNER_NAME, force_cleanup=True)
            raise DeviceUnavailable(f"Could not open microphone: {e}") from e

        self._stream = stream
        self._capturing = True
        logger.info("🎙️  Recording started")
        self._emit(CaptureEvent.STARTED)

    async def stop(self) -> None:
        """Stop the stream, flush pending chunks and release the device."""
        if not self._capturing:
            return
        self._capturing = False

        stream = self._stream
        self._stream = None
        if stream is not None:
            try:
                stream.stop()
                stream.close()
            except Exception as e:
                logger.warning(f"⚠️  Error closing input stream: {e}")

        try:
            # Let chunks already handed to the loop land in the buffer
            await asyncio.sleep(0)
        finally:
            self._accepting = False
            self._latest_frame = None
            self._audio_manager.release_audio(OWNER_NAME, force_cleanup=True)
            logger.info(f"⏹️  Recording stopped ({self._buffer.size_bytes} bytes buffered)")
            self._emit(CaptureEvent.STOPPED)

    def take_buffer(self) -> CaptureBuffer:
        """Move the accumulated buffer out, replacing it with an empty one."""
        buffer = self._buffer
        self._buffer = self._new_buffer()
        return buffer

    def _audio_callback(self, indata, frames, time_info, status) -> None:
        """Runs on the audio driver thread; keep it short."""
        if status:
            logger.debug(f"Input stream status: {status}")
        chunk = np.asarray(indata).tobytes()
        loop = self._loop
        if loop is None:
            return
        try:
            loop.call_soon_threadsafe(self._on_chunk, chunk)
        except RuntimeError:
            pass  # Event loop closed

    def _on_chunk(self, chunk: bytes) -> None:
        if not self._accepting:
            return
        self._buffer.append(chunk)
        self._latest_frame = chunk
