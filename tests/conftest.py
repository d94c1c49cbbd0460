"""
Pytest configuration and shared fixtures for voicegpt tests.
"""

import asyncio
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

import pytest

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from voicegpt.interfaces import (
    TranscriptionInterface,
    CompletionInterface,
    TextToSpeechInterface
)
from voicegpt.models.data_models import AudioOutput, AudioFormat
from voicegpt.orchestrator import ConversationOrchestrator
from voicegpt.utils.audio_capture import CaptureBuffer, CaptureEvent
from voicegpt.utils.events import EventEmitter
from voicegpt.utils.playback import PlaybackEvent


TEST_SYSTEM_PROMPT = "You are a test assistant."
TEST_GREETING = "Hello, how can I help you?"


# =============================================================================
# Fake services
# =============================================================================

class FakeTranscription(TranscriptionInterface):
    """Returns queued transcripts (or 'hello')."""

    def __init__(self, replies: Optional[List[str]] = None):
        self.replies = list(replies or [])
        self.calls: List[bytes] = []
        self.error: Optional[Exception] = None
        self.cleaned = False

    async def initialize(self) -> bool:
        return True

    async def transcribe(self, audio: bytes, filename: str = "audio.wav") -> str:
        self.calls.append(audio)
        await asyncio.sleep(0)
        if self.error is not None:
            raise self.error
        return self.replies.pop(0) if self.replies else "hello"

    async def cleanup(self) -> None:
        self.cleaned = True


class FakeCompletion(CompletionInterface):
    """Echoes the last user message; can be blocked on an event."""

    def __init__(self):
        self.calls: List[List[tuple]] = []
        self.received: List[list] = []
        self.error: Optional[Exception] = None
        self.block: Optional[asyncio.Event] = None
        self.cleaned = False

    async def initialize(self) -> bool:
        return True

    async def complete(self, messages) -> str:
        self.received.append(list(messages))
        payload = self.to_payload(messages)
        self.calls.append([(m['role'], m['content']) for m in payload])
        if self.block is not None:
            await self.block.wait()
        await asyncio.sleep(0)
        if self.error is not None:
            raise self.error
        return f"reply to {payload[-1]['content']}"

    async def cleanup(self) -> None:
        self.cleaned = True


class FakeTTS(TextToSpeechInterface):
    """Returns a small mp3-tagged payload for every text."""

    def __init__(self):
        self.texts: List[str] = []
        self.error: Optional[Exception] = None
        self.block: Optional[asyncio.Event] = None
        self.cleaned = False

    async def initialize(self) -> bool:
        return True

    async def synthesize(self, text: str, voice: Optional[str] = None) -> AudioOutput:
        self.texts.append(text)
        if self.block is not None:
            await self.block.wait()
        await asyncio.sleep(0)
        if self.error is not None:
            raise self.error
        return AudioOutput(audio_data=f"audio:{text}".encode(), format=AudioFormat.MP3)

    async def cleanup(self) -> None:
        self.cleaned = True


# =============================================================================
# Fake audio resources
# =============================================================================

class FakeCapture(EventEmitter):
    """Capture session that fills its buffer with ``fill_bytes`` of PCM on start."""

    def __init__(self, fill_bytes: int = 32000):
        super().__init__()
        self.fill_bytes = fill_bytes
        self.fail_on_start: Optional[Exception] = None
        self.is_capturing = False
        self.latest_frame = None
        self.start_calls = 0
        self.stop_calls = 0
        self._buffer = CaptureBuffer()

    async def start(self) -> None:
        if self.fail_on_start is not None:
            raise self.fail_on_start
        if self.is_capturing:
            return
        self.start_calls += 1
        self.is_capturing = True
        self._buffer = CaptureBuffer()
        if self.fill_bytes:
            self._buffer.append(b'\x10\x00' * (self.fill_bytes // 2))
        self._emit(CaptureEvent.STARTED)

    async def stop(self) -> None:
        if not self.is_capturing:
            return
        self.stop_calls += 1
        await asyncio.sleep(0)
        self.is_capturing = False
        self._emit(CaptureEvent.STOPPED)

    def take_buffer(self) -> CaptureBuffer:
        buffer = self._buffer
        self._buffer = CaptureBuffer()
        return buffer


class FakePlayback(EventEmitter):
    """Playback that finishes immediately, or when ``finish()`` is called."""

    def __init__(self, auto_finish: bool = True):
        super().__init__()
        self.auto_finish = auto_finish
        self.played: List[AudioOutput] = []
        self.error: Optional[Exception] = None
        self.stop_calls = 0
        self.is_playing = False
        self._gate: Optional[asyncio.Event] = None
        self._interrupted = False

    async def play(self, audio: AudioOutput) -> bool:
        self.stop()
        self.played.append(audio)
        if self.error is not None:
            raise self.error

        self._interrupted = False
        self._gate = asyncio.Event()
        self.is_playing = True
        self._emit(PlaybackEvent.STARTED)
        if self.auto_finish:
            self._gate.set()
        await asyncio.sleep(0)
        await self._gate.wait()
        self.is_playing = False

        if self._interrupted:
            self._emit(PlaybackEvent.INTERRUPTED)
            return False
        self._emit(PlaybackEvent.FINISHED)
        return True

    def finish(self) -> None:
        if self._gate is not None:
            self._gate.set()

    def stop(self) -> bool:
        self.stop_calls += 1
        if not self.is_playing:
            return False
        self._interrupted = True
        self.is_playing = False
        self._gate.set()
        return True


class FakeDetector:
    """Detector whose signals are fired by the test."""

    def __init__(self):
        self.running = False
        self.has_spoken = False
        self.start_calls = 0
        self.reset_calls = 0
        self._on_utterance_complete = None
        self._on_barge_in = None
        self.is_speaking = lambda: False

    async def start(self, on_utterance_complete, on_barge_in=None, is_speaking=None) -> None:
        self.running = True
        self.start_calls += 1
        self.has_spoken = False
        self._on_utterance_complete = on_utterance_complete
        self._on_barge_in = on_barge_in
        self.is_speaking = is_speaking or (lambda: False)

    async def stop(self) -> None:
        self.running = False

    def reset(self) -> None:
        self.reset_calls += 1
        self.has_spoken = False

    def fire_utterance(self) -> None:
        assert self.running, "detector is not running"
        self._on_utterance_complete()

    def fire_barge_in(self) -> None:
        assert self.running, "detector is not running"
        self._on_barge_in()


# =============================================================================
# Fixtures
# =============================================================================

@dataclass
class Harness:
    """An orchestrator wired to fakes, plus the fakes themselves."""
    orchestrator: ConversationOrchestrator
    transcription: FakeTranscription
    completion: FakeCompletion
    tts: FakeTTS
    capture: FakeCapture
    playback: FakePlayback
    detector: FakeDetector
    errors: List[Exception]


@pytest.fixture(scope="session")
def project_root():
    """Return the project root path."""
    return PROJECT_ROOT


@pytest.fixture
def settle():
    """Let pending tasks on the running loop make progress."""
    async def _settle(rounds: int = 30):
        for _ in range(rounds):
            await asyncio.sleep(0)
    return _settle


@pytest.fixture
def make_harness():
    """Build an orchestrator around fakes."""
    def _make(
        greeting: str = TEST_GREETING,
        with_callback: bool = True,
        min_utterance_bytes: int = 5000,
        auto_finish: bool = True,
        transcripts: Optional[List[str]] = None,
        detector=None
    ) -> Harness:
        errors: List[Exception] = []
        transcription = FakeTranscription(transcripts)
        completion = FakeCompletion()
        tts = FakeTTS()
        capture = FakeCapture()
        playback = FakePlayback(auto_finish=auto_finish)
        detector = detector or FakeDetector()
        config = {
            'conversation': {
                'system_prompt': TEST_SYSTEM_PROMPT,
                'greeting': greeting,
                'min_utterance_bytes': min_utterance_bytes,
            },
        }
        orchestrator = ConversationOrchestrator(
            config,
            errors.append if with_callback else None,
            transcription=transcription,
            completion=completion,
            tts=tts,
            capture=capture,
            playback=playback,
            detector=detector
        )
        return Harness(orchestrator, transcription, completion, tts, capture, playback, detector, errors)
    return _make


@pytest.fixture
def clean_env(monkeypatch):
    """Remove voicegpt settings from the environment."""
    for name in (
        "OPENAI_API_KEY",
        "VOICEGPT_SYSTEM_PROMPT",
        "VOICEGPT_GREETING",
        "VOICEGPT_DEBUG",
        "VOICEGPT_SILENCE_THRESHOLD_DB",
        "VOICEGPT_SILENCE_TIMEOUT_MS",
        "VOICEGPT_MIN_SPEECH_DURATION_MS",
        "VOICEGPT_COMPLETION_MODEL",
        "VOICEGPT_TRANSCRIPTION_MODEL",
        "VOICEGPT_TTS_MODEL",
        "VOICEGPT_TTS_VOICE",
        "VOICEGPT_INPUT_DEVICE",
    ):
        monkeypatch.delenv(name, raising=False)
    return monkeypatch
