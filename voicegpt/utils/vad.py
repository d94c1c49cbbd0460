"""
Amplitude-based voice activity detection.

The detector samples a loudness figure on a fixed cadence and classifies the
stream into speech and silence. It raises two signals:

- utterance complete: the user spoke long enough and has now been quiet for
  the silence timeout.
- barge-in: the assistant is speaking and the user's level crossed the
  threshold. Checked first on every tick, before any bookkeeping.

Timing is driven by an injectable clock so the algorithm can be exercised
tick-by-tick without real time passing.
"""

import asyncio
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

from .logging_config import get_logger


logger = get_logger("vad")


class VADEvent(Enum):
    """Outcome of a single detection tick."""
    NONE = "none"
    UTTERANCE_COMPLETE = "utterance_complete"
    BARGE_IN = "barge_in"


@dataclass
class VADConfig:
    """Configuration for voice activity detection."""
    silence_threshold_db: float = -25.0
    silence_timeout_ms: int = 1500
    min_speech_duration_ms: int = 500
    poll_interval_ms: int = 100
    debug: bool = False


@dataclass
class VADState:
    """Per-cycle detection state. Reset whenever a new cycle starts."""
    speech_started_at: Optional[float] = None
    silence_started_at: Optional[float] = None
    has_spoken_this_turn: bool = False
    utterance_signalled: bool = False


def _monotonic_ms() -> float:
    return time.monotonic() * 1000.0


class VoiceActivityDetector:
    """
    Threshold-and-timing VAD.

    ``process()`` is the pure per-tick algorithm. ``start()``/``stop()`` run it
    as a polling task on the event loop against a level source.
    """

    def __init__(
        self,
        config: Optional[VADConfig] = None,
        level_source: Optional[Callable[[], float]] = None,
        clock: Callable[[], float] = _monotonic_ms
    ):
        self.config = config or VADConfig()
        self.state = VADState()
        self._level_source = level_source
        self._clock = clock

        self._task: Optional[asyncio.Task] = None
        self._tick_count = 0
        self._on_utterance_complete: Optional[Callable[[], None]] = None
        self._on_barge_in: Optional[Callable[[], None]] = None
        self._is_speaking: Callable[[], bool] = lambda: False

    # ------------------------------------------------------------------
    # Algorithm
    # ------------------------------------------------------------------

    def reset(self) -> None:
        """Start a fresh detection cycle."""
        self.state = VADState()
        self._tick_count = 0

    @property
    def has_spoken(self) -> bool:
        return self.state.has_spoken_this_turn

    def process(self, level_db: float, now_ms: float, speaking: bool = False) -> VADEvent:
        """
        Run one detection tick.

        Args:
            level_db: Current loudness
            now_ms: Current time in milliseconds
            speaking: Whether assistant speech is audible right now

        Returns:
            The event raised on this tick
        """
        cfg = self.config
        state = self.state
        loud = level_db > cfg.silence_threshold_db

        if speaking and loud:
            return VADEvent.BARGE_IN

        if loud:
            state.has_spoken_this_turn = True
            if state.speech_started_at is None:
                state.speech_started_at = now_ms
            state.silence_started_at = None
            return VADEvent.NONE

        if state.silence_started_at is None:
            state.silence_started_at = now_ms

        if state.utterance_signalled or not state.has_spoken_this_turn:
            return VADEvent.NONE

        # Speech duration is the span up to the start of the current silence,
        # so a blip followed by a long pause never qualifies.
        speech_ms = state.silence_started_at - state.speech_started_at
        silence_ms = now_ms - state.silence_started_at

        if silence_ms > cfg.silence_timeout_ms:
            if speech_ms > cfg.min_speech_duration_ms:
                state.utterance_signalled = True
                return VADEvent.UTTERANCE_COMPLETE
            # Expired noise blip; measure the next speech from its own start
            state.speech_started_at = None
            state.has_spoken_this_turn = False

        return VADEvent.NONE

    # ------------------------------------------------------------------
    # Polling loop
    # ------------------------------------------------------------------

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(
        self,
        on_utterance_complete: Callable[[], None],
        on_barge_in: Optional[Callable[[], None]] = None,
        is_speaking: Optional[Callable[[], bool]] = None
    ) -> None:
        """
        Start a new detection cycle on the running loop.

        Args:
            on_utterance_complete: Called once per cycle when the utterance ends
            on_barge_in: Called on every tick that detects barge-in
            is_speaking: Returns True while assistant speech is audible
        """
        if self._level_source is None:
            raise RuntimeError("VoiceActivityDetector has no level source")

        await self.stop()
        self.reset()
        self._on_utterance_complete = on_utterance_complete
        self._on_barge_in = on_barge_in
        self._is_speaking = is_speaking or (lambda: False)
        self._task = asyncio.create_task(self._poll_loop())
        logger.debug(
            f"👂 VAD started (threshold {self.config.silence_threshold_db} dB, "
            f"timeout {self.config.silence_timeout_ms} ms, "
            f"min speech {self.config.min_speech_duration_ms} ms)"
        )

    async def stop(self) -> None:
        """Stop polling. Safe to call when not running."""
        task = self._task
        self._task = None
        if task is None or task.done():
            return
        task.cancel()
        if task is asyncio.current_task():
            return
        try:
            await task
        except asyncio.CancelledError:
            pass
        logger.debug("🛑 VAD stopped")

    async def _poll_loop(self) -> None:
        interval = self.config.poll_interval_ms / 1000.0
        while True:
            self._tick()
            await asyncio.sleep(interval)

    def _tick(self) -> None:
        level = self._level_source()
        self._tick_count += 1
        if self.config.debug and self._tick_count % 2 == 0:
            logger.debug(f"🎚️  Level: {level:.1f} dB")

        event = self.process(level, self._clock(), speaking=self._is_speaking())

        if event == VADEvent.BARGE_IN:
            logger.info(f"🎤 Barge-in detected ({level:.1f} dB)")
            self._dispatch(self._on_barge_in)
        elif event == VADEvent.UTTERANCE_COMPLETE:
            logger.debug("🔇 Silence timeout reached, utterance complete")
            self._dispatch(self._on_utterance_complete)

    def _dispatch(self, callback: Optional[Callable[[], None]]) -> None:
        if callback is None:
            return
        try:
            callback()
        except Exception:
            logger.exception("VAD callback failed")
