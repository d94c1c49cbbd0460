"""
Playback controller for synthesized speech.

Pipes encoded audio into an external player process (ffplay by default).
Owns the single output sink: a new ``play()`` always stops the previous one,
and ``stop()`` is synchronous so barge-in can silence the assistant inside a
single VAD tick.
"""

import asyncio
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, List, Callable, Awaitable, Any, Union

from ..models.data_models import AudioOutput, AudioFormat
from .error_handling import DeviceUnavailable, PlaybackFailed
from .events import EventEmitter
from .logging_config import get_logger


logger = get_logger("playback")


DEFAULT_PLAYER_COMMAND = [
    "ffplay",
    "-nodisp",          # No video display
    "-autoexit",        # Exit when done
    "-loglevel", "quiet",
]


@dataclass
class PlaybackConfig:
    """Configuration for the output player."""
    player_command: List[str] = field(default_factory=lambda: list(DEFAULT_PLAYER_COMMAND))
    timeout: float = 120.0


class PlaybackEvent(Enum):
    """Lifecycle events emitted by PlaybackController."""
    STARTED = "started"
    FINISHED = "finished"
    INTERRUPTED = "interrupted"
    FAILED = "failed"


class _PlaybackHandle:
    """One call to ``play()``."""

    def __init__(self):
        self.process = None
        self.interrupted = False


async def _default_spawn(argv: List[str]):
    return await asyncio.create_subprocess_exec(
        *argv,
        stdin=asyncio.subprocess.PIPE,
        stdout=asyncio.subprocess.DEVNULL,
        stderr=asyncio.subprocess.DEVNULL
    )


class PlaybackController(EventEmitter):
    """
    Single-sink audio player with abrupt stop.

    Emits STARTED when audio becomes audible, then exactly one of FINISHED,
    INTERRUPTED or FAILED.
    """

    def __init__(
        self,
        config: Optional[PlaybackConfig] = None,
        spawn: Optional[Callable[[List[str]], Awaitable[Any]]] = None
    ):
        super().__init__()
        self.config = config or PlaybackConfig()
        self._spawn = spawn or _default_spawn
        self._current: Optional[_PlaybackHandle] = None
        self._audible = False

    @property
    def is_playing(self) -> bool:
        """Whether assistant speech is currently audible."""
        return self._audible

    def _build_argv(self, audio: AudioOutput) -> List[str]:
        format_args = []
        if audio.format == AudioFormat.PCM16:
            # Raw PCM needs explicit format specification
            format_args = ["-f", "s16le", "-ar", str(audio.sample_rate), "-ac", "1"]
        return [*self.config.player_command, *format_args, "-i", "pipe:0"]

    async def play(self, audio: Union[AudioOutput, bytes]) -> bool:
        """
        Play an encoded payload until it ends.

        Args:
            audio: AudioOutput or raw encoded bytes (mp3)

        Returns:
            True if playback finished naturally, False if it was stopped

        Raises:
            DeviceUnavailable: If the player cannot be started
            PlaybackFailed: If the player exits with an error
        """
        if isinstance(audio, (bytes, bytearray)):
            audio = AudioOutput(audio_data=bytes(audio), format=AudioFormat.MP3)

        # Never overlap two outputs
        self.stop()

        handle = _PlaybackHandle()
        self._current = handle

        try:
            process = await self._spawn(self._build_argv(audio))
        except (FileNotFoundError, PermissionError) as e:
            self._release(handle)
            raise DeviceUnavailable(f"Audio player not available: {e}") from e
        except OSError as e:
            self._release(handle)
            raise DeviceUnavailable(f"Failed to start audio player: {e}") from e

        handle.process = process
        if handle.interrupted:
            self._terminate(process)
            self._release(handle)
            return False

        self._audible = True
        logger.debug(f"🔊 Playback started ({audio.get_size_kb():.1f} KB)")
        self._emit(PlaybackEvent.STARTED)

        try:
            returncode = await self._feed_and_wait(process, audio.audio_data)
        except asyncio.CancelledError:
            handle.interrupted = True
            self._terminate(process)
            self._finish(handle, PlaybackEvent.INTERRUPTED)
            raise
        except asyncio.TimeoutError:
            self._terminate(process)
            self._finish(handle, PlaybackEvent.FAILED)
            raise PlaybackFailed(f"Playback did not finish within {self.config.timeout}s")

        if handle.interrupted:
            self._finish(handle, PlaybackEvent.INTERRUPTED)
            return False

        if returncode != 0:
            self._finish(handle, PlaybackEvent.FAILED)
            raise PlaybackFailed(f"Audio player exited with code {returncode}")

        self._finish(handle, PlaybackEvent.FINISHED)
        return True

    async def _feed_and_wait(self, process, data: bytes) -> Optional[int]:
        if process.stdin is not None:
            try:
                process.stdin.write(data)
                await process.stdin.drain()
                process.stdin.close()
                await process.stdin.wait_closed()
            except (BrokenPipeError, ConnectionResetError):
                pass  # Player went away; its exit code tells us why
        return await asyncio.wait_for(process.wait(), timeout=self.config.timeout)

    def stop(self) -> bool:
        """
        Immediately halt playback. Idempotent.

        Returns:
            True if something was playing
        """
        handle = self._current
        if handle is None:
            return False
        handle.interrupted = True
        self._audible = False
        if handle.process is not None:
            self._terminate(handle.process)
        logger.info("🛑 Stopped audio playback")
        return True

    def _terminate(self, process) -> None:
        if process.returncode is not None:
            return
        try:
            process.terminate()
        except ProcessLookupError:
            pass
        except Exception as e:
            logger.warning(f"⚠️  Error stopping playback: {e}")

    def _release(self, handle: _PlaybackHandle) -> None:
        if self._current is handle:
            self._current = None
            self._audible = False

    def _finish(self, handle: _PlaybackHandle, event: PlaybackEvent) -> None:
        self._release(handle)
        logger.debug(f"🔈 Playback {event.value}")
        self._emit(event)
