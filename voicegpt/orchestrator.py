"""
Conversation orchestrator.

Ties capture, voice activity detection, transcription, completion, speech
synthesis and playback into one continuously running loop:

    IDLE → LISTENING → PROCESSING → LISTENING (+ SPEAKING) → ... ; any → IDLE

Everything runs on one event loop. VAD callbacks are synchronous and act
within the tick that raised them; every asynchronous flow runs as a tracked
task tagged with the epoch it was started in, and re-checks that epoch after
each suspension point so a superseded or stopped flow can never mutate
history or restart devices.
"""

import asyncio
from typing import Dict, Any, Optional, Set, Callable

from .factory import ProviderFactory
from .interfaces import (
    TranscriptionInterface,
    CompletionInterface,
    TextToSpeechInterface
)
from .models.data_models import AudioOutput
from .utils.audio_capture import AudioCaptureSession, CaptureConfig, CaptureEvent
from .utils.conversation_history import ConversationHistory
from .utils.error_handling import (
    ErrorHandler,
    ErrorCallback,
    DeviceUnavailable,
    ServiceError,
    PlaybackFailed,
    TooShortUtterance,
    safe_cleanup
)
from .utils.level_meter import LevelMeter
from .utils.logging_config import get_logger
from .utils.playback import PlaybackController, PlaybackConfig, PlaybackEvent
from .utils.state_machine import InteractionStateMachine, InteractionState, StateListener
from .utils.vad import VoiceActivityDetector, VADConfig


logger = get_logger("orchestrator")


DEFAULT_SYSTEM_PROMPT = "You are a helpful assistant."
DEFAULT_GREETING = "Hello, how can I help you?"
DEFAULT_MIN_UTTERANCE_BYTES = 5000
UPLOAD_FILENAME = "audio.wav"


class ConversationOrchestrator:
    """
    Voice conversation state machine.

    Host surface:
    - start_interaction() / stop_interaction()
    - state, recording, question, response, is_loading, history
    - set_error_callback(), add_state_listener(), get_status()

    Usable as an async context manager for guaranteed teardown.
    """

    def __init__(
        self,
        config: Dict[str, Any],
        on_error: Optional[ErrorCallback] = None,
        *,
        transcription: Optional[TranscriptionInterface] = None,
        completion: Optional[CompletionInterface] = None,
        tts: Optional[TextToSpeechInterface] = None,
        capture: Optional[AudioCaptureSession] = None,
        playback: Optional[PlaybackController] = None,
        detector: Optional[VoiceActivityDetector] = None
    ):
        self.config = config

        conversation = config.get('conversation', {})
        self._greeting: str = conversation.get('greeting', DEFAULT_GREETING)
        self._min_utterance_bytes: int = conversation.get('min_utterance_bytes', DEFAULT_MIN_UTTERANCE_BYTES)
        self._debug: bool = bool(config.get('debug', False))

        # Core infrastructure
        self.state_machine = InteractionStateMachine()
        self.error_handler = ErrorHandler(on_error)
        self._history = ConversationHistory(
            conversation.get('system_prompt', DEFAULT_SYSTEM_PROMPT)
        )

        # Owned resources (non-owning references when injected)
        capture_config = CaptureConfig(**config.get('capture', {}))
        self._capture = capture or AudioCaptureSession(capture_config)
        self._playback = playback or PlaybackController(PlaybackConfig(**config.get('playback', {})))

        # Frames are metered in the sample type the session actually captures
        frame_dtype = getattr(self._capture, 'config', capture_config).dtype
        self._detector = detector or VoiceActivityDetector(
            VADConfig(**{**config.get('vad', {}), 'debug': self._debug}),
            level_source=LevelMeter(lambda: self._capture.latest_frame, dtype=frame_dtype)
        )

        # Provider instances (created in initialize() when not injected)
        self._transcription = transcription
        self._completion = completion
        self._tts = tts

        # Flow bookkeeping
        self._epoch = 0
        self._tasks: Set[asyncio.Task] = set()
        self._synthesizing = False
        self._recording = False
        self._speech_audible = False
        self._question = ""
        self._response = ""

        self._capture.add_listener(self._on_capture_event)
        self._playback.add_listener(self._on_playback_event)

        self.is_initialized = False

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def initialize(self) -> bool:
        """
        Create missing providers through the factory and initialize them all.

        Returns:
            True if every provider is ready
        """
        if self.is_initialized:
            return True

        try:
            if self._transcription is None:
                section = self.config['transcription']
                self._transcription = ProviderFactory.create_transcription_provider(
                    section['provider'], section.get('config', {})
                )
            if self._completion is None:
                section = self.config['completion']
                self._completion = ProviderFactory.create_completion_provider(
                    section['provider'], section.get('config', {})
                )
            if self._tts is None:
                section = self.config['tts']
                self._tts = ProviderFactory.create_tts_provider(
                    section['provider'], section.get('config', {})
                )
        except (KeyError, ValueError) as e:
            logger.error(f"❌ Provider configuration error: {e}")
            return False

        for name, provider in self._providers().items():
            if not await provider.initialize():
                logger.error(f"❌ Failed to initialize {name} provider")
                return False

        self.is_initialized = True
        logger.info("✅ Orchestrator initialized")
        return True

    def _providers(self) -> Dict[str, Any]:
        providers = {
            'transcription': self._transcription,
            'completion': self._completion,
            'tts': self._tts,
        }
        return {name: p for name, p in providers.items() if p is not None}

    async def _cleanup_providers(self) -> None:
        for name, provider in self._providers().items():
            try:
                await provider.cleanup()
            except Exception as e:
                logger.warning(f"⚠️  Error cleaning up {name} provider: {e}")
        self.is_initialized = False

    async def close(self) -> None:
        """Stop everything and release devices, timers and clients."""
        await safe_cleanup(self.stop_interaction, self._cleanup_providers)
        self._capture.remove_listener(self._on_capture_event)
        self._playback.remove_listener(self._on_playback_event)
        logger.info("👋 Orchestrator closed")

    async def __aenter__(self) -> 'ConversationOrchestrator':
        if not await self.initialize():
            raise RuntimeError("Orchestrator failed to initialize")
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    # ------------------------------------------------------------------
    # Host surface
    # ------------------------------------------------------------------

    @property
    def state(self) -> InteractionState:
        return self.state_machine.current_state

    @property
    def recording(self) -> bool:
        return self._recording

    @property
    def question(self) -> str:
        """Latest transcribed user utterance."""
        return self._question

    @property
    def response(self) -> str:
        """Latest assistant reply text."""
        return self._response

    @property
    def is_loading(self) -> bool:
        return self.state == InteractionState.PROCESSING or self._synthesizing

    @property
    def history(self) -> ConversationHistory:
        return self._history

    @property
    def speech_audible(self) -> bool:
        return self._speech_audible

    def set_error_callback(self, callback: Optional[ErrorCallback]) -> None:
        self.error_handler.set_callback(callback)

    def add_state_listener(self, listener: StateListener) -> None:
        self.state_machine.add_listener(listener)

    def remove_state_listener(self, listener: StateListener) -> None:
        self.state_machine.remove_listener(listener)

    async def start_interaction(self) -> None:
        """
        Begin listening, or stop when an interaction is already running.

        On the very first interaction the greeting is spoken before the
        microphone opens. Returns once listening has begun or failed.
        """
        if self.state != InteractionState.IDLE:
            logger.info("🔁 Interaction already running, stopping")
            await self.stop_interaction()
            return

        if not self.is_initialized and not await self.initialize():
            raise RuntimeError("Orchestrator failed to initialize")

        self._epoch += 1
        task = self._spawn(self._open(self._epoch))
        await asyncio.wait({task})

    async def stop_interaction(self) -> None:
        """Stop capture, playback, detection and in-flight flows; return to IDLE."""
        self._epoch += 1

        current = asyncio.current_task()
        pending = [t for t in self._tasks if t is not current and not t.done()]
        for task in pending:
            task.cancel()

        self._playback.stop()
        await self._detector.stop()
        await self._capture.stop()
        self._capture.take_buffer()

        if pending:
            await asyncio.gather(*pending, return_exceptions=True)

        self._synthesizing = False
        if self.state != InteractionState.IDLE:
            logger.info("⏹️  Interaction stopped")
        self.state_machine.force_idle("stop")

    def get_status(self) -> Dict[str, Any]:
        """Get current status."""
        return {
            'state': self.state.name,
            'recording': self._recording,
            'is_loading': self.is_loading,
            'speech_audible': self._speech_audible,
            'user_has_spoken': self._detector.has_spoken,
            'history_size': len(self._history),
            'turns': self._history.turn_count,
            'active_tasks': len(self._tasks),
            'errors': self.error_handler.get_error_summary(),
            'transitions': [
                f"{t.from_state.name} → {t.to_state.name}"
                for t in self.state_machine.get_transition_history(5)
            ],
        }

    # ------------------------------------------------------------------
    # Flows
    # ------------------------------------------------------------------

    def _spawn(self, coro) -> asyncio.Task:
        task = asyncio.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._task_done)
        return task

    def _task_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is None:
            return
        logger.error(f"💥 Unexpected error in conversation flow: {error!r}")
        self.error_handler.report("orchestrator", error)
        if self.state != InteractionState.IDLE:
            self._spawn(self.stop_interaction())

    def _is_stale(self, epoch: int) -> bool:
        return epoch != self._epoch

    def _transition(self, target: InteractionState, reason: str) -> None:
        self.state_machine.transition_to(target, reason)

    async def _open(self, epoch: int) -> None:
        if self._history.is_fresh and self._greeting:
            await self._play_greeting(epoch)
            if self._is_stale(epoch):
                return
        await self._begin_listening(epoch, "interaction started")

    async def _play_greeting(self, epoch: int) -> None:
        try:
            audio = await self._tts.synthesize(self._greeting)
        except ServiceError as e:
            logger.debug(f"Greeting synthesis failed: {e}")
            return
        if self._is_stale(epoch):
            return

        self._transition(InteractionState.SPEAKING, "greeting")
        try:
            await self._playback.play(audio)
        except (PlaybackFailed, DeviceUnavailable) as e:
            logger.debug(f"Greeting playback failed: {e}")

    async def _begin_listening(self, epoch: int, reason: str) -> None:
        """Open the microphone, then arm a fresh detection cycle."""
        try:
            await self._capture.start()
        except DeviceUnavailable as e:
            if self._is_stale(epoch):
                return
            self.error_handler.report("capture", e)
            await self._halt("microphone unavailable")
            return

        if self._is_stale(epoch):
            return

        self._transition(InteractionState.LISTENING, reason)
        await self._detector.start(
            self._on_utterance_complete,
            on_barge_in=self._on_barge_in,
            is_speaking=lambda: self.state == InteractionState.SPEAKING
        )

    async def _halt(self, reason: str) -> None:
        logger.warning(f"🚨 Halting interaction: {reason}")
        await self.stop_interaction()

    def _on_utterance_complete(self) -> None:
        # Only one finalization per listening cycle
        if self.state != InteractionState.LISTENING:
            return
        self._epoch += 1
        self._transition(InteractionState.PROCESSING, "utterance complete")
        self._spawn(self._process_utterance(self._epoch))

    def _on_barge_in(self) -> None:
        if self.state != InteractionState.SPEAKING:
            return
        self._playback.stop()
        self._capture.take_buffer()
        self._detector.reset()
        self._transition(InteractionState.LISTENING, "barge-in")

    async def _process_utterance(self, epoch: int) -> None:
        await self._detector.stop()
        await self._capture.stop()
        buffer = self._capture.take_buffer()
        if self._is_stale(epoch):
            return

        try:
            payload = buffer.to_wav()
            logger.debug(f"📦 Captured {len(payload)} bytes ({buffer.duration_seconds:.2f}s)")
            if len(payload) < self._min_utterance_bytes:
                raise TooShortUtterance(len(payload), self._min_utterance_bytes)

            question = await self._transcription.transcribe(payload, UPLOAD_FILENAME)
            if self._is_stale(epoch):
                return
            if not question:
                logger.debug("Empty transcript, resuming listening")
                await self._begin_listening(epoch, "empty transcript")
                return

            self._question = question
            self._history.add_user(question)
            logger.info(f"👤 {question}")

            reply = await self._completion.complete(self._history.to_api())
            if self._is_stale(epoch):
                return

            self._response = reply
            self._history.add_assistant(reply)
            logger.info(f"🤖 {reply}")

        except TooShortUtterance as e:
            logger.debug(f"🔇 {e}, resuming listening")
            await self._begin_listening(epoch, "too short")
            return
        except ServiceError as e:
            if self._is_stale(epoch):
                return
            self.error_handler.report("processing", e)
            await self._begin_listening(epoch, "recovering")
            return

        # Reopen the microphone before synthesis so barge-in covers the whole reply window
        await self._begin_listening(epoch, "reply ready")
        if self._is_stale(epoch) or self.state != InteractionState.LISTENING:
            return
        await self._speak(reply, epoch)

    async def _speak(self, text: str, epoch: int) -> None:
        self._synthesizing = True
        try:
            audio = await self._tts.synthesize(text)
        except ServiceError as e:
            if not self._is_stale(epoch):
                self.error_handler.report("synthesis", e)
            return
        finally:
            self._synthesizing = False

        # A new utterance bumps the epoch; speech that starts once the reply is
        # audible is handled by barge-in
        if self._is_stale(epoch) or self.state != InteractionState.LISTENING:
            logger.info("⏭️  Discarding reply audio, turn superseded")
            return

        await self._play_reply(audio, epoch)

    async def _play_reply(self, audio: AudioOutput, epoch: int) -> None:
        self._transition(InteractionState.SPEAKING, "reply audio ready")
        try:
            finished = await self._playback.play(audio)
        except PlaybackFailed as e:
            if self._is_stale(epoch):
                return
            self.error_handler.report("playback", e)
            if self.state == InteractionState.SPEAKING:
                self._transition(InteractionState.LISTENING, "playback failed")
            return
        except DeviceUnavailable as e:
            if self._is_stale(epoch):
                return
            self.error_handler.report("playback", e)
            await self._halt("output unavailable")
            return

        # Barge-in already moved us on
        if not finished or self._is_stale(epoch) or self.state != InteractionState.SPEAKING:
            return

        # Drop what the microphone heard of the reply itself
        self._capture.take_buffer()
        self._detector.reset()
        self._transition(InteractionState.LISTENING, "playback finished")

    # ------------------------------------------------------------------
    # Resource events
    # ------------------------------------------------------------------

    def _on_capture_event(self, event: CaptureEvent, payload: Any = None) -> None:
        self._recording = event == CaptureEvent.STARTED

    def _on_playback_event(self, event: PlaybackEvent, payload: Any = None) -> None:
        self._speech_audible = event == PlaybackEvent.STARTED
