"""
OpenAI Text-to-Speech provider.

Synthesizes the assistant reply into a complete encoded payload; playback is
handled separately by the PlaybackController.
"""

from typing import Optional, Dict, Any

from ..base import OpenAIProviderBase, translate_openai_error
from ...interfaces.text_to_speech import TextToSpeechInterface
from ...models.data_models import AudioOutput, AudioFormat
from ...utils.error_handling import SynthesisFailed


class OpenAITTSProvider(OpenAIProviderBase, TextToSpeechInterface):
    """
    OpenAI TTS provider.

    Supports tts-1, tts-1-hd, and gpt-4o-mini-tts models.
    """

    component_name = "tts"

    # Available voices
    AVAILABLE_VOICES = ['alloy', 'echo', 'fable', 'onyx', 'nova', 'shimmer']

    # Available models
    AVAILABLE_MODELS = ['tts-1', 'tts-1-hd', 'gpt-4o-mini-tts']

    # Available output formats
    AVAILABLE_FORMATS = ['mp3', 'opus', 'aac', 'flac', 'wav', 'pcm']

    def __init__(self, config: Dict[str, Any]):
        """
        Initialize OpenAI TTS provider.

        Args:
            config: Configuration dictionary containing:
                - api_key: OpenAI API key (optional, can use env var)
                - model: Model to use (default: 'tts-1')
                - voice: Voice name (default: 'nova')
                - speed: Speed modifier 0.25-4.0 (default: 1.0)
                - response_format: Output format (default: 'mp3')
        """
        super().__init__(config)

        self.model = config.get('model', 'tts-1')
        if self.model not in self.AVAILABLE_MODELS:
            raise ValueError(f"Invalid model: {self.model}. Available: {self.AVAILABLE_MODELS}")

        self.voice = config.get('voice', 'nova')
        if self.voice not in self.AVAILABLE_VOICES:
            raise ValueError(f"Invalid voice: {self.voice}. Available: {self.AVAILABLE_VOICES}")

        self.speed = config.get('speed', 1.0)
        if not (0.25 <= self.speed <= 4.0):
            raise ValueError("Speed must be between 0.25 and 4.0")

        self.response_format = config.get('response_format', 'mp3')
        if self.response_format not in self.AVAILABLE_FORMATS:
            raise ValueError(f"Invalid format: {self.response_format}. Available: {self.AVAILABLE_FORMATS}")

    def _get_audio_format(self) -> AudioFormat:
        """Get the AudioFormat enum for the current response format."""
        format_map = {
            'mp3': AudioFormat.MP3,
            'opus': AudioFormat.OGG,
            'aac': AudioFormat.AAC,
            'flac': AudioFormat.FLAC,
            'wav': AudioFormat.WAV,
            'pcm': AudioFormat.PCM16
        }
        return format_map.get(self.response_format, AudioFormat.MP3)

    async def synthesize(self, text: str, voice: Optional[str] = None) -> AudioOutput:
        client = self._require_client()

        voice_name = voice or self.voice
        if voice_name not in self.AVAILABLE_VOICES:
            voice_name = self.voice

        try:
            response = await client.audio.speech.create(
                model=self.model,
                voice=voice_name,
                input=text,
                speed=self.speed,
                response_format=self.response_format
            )
        except Exception as e:
            raise translate_openai_error(e, SynthesisFailed) from e

        audio = AudioOutput(
            audio_data=response.content,
            format=self._get_audio_format(),
            sample_rate=24000,
            voice=voice_name,
            metadata={
                'model': self.model,
                'speed': self.speed,
                'provider': 'openai',
                'format': self.response_format
            }
        )
        if not audio.is_valid():
            raise SynthesisFailed(None, "Speech synthesis returned no audio")

        self.logger.debug(f"🗣️  Synthesized {len(text)} chars → {audio.get_size_kb():.1f} KB")
        return audio

    @property
    def capabilities(self) -> dict:
        """Get provider capabilities."""
        return {
            'streaming': False,
            'batch': True,
            'voices': self.AVAILABLE_VOICES,
            'audio_formats': self.AVAILABLE_FORMATS,
            'speed_range': (0.25, 4.0),
            'models': self.AVAILABLE_MODELS
        }
