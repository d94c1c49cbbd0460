"""
OpenAI Whisper transcription provider.

Uploads one finalized utterance and returns the recognized text.
"""

from typing import Dict, Any, Optional

from ..base import OpenAIProviderBase, translate_openai_error
from ...interfaces.transcription import TranscriptionInterface
from ...utils.error_handling import TranscriptionFailed


class OpenAIWhisperProvider(OpenAIProviderBase, TranscriptionInterface):
    """Batch speech-to-text through the audio transcriptions endpoint."""

    component_name = "whisper"

    AVAILABLE_MODELS = ['whisper-1', 'gpt-4o-transcribe', 'gpt-4o-mini-transcribe']

    def __init__(self, config: Dict[str, Any]):
        """
        Initialize the Whisper provider.

        Args:
            config: Configuration dictionary containing:
                - api_key: OpenAI API key (optional, can use env var)
                - model: Transcription model (default: 'whisper-1')
                - language: Optional ISO-639-1 language hint
                - prompt: Optional text to guide the model's style
        """
        super().__init__(config)
        self.model = config.get('model', 'whisper-1')
        if self.model not in self.AVAILABLE_MODELS:
            raise ValueError(f"Invalid model: {self.model}. Available: {self.AVAILABLE_MODELS}")
        self.language: Optional[str] = config.get('language')
        self.prompt: Optional[str] = config.get('prompt')

    async def transcribe(self, audio: bytes, filename: str = "audio.wav") -> str:
        client = self._require_client()

        kwargs: Dict[str, Any] = {
            'model': self.model,
            'file': (filename, audio),
        }
        if self.language:
            kwargs['language'] = self.language
        if self.prompt:
            kwargs['prompt'] = self.prompt

        try:
            result = await client.audio.transcriptions.create(**kwargs)
        except Exception as e:
            raise translate_openai_error(e, TranscriptionFailed) from e

        text = getattr(result, 'text', result)
        if not isinstance(text, str):
            raise TranscriptionFailed(None, f"Unexpected transcription response: {result!r}")

        self.logger.debug(f"📝 Transcribed {len(audio)} bytes → {len(text)} chars")
        return text.strip()

    @property
    def capabilities(self) -> dict:
        """Get provider capabilities."""
        return {
            'streaming': False,
            'batch': True,
            'languages': ['auto-detect'],
            'audio_formats': ['wav', 'mp3', 'm4a', 'webm'],
            'sample_rates': [16000],
            'models': self.AVAILABLE_MODELS
        }
