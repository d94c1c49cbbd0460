"""
Abstract interface for text-to-speech providers.
"""

from abc import ABC, abstractmethod
from typing import Optional

from ..models.data_models import AudioOutput


class TextToSpeechInterface(ABC):
    """Abstract base class for all text-to-speech providers."""

    @abstractmethod
    async def initialize(self) -> bool:
        """
        Initialize the TTS provider.

        Returns:
            bool: True if initialization successful, False otherwise
        """
        pass

    @abstractmethod
    async def synthesize(self, text: str, voice: Optional[str] = None) -> AudioOutput:
        """
        Synthesize speech from text.

        Args:
            text: Text to synthesize
            voice: Optional voice identifier overriding the configured one

        Returns:
            AudioOutput: Encoded audio

        Raises:
            SynthesisFailed: On any provider-side failure
        """
        pass

    @abstractmethod
    async def cleanup(self) -> None:
        """Clean up resources used by the TTS provider."""
        pass

    @property
    def capabilities(self) -> dict:
        """
        Get provider capabilities.

        Returns:
            dict: Dictionary of provider capabilities
        """
        return {
            'streaming': False,
            'batch': True,
            'voices': [],
            'audio_formats': ['mp3']
        }
