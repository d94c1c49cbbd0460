"""
Abstract interface for transcription/speech-to-text providers.
"""

from abc import ABC, abstractmethod


class TranscriptionInterface(ABC):
    """Abstract base class for all transcription providers."""

    @abstractmethod
    async def initialize(self) -> bool:
        """
        Initialize the transcription provider.

        Returns:
            bool: True if initialization successful, False otherwise
        """
        pass

    @abstractmethod
    async def transcribe(self, audio: bytes, filename: str = "audio.wav") -> str:
        """
        Transcribe one finalized utterance.

        Args:
            audio: Encoded audio payload
            filename: Name the payload is uploaded under (its suffix names the format)

        Returns:
            str: The transcribed text

        Raises:
            TranscriptionFailed: On any provider-side failure
        """
        pass

    @abstractmethod
    async def cleanup(self) -> None:
        """Clean up resources used by the transcription provider."""
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
            'languages': ['auto-detect'],
            'audio_formats': ['wav'],
            'sample_rates': [16000]
        }
