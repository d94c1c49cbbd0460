"""
Abstract interfaces for the external speech and language services.
"""

from .transcription import TranscriptionInterface
from .completion import CompletionInterface
from .text_to_speech import TextToSpeechInterface

__all__ = [
    'TranscriptionInterface',
    'CompletionInterface',
    'TextToSpeechInterface'
]
