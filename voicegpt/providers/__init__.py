"""
Provider implementations for the external speech and language services.
"""

from .transcription import OpenAIWhisperProvider
from .completion import OpenAIChatProvider
from .tts import OpenAITTSProvider

__all__ = [
    'OpenAIWhisperProvider',
    'OpenAIChatProvider',
    'OpenAITTSProvider'
]
