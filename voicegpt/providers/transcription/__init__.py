"""
Transcription provider implementations.
"""

from .openai_whisper import OpenAIWhisperProvider

__all__ = ['OpenAIWhisperProvider']
