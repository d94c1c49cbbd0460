"""
Text-to-speech provider implementations.
"""

from .openai_tts import OpenAITTSProvider

__all__ = ['OpenAITTSProvider']
