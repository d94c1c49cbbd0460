"""
Data models for the voice conversation loop.
"""

from .data_models import (
    MessageRole,
    AudioFormat,
    ConversationMessage,
    AudioOutput
)

__all__ = [
    'MessageRole',
    'AudioFormat',
    'ConversationMessage',
    'AudioOutput'
]
