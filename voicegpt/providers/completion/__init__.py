"""
Completion provider implementations.
"""

from .openai_chat import OpenAIChatProvider

__all__ = ['OpenAIChatProvider']
