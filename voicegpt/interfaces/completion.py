"""
Abstract interface for language-model completion providers.
"""

from abc import ABC, abstractmethod
from typing import Dict, List, Sequence, Union

from ..models.data_models import ConversationMessage


Messages = Sequence[Union[ConversationMessage, Dict[str, str]]]


class CompletionInterface(ABC):
    """Abstract base class for all completion providers."""

    @abstractmethod
    async def initialize(self) -> bool:
        """
        Initialize the completion provider.

        Returns:
            bool: True if initialization successful, False otherwise
        """
        pass

    @abstractmethod
    async def complete(self, messages: Messages) -> str:
        """
        Generate the assistant reply for a conversation.

        Args:
            messages: Ordered conversation, system message first

        Returns:
            str: The first choice's content

        Raises:
            CompletionFailed: On any provider-side failure
        """
        pass

    @abstractmethod
    async def cleanup(self) -> None:
        """Clean up resources used by the completion provider."""
        pass

    @staticmethod
    def to_payload(messages: Messages) -> List[Dict[str, str]]:
        """Normalize messages into role/content dictionaries."""
        return [
            m.to_dict() if isinstance(m, ConversationMessage) else dict(m)
            for m in messages
        ]

    @property
    def capabilities(self) -> dict:
        """
        Get provider capabilities.

        Returns:
            dict: Dictionary of provider capabilities
        """
        return {
            'streaming': False,
            'tools': False,
            'models': []
        }
