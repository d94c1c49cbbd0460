"""
OpenAI chat completion provider.
"""

from typing import Dict, Any, Optional

from ..base import OpenAIProviderBase, translate_openai_error
from ...interfaces.completion import CompletionInterface, Messages
from ...utils.error_handling import CompletionFailed


class OpenAIChatProvider(OpenAIProviderBase, CompletionInterface):
    """
    Replays the whole conversation to the chat completions endpoint and
    returns the first choice's content.
    """

    component_name = "chat"

    def __init__(self, config: Dict[str, Any]):
        """
        Initialize the chat provider.

        Args:
            config: Configuration dictionary containing:
                - api_key: OpenAI API key (optional, can use env var)
                - model: Chat model (default: 'gpt-3.5-turbo')
                - temperature: Optional sampling temperature
                - max_tokens: Optional reply length limit
        """
        super().__init__(config)
        self.model = config.get('model', 'gpt-3.5-turbo')
        self.temperature: Optional[float] = config.get('temperature')
        self.max_tokens: Optional[int] = config.get('max_tokens')

    async def complete(self, messages: Messages) -> str:
        client = self._require_client()

        kwargs: Dict[str, Any] = {
            'model': self.model,
            'messages': self.to_payload(messages),
        }
        if self.temperature is not None:
            kwargs['temperature'] = self.temperature
        if self.max_tokens is not None:
            kwargs['max_tokens'] = self.max_tokens

        try:
            response = await client.chat.completions.create(**kwargs)
        except Exception as e:
            raise translate_openai_error(e, CompletionFailed) from e

        if not response.choices:
            raise CompletionFailed(None, "Completion returned no choices")

        content = response.choices[0].message.content or ""
        return content.strip()

    @property
    def capabilities(self) -> dict:
        """Get provider capabilities."""
        return {
            'streaming': False,
            'tools': False,
            'models': [self.model]
        }
