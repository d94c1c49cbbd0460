"""
Base classes for provider implementations.
"""

import json
import os
from typing import Dict, Any, Optional, Type

try:
    from openai import AsyncOpenAI
    import openai
except ImportError:
    raise ImportError("openai package is required. Install with: pip install openai")

from ..utils.error_handling import ServiceError
from ..utils.logging_config import get_logger


def _status_body(error: "openai.APIStatusError") -> str:
    response = getattr(error, 'response', None)
    if response is not None:
        try:
            return response.text
        except Exception:
            pass
    body = getattr(error, 'body', None)
    if body is None:
        return error.message
    if isinstance(body, (dict, list)):
        return json.dumps(body)
    return str(body)


def translate_openai_error(error: Exception, failure_cls: Type[ServiceError]) -> ServiceError:
    """
    Map an OpenAI SDK exception onto the matching service failure.

    Status errors keep their HTTP status and response body; connection and
    other client errors carry no status.
    """
    if isinstance(error, ServiceError):
        return error
    if isinstance(error, openai.APIStatusError):
        return failure_cls(error.status_code, _status_body(error))
    if isinstance(error, openai.APIError):
        return failure_cls(None, error.message)
    return failure_cls(None, str(error))


class OpenAIProviderBase:
    """
    Shared lifecycle for providers backed by ``openai.AsyncOpenAI``.

    Provides:
    - API key resolution (config first, then OPENAI_API_KEY)
    - Lazy client creation in ``initialize()``
    - Client shutdown in ``cleanup()``
    """

    component_name = "openai"

    def __init__(self, config: Dict[str, Any]):
        self.config = config
        self.api_key = config.get('api_key') or os.getenv('OPENAI_API_KEY')
        if not self.api_key:
            raise ValueError("OpenAI API key is required. Set OPENAI_API_KEY env var or pass in config.")

        self.base_url: Optional[str] = config.get('base_url')
        self.timeout: float = config.get('timeout', 60.0)
        self.logger = get_logger(self.component_name)

        # Client (lazy initialization)
        self._client: Optional[AsyncOpenAI] = None

    async def initialize(self) -> bool:
        """Create the API client."""
        try:
            self._client = AsyncOpenAI(
                api_key=self.api_key,
                base_url=self.base_url,
                timeout=self.timeout
            )
            return True
        except Exception as e:
            self.logger.error(f"Failed to initialize {self.component_name} provider: {e}")
            return False

    def _require_client(self) -> AsyncOpenAI:
        if not self._client:
            raise RuntimeError(f"{self.component_name} provider not initialized")
        return self._client

    async def cleanup(self) -> None:
        """Clean up resources."""
        if self._client:
            await self._client.close()
            self._client = None
